"""Global utilities used internally. The functions can be used externally but upward
compatibility is not guaranteed unless explicitly specified.
"""

from datetime import datetime, timezone

from typing import Optional, Union, Any, List


# Sentinel used when a date should not be taken into account, such as the release time
# of a library group when computing its fingerprint.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def from_iso_date(raw: str) -> datetime:
    """Parse an ISO 8601 date as found in metadata. The trailing 'Z' timezone designator
    is accepted as UTC, and naive dates are considered to be UTC.
    """
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso_date(dt: datetime) -> str:
    """Format a date the same way metadata servers do, UTC dates ends with 'Z'.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    raw = dt.isoformat()
    if raw.endswith("+00:00"):
        raw = raw[:-6] + "Z"
    return raw


def ensure_dict(value: Any, path: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{path} must be an object")
    return value


def ensure_list(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"{path} must be a list")
    return value


def get_str(obj: dict, key: str, path: str, *, required: bool = True) -> Optional[str]:
    """Get a string value from a JSON object, raising a `ValueError` with the path of
    the value if it has the wrong type or if it's missing while required.
    """
    value = obj.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{path}/{key} must be a string")
    return value


def get_int(obj: dict, key: str, path: str, *, required: bool = True) -> Optional[int]:
    value = obj.get(key)
    if value is None and not required:
        return None
    # Booleans are integers in Python, but not in JSON.
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{path}/{key} must be an integer")
    return value


def get_bool(obj: dict, key: str, path: str, *, required: bool = True) -> Optional[bool]:
    value = obj.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, bool):
        raise ValueError(f"{path}/{key} must be a boolean")
    return value


def get_str_list(obj: dict, key: str, path: str, *, required: bool = True) -> Optional[List[str]]:
    value = obj.get(key)
    if value is None and not required:
        return None
    ensure_list(value, f"{path}/{key}")
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ValueError(f"{path}/{key}/{i} must be a string")
    return list(value)


def get_str_dict(obj: dict, key: str, path: str, *, required: bool = True) -> Optional[dict]:
    value = obj.get(key)
    if value is None and not required:
        return None
    ensure_dict(value, f"{path}/{key}")
    for item_key, item in value.items():
        if not isinstance(item, str):
            raise ValueError(f"{path}/{key}/{item_key} must be a string")
    return dict(value)


def get_date(obj: dict, key: str, path: str) -> datetime:
    raw = get_str(obj, key, path)
    try:
        return from_iso_date(raw)
    except ValueError:
        raise ValueError(f"{path}/{key} must be an ISO 8601 date")


class LibrarySpecifier:
    """Coordinate naming a library in metadata, written in the maven form
    `group:artifact:version[:classifier][@extension]`.

    Coordinates identify libraries across the whole package: they key the dedupe of
    resolved libraries, select the libraries a patch applies to and, once the native
    classifier is known, give the path of the file in a maven repository. The
    extension defaults to `jar` and is omitted from the string form in that case.
    """

    __slots__ = "group", "artifact", "version", "classifier", "extension"

    def __init__(self, group: str, artifact: str, version: str, classifier: Optional[str] = None, extension: str = "jar"):
        self.group = group
        self.artifact = artifact
        self.version = version
        self.classifier = classifier
        self.extension = extension

    @classmethod
    def from_str(cls, s: str) -> "LibrarySpecifier":
        """Parse a coordinate as found in the `name` field of a library, malformed
        coordinates raise `ValueError` because nothing can be resolved from them.
        """

        coord, sep, ext = s.partition("@")
        if not sep:
            ext = "jar"
        elif not ext or "@" in ext:
            raise ValueError(f"invalid library coordinate {s!r}: bad extension")

        parts = coord.split(":", 3)
        if len(parts) < 3:
            raise ValueError(f"invalid library coordinate {s!r}: too few parts")
        elif not all(parts):
            raise ValueError(f"invalid library coordinate {s!r}: empty part")

        return cls(*parts[:3], parts[3] if len(parts) == 4 else None, ext)

    @classmethod
    def coerce(cls, value: Union[str, "LibrarySpecifier"]) -> "LibrarySpecifier":
        """Accept either an already parsed coordinate or its string form."""
        return value if isinstance(value, LibrarySpecifier) else cls.from_str(value)

    def with_classifier(self, classifier: Optional[str]) -> "LibrarySpecifier":
        """Coordinate of the same artifact for another classifier, used to select the
        native variant of a library.
        """
        return LibrarySpecifier(self.group, self.artifact, self.version, classifier, self.extension)

    def _key(self) -> tuple:
        return self.group, self.artifact, self.version, self.classifier, self.extension

    def __str__(self) -> str:
        parts = [self.group, self.artifact, self.version]
        if self.classifier is not None:
            parts.append(self.classifier)
        s = ":".join(parts)
        return s if self.extension == "jar" else f"{s}@{self.extension}"

    def __eq__(self, other) -> bool:
        return isinstance(other, LibrarySpecifier) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"<LibrarySpecifier {self}>"

    def file_path(self) -> str:
        """Path of the artifact relative to the root of a maven repository, this is
        appended to a library's repository `url` when its metadata has no download
        entry. `org.lwjgl:lwjgl:3.3.1:natives-linux` gives
        `org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar`.
        """
        suffix = "" if self.classifier is None else f"-{self.classifier}"
        file_name = f"{self.artifact}-{self.version}{suffix}.{self.extension}"
        return "/".join([*self.group.split("."), self.artifact, self.version, file_name])
