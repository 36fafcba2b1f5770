"""Definition of libraries as described by metadata, with the partial libraries that
can be merged onto them, the content addressed resolution of their download URL and
the fingerprint of library groups.
"""

from datetime import datetime
import hashlib
import json

from .util import LibrarySpecifier, EPOCH, ensure_dict, ensure_list, \
    get_str, get_int, get_bool, get_str_list, get_str_dict, get_date, to_iso_date
from .rule import Os, Rule, parse_rules

from typing import Optional, List, Dict, Union, Any


# Base URL and layout version of the content addressed storage.
CAS_BASE_URL = "https://maven.modrinth.com"
CAS_VERSION = 0

# Number of leading characters of a content hash used as the shard directory.
CAS_SHARD_LEN = 2


def cas_object_url(base_url: str, cas_version: int, content_hash: str) -> Optional[str]:
    """Return the URL of an object in the content addressed storage given its hash,
    `None` is returned if the hash is too short to be sharded.
    """
    if len(content_hash) < CAS_SHARD_LEN:
        return None
    shard, rest = content_hash[:CAS_SHARD_LEN], content_hash[CAS_SHARD_LEN:]
    return f"{base_url}/v{cas_version}/objects/{shard}/{rest}"


class VersionType:

    RELEASE = "release"
    SNAPSHOT = "snapshot"
    OLD_ALPHA = "old_alpha"
    OLD_BETA = "old_beta"

    ALL = (RELEASE, SNAPSHOT, OLD_ALPHA, OLD_BETA)

    @classmethod
    def parse(cls, raw: Any, path: str) -> str:
        if raw not in cls.ALL:
            raise ValueError(f"{path} must be one of {', '.join(cls.ALL)}")
        return raw


class LibraryDownload:
    """Download information of a library file."""

    __slots__ = "path", "sha1", "size", "url"

    def __init__(self, path: str, sha1: str, size: int, url: Optional[str] = None) -> None:
        self.path = path
        self.sha1 = sha1
        self.size = size
        self.url = url

    @classmethod
    def from_json(cls, value: Any, path: str) -> "LibraryDownload":
        ensure_dict(value, path)
        return cls(
            get_str(value, "path", path),
            get_str(value, "sha1", path),
            get_int(value, "size", path),
            get_str(value, "url", path, required=False))

    def to_json(self) -> dict:
        ret: Dict[str, Any] = {"path": self.path, "sha1": self.sha1, "size": self.size}
        if self.url is not None:
            ret["url"] = self.url
        return ret

    def copy(self) -> "LibraryDownload":
        return LibraryDownload(self.path, self.sha1, self.size, self.url)

    def __eq__(self, other) -> bool:
        return isinstance(other, LibraryDownload) and self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"<LibraryDownload {self.path}>"


class LibraryDownloads:
    """The main artifact of a library and its classifiers, the classifiers are
    typically used for native files.
    """

    __slots__ = "artifact", "classifiers"

    def __init__(self,
        artifact: Optional[LibraryDownload] = None,
        classifiers: Optional[Dict[str, LibraryDownload]] = None
    ) -> None:
        self.artifact = artifact
        self.classifiers = classifiers

    @classmethod
    def from_json(cls, value: Any, path: str) -> "LibraryDownloads":

        ensure_dict(value, path)

        artifact = value.get("artifact")
        if artifact is not None:
            artifact = LibraryDownload.from_json(artifact, f"{path}/artifact")

        classifiers = value.get("classifiers")
        if classifiers is not None:
            ensure_dict(classifiers, f"{path}/classifiers")
            classifiers = {
                key: LibraryDownload.from_json(dl, f"{path}/classifiers/{key}")
                for key, dl in classifiers.items()
            }

        return cls(artifact, classifiers)

    def to_json(self) -> dict:
        ret = {}
        if self.artifact is not None:
            ret["artifact"] = self.artifact.to_json()
        if self.classifiers is not None:
            ret["classifiers"] = {key: self.classifiers[key].to_json() for key in sorted(self.classifiers)}
        return ret

    def copy(self) -> "LibraryDownloads":
        return LibraryDownloads(
            None if self.artifact is None else self.artifact.copy(),
            None if self.classifiers is None else {k: dl.copy() for k, dl in self.classifiers.items()})

    def __eq__(self, other) -> bool:
        return isinstance(other, LibraryDownloads) and self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"<LibraryDownloads {self.to_json()}>"


class LibraryExtract:
    """Files and directories excluded when extracting a native library."""

    __slots__ = "exclude",

    def __init__(self, exclude: Optional[List[str]] = None) -> None:
        self.exclude = exclude

    @classmethod
    def from_json(cls, value: Any, path: str) -> "LibraryExtract":
        ensure_dict(value, path)
        return cls(get_str_list(value, "exclude", path, required=False))

    def to_json(self) -> dict:
        return {} if self.exclude is None else {"exclude": list(self.exclude)}

    def __eq__(self, other) -> bool:
        return isinstance(other, LibraryExtract) and self.exclude == other.exclude

    def __repr__(self) -> str:
        return f"<LibraryExtract {self.exclude}>"


def _parse_natives(value: Any, path: str) -> Dict[str, str]:
    ensure_dict(value, path)
    natives = {}
    for os_name, classifier in value.items():
        if not isinstance(classifier, str):
            raise ValueError(f"{path}/{os_name} must be a string")
        natives[Os.parse(os_name)] = classifier
    return natives


def _natives_to_json(natives: Dict[str, str]) -> dict:
    # Known identifiers first, in declaration order, then the unknown ones.
    order = [os_name for os_name in Os.KNOWN if os_name in natives]
    order.extend(sorted(os_name for os_name in natives if not Os.is_known(os_name)))
    return {os_name: natives[os_name] for os_name in order}


class Library:
    """A library which the game relies on to run.

    Libraries are value objects, the `merge_partial_library` function returns a new
    library. The `patched` flag is true if the library was produced by such merge, it's
    not part of the wire format and is ignored by equality.
    """

    __slots__ = "name", "downloads", "extract", "url", "natives", "rules", \
        "checksums", "include_in_classpath", "patched", "version_hashes"

    def __init__(self, name: Union[LibrarySpecifier, str], *,
        downloads: Optional[LibraryDownloads] = None,
        extract: Optional[LibraryExtract] = None,
        url: Optional[str] = None,
        natives: Optional[Dict[str, str]] = None,
        rules: Optional[List[Rule]] = None,
        checksums: Optional[List[str]] = None,
        include_in_classpath: bool = True,
        patched: bool = False,
        version_hashes: Optional[Dict[str, str]] = None
    ) -> None:
        self.name = LibrarySpecifier.coerce(name)
        self.downloads = downloads
        self.extract = extract
        self.url = url
        self.natives = natives
        self.rules = rules
        self.checksums = checksums
        self.include_in_classpath = include_in_classpath
        self.patched = patched
        self.version_hashes = version_hashes

    @classmethod
    def from_json(cls, value: Any, path: str = "library") -> "Library":
        """Parse a library from its JSON object, a `ValueError` is raised with the path
        of the invalid value if the object is malformed.
        """

        ensure_dict(value, path)
        fields = _parse_library_fields(value, path)

        name = fields.pop("name")
        if name is None:
            raise ValueError(f"{path}/name must be a string")

        include_in_classpath = fields.pop("include_in_classpath")
        return cls(name,
            include_in_classpath=True if include_in_classpath is None else include_in_classpath,
            **fields)

    def to_json(self) -> dict:
        ret: Dict[str, Any] = {}
        if self.downloads is not None:
            ret["downloads"] = self.downloads.to_json()
        if self.extract is not None:
            ret["extract"] = self.extract.to_json()
        ret["name"] = str(self.name)
        if self.url is not None:
            ret["url"] = self.url
        if self.natives is not None:
            ret["natives"] = _natives_to_json(self.natives)
        if self.rules is not None:
            ret["rules"] = [rule.to_json() for rule in self.rules]
        if self.checksums is not None:
            ret["checksums"] = list(self.checksums)
        ret["includeInClasspath"] = self.include_in_classpath
        if self.version_hashes is not None:
            ret["version_hashes"] = {key: self.version_hashes[key] for key in sorted(self.version_hashes)}
        return ret

    def resolve_url(self, version_key: str, base_url: str = CAS_BASE_URL, cas_version: int = CAS_VERSION) -> Optional[str]:
        """Resolve the download URL of this library for the given game version.

        If the version has a content hash in `version_hashes`, the URL of that object in
        the content addressed storage is returned, this always takes precedence over the
        `url` field, which is otherwise returned. `None` is returned if no URL is
        available, or if the content hash is malformed.

        For example, the hash `abc123def456` with base URL `https://maven.modrinth.com`
        and CAS version 0 gives `https://maven.modrinth.com/v0/objects/ab/c123def456`.
        """

        if self.version_hashes is not None:
            content_hash = self.version_hashes.get(version_key)
            if content_hash is not None:
                return cas_object_url(base_url, cas_version, content_hash)

        return self.url

    def __eq__(self, other) -> bool:
        return isinstance(other, Library) and self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"<Library {self.name}{' (patched)' if self.patched else ''}>"


class PartialLibrary:
    """A partial library which should be merged with a full library, every field is
    optional, `None` meaning that the field of the full library is kept.
    """

    __slots__ = "name", "downloads", "extract", "url", "natives", "rules", \
        "checksums", "include_in_classpath", "version_hashes"

    def __init__(self, *,
        name: Union[LibrarySpecifier, str, None] = None,
        downloads: Optional[LibraryDownloads] = None,
        extract: Optional[LibraryExtract] = None,
        url: Optional[str] = None,
        natives: Optional[Dict[str, str]] = None,
        rules: Optional[List[Rule]] = None,
        checksums: Optional[List[str]] = None,
        include_in_classpath: Optional[bool] = None,
        version_hashes: Optional[Dict[str, str]] = None
    ) -> None:
        self.name = LibrarySpecifier.from_str(name) if isinstance(name, str) else name
        self.downloads = downloads
        self.extract = extract
        self.url = url
        self.natives = natives
        self.rules = rules
        self.checksums = checksums
        self.include_in_classpath = include_in_classpath
        self.version_hashes = version_hashes

    @classmethod
    def from_json(cls, value: Any, path: str = "partial library") -> "PartialLibrary":
        ensure_dict(value, path)
        return cls(**_parse_library_fields(value, path))

    def __repr__(self) -> str:
        return f"<PartialLibrary {self.name}>"


def _parse_library_fields(value: dict, path: str) -> Dict[str, Any]:
    """Parse all fields common to full and partial libraries, absent fields are None.
    """

    name = get_str(value, "name", path, required=False)
    if name is not None:
        try:
            name = LibrarySpecifier.from_str(name)
        except ValueError as e:
            raise ValueError(f"{path}/name: {e}")

    downloads = value.get("downloads")
    if downloads is not None:
        downloads = LibraryDownloads.from_json(downloads, f"{path}/downloads")

    extract = value.get("extract")
    if extract is not None:
        extract = LibraryExtract.from_json(extract, f"{path}/extract")

    natives = value.get("natives")
    if natives is not None:
        natives = _parse_natives(natives, f"{path}/natives")

    rules = value.get("rules")
    if rules is not None:
        rules = parse_rules(rules, f"{path}/rules")

    return {
        "name": name,
        "downloads": downloads,
        "extract": extract,
        "url": get_str(value, "url", path, required=False),
        "natives": natives,
        "rules": rules,
        "checksums": get_str_list(value, "checksums", path, required=False),
        "include_in_classpath": get_bool(value, "includeInClasspath", path, required=False),
        "version_hashes": get_str_dict(value, "version_hashes", path, required=False),
    }


def merge_partial_library(partial: PartialLibrary, merge: Library) -> Library:
    """Merges a partial library definition into a complete library, returning a new
    library with the `patched` flag set.

    Download classifiers and natives are merged key by key, with values of the partial
    library overwriting the existing ones. Rules of the partial library are appended
    after the existing rules, so they take precedence. Any other field of the partial
    library replaces the existing one if present.
    """

    downloads = None if merge.downloads is None else merge.downloads.copy()
    if partial.downloads is not None:
        if downloads is None:
            downloads = partial.downloads.copy()
        else:
            if partial.downloads.artifact is not None:
                downloads.artifact = partial.downloads.artifact.copy()
            if partial.downloads.classifiers is not None:
                classifiers = partial.downloads.copy().classifiers
                if downloads.classifiers is None:
                    downloads.classifiers = classifiers
                else:
                    downloads.classifiers.update(classifiers)

    natives = _copy(merge.natives)
    if partial.natives is not None:
        natives = {**(natives or {}), **partial.natives}

    rules = _copy(merge.rules)
    if partial.rules is not None:
        rules = [*(rules or []), *partial.rules]

    # Containers are copied so that the new library shares nothing mutable.
    def pick(partial_value, merge_value):
        return _copy(merge_value if partial_value is None else partial_value)

    return Library(
        pick(partial.name, merge.name),
        downloads=downloads,
        extract=pick(partial.extract, merge.extract),
        url=pick(partial.url, merge.url),
        natives=natives,
        rules=rules,
        checksums=pick(partial.checksums, merge.checksums),
        include_in_classpath=pick(partial.include_in_classpath, merge.include_in_classpath),
        patched=True,
        version_hashes=pick(partial.version_hashes, merge.version_hashes))


def _copy(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return value.copy()
    elif isinstance(value, LibraryExtract):
        return LibraryExtract(_copy(value.exclude))
    elif isinstance(value, LibrarySpecifier):
        return value.with_classifier(value.classifier)
    return value


class DependencyRule:

    EQUALS = "equals"
    SUGGESTS = "suggests"


class Dependency:
    """A dependency of a library group on another group, optionally constrained to an
    exact version or suggesting one.
    """

    __slots__ = "name", "uid", "rule", "rule_version"

    def __init__(self, name: str, uid: str, rule: Optional[str] = None, rule_version: Optional[str] = None) -> None:
        self.name = name
        self.uid = uid
        self.rule = rule
        self.rule_version = rule_version

    @classmethod
    def from_json(cls, value: Any, path: str) -> "Dependency":
        ensure_dict(value, path)
        rule, rule_version = None, None
        for kind in (DependencyRule.EQUALS, DependencyRule.SUGGESTS):
            version = get_str(value, kind, path, required=False)
            if version is not None:
                if rule is not None:
                    raise ValueError(f"{path} must have only one of 'equals' and 'suggests'")
                rule, rule_version = kind, version
        return cls(get_str(value, "name", path), get_str(value, "uid", path), rule, rule_version)

    def to_json(self) -> dict:
        ret = {"name": self.name, "uid": self.uid}
        if self.rule is not None:
            ret[self.rule] = self.rule_version
        return ret

    def __eq__(self, other) -> bool:
        return isinstance(other, Dependency) and self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"<Dependency {self.uid}>"


def parse_dependencies(value: dict, key: str, path: str) -> Optional[List[Dependency]]:
    deps = value.get(key)
    if deps is None:
        return None
    ensure_list(deps, f"{path}/{key}")
    return [Dependency.from_json(dep, f"{path}/{key}/{i}") for i, dep in enumerate(deps)]


class LibraryGroup:
    """A named group of libraries, such as all LWJGL libraries of a given version.
    """

    __slots__ = "id", "version", "uid", "release_time", "type", "libraries", \
        "requires", "conflicts", "has_split_natives"

    def __init__(self,
        id: str,
        version: str,
        uid: str,
        release_time: datetime,
        type: str,
        libraries: List[Library], *,
        requires: Optional[List[Dependency]] = None,
        conflicts: Optional[List[Dependency]] = None,
        has_split_natives: Optional[bool] = None
    ) -> None:
        self.id = id
        self.version = version
        self.uid = uid
        self.release_time = release_time
        self.type = type
        self.libraries = libraries
        self.requires = requires
        self.conflicts = conflicts
        self.has_split_natives = has_split_natives

    @classmethod
    def from_json(cls, value: Any, path: str = "group") -> "LibraryGroup":

        ensure_dict(value, path)

        libraries = ensure_list(value.get("libraries"), f"{path}/libraries")

        return cls(
            get_str(value, "id", path),
            get_str(value, "version", path),
            get_str(value, "uid", path),
            get_date(value, "releaseTime", path),
            VersionType.parse(value.get("type"), f"{path}/type"),
            [Library.from_json(lib, f"{path}/libraries/{i}") for i, lib in enumerate(libraries)],
            requires=parse_dependencies(value, "requires", path),
            conflicts=parse_dependencies(value, "conflicts", path),
            has_split_natives=get_bool(value, "hasSplitNatives", path, required=False))

    def to_json(self) -> dict:
        """Serialize this group, note that `has_split_natives` is never serialized.
        """
        ret: Dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "uid": self.uid,
            "releaseTime": to_iso_date(self.release_time),
            "type": self.type,
            "libraries": [lib.to_json() for lib in self.libraries],
        }
        if self.requires is not None:
            ret["requires"] = [dep.to_json() for dep in self.requires]
        if self.conflicts is not None:
            ret["conflicts"] = [dep.to_json() for dep in self.conflicts]
        return ret

    def __repr__(self) -> str:
        return f"<LibraryGroup {self.uid} {self.version}>"


def fingerprint_group(group: LibraryGroup) -> str:
    """Compute the SHA-1 of the group's canonical JSON representation, without its
    release time. Two groups only differing by their release time have the same
    fingerprint.
    """

    data = group.to_json()
    data["releaseTime"] = to_iso_date(EPOCH)

    raw = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class GroupFingerprintEntry:
    """A pairing of a library group with its fingerprint, this is derived data that
    can be recomputed at any time.
    """

    __slots__ = "content_hash", "group"

    def __init__(self, content_hash: str, group: LibraryGroup) -> None:
        self.content_hash = content_hash
        self.group = group

    @classmethod
    def from_group(cls, group: LibraryGroup) -> "GroupFingerprintEntry":
        return cls(fingerprint_group(group), group)

    def __repr__(self) -> str:
        return f"<GroupFingerprintEntry {self.group.uid} {self.group.version} {self.content_hash}>"
