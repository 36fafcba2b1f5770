"""Records of the official version manifest, of the version metadata and of the assets
index. This module also provides functions fetching and parsing these documents, the
actual transfer being delegated to a fetch function given by the caller.
"""

import json

from .util import ensure_dict, ensure_list, get_str, get_int, get_bool, get_date
from .library import Library, Dependency, VersionType, parse_dependencies
from .rule import Argument, ArgumentType

from typing import Optional, Callable, List, Dict, Tuple, Any


VERSION_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"

# The fetch collaborator, called with an URL and the optional expected SHA-1 of the
# content, it returns the verified bytes or raises its own errors.
Fetcher = Callable[[str, Optional[str]], bytes]


class InvalidJavaProfileError(Exception):
    """Raised when an unknown java profile is used as a concrete one."""

    def __init__(self, profile: str) -> None:
        self.profile = profile

    def __str__(self) -> str:
        return repr(self.profile)


class JavaProfile:
    """The java runtime profile required by a version. Profiles unknown to this library
    are kept with their raw name, only `as_str` fails on them.
    """

    JRE_LEGACY = "jre-legacy"
    JAVA_RUNTIME_ALPHA = "java-runtime-alpha"
    JAVA_RUNTIME_BETA = "java-runtime-beta"
    JAVA_RUNTIME_GAMMA = "java-runtime-gamma"
    JAVA_RUNTIME_GAMMA_SNAPSHOT = "java-runtime-gamma-snapshot"
    JAVA_RUNTIME_DELTA = "java-runtime-delta"
    MINECRAFT_JAVA_EXE = "minecraft-java-exe"

    KNOWN = (JRE_LEGACY, JAVA_RUNTIME_ALPHA, JAVA_RUNTIME_BETA, JAVA_RUNTIME_GAMMA,
        JAVA_RUNTIME_GAMMA_SNAPSHOT, JAVA_RUNTIME_DELTA, MINECRAFT_JAVA_EXE)

    __slots__ = "raw",

    def __init__(self, raw: str) -> None:
        self.raw = raw

    def is_known(self) -> bool:
        return self.raw in self.KNOWN

    def as_str(self) -> str:
        if not self.is_known():
            raise InvalidJavaProfileError(self.raw)
        return self.raw

    def __eq__(self, other) -> bool:
        return isinstance(other, JavaProfile) and self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"<JavaProfile {self.raw}{'' if self.is_known() else ' (unknown)'}>"


class ManifestVersion:
    """A version entry of the version manifest."""

    __slots__ = "id", "type", "url", "time", "release_time", "sha1", "compliance_level", \
        "assets_index_url", "assets_index_sha1", "java_profile"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        self.id = get_str(value, "id", path)
        self.type = VersionType.parse(value.get("type"), f"{path}/type")
        self.url = get_str(value, "url", path)
        self.time = get_date(value, "time", path)
        self.release_time = get_date(value, "releaseTime", path)
        self.sha1 = get_str(value, "sha1", path)
        self.compliance_level = get_int(value, "complianceLevel", path)
        # Only provided by some mirrors.
        self.assets_index_url = get_str(value, "assetsIndexUrl", path, required=False)
        self.assets_index_sha1 = get_str(value, "assetsIndexSha1", path, required=False)
        java_profile = get_str(value, "javaProfile", path, required=False)
        self.java_profile = None if java_profile is None else JavaProfile(java_profile)

    def __repr__(self) -> str:
        return f"<ManifestVersion {self.id}>"


class VersionManifest:
    """The version manifest, listing all versions and the latest release and snapshot.
    """

    def __init__(self, value: Any, path: str = "manifest") -> None:
        ensure_dict(value, path)
        latest = ensure_dict(value.get("latest"), f"{path}/latest")
        self.latest_release = get_str(latest, "release", f"{path}/latest")
        self.latest_snapshot = get_str(latest, "snapshot", f"{path}/latest")
        versions = ensure_list(value.get("versions"), f"{path}/versions")
        self.versions = [ManifestVersion(v, f"{path}/versions/{i}") for i, v in enumerate(versions)]

    def filter_latest(self, version: str) -> Tuple[str, bool]:
        """Resolve the 'release' and 'snapshot' aliases, the returned boolean is true if
        the given version was an alias.
        """
        if version == "release":
            return self.latest_release, True
        elif version == "snapshot":
            return self.latest_snapshot, True
        return version, False

    def get_version(self, version: str) -> Optional[ManifestVersion]:
        version, _alias = self.filter_latest(version)
        for version_data in self.versions:
            if version_data.id == version:
                return version_data
        return None

    def all_versions(self) -> List[ManifestVersion]:
        return self.versions


class AssetIndex:
    """Reference to the assets index of a version."""

    __slots__ = "id", "sha1", "size", "total_size", "url"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        self.id = get_str(value, "id", path)
        self.sha1 = get_str(value, "sha1", path)
        self.size = get_int(value, "size", path)
        self.total_size = get_int(value, "totalSize", path)
        self.url = get_str(value, "url", path)


class DownloadType:

    CLIENT = "client"
    CLIENT_MAPPINGS = "client_mappings"
    SERVER = "server"
    SERVER_MAPPINGS = "server_mappings"
    WINDOWS_SERVER = "windows_server"

    ALL = (CLIENT, CLIENT_MAPPINGS, SERVER, SERVER_MAPPINGS, WINDOWS_SERVER)


class Download:
    """Download information of a version file."""

    __slots__ = "sha1", "size", "url"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        self.sha1 = get_str(value, "sha1", path)
        self.size = get_int(value, "size", path)
        self.url = get_str(value, "url", path)


class JavaVersion:

    __slots__ = "component", "major_version"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        self.component = get_str(value, "component", path)
        self.major_version = get_int(value, "majorVersion", path)


class LoggingConfig:
    """The logger configuration file of the game, and the JVM argument to use it. Only
    the log4j2 XML configuration type exists.
    """

    __slots__ = "id", "sha1", "size", "url", "argument", "type"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        file = ensure_dict(value.get("file"), f"{path}/file")
        self.id = get_str(file, "id", f"{path}/file")
        self.sha1 = get_str(file, "sha1", f"{path}/file")
        self.size = get_int(file, "size", f"{path}/file")
        self.url = get_str(file, "url", f"{path}/file")
        self.argument = get_str(value, "argument", path)
        self.type = get_str(value, "type", path)
        if self.type != "log4j2-xml":
            raise ValueError(f"{path}/type must be 'log4j2-xml'")


class VersionInfo:
    """The metadata of a version."""

    def __init__(self, value: Any, path: str = "metadata") -> None:

        ensure_dict(value, path)

        self.arguments: Optional[Dict[str, List[Argument]]] = None
        arguments = value.get("arguments")
        if arguments is not None:
            ensure_dict(arguments, f"{path}/arguments")
            self.arguments = {}
            for arg_type, args in arguments.items():
                if arg_type not in ArgumentType.ALL:
                    raise ValueError(f"{path}/arguments/{arg_type} is not a known argument type")
                ensure_list(args, f"{path}/arguments/{arg_type}")
                self.arguments[arg_type] = [
                    Argument.from_json(arg, f"{path}/arguments/{arg_type}/{i}")
                    for i, arg in enumerate(args)
                ]

        self.asset_index = AssetIndex(value.get("assetIndex"), f"{path}/assetIndex")
        self.assets = get_str(value, "assets", path)

        downloads = ensure_dict(value.get("downloads"), f"{path}/downloads")
        self.downloads: Dict[str, Download] = {}
        for dl_type, dl in downloads.items():
            if dl_type not in DownloadType.ALL:
                raise ValueError(f"{path}/downloads/{dl_type} is not a known download type")
            self.downloads[dl_type] = Download(dl, f"{path}/downloads/{dl_type}")

        self.id = get_str(value, "id", path)
        self.inherits_from = get_str(value, "inheritsFrom", path, required=False)

        java_version = value.get("javaVersion")
        self.java_version = None if java_version is None else JavaVersion(java_version, f"{path}/javaVersion")

        libraries = ensure_list(value.get("libraries"), f"{path}/libraries")
        self.libraries = [Library.from_json(lib, f"{path}/libraries/{i}") for i, lib in enumerate(libraries)]

        self.requires: Optional[List[Dependency]] = parse_dependencies(value, "requires", path)
        self.main_class = get_str(value, "mainClass", path)
        self.minecraft_arguments = get_str(value, "minecraftArguments", path, required=False)
        self.minimum_launcher_version = get_int(value, "minimumLauncherVersion", path)
        self.release_time = get_date(value, "releaseTime", path)
        self.time = get_date(value, "time", path)
        self.type = VersionType.parse(value.get("type"), f"{path}/type")

        self.logging: Optional[Dict[str, LoggingConfig]] = None
        logging = value.get("logging")
        if logging is not None:
            ensure_dict(logging, f"{path}/logging")
            self.logging = {}
            for name, config in logging.items():
                if name != "client":
                    raise ValueError(f"{path}/logging/{name} is not a known logging config")
                self.logging[name] = LoggingConfig(config, f"{path}/logging/{name}")

    def __repr__(self) -> str:
        return f"<VersionInfo {self.id}>"


class Asset:

    __slots__ = "hash", "size"

    def __init__(self, value: Any, path: str) -> None:
        ensure_dict(value, path)
        self.hash = get_str(value, "hash", path)
        self.size = get_int(value, "size", path)


class AssetsIndex:
    """An index of all assets of a version, mapping their file name to their hash."""

    def __init__(self, value: Any, path: str = "assets index") -> None:
        ensure_dict(value, path)
        objects = ensure_dict(value.get("objects"), f"{path}/objects")
        self.objects = {name: Asset(obj, f"{path}/objects/{name}") for name, obj in objects.items()}
        self.map_virtual = bool(get_bool(value, "virtual", path, required=False))
        self.map_to_resources = bool(get_bool(value, "map_to_resources", path, required=False))


def fetch_version_manifest(fetch: Fetcher, url: Optional[str] = None) -> VersionManifest:
    """Fetch the version manifest from the given URL, or the official one by default.
    """
    return VersionManifest(json.loads(fetch(url or VERSION_MANIFEST_URL, None)))


def fetch_version_info(fetch: Fetcher, version: ManifestVersion) -> VersionInfo:
    """Fetch the metadata of a version of the manifest, checked against its SHA-1.
    """
    return VersionInfo(json.loads(fetch(version.url, version.sha1)))


def fetch_assets_index(fetch: Fetcher, info: VersionInfo) -> AssetsIndex:
    """Fetch the assets index of the version metadata, checked against its SHA-1.
    """
    return AssetsIndex(json.loads(fetch(info.asset_index.url, info.asset_index.sha1)))
