"""Resolution of the concrete libraries of a version for an execution context. This
applies library patches, filters libraries by their rules, selects native classifiers
and resolves the download location of each library.
"""

from .library import Library, PartialLibrary, LibraryDownload, merge_partial_library, \
    CAS_BASE_URL, CAS_VERSION
from .rule import ExecutionContext, evaluate_rules
from .util import LibrarySpecifier, ensure_dict, ensure_list, get_str_list

from typing import Optional, Iterable, List, Dict, Set, Callable, Union, Any


class Watcher:
    """Base class for a watcher of the resolution process.
    """

    def handle(self, event: Any) -> None:
        """Called when the watcher can handle the given event. Default implementation
        does nothing.
        """


class WatcherGroup(Watcher):
    """A group of watcher that is itself a watcher, its functions dispatches events to
    all watchers.
    """

    def __init__(self) -> None:
        self.children: Set[Watcher] = set()

    def add(self, watcher: Watcher) -> None:
        self.children.add(watcher)

    def remove(self, watcher: Watcher) -> None:
        self.children.remove(watcher)

    def handle(self, event: Any) -> None:
        for watcher in self.children:
            watcher.handle(event)


class SimpleWatcher(Watcher):

    def __init__(self, handlers: Dict[type, Callable[[Any], None]]) -> None:
        self.handlers = handlers

    def handle(self, event: Any) -> None:
        handler = self.handlers.get(type(event))
        if handler is not None:
            handler(event)


class LibraryPatch:
    """A patch applied to every library whose coordinate is listed in `match`, the
    override is merged onto the matching libraries and additional libraries are added
    after them. Match entries are parsed as coordinates, so `foo:bar:1.0@jar` matches
    a library named `foo:bar:1.0`.
    """

    __slots__ = "match", "override", "additional_libraries"

    def __init__(self,
        match: Iterable[Union[str, LibrarySpecifier]],
        override: Optional[PartialLibrary] = None,
        additional_libraries: Optional[List[Library]] = None
    ) -> None:
        self.match = [LibrarySpecifier.coerce(spec) for spec in match]
        self.override = override
        self.additional_libraries = additional_libraries

    @classmethod
    def from_json(cls, value: Any, path: str = "patch") -> "LibraryPatch":

        ensure_dict(value, path)

        override = value.get("override")
        if override is not None:
            override = PartialLibrary.from_json(override, f"{path}/override")

        additional_libraries = value.get("additionalLibraries")
        if additional_libraries is not None:
            ensure_list(additional_libraries, f"{path}/additionalLibraries")
            additional_libraries = [
                Library.from_json(lib, f"{path}/additionalLibraries/{i}")
                for i, lib in enumerate(additional_libraries)
            ]

        match = get_str_list(value, "match", path)
        try:
            match = [LibrarySpecifier.from_str(spec) for spec in match]
        except ValueError as e:
            raise ValueError(f"{path}/match: {e}")

        return cls(match, override, additional_libraries)

    def __repr__(self) -> str:
        return f"<LibraryPatch {', '.join(map(str, self.match))}>"


def patch_libraries(libraries: Iterable[Library], patches: Iterable[LibraryPatch], *,
    watcher: Optional[Watcher] = None
) -> List[Library]:
    """Apply patches to the given libraries and return the new list of libraries, the
    given libraries are not modified. Patches are applied in order, so a library can
    be patched multiple times.
    """

    watcher = watcher or Watcher()
    patches = list(patches)

    result = []
    for library in libraries:

        name = str(library.name)
        added = []

        for patch in patches:
            if library.name not in patch.match:
                continue
            if patch.override is not None:
                library = merge_partial_library(patch.override, library)
            if patch.additional_libraries is not None:
                added.extend(merge_partial_library(PartialLibrary(), lib) for lib in patch.additional_libraries)
            watcher.handle(LibraryPatchedEvent(name))

        result.append(library)
        result.extend(added)

    return result


class ResolvedLibrary:
    """A library that applies to an execution context, with its download location.

    The URL is `None` if no download location is known, in such case the library is
    expected to already be installed at its path.
    """

    __slots__ = "spec", "path", "url", "sha1", "size", "native", "include_in_classpath", \
        "extract_exclude", "patched"

    def __init__(self,
        spec: LibrarySpecifier,
        path: str,
        url: Optional[str], *,
        sha1: Optional[str] = None,
        size: Optional[int] = None,
        native: bool = False,
        include_in_classpath: bool = True,
        extract_exclude: Optional[List[str]] = None,
        patched: bool = False
    ) -> None:
        self.spec = spec
        self.path = path
        self.url = url
        self.sha1 = sha1
        self.size = size
        self.native = native
        self.include_in_classpath = include_in_classpath
        self.extract_exclude = extract_exclude
        self.patched = patched

    def __repr__(self) -> str:
        return f"<ResolvedLibrary {self.spec} {self.url}>"


class LibraryResolver:
    """Resolve libraries for an execution context and a game version.

    :param ctx: The execution context rules are evaluated against.
    :param version_key: The game version used to look up content hashes of libraries.
    :param cas_base_url: Base URL of the content addressed storage.
    :param cas_version: Layout version of the content addressed storage.
    """

    def __init__(self,
        ctx: ExecutionContext,
        version_key: Optional[str] = None, *,
        cas_base_url: str = CAS_BASE_URL,
        cas_version: int = CAS_VERSION
    ) -> None:
        self.ctx = ctx
        self.version_key = version_key
        self.cas_base_url = cas_base_url
        self.cas_version = cas_version

    def resolve(self, libraries: Iterable[Library], *, watcher: Optional[Watcher] = None) -> List[ResolvedLibrary]:
        """Resolve the given libraries, in order. Libraries that don't apply to the
        context are skipped, and only the first library with a given specifier is kept.
        """

        watcher = watcher or Watcher()
        watcher.handle(LibrariesResolvingEvent())
        watcher.handle(FeaturesEvent(sorted(self.ctx.features)))

        # Insertion ordering is guaranteed on dictionaries since python 3.7
        resolved: Dict[LibrarySpecifier, ResolvedLibrary] = {}

        for library in libraries:

            if not evaluate_rules(library.rules, self.ctx):
                watcher.handle(LibrarySkippedEvent(library.name, LibrarySkippedEvent.RULES))
                continue

            res = self.resolve_library(library)
            if res is None:
                watcher.handle(LibrarySkippedEvent(library.name, LibrarySkippedEvent.NO_NATIVES))
                continue

            if res.spec not in resolved:
                resolved[res.spec] = res

        ret = list(resolved.values())
        watcher.handle(LibrariesResolvedEvent(
            sum(1 for res in ret if not res.native),
            sum(1 for res in ret if res.native)))

        return ret

    def resolve_library(self, library: Library) -> Optional[ResolvedLibrary]:
        """Resolve a single library, ignoring its rules. `None` is returned for native
        libraries having no classifier for the context's OS.
        """

        spec = library.name

        # Old metadata provides a 'natives' mapping from OS to the classifier specific
        # for this OS, the classifier overrides the one of the specifier.
        native = library.natives is not None
        if native:
            classifier = library.natives.get(self.ctx.os)
            if classifier is None:
                return None
            bits = self.ctx.arch_bits()
            if bits is not None:
                classifier = classifier.replace("${arch}", str(bits))
            spec = spec.with_classifier(classifier)

        dl: Optional[LibraryDownload] = None
        if library.downloads is not None:
            if native:
                classifiers = library.downloads.classifiers
                dl = None if classifiers is None else classifiers.get(spec.classifier)
            else:
                dl = library.downloads.artifact

        url = None
        if self.version_key is not None and library.version_hashes is not None \
                and self.version_key in library.version_hashes:
            url = library.resolve_url(self.version_key, self.cas_base_url, self.cas_version)
        elif dl is not None and dl.url:
            url = dl.url
        elif library.url is not None:
            # The library's url is a maven repository.
            repo_url = library.url if library.url.endswith("/") else f"{library.url}/"
            url = f"{repo_url}{spec.file_path()}"

        return ResolvedLibrary(spec,
            spec.file_path() if dl is None else dl.path,
            url,
            sha1=None if dl is None else dl.sha1,
            size=None if dl is None else dl.size,
            native=native,
            include_in_classpath=library.include_in_classpath,
            extract_exclude=None if library.extract is None else library.extract.exclude,
            patched=library.patched)


class FeaturesEvent:
    """Event triggered when resolving libraries, with the enabled features."""
    __slots__ = "features",
    def __init__(self, features: List[str]) -> None:
        self.features = features

class LibrariesResolvingEvent:
    __slots__ = ()

class LibraryPatchedEvent:
    __slots__ = "name",
    def __init__(self, name: str) -> None:
        self.name = name

class LibrarySkippedEvent:
    """Event triggered when a library doesn't apply to the context, the reason is
    given as a code.
    """

    RULES = "rules"
    NO_NATIVES = "no_natives"

    __slots__ = "spec", "reason"

    def __init__(self, spec: LibrarySpecifier, reason: str) -> None:
        self.spec = spec
        self.reason = reason

class LibrariesResolvedEvent:
    __slots__ = "class_libs_count", "native_libs_count"
    def __init__(self, class_libs_count: int, native_libs_count: int) -> None:
        self.class_libs_count = class_libs_count
        self.native_libs_count = native_libs_count
