import pytest

from mcmeta.library import Library, PartialLibrary, LibraryDownloads, LibraryDownload
from mcmeta.resolve import LibraryResolver, LibraryPatch, SimpleWatcher, WatcherGroup, \
    patch_libraries, LibrarySkippedEvent, LibrariesResolvedEvent, LibraryPatchedEvent
from mcmeta.rule import ExecutionContext, Os, Rule, RuleAction, OsRule


def test_resolve_filters_rules(linux_ctx):

    libraries = [
        Library("foo:common:1.0", url="https://maven.example.com"),
        Library("foo:osx-only:1.0", url="https://maven.example.com", rules=[Rule(RuleAction.ALLOW, OsRule(Os.OSX))]),
        Library("foo:not-osx:1.0", url="https://maven.example.com/", rules=[
            Rule(RuleAction.ALLOW), Rule(RuleAction.DISALLOW, OsRule(Os.OSX))]),
    ]

    skipped = []
    resolved_events = []
    watcher = SimpleWatcher({
        LibrarySkippedEvent: skipped.append,
        LibrariesResolvedEvent: resolved_events.append,
    })

    resolved = LibraryResolver(linux_ctx).resolve(libraries, watcher=watcher)

    assert [str(res.spec) for res in resolved] == ["foo:common:1.0", "foo:not-osx:1.0"]
    assert resolved[0].url == "https://maven.example.com/foo/common/1.0/common-1.0.jar"
    assert resolved[1].url == "https://maven.example.com/foo/not-osx/1.0/not-osx-1.0.jar"
    assert resolved[0].path == "foo/common/1.0/common-1.0.jar"

    assert [(str(e.spec), e.reason) for e in skipped] == [("foo:osx-only:1.0", LibrarySkippedEvent.RULES)]
    assert resolved_events[0].class_libs_count == 2
    assert resolved_events[0].native_libs_count == 0

    osx = LibraryResolver(ExecutionContext(Os.OSX)).resolve(libraries)
    assert [str(res.spec) for res in osx] == ["foo:common:1.0", "foo:osx-only:1.0"]


def test_resolve_natives():

    natives_dl = LibraryDownload("foo/natives-linux-64.jar", "1" * 40, 10, "https://example.com/natives-linux-64.jar")
    library = Library("foo:bar:1.0",
        natives={Os.LINUX: "natives-linux-${arch}"},
        downloads=LibraryDownloads(classifiers={"natives-linux-64": natives_dl}))

    resolved = LibraryResolver(ExecutionContext(Os.LINUX, arch="x86_64")).resolve([library])
    assert len(resolved) == 1
    assert resolved[0].native
    assert str(resolved[0].spec) == "foo:bar:1.0:natives-linux-64"
    assert resolved[0].url == "https://example.com/natives-linux-64.jar"
    assert resolved[0].sha1 == "1" * 40
    assert resolved[0].path == "foo/natives-linux-64.jar"

    # 32 bits classifier isn't available.
    resolved = LibraryResolver(ExecutionContext(Os.LINUX, arch="x86")).resolve([library])
    assert resolved[0].url is None

    skipped = []
    resolved = LibraryResolver(ExecutionContext(Os.WINDOWS, arch="x86_64")).resolve(
        [library], watcher=SimpleWatcher({LibrarySkippedEvent: skipped.append}))
    assert resolved == []
    assert skipped[0].reason == LibrarySkippedEvent.NO_NATIVES


def test_resolve_url_precedence(linux_ctx):

    artifact = LibraryDownload("foo/bar.jar", "2" * 40, 10, "https://example.com/bar.jar")
    library = Library("foo:bar:1.0",
        url="https://maven.example.com",
        downloads=LibraryDownloads(artifact),
        version_hashes={"1.20.1": "abc123def456", "1.20.2": "a"})

    cas = LibraryResolver(linux_ctx, "1.20.1", cas_base_url="https://cas.example.com", cas_version=1)
    assert cas.resolve([library])[0].url == "https://cas.example.com/v1/objects/ab/c123def456"

    # Malformed hash means no URL, the download entry isn't used.
    assert LibraryResolver(linux_ctx, "1.20.2").resolve([library])[0].url is None

    assert LibraryResolver(linux_ctx, "1.19").resolve([library])[0].url == "https://example.com/bar.jar"
    assert LibraryResolver(linux_ctx).resolve([library])[0].url == "https://example.com/bar.jar"


def test_resolve_duplicates(linux_ctx):

    first = Library("foo:bar:1.0", url="https://first.example.com")
    second = Library("foo:bar:1.0", url="https://second.example.com")

    resolved = LibraryResolver(linux_ctx).resolve([first, second])
    assert len(resolved) == 1
    assert resolved[0].url.startswith("https://first.example.com/")


def test_patch_libraries(linux_ctx):

    patch = LibraryPatch.from_json({
        "match": ["org.lwjgl:lwjgl:3.3.1"],
        "override": {"rules": [{"action": "allow"}, {"action": "disallow", "os": {"name": "linux-arm64"}}]},
        "additionalLibraries": [{"name": "org.lwjgl:lwjgl:3.3.2", "rules": [{"action": "allow", "os": {"name": "linux-arm64"}}]}],
    })

    libraries = [Library("org.lwjgl:lwjgl:3.3.1"), Library("foo:bar:1.0")]

    patched_events = []
    group = WatcherGroup()
    group.add(SimpleWatcher({LibraryPatchedEvent: patched_events.append}))

    patched = patch_libraries(libraries, [patch], watcher=group)

    assert [str(lib.name) for lib in patched] == ["org.lwjgl:lwjgl:3.3.1", "org.lwjgl:lwjgl:3.3.2", "foo:bar:1.0"]
    assert [lib.patched for lib in patched] == [True, True, False]
    assert libraries[0].rules is None and not libraries[0].patched
    assert [e.name for e in patched_events] == ["org.lwjgl:lwjgl:3.3.1"]

    arm = ExecutionContext(Os.LINUX_ARM64, arch="arm64")
    assert [str(res.spec) for res in LibraryResolver(arm).resolve(patched)] == ["org.lwjgl:lwjgl:3.3.2", "foo:bar:1.0"]
    assert [str(res.spec) for res in LibraryResolver(linux_ctx).resolve(patched)] == ["org.lwjgl:lwjgl:3.3.1", "foo:bar:1.0"]


def test_patch_applied_in_order():

    patches = [
        LibraryPatch(["foo:bar:1.0"], PartialLibrary(url="https://first.example.com")),
        LibraryPatch(["foo:bar:1.0"], PartialLibrary(url="https://second.example.com")),
    ]

    patched = patch_libraries([Library("foo:bar:1.0")], patches)
    assert patched[0].url == "https://second.example.com"


def test_patch_match_coordinates():

    patch = LibraryPatch.from_json({
        "match": ["foo:bar:1.0@jar"],
        "override": {"url": "https://patched.example.com"},
    })
    assert [str(spec) for spec in patch.match] == ["foo:bar:1.0"]

    patched = patch_libraries([Library("foo:bar:1.0"), Library("foo:bar:1.0@zip")], [patch])
    assert patched[0].patched and patched[0].url == "https://patched.example.com"
    assert not patched[1].patched and patched[1].url is None

    direct = LibraryPatch(["foo:bar:1.0@zip"], PartialLibrary(url="https://zip.example.com"))
    patched = patch_libraries([Library("foo:bar:1.0"), Library("foo:bar:1.0@zip")], [direct])
    assert [lib.patched for lib in patched] == [False, True]

    with pytest.raises(ValueError, match="patch/match"):
        LibraryPatch.from_json({"match": ["foo:bar"]})


def test_resolve_natives_unknown_os():

    library = Library("foo:bar:1.0",
        url="https://maven.example.com",
        natives={"freebsd": "natives-freebsd", "solaris": "natives-solaris"})

    resolved = LibraryResolver(ExecutionContext("solaris")).resolve([library])
    assert [str(res.spec) for res in resolved] == ["foo:bar:1.0:natives-solaris"]

    resolved = LibraryResolver(ExecutionContext("freebsd")).resolve([library])
    assert [str(res.spec) for res in resolved] == ["foo:bar:1.0:natives-freebsd"]

    assert LibraryResolver(ExecutionContext(Os.UNKNOWN)).resolve([library]) == []
