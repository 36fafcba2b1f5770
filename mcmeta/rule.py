"""Interpretation of the conditional rules found in metadata. Rules are attached to
libraries and arguments, and decide if these apply to a given execution context, that
is the operating system, its version and architecture, and the enabled features.
"""

import platform
import re

from .util import ensure_dict, ensure_list, get_str, get_bool

from typing import Optional, Iterable, List, Dict, Set, Callable, Any


class UnknownOsError(Exception):
    """Raised when an unknown OS identifier is used as a concrete platform."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __str__(self) -> str:
        return repr(self.name)


class Os:
    """Operating system identifiers, as used by metadata.

    New identifiers are added over time, so unknown identifiers are kept as-is instead
    of failing, their kind is `UNKNOWN`. Rules and natives compare the raw identifiers,
    only `as_known` refuses unknown ones.
    """

    OSX = "osx"
    OSX_ARM64 = "osx-arm64"
    WINDOWS = "windows"
    WINDOWS_ARM64 = "windows-arm64"
    LINUX = "linux"
    LINUX_ARM64 = "linux-arm64"
    LINUX_ARM32 = "linux-arm32"
    UNKNOWN = "unknown"

    ALL = (OSX, OSX_ARM64, WINDOWS, WINDOWS_ARM64, LINUX, LINUX_ARM64, LINUX_ARM32, UNKNOWN)
    KNOWN = ALL[:-1]

    @classmethod
    def parse(cls, raw: Any) -> str:
        """Parse a raw OS identifier, never raising. Non-string values are unknown."""
        return raw if isinstance(raw, str) else cls.UNKNOWN

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in cls.KNOWN

    @classmethod
    def kind(cls, name: str) -> str:
        """Return the identifier if known, `UNKNOWN` otherwise."""
        return name if name in cls.KNOWN else cls.UNKNOWN

    @classmethod
    def as_known(cls, name: str) -> str:
        if name not in cls.KNOWN:
            raise UnknownOsError(name)
        return name


class RuleAction:

    ALLOW = "allow"
    DISALLOW = "disallow"

    @classmethod
    def parse(cls, raw: Any, path: str) -> str:
        if raw not in (cls.ALLOW, cls.DISALLOW):
            raise ValueError(f"{path} must be 'allow' or 'disallow'")
        return raw


VersionMatcher = Callable[[str, Optional[str]], bool]


def regex_version_matcher(pattern: str, version: Optional[str]) -> bool:
    """Default OS version matcher, the rule's version is a regular expression searched
    in the host's version string. An unknown host version or an invalid pattern never
    matches.
    """
    if version is None:
        return False
    try:
        return re.search(pattern, version) is not None
    except re.error:
        return False


class ExecutionContext:
    """The context against which rules are evaluated.

    :param os: One of the `Os` identifiers.
    :param os_version: The host OS version string, matched against rules' version.
    :param arch: The architecture name, compared as-is with rules' arch.
    :param features: Names of the enabled features, such as 'is_demo_user'.
    :param version_matcher: Function called with a rule's version pattern and the
    host's version, defaults to a regular expression search.
    """

    __slots__ = "os", "os_version", "arch", "features", "version_matcher"

    def __init__(self,
        os: str,
        os_version: Optional[str] = None,
        arch: Optional[str] = None,
        features: Iterable[str] = (), *,
        version_matcher: Optional[VersionMatcher] = None
    ) -> None:
        self.os = Os.parse(os)
        self.os_version = os_version
        self.arch = arch
        self.features = frozenset(features)
        self.version_matcher = version_matcher or regex_version_matcher

    @classmethod
    def current(cls, features: Iterable[str] = ()) -> "ExecutionContext":
        """Return the execution context of the running host."""
        return cls(host_os, platform.version(), host_arch, features)

    def with_features(self, features: Iterable[str]) -> "ExecutionContext":
        """Return a copy of this context with another set of enabled features."""
        return ExecutionContext(self.os, self.os_version, self.arch, features,
            version_matcher=self.version_matcher)

    def arch_bits(self) -> Optional[int]:
        """Pointer width of the context's architecture, used by the `${arch}` variable
        of native classifiers.
        """
        return arch_bits.get(self.arch or "")

    def __repr__(self) -> str:
        return f"<ExecutionContext {self.os} {self.arch} features: {sorted(self.features)}>"


class OsRule:
    """A rule's constraint on the operating system."""

    __slots__ = "name", "version", "arch"

    def __init__(self, name: Optional[str] = None, version: Optional[str] = None, arch: Optional[str] = None) -> None:
        self.name = name
        self.version = version
        self.arch = arch

    @classmethod
    def from_json(cls, value: Any, path: str) -> "OsRule":
        ensure_dict(value, path)
        name = value.get("name")
        return cls(
            None if name is None else Os.parse(name),
            get_str(value, "version", path, required=False),
            get_str(value, "arch", path, required=False))

    def to_json(self) -> dict:
        ret = {}
        if self.name is not None:
            ret["name"] = self.name
        if self.version is not None:
            ret["version"] = self.version
        if self.arch is not None:
            ret["arch"] = self.arch
        return ret

    def matches(self, ctx: ExecutionContext) -> bool:
        if self.name is not None and self.name != ctx.os:
            return False
        if self.arch is not None and self.arch != ctx.arch:
            return False
        if self.version is not None and not ctx.version_matcher(self.version, ctx.os_version):
            return False
        return True

    def __eq__(self, other) -> bool:
        return isinstance(other, OsRule) and \
            (self.name, self.version, self.arch) == (other.name, other.version, other.arch)

    def __repr__(self) -> str:
        return f"<OsRule {self.to_json()}>"


class FeatureRule:
    """A rule's constraint on the launcher's features. Only the known features are
    kept, each one maps to the expected state of the feature.
    """

    IS_DEMO_USER = "is_demo_user"
    HAS_CUSTOM_RESOLUTION = "has_custom_resolution"
    HAS_QUICK_PLAYS_SUPPORT = "has_quick_plays_support"
    IS_QUICK_PLAY_SINGLEPLAYER = "is_quick_play_singleplayer"
    IS_QUICK_PLAY_MULTIPLAYER = "is_quick_play_multiplayer"
    IS_QUICK_PLAY_REALMS = "is_quick_play_realms"

    ALL = (IS_DEMO_USER, HAS_CUSTOM_RESOLUTION, HAS_QUICK_PLAYS_SUPPORT,
        IS_QUICK_PLAY_SINGLEPLAYER, IS_QUICK_PLAY_MULTIPLAYER, IS_QUICK_PLAY_REALMS)

    __slots__ = "expected",

    def __init__(self, expected: Optional[Dict[str, bool]] = None) -> None:
        self.expected: Dict[str, bool] = {}
        for name, state in (expected or {}).items():
            if name not in self.ALL:
                raise ValueError(f"unknown feature: {name}")
            self.expected[name] = state

    @classmethod
    def from_json(cls, value: Any, path: str) -> "FeatureRule":
        ensure_dict(value, path)
        expected = {}
        for name in cls.ALL:
            state = get_bool(value, name, path, required=False)
            if state is not None:
                expected[name] = state
        return cls(expected)

    def to_json(self) -> dict:
        # Keep the declaration order of the known features.
        return {name: self.expected[name] for name in self.ALL if name in self.expected}

    def matches(self, ctx: ExecutionContext) -> bool:
        for name, state in self.expected.items():
            if (name in ctx.features) != state:
                return False
        return True

    def __eq__(self, other) -> bool:
        return isinstance(other, FeatureRule) and self.expected == other.expected

    def __repr__(self) -> str:
        return f"<FeatureRule {self.to_json()}>"


class Rule:
    """A rule deciding if a library, an argument or a download applies."""

    __slots__ = "action", "os", "features"

    def __init__(self, action: str, os: Optional[OsRule] = None, features: Optional[FeatureRule] = None) -> None:
        self.action = action
        self.os = os
        self.features = features

    @classmethod
    def from_json(cls, value: Any, path: str) -> "Rule":
        ensure_dict(value, path)
        rule_os = value.get("os")
        rule_features = value.get("features")
        return cls(
            RuleAction.parse(value.get("action"), f"{path}/action"),
            None if rule_os is None else OsRule.from_json(rule_os, f"{path}/os"),
            None if rule_features is None else FeatureRule.from_json(rule_features, f"{path}/features"))

    def to_json(self) -> dict:
        ret: Dict[str, Any] = {"action": self.action}
        if self.os is not None:
            ret["os"] = self.os.to_json()
        if self.features is not None:
            ret["features"] = self.features.to_json()
        return ret

    def matches(self, ctx: ExecutionContext) -> bool:
        """Return true if every constraint of this rule matches the context. A rule
        without constraint always matches.
        """
        if self.os is not None and not self.os.matches(ctx):
            return False
        if self.features is not None and not self.features.matches(ctx):
            return False
        return True

    def __eq__(self, other) -> bool:
        return isinstance(other, Rule) and \
            (self.action, self.os, self.features) == (other.action, other.os, other.features)

    def __repr__(self) -> str:
        return f"<Rule {self.to_json()}>"


def parse_rules(value: Any, path: str) -> List[Rule]:
    ensure_list(value, path)
    return [Rule.from_json(rule, f"{path}/{i}") for i, rule in enumerate(value)]


def evaluate_rules(rules: Optional[Iterable[Rule]], ctx: ExecutionContext) -> bool:
    """Common function to interpret rules and determine if the condition is met.

    No rules means that the condition is met. Otherwise rules are checked in order
    and the last rule matching the context decides, starting from a disallowed state.
    """

    if rules is not None:
        rules = list(rules)

    if not rules:
        return True

    allowed = False
    for rule in rules:
        if rule.matches(ctx):
            allowed = rule.action == RuleAction.ALLOW

    return allowed


class ArgumentType:

    GAME = "game"
    JVM = "jvm"
    DEFAULT_USER_JVM = "default-user-jvm"

    ALL = (GAME, JVM, DEFAULT_USER_JVM)


class Argument:
    """An argument that only applies if its rules are met, plain string arguments
    are represented with no rules. An empty rule list is the same as no rules.
    """

    __slots__ = "value", "rules"

    def __init__(self, value: List[str], rules: Optional[List[Rule]] = None) -> None:
        self.value = value
        self.rules = rules or None

    @classmethod
    def from_json(cls, value: Any, path: str) -> "Argument":

        if isinstance(value, str):
            return cls([value])

        ensure_dict(value, path)
        rules = parse_rules(value.get("rules"), f"{path}/rules")

        arg_value = value.get("value")
        if isinstance(arg_value, str):
            return cls([arg_value], rules)
        elif isinstance(arg_value, list) and all(isinstance(v, str) for v in arg_value):
            return cls(list(arg_value), rules)
        else:
            raise ValueError(f"{path}/value must be a list of strings or a string")

    def to_json(self) -> Any:
        if self.rules is None:
            return self.value[0] if len(self.value) == 1 else {"rules": [], "value": self.value}
        value = self.value[0] if len(self.value) == 1 else self.value
        return {"rules": [rule.to_json() for rule in self.rules], "value": value}

    def __eq__(self, other) -> bool:
        return isinstance(other, Argument) and \
            (self.value, self.rules) == (other.value, other.rules)

    def __repr__(self) -> str:
        return f"<Argument {self.value}>"


def interpret_args(args: Iterable[Argument], ctx: ExecutionContext, *,
    all_features: Optional[Set[str]] = None
) -> List[str]:
    """Common function for interpreting a list of arguments, whose may be conditional
    under some rules. An optional set of features can be given and will be filled with
    all features found (even if not used).
    """

    dst = []
    for arg in args:
        if arg.rules is not None and all_features is not None:
            for rule in arg.rules:
                if rule.features is not None:
                    all_features.update(rule.features.expected)
        if evaluate_rules(arg.rules, ctx):
            dst.extend(arg.value)

    return dst


# Name of the processor's architecture as used by metadata.
host_arch = {
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm32",
    "armv6l": "arm32",
}.get(platform.machine().lower())

# Pointer width of the known architectures.
arch_bits = {
    "x86": 32,
    "x86_64": 64,
    "arm64": 64,
    "arm32": 32,
}

# Name of the OS as used by metadata, arm variants have their own identifier.
host_os = {
    "Darwin": {"arm64": Os.OSX_ARM64},
    "Windows": {"arm64": Os.WINDOWS_ARM64},
    "Linux": {"arm64": Os.LINUX_ARM64, "arm32": Os.LINUX_ARM32},
}.get(platform.system(), {}).get(host_arch or "") or {
    "Darwin": Os.OSX,
    "Windows": Os.WINDOWS,
    "Linux": Os.LINUX,
}.get(platform.system(), Os.UNKNOWN)
