import pytest

from mcmeta.rule import ExecutionContext, Os, Rule, OsRule, FeatureRule, RuleAction, \
    Argument, evaluate_rules, interpret_args, parse_rules


def test_os_parse():

    from mcmeta.rule import UnknownOsError

    assert Os.parse("osx") == Os.OSX
    assert Os.parse("linux-arm32") == Os.LINUX_ARM32
    assert Os.parse("freebsd") == "freebsd"
    assert Os.parse(None) == Os.UNKNOWN

    assert Os.is_known(Os.LINUX)
    assert not Os.is_known("freebsd")
    assert Os.kind("solaris") == Os.UNKNOWN
    assert Os.kind(Os.WINDOWS) == Os.WINDOWS
    assert Os.as_known(Os.OSX) == Os.OSX
    with pytest.raises(UnknownOsError):
        Os.as_known("freebsd")

    ctx = ExecutionContext("solaris")
    assert ctx.os == "solaris"
    assert Os.kind(ctx.os) == Os.UNKNOWN


def test_unknown_os_rules_stay_distinct():

    freebsd = Rule(RuleAction.ALLOW, OsRule("freebsd"))
    assert evaluate_rules([freebsd], ExecutionContext("freebsd"))
    assert not evaluate_rules([freebsd], ExecutionContext("solaris"))
    assert not evaluate_rules([freebsd], ExecutionContext(Os.UNKNOWN))

    rules = parse_rules([{"action": "allow", "os": {"name": "freebsd"}}], "rules")
    assert rules[0].to_json() == {"action": "allow", "os": {"name": "freebsd"}}


def test_empty_rules(linux_ctx):

    assert evaluate_rules(None, linux_ctx)
    assert evaluate_rules([], linux_ctx)
    assert evaluate_rules([], ExecutionContext(Os.UNKNOWN))
    assert evaluate_rules(iter([]), linux_ctx)
    assert evaluate_rules((rule for rule in []), linux_ctx)

    disallow = Rule(RuleAction.DISALLOW, OsRule(Os.LINUX))
    assert not evaluate_rules(iter([Rule(RuleAction.ALLOW), disallow]), linux_ctx)
    assert evaluate_rules((rule for rule in [Rule(RuleAction.ALLOW)]), linux_ctx)


def test_last_match_wins(linux_ctx):

    allow = Rule(RuleAction.ALLOW, OsRule(Os.LINUX))
    disallow = Rule(RuleAction.DISALLOW, OsRule(Os.LINUX))

    assert not evaluate_rules([allow, disallow], linux_ctx)
    assert evaluate_rules([disallow, allow], linux_ctx)

    # Allow everything but osx, then allow again for osx arm64.
    rules = [
        Rule(RuleAction.ALLOW),
        Rule(RuleAction.DISALLOW, OsRule(Os.OSX)),
        Rule(RuleAction.ALLOW, OsRule(Os.OSX, arch="arm64")),
    ]
    assert evaluate_rules(rules, linux_ctx)
    assert not evaluate_rules(rules, ExecutionContext(Os.OSX, arch="x86_64"))
    assert evaluate_rules(rules, ExecutionContext(Os.OSX, arch="arm64"))


def test_no_match_is_disallowed(linux_ctx):

    assert not evaluate_rules([Rule(RuleAction.ALLOW, OsRule(Os.WINDOWS))], linux_ctx)
    assert evaluate_rules([Rule(RuleAction.ALLOW, OsRule(Os.LINUX))], linux_ctx)


def test_unconditional_rule():

    for os_name in Os.ALL:
        ctx = ExecutionContext(os_name, features={"is_demo_user"})
        assert Rule(RuleAction.ALLOW).matches(ctx)
        assert evaluate_rules([Rule(RuleAction.ALLOW)], ctx)
        assert not evaluate_rules([Rule(RuleAction.DISALLOW)], ctx)


def test_os_rule(linux_ctx):

    assert OsRule().matches(linux_ctx)
    assert OsRule(Os.LINUX, arch="x86_64").matches(linux_ctx)
    assert not OsRule(Os.LINUX, arch="x86").matches(linux_ctx)
    assert not OsRule(Os.LINUX_ARM64).matches(linux_ctx)
    assert not OsRule(arch="x86").matches(ExecutionContext(Os.LINUX))

    assert OsRule(version="^5\\.").matches(linux_ctx)
    assert not OsRule(version="^10\\.").matches(linux_ctx)
    # Unknown host version and invalid patterns never match.
    assert not OsRule(version="^5\\.").matches(ExecutionContext(Os.LINUX))
    assert not OsRule(version="(").matches(linux_ctx)


def test_custom_version_matcher():

    ctx = ExecutionContext(Os.WINDOWS, "10.0", version_matcher=lambda pattern, version: pattern == version)
    assert OsRule(Os.WINDOWS, version="10.0").matches(ctx)
    assert not OsRule(Os.WINDOWS, version="^10\\.").matches(ctx)
    assert ctx.with_features({"is_demo_user"}).version_matcher is ctx.version_matcher


def test_feature_rule(linux_ctx):

    demo_ctx = linux_ctx.with_features({"is_demo_user"})

    rule = FeatureRule({"is_demo_user": True})
    assert rule.matches(demo_ctx)
    assert not rule.matches(linux_ctx)

    rule = FeatureRule({"is_demo_user": False})
    assert not rule.matches(demo_ctx)
    assert rule.matches(linux_ctx)

    rule = FeatureRule({"is_demo_user": True, "has_custom_resolution": True})
    assert not rule.matches(demo_ctx)
    assert rule.matches(linux_ctx.with_features({"is_demo_user", "has_custom_resolution"}))

    assert FeatureRule().matches(linux_ctx)

    with pytest.raises(ValueError):
        FeatureRule({"is_unknown_feature": True})


def test_parse_rules():

    rules = parse_rules([
        {"action": "allow"},
        {"action": "disallow", "os": {"name": "osx", "version": "^10\\.", "arch": "x86"}},
        {"action": "allow", "os": {"name": "beos"}},
        {"action": "allow", "features": {"is_demo_user": True, "unknown_feature": True}},
    ], "rules")

    assert rules[0] == Rule(RuleAction.ALLOW)
    assert rules[1] == Rule(RuleAction.DISALLOW, OsRule(Os.OSX, "^10\\.", "x86"))
    assert rules[2].os.name == "beos"
    assert rules[3].features == FeatureRule({"is_demo_user": True})

    assert rules[1].to_json() == {"action": "disallow", "os": {"name": "osx", "version": "^10\\.", "arch": "x86"}}
    assert rules[3].to_json() == {"action": "allow", "features": {"is_demo_user": True}}

    with pytest.raises(ValueError, match="rules/0/action"):
        parse_rules([{"action": "maybe"}], "rules")

    with pytest.raises(ValueError, match="rules/0/action"):
        parse_rules([{}], "rules")

    with pytest.raises(ValueError, match="rules must be a list"):
        parse_rules({"action": "allow"}, "rules")

    with pytest.raises(ValueError, match="rules/0/features/is_demo_user must be a boolean"):
        parse_rules([{"action": "allow", "features": {"is_demo_user": "yes"}}], "rules")


def test_interpret_args(linux_ctx):

    args = [
        Argument.from_json(raw, f"args/{i}") for i, raw in enumerate([
            "--username",
            "${auth_player_name}",
            {"rules": [{"action": "allow", "features": {"is_demo_user": True}}], "value": "--demo"},
            {"rules": [{"action": "allow", "features": {"has_custom_resolution": True}}],
                "value": ["--width", "${resolution_width}"]},
            {"rules": [{"action": "allow", "os": {"name": "osx"}}], "value": ["-XstartOnFirstThread"]},
        ])
    ]

    all_features = set()
    assert interpret_args(args, linux_ctx, all_features=all_features) == ["--username", "${auth_player_name}"]
    assert all_features == {"is_demo_user", "has_custom_resolution"}

    ctx = linux_ctx.with_features({"is_demo_user", "has_custom_resolution"})
    assert interpret_args(args, ctx) == ["--username", "${auth_player_name}", "--demo", "--width", "${resolution_width}"]

    assert args[0].to_json() == "--username"
    assert args[2].to_json() == {"rules": [{"action": "allow", "features": {"is_demo_user": True}}], "value": "--demo"}

    with pytest.raises(ValueError, match="arg/value"):
        Argument.from_json({"rules": [], "value": 3}, "arg")


def test_current_context():

    ctx = ExecutionContext.current(["is_demo_user"])
    assert ctx.os in Os.ALL
    assert ctx.features == frozenset({"is_demo_user"})


def test_argument_json():

    for arg in (Argument(["--demo"]), Argument(["--width", "${resolution_width}"]),
            Argument(["-Xss1M"], [Rule(RuleAction.ALLOW, OsRule(Os.WINDOWS))]),
            Argument(["a", "b"], [])):
        assert Argument.from_json(arg.to_json(), "arg") == arg

    assert Argument(["a", "b"], []) == Argument(["a", "b"])
    assert Argument(["a", "b"]).to_json() == {"rules": [], "value": ["a", "b"]}
