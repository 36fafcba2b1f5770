import pytest


@pytest.fixture
def linux_ctx():
    """Execution context of a 64 bits linux host without any feature enabled.
    """

    from mcmeta.rule import ExecutionContext, Os
    return ExecutionContext(Os.LINUX, "5.15.0-generic", "x86_64")


@pytest.fixture
def library_json():
    """A library metadata object using most of the known fields.
    """

    return {
        "downloads": {
            "artifact": {
                "path": "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1.jar",
                "sha1": "ae58664f88e18a9bb2c77b063833ca7aaec484cb",
                "size": 724243,
                "url": "https://libraries.minecraft.net/org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1.jar"
            },
            "classifiers": {
                "natives-linux": {
                    "path": "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar",
                    "sha1": "1de885aba434f934201b99f2f1afb142036ac189",
                    "size": 110704,
                    "url": "https://libraries.minecraft.net/org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar"
                }
            }
        },
        "extract": {"exclude": ["META-INF/"]},
        "name": "org.lwjgl:lwjgl:3.3.1",
        "natives": {"linux": "natives-linux", "freebsd": "natives-freebsd"},
        "rules": [
            {"action": "allow"},
            {"action": "disallow", "os": {"name": "osx"}}
        ],
        "checksums": ["ae58664f88e18a9bb2c77b063833ca7aaec484cb"],
        "version_hashes": {"1.20.1": "abc123def456"}
    }
