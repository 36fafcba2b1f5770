from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fp:
    long_description = fp.read()

setup(
    name="mcmeta",
    version="0.3.0",
    description="mcmeta is a module resolving the platform specific libraries, arguments and download "
                "locations of the launcher metadata format, with partial library patches and content "
                "addressed storage support.",
    author="mcmeta contributors",
    packages=["mcmeta"],
    url="https://github.com/mcmeta/mcmeta",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.7",
    extras_require={
        "test": ["pytest"],
    },
)
