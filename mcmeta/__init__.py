"""Main module for the mcmeta API.

This package resolves the platform specific set of libraries, arguments and download
locations described by the launcher metadata format. The API is split in a few modules:
rules interpretation in `rule`, libraries, partial patches and content resolution in 
`library`, manifest records in `manifest` and the resolution pipeline in `resolve`.
"""

LIBRARY_NAME = "mcmeta"
LIBRARY_VERSION = "0.3.0"
LIBRARY_AUTHORS = ["mcmeta contributors"]
LIBRARY_URL = "https://github.com/mcmeta/mcmeta"

# The latest version of the format the records parse to.
CURRENT_FORMAT_VERSION = 2
