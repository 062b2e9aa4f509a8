"""
Allow-list of archive entries worth extracting.

A runtime source tarball is large; only the headers and the gyp build files
are needed to compile native addons against it. Paths are relative to the
tarball's top-level directory, with forward slashes.
"""

import posixpath
from dataclasses import dataclass
from fnmatch import fnmatchcase

HEADER_PATTERN = "*.h"
GYPI_PATTERN = "*.gypi"
GYP_ADDON_SCRIPT = "tools/gyp_addon"
GYP_TREE = "tools/gyp"
GYP_TEST_TREE = "tools/gyp/test"


def match_base(path: str, pattern: str) -> bool:
    """Match a glob against the last path component only."""
    return fnmatchcase(posixpath.basename(path.rstrip("/")), pattern)


def is_under(path: str, tree: str) -> bool:
    """True if path is the tree itself or anything below it."""
    path = path.rstrip("/")
    return path == tree or path.startswith(tree + "/")


@dataclass(frozen=True)
class ExtractionFilter:
    """
    Decides which tarball entries are materialized on disk.

    Always kept: the root directory entry and `*.h` headers.
    Non-legacy versions also keep `*.gypi`, tools/gyp_addon and the
    tools/gyp tree minus its tests. Legacy versions get those files from
    the bundled legacy set instead.
    """

    is_legacy: bool

    def accepts(self, path: str, is_directory: bool = False) -> bool:
        if path == "" and is_directory:
            return True
        if not path:
            return False
        if match_base(path, HEADER_PATTERN):
            return True
        if self.is_legacy:
            return False
        return (
            match_base(path, GYPI_PATTERN)
            or path.rstrip("/") == GYP_ADDON_SCRIPT
            or (is_under(path, GYP_TREE) and not is_under(path, GYP_TEST_TREE))
        )

    __call__ = accepts


__all__ = [
    "HEADER_PATTERN",
    "GYPI_PATTERN",
    "GYP_ADDON_SCRIPT",
    "GYP_TREE",
    "GYP_TEST_TREE",
    "match_base",
    "is_under",
    "ExtractionFilter",
]
