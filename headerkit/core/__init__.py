"""
Core functionality for headerkit.

This package contains the foundational modules the install pipeline depends on.
"""

from .directory import (
    get_default_dev_dir,
    get_version_dir,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    platform_for_os,
    clear_platform_cache,
)

from .concurrency import (
    CompletionGate,
    JoinCounter,
)

from .exceptions import (
    HeaderKitError,
    VersionError,
    InvalidVersionError,
    UnsupportedVersionError,
    DownloadError,
    ExtractionFailedError,
    InsecureArchiveError,
    FilesystemError,
    ConfigError,
)

__all__ = [
    "get_default_dev_dir",
    "get_version_dir",
    "PlatformInfo",
    "detect_platform",
    "platform_for_os",
    "clear_platform_cache",
    "CompletionGate",
    "JoinCounter",
    "HeaderKitError",
    "VersionError",
    "InvalidVersionError",
    "UnsupportedVersionError",
    "DownloadError",
    "ExtractionFailedError",
    "InsecureArchiveError",
    "FilesystemError",
    "ConfigError",
]
