"""
Centralized exception hierarchy for headerkit.

This module defines all custom exceptions used across the codebase
so that callers can catch a single base class or a precise failure.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class HeaderKitError(Exception):
    """Base exception for all headerkit errors."""

    pass


# ============================================================================
# Version Resolution Exceptions
# ============================================================================


class VersionError(HeaderKitError):
    """Base exception for version resolution errors."""

    pass


class InvalidVersionError(VersionError):
    """Version string cannot be parsed as a semantic version."""

    def __init__(self, version_str: str, reason: str = ""):
        self.version_str = version_str
        msg = f"Invalid version number: {version_str}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class UnsupportedVersionError(VersionError):
    """Version is below the minimum supported target."""

    def __init__(self, version_str: str, minimum: str):
        self.version_str = version_str
        self.minimum = minimum
        super().__init__(
            f"Minimum target version is `{minimum}` or greater. Got: {version_str}"
        )


# ============================================================================
# Install Pipeline Exceptions
# ============================================================================


class DownloadError(HeaderKitError):
    """Non-200 status or transport failure while fetching an asset."""

    def __init__(self, url: str, reason: str, status_code: int = 0):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{reason} downloading {url}")


class ExtractionFailedError(HeaderKitError):
    """Archive could not be extracted or produced no usable entries."""

    pass


class InsecureArchiveError(ExtractionFailedError):
    """Archive contains paths that escape the install directory."""

    pass


class FilesystemError(HeaderKitError):
    """I/O failure while creating, reading, writing or removing files."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(HeaderKitError):
    """Configuration parsing or validation error."""

    pass
