"""
Runtime version resolution.

Turns a requested version string into the canonical (major, minor, patch)
triple that keys the cache directory and the download URLs.

Rules:
- Source priority: explicit argument, configured target, then the version
  reported by the `node` executable on PATH.
- Versions below 0.6.0 are rejected.
- Versions below 0.8.0 are "legacy": they need the bundled gyp files.
- `x.y.z-pre` builds are never published, so they resolve to `x.y.(z-1)`.

Example:
    >>> resolve_version("v0.8.3-pre")
    ResolvedVersion(major=0, minor=8, patch=2, is_legacy=True)
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional

from packaging.version import Version

from headerkit.core.exceptions import InvalidVersionError, UnsupportedVersionError

logger = logging.getLogger(__name__)

MINIMUM_VERSION = "0.6.0"
LEGACY_CUTOFF = "0.8.0"

# Unpublished development builds; the previous patch release stands in for them
UNPUBLISHED_PRERELEASE = "pre"

_SEMVER_RE = re.compile(
    r"^\s*[v=]*\s*"
    r"(\d+)\.(\d+)\.(\d+)"
    r"(?:-?([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"\s*$"
)


@dataclass(frozen=True)
class SemVer:
    """A parsed semantic version as requested by the user."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def comparable(self) -> Version:
        """
        Ordering key. Any pre-release sorts below its release
        (0.8.0-pre < 0.8.0), matching semver precedence.
        """
        base = f"{self.major}.{self.minor}.{self.patch}"
        return Version(f"{base}.dev0" if self.prerelease else base)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        return text


@dataclass(frozen=True)
class ResolvedVersion:
    """Canonical version used for every path and URL of one install."""

    major: int
    minor: int
    patch: int
    is_legacy: bool

    @property
    def flat(self) -> str:
        """Flattened "major.minor.patch" form."""
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.flat


def parse_semver(version_str: str) -> SemVer:
    """
    Parse a semantic version string.

    Accepts an optional leading 'v' or '=', an optional pre-release tag
    (with or without the dash) and optional build metadata.

    Raises:
        InvalidVersionError: If the string is not a semantic version
    """
    match = _SEMVER_RE.match(version_str or "")
    if match is None:
        raise InvalidVersionError(version_str)
    major, minor, patch, prerelease, _build = match.groups()
    return SemVer(int(major), int(minor), int(patch), prerelease)


def resolve_version(version_str: str) -> ResolvedVersion:
    """
    Validate and normalize a version string.

    Args:
        version_str: Requested version (e.g. "6.1.0", "v0.8.3-pre")

    Returns:
        ResolvedVersion

    Raises:
        InvalidVersionError: If unparsable, or a `-pre` build has no previous patch
        UnsupportedVersionError: If below the minimum target version
    """
    logger.debug(f"input version string: {version_str}")
    requested = parse_semver(version_str)

    # Both checks look at the version as requested, before substitution
    key = requested.comparable()
    is_legacy = key < Version(LEGACY_CUTOFF)
    logger.debug(f"installing legacy version? {is_legacy}")

    if key < Version(MINIMUM_VERSION):
        raise UnsupportedVersionError(version_str, MINIMUM_VERSION)

    patch = requested.patch
    if requested.prerelease == UNPUBLISHED_PRERELEASE:
        if patch == 0:
            raise InvalidVersionError(
                version_str, "no earlier patch release to substitute"
            )
        patch -= 1
        logger.debug("-pre version detected, adjusting patch version")

    resolved = ResolvedVersion(requested.major, requested.minor, patch, is_legacy)
    logger.debug(f"installing version: {resolved.flat}")
    return resolved


def detect_runtime_version(executable: str = "node") -> Optional[str]:
    """
    Ask the runtime on PATH for its version.

    Returns:
        Version string such as "v18.17.1", or None if the runtime is not
        installed or does not answer
    """
    path = shutil.which(executable)
    if not path:
        logger.debug(f"{executable} not found on PATH")
        return None

    try:
        result = subprocess.run(
            [path, "--version"], capture_output=True, text=True, timeout=10
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"failed to query {path} --version: {e}")
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


class VersionResolver:
    """
    Picks the version to install and resolves it.

    Example:
        >>> resolver = VersionResolver(target="16.20.2")
        >>> resolver.resolve(None).flat
        '16.20.2'
    """

    def __init__(
        self,
        target: Optional[str] = None,
        runtime_detector: Callable[[], Optional[str]] = detect_runtime_version,
    ):
        """
        Args:
            target: Configured default target version
            runtime_detector: Callable returning the running runtime's version
        """
        self.target = target
        self.runtime_detector = runtime_detector

    def select(self, requested: Optional[str]) -> str:
        """
        Choose the version string by priority.

        Raises:
            InvalidVersionError: If no source provides a version
        """
        if requested:
            return requested
        if self.target:
            return self.target
        detected = self.runtime_detector()
        if detected:
            return detected
        raise InvalidVersionError(
            "", "no version given, no target configured and no node runtime found"
        )

    def resolve(self, requested: Optional[str]) -> ResolvedVersion:
        return resolve_version(self.select(requested))


__all__ = [
    "MINIMUM_VERSION",
    "LEGACY_CUTOFF",
    "SemVer",
    "ResolvedVersion",
    "parse_semver",
    "resolve_version",
    "detect_runtime_version",
    "VersionResolver",
]
