"""
Removal and listing of installed versions.

remove_version() is also the rollback target of a failed install, so it
accepts the flattened version string the installer uses.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from headerkit.core.directory import get_version_dir
from headerkit.core.exceptions import InvalidVersionError
from headerkit.core.filesystem import PathState, probe_path, safe_rmtree
from headerkit.headers.marker import read_install_record
from headerkit.headers.version import parse_semver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledVersion:
    """A version directory found in the dev root."""

    version: str
    path: Path
    install_version: int


def remove_version(dev_dir: Path, version_str: str) -> bool:
    """
    Remove the cached files of one version.

    Args:
        dev_dir: Dev root
        version_str: Version to remove (e.g. "6.1.0" or "v6.1.0")

    Returns:
        True if the version was removed, False if it was not installed

    Raises:
        InvalidVersionError: If version_str is not a semantic version
        FilesystemError: If the directory cannot be removed
    """
    parsed = parse_semver(version_str)
    flat = f"{parsed.major}.{parsed.minor}.{parsed.patch}"
    version_dir = get_version_dir(dev_dir, flat)

    logger.debug(f"removing development files for version: {flat}")
    if not safe_rmtree(version_dir, require_prefix=dev_dir):
        logger.debug(f"version not installed: {flat}")
        return False

    logger.debug(f"removed: {version_dir}")
    return True


def list_installed(dev_dir: Path) -> List[InstalledVersion]:
    """
    List installed versions in semantic-version order.

    Directories whose names are not versions are ignored.
    """
    dev_dir = Path(dev_dir)
    if probe_path(dev_dir) is PathState.ABSENT:
        return []

    found = []
    for entry in dev_dir.iterdir():
        if not entry.is_dir():
            continue
        try:
            parsed = parse_semver(entry.name)
        except InvalidVersionError:
            continue
        found.append(
            (
                parsed.comparable(),
                InstalledVersion(
                    version=entry.name,
                    path=entry,
                    install_version=read_install_record(entry),
                ),
            )
        )

    found.sort(key=lambda item: item[0])
    return [installed for _, installed in found]


__all__ = ["InstalledVersion", "remove_version", "list_installed"]
