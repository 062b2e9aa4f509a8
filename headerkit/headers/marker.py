"""
Install record and legacy file handling.

Every completed install carries an `installVersion` file: a plain-text
integer naming the install format it was produced with. When headerkit
changes what it puts in the cache, the format number is bumped and
`install --ensure` reinstalls anything older.
"""

import logging
from pathlib import Path

from headerkit.core.filesystem import atomic_write, read_text_if_present, recursive_copy

logger = logging.getLogger(__name__)

INSTALL_RECORD_NAME = "installVersion"

LEGACY_DIR = Path(__file__).parent.parent / "data" / "legacy"


def read_install_record(version_dir: Path) -> int:
    """
    Read the install-format number of an installed version.

    A missing or unparsable record reads as 0 (oldest format).

    Raises:
        FilesystemError: If the record exists but cannot be read
    """
    content = read_text_if_present(Path(version_dir) / INSTALL_RECORD_NAME)
    if content is None:
        return 0
    try:
        return max(int(content.strip() or "0"), 0)
    except ValueError:
        logger.debug(f"unparsable install record in {version_dir}: {content!r}")
        return 0


def write_install_record(version_dir: Path, install_version: int) -> Path:
    """
    Write the install record (the number followed by a newline).

    Raises:
        FilesystemError: If the record cannot be written
    """
    path = Path(version_dir) / INSTALL_RECORD_NAME
    atomic_write(path, f"{install_version}\n", encoding="ascii")
    logger.debug(f"wrote {INSTALL_RECORD_NAME} = {install_version}")
    return path


def copy_legacy_files(version_dir: Path, legacy_dir: Path = LEGACY_DIR) -> int:
    """
    Copy the bundled gyp configuration for pre-0.8 runtimes.

    Those releases shipped build files that no longer work with current gyp,
    so patched copies overwrite whatever the tarball provided.

    Returns:
        Number of files copied

    Raises:
        FilesystemError: On any read or write failure
    """
    logger.debug(f'copying "legacy" gyp configuration files from {legacy_dir}')
    logger.debug(f'copying to "dev" dir {version_dir}')
    return recursive_copy(legacy_dir, version_dir)


__all__ = [
    "INSTALL_RECORD_NAME",
    "LEGACY_DIR",
    "read_install_record",
    "write_install_record",
    "copy_legacy_files",
]
