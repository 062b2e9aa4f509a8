"""
Filesystem utilities for headerkit.

This module provides the small set of file operations the install pipeline
builds on:
- Existence probing that separates "absent" from real errors
- Idempotent directory creation
- Atomic writes for marker files
- Guarded recursive deletion for rollback and removal
- Recursive copy with overwrite (like `cp -rpf`)

Every OSError is converted to FilesystemError so callers deal with a single
exception type.
"""

import enum
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from headerkit.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Existence Probing
# ============================================================================


class PathState(enum.Enum):
    """Outcome of probing a path."""

    ABSENT = "absent"
    PRESENT = "present"


def probe_path(path: Union[str, Path]) -> PathState:
    """
    Check whether a path exists.

    "Not found" is a normal outcome here, not an error.

    Args:
        path: Path to probe

    Returns:
        PathState.ABSENT or PathState.PRESENT

    Raises:
        FilesystemError: For any failure other than "not found"
            (permission denied, I/O error, ...)

    Example:
        >>> if probe_path(version_dir) is PathState.ABSENT:
        ...     print("needs install")
    """
    try:
        os.stat(path)
    except FileNotFoundError:
        return PathState.ABSENT
    except OSError as e:
        raise FilesystemError(f"Failed to check '{path}': {e}") from e
    return PathState.PRESENT


def read_text_if_present(
    path: Union[str, Path], encoding: str = "ascii"
) -> Optional[str]:
    """
    Read a text file, returning None when it does not exist.

    Raises:
        FilesystemError: If the file exists but cannot be read
    """
    try:
        return Path(path).read_text(encoding=encoding)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError(f"Failed to read '{path}': {e}") from e


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/.headerkit/6.1.0"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


# ============================================================================
# Safe File Operations
# ============================================================================


def ensure_directory(path: Union[str, Path]) -> bool:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        True if the directory was created, False if it already existed

    Raises:
        FilesystemError: If the directory cannot be created

    Example:
        >>> created = ensure_directory('/tmp/headerkit/6.1.0')
    """
    path = Path(path)
    try:
        path.mkdir(parents=True)
        return True
    except FileExistsError:
        if path.is_dir():
            return False
        raise FilesystemError(f"Path exists and is not a directory: {path}")
    except OSError as e:
        raise FilesystemError(f"Failed to create directory '{path}': {e}") from e


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Raises:
        FilesystemError: If the write fails

    Example:
        >>> atomic_write('installVersion', '9\\n')
    """
    file_path = Path(file_path)

    try:
        # Create temp file in same directory (ensures same filesystem)
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise FilesystemError(f"Failed to write '{file_path}': {e}") from e
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding, newline="") as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        # Atomic rename (replaces destination if it exists)
        temp_path.replace(file_path)

    except OSError as e:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            logger.debug(f"Could not remove temp file {temp_path}")
        raise FilesystemError(f"Failed to write '{file_path}': {e}") from e


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> bool:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Returns:
        True if something was removed, False if the path did not exist

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('~/.headerkit/6.1.0', require_prefix='~/.headerkit')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if path == require_prefix or not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if probe_path(path) is PathState.ABSENT:
        return False

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, failed_path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(failed_path, os.W_OK):
                    os.chmod(failed_path, 0o777)
                    func(failed_path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e

    return True


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> int:
    """
    Recursively copy a directory tree, overwriting existing files.

    Behaves like `cp -rpf`: structure and file metadata are preserved and
    existing entries at the destination are replaced.

    Args:
        source: Source directory
        destination: Destination directory

    Returns:
        Number of files copied

    Raises:
        FilesystemError: If source is missing or any read/write fails
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    copied = 0
    try:
        destination.mkdir(parents=True, exist_ok=True)
        for item in sorted(source.rglob("*")):
            dest_item = destination / item.relative_to(source)

            if item.is_dir():
                dest_item.mkdir(parents=True, exist_ok=True)
                continue

            logger.debug(f"copying {item} -> {dest_item}")
            dest_item.parent.mkdir(parents=True, exist_ok=True)
            if dest_item.is_symlink() or dest_item.is_file():
                dest_item.unlink()
            shutil.copy2(item, dest_item)
            copied += 1
    except OSError as e:
        raise FilesystemError(f"Failed to copy '{source}' to '{destination}': {e}") from e

    return copied


# ============================================================================
# Public API
# ============================================================================

__all__ = [
    "PathState",
    "probe_path",
    "read_text_if_present",
    "is_relative_to",
    "ensure_directory",
    "atomic_write",
    "safe_rmtree",
    "recursive_copy",
]
