"""
Directory layout for the headerkit cache.

Directory Structure:
    Dev root (~/.headerkit/ or %USERPROFILE%\\.headerkit\\):
        - <major>.<minor>.<patch>/   : One directory per installed runtime version
            - include/node/...       : C headers
            - common.gypi, config.gypi
            - tools/gyp/...          : gyp build tooling (non-legacy versions)
            - installVersion         : Install-format marker
            - ia32/node.lib          : Import libraries (Windows targets only)
            - x64/node.lib
"""

import os
from pathlib import Path

from headerkit.core.exceptions import ConfigError
from headerkit.core.filesystem import IS_WINDOWS

DEV_DIR_ENV = "HEADERKIT_DEVDIR"


def get_default_dev_dir() -> Path:
    """
    Get the platform-specific default dev root.

    Returns:
        Path: The dev root directory path.
            - Windows: %USERPROFILE%\\.headerkit
            - Linux/macOS: ~/.headerkit/

    Raises:
        ConfigError: If USERPROFILE is not set on Windows

    Example:
        >>> get_default_dev_dir()
        PosixPath('/home/user/.headerkit')
    """
    if IS_WINDOWS:
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine the headerkit dev directory."
            )
        return Path(user_profile) / ".headerkit"
    return Path.home() / ".headerkit"


def get_version_dir(dev_dir: Path, flat_version: str) -> Path:
    """
    Get the install directory for a flattened "major.minor.patch" version.

    Example:
        >>> get_version_dir(Path('/home/user/.headerkit'), '6.1.0')
        PosixPath('/home/user/.headerkit/6.1.0')
    """
    return Path(dev_dir).resolve() / flat_version


__all__ = [
    "DEV_DIR_ENV",
    "get_default_dev_dir",
    "get_version_dir",
]
