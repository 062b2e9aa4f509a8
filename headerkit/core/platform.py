"""
Platform detection for headerkit.

Only two facts matter to the installer: the operating system (it decides
whether Windows import libraries must be fetched) and the CPU architecture
(reported in logs).

Usage:
    from headerkit.core.platform import detect_platform

    info = detect_platform()
    if info.needs_import_library:
        ...
"""

import functools
import platform
from dataclasses import dataclass

# Platforms whose toolchain links addons against a separately shipped node.lib
IMPORT_LIBRARY_PLATFORMS = frozenset({"windows"})


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos', ...)
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
    """

    os: str
    arch: str

    @property
    def needs_import_library(self) -> bool:
        """Whether native addons on this OS link against node.lib."""
        return self.os in IMPORT_LIBRARY_PLATFORMS

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'windows-x86').
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return self.platform_string()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def platform_for_os(os_name: str) -> PlatformInfo:
    """
    Build PlatformInfo for an explicitly configured OS on the current CPU.

    Used when the target platform is overridden in configuration.
    """
    return PlatformInfo(os=os_name.lower(), arch=_detect_architecture())


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos', or the raw
        platform.system() value lowercased for anything else
    """
    system = platform.system().lower()

    if system == "windows" or system.startswith(("cygwin", "msys")):
        return "windows"
    elif system == "darwin":
        return "macos"
    return system


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """Clear the platform detection cache (used by tests)."""
    detect_platform.cache_clear()


__all__ = [
    "IMPORT_LIBRARY_PLATFORMS",
    "PlatformInfo",
    "detect_platform",
    "platform_for_os",
    "clear_platform_cache",
]
