"""
headerkit - runtime development file installer for native addon builds.

Downloads the headers and gyp build files for a given runtime version into
a per-user dev root, so native addons can be compiled against it.
"""

try:
    from importlib.metadata import version

    __version__ = version("headerkit")
except Exception:
    __version__ = "0.1.0"

from headerkit.config import HeaderKitConfig, load_config
from headerkit.headers import HeaderInstaller, InstallRequest, install

__all__ = [
    "__version__",
    "HeaderKitConfig",
    "load_config",
    "HeaderInstaller",
    "InstallRequest",
    "install",
]
