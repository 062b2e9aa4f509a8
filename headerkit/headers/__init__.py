"""
Runtime development file installation.

This package resolves runtime versions, downloads the matching headers and
gyp build files, and maintains them in the local dev root.
"""

from .version import (
    ResolvedVersion,
    VersionResolver,
    resolve_version,
)
from .filters import ExtractionFilter
from .gate import GateDecision, InstallGate
from .pipeline import FetchPipeline
from .supplementary import SupplementaryAssetFetcher
from .marker import read_install_record, write_install_record
from .remove import InstalledVersion, remove_version, list_installed
from .installer import (
    InstallRequest,
    RollbackCoordinator,
    HeaderInstaller,
    install,
)

__all__ = [
    "ResolvedVersion",
    "VersionResolver",
    "resolve_version",
    "ExtractionFilter",
    "GateDecision",
    "InstallGate",
    "FetchPipeline",
    "SupplementaryAssetFetcher",
    "read_install_record",
    "write_install_record",
    "InstalledVersion",
    "remove_version",
    "list_installed",
    "InstallRequest",
    "RollbackCoordinator",
    "HeaderInstaller",
    "install",
]
