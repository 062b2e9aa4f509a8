"""
Ensure-mode check: is a cached install already good enough?
"""

import enum
import logging
from pathlib import Path

from headerkit.core.filesystem import PathState, probe_path
from headerkit.headers.marker import read_install_record

logger = logging.getLogger(__name__)


class GateDecision(enum.Enum):
    INSTALL = "install"
    SATISFIED = "satisfied"


class InstallGate:
    """
    Compares an existing install against the required install format.

    Example:
        >>> gate = InstallGate(required_install_version=9)
        >>> gate.check(Path("~/.headerkit/6.1.0"))
        <GateDecision.SATISFIED: 'satisfied'>
    """

    def __init__(self, required_install_version: int):
        self.required_install_version = required_install_version

    def check(self, version_dir: Path) -> GateDecision:
        """
        Decide whether an install is needed.

        Raises:
            FilesystemError: On any error other than "not found"
        """
        if probe_path(version_dir) is PathState.ABSENT:
            logger.debug("version not already installed, continuing with install")
            return GateDecision.INSTALL

        logger.debug('version is already installed, need to check "installVersion"')
        installed = read_install_record(version_dir)
        logger.debug(f'got "installVersion": {installed}')
        logger.debug(f'needs "installVersion": {self.required_install_version}')

        if installed < self.required_install_version:
            logger.debug("version is no good; reinstalling")
            return GateDecision.INSTALL

        logger.debug("version is good")
        return GateDecision.SATISFIED


__all__ = ["GateDecision", "InstallGate"]
