"""
Shared utilities for CLI commands.

Turns parsed arguments into a HeaderKitConfig and prints user-facing
messages in a consistent format.
"""

import logging
import sys
from typing import Optional

from headerkit.config.parser import HeaderKitConfig, load_config

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def config_from_args(args) -> HeaderKitConfig:
    """
    Load configuration and apply command-line overrides.

    Precedence: command line > HEADERKIT_* environment > config file > defaults.

    Args:
        args: Parsed arguments; optional attributes devdir, dist_url, target

    Returns:
        Effective configuration

    Raises:
        ConfigError: If the configuration file is missing or invalid
    """
    config = load_config(getattr(args, "config", None))

    devdir = getattr(args, "devdir", None)
    if devdir:
        config.dev_dir = devdir.expanduser()
    dist_url = getattr(args, "dist_url", None)
    if dist_url:
        config.dist_url = dist_url
    target = getattr(args, "target", None)
    if target:
        config.target = target

    logger.debug(f"dev dir: {config.dev_dir}")
    return config


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


__all__ = ["config_from_args", "print_error"]
