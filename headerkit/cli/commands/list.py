"""
List command implementation.

Prints installed versions, oldest first.
"""

import logging

from headerkit.cli.utils import config_from_args, print_error
from headerkit.core.exceptions import HeaderKitError
from headerkit.headers.remove import list_installed

logger = logging.getLogger(__name__)


def run(args) -> int:
    try:
        config = config_from_args(args)
        installed = list_installed(config.dev_dir)
    except HeaderKitError as e:
        print_error(str(e))
        return 1

    if not installed:
        logger.info(f"no versions installed in {config.dev_dir}")
        return 0

    for entry in installed:
        if entry.install_version < config.install_version:
            print(f"{entry.version} (outdated, install record {entry.install_version})")
        else:
            print(entry.version)
    return 0
