"""
Remove command implementation.

Deletes installed versions from the dev root.
"""

import logging

from headerkit.cli.utils import config_from_args, print_error
from headerkit.core.exceptions import HeaderKitError
from headerkit.headers.remove import remove_version

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the remove command.

    Every requested version is attempted; the exit code is 1 if any of
    them could not be removed.
    """
    try:
        config = config_from_args(args)
    except HeaderKitError as e:
        print_error(str(e))
        return 1

    failed = 0
    for version in args.versions:
        try:
            removed = remove_version(config.dev_dir, version)
        except HeaderKitError as e:
            print_error(f"Cannot remove {version}: {e}")
            failed += 1
            continue

        if removed:
            print(f"removed {version}")
        else:
            logger.warning(f"version not installed: {version}")

    return 1 if failed else 0
