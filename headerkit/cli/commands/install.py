"""
Install command implementation.

Installs the headers and build files of one runtime version into the dev root.
"""

import logging

from headerkit.cli.utils import config_from_args, print_error
from headerkit.core.exceptions import HeaderKitError
from headerkit.headers.installer import HeaderInstaller, InstallRequest

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - version: Requested version (optional)
            - ensure: Skip when a current install exists
            - proxy: Proxy URL override
            - target, dist_url, devdir: Configuration overrides

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        config = config_from_args(args)
        installer = HeaderInstaller(config)
        installed = installer.install(
            InstallRequest(
                requested_version=args.version,
                ensure_only=args.ensure,
                proxy_url=args.proxy,
            )
        )
    except HeaderKitError as e:
        print_error(f"Install failed: {e}")
        return 1

    print(installed)
    return 0
