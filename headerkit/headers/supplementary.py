"""
Import library downloads for Windows targets.

On Windows, native addons link against node.lib, which is published next to
the source tarball rather than inside it. Both the 32-bit and the 64-bit
variant are fetched so either architecture can be built from one cache.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple

import requests

from headerkit.core.download import DEFAULT_TIMEOUT, DownloadTarget, stream_to_file
from headerkit.core.filesystem import ensure_directory

logger = logging.getLogger(__name__)

IMPORT_LIBRARY_NAME = "node.lib"

# (architecture directory, URL path under the version directory of the dist site)
IMPORT_LIBRARY_VARIANTS: Tuple[Tuple[str, str], ...] = (
    ("ia32", "node.lib"),
    ("x64", "x64/node.lib"),
)


def import_library_targets(
    dist_url: str, flat_version: str, version_dir: Path
) -> List[DownloadTarget]:
    """
    List the import library downloads for a version.

    Example:
        >>> [t.url for t in import_library_targets("https://nodejs.org/dist", "6.1.0", d)]
        ['https://nodejs.org/dist/v6.1.0/node.lib', 'https://nodejs.org/dist/v6.1.0/x64/node.lib']
    """
    base = f"{dist_url.rstrip('/')}/v{flat_version}"
    return [
        DownloadTarget(
            url=f"{base}/{url_path}",
            destination=Path(version_dir) / arch / IMPORT_LIBRARY_NAME,
        )
        for arch, url_path in IMPORT_LIBRARY_VARIANTS
    ]


class SupplementaryAssetFetcher:
    """
    Downloads every import library variant concurrently.

    All variants are waited for before returning; if any failed, the first
    failure observed is raised.
    """

    def __init__(
        self,
        dist_url: str,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.dist_url = dist_url
        self.timeout = timeout
        self.session = session

    def fetch(
        self, flat_version: str, version_dir: Path, proxy: Optional[str] = None
    ) -> List[Path]:
        """
        Fetch all import library variants into the install directory.

        Returns:
            Paths of the downloaded libraries

        Raises:
            DownloadError: Non-200 status or transport failure on any variant
            FilesystemError: An architecture directory or file cannot be written
        """
        logger.debug(f"on Windows; need to download `{IMPORT_LIBRARY_NAME}`...")
        targets = import_library_targets(self.dist_url, flat_version, version_dir)

        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(
            max_workers=len(targets), thread_name_prefix="headerkit-lib"
        ) as pool:
            futures = [pool.submit(self._fetch_one, target, proxy) for target in targets]
            for future in as_completed(futures):
                error = future.exception()
                if error is not None and first_error is None:
                    first_error = error

        if first_error is not None:
            raise first_error
        return [target.destination for target in targets]

    def _fetch_one(self, target: DownloadTarget, proxy: Optional[str]) -> Path:
        ensure_directory(target.destination.parent)
        logger.debug(f"streaming {target.url} to: {target.destination}")
        stream_to_file(target, proxy=proxy, timeout=self.timeout, session=self.session)
        return target.destination


__all__ = [
    "IMPORT_LIBRARY_NAME",
    "IMPORT_LIBRARY_VARIANTS",
    "import_library_targets",
    "SupplementaryAssetFetcher",
]
