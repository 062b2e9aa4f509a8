"""
Fetch and extract the runtime source tarball.

The pipeline is a chain of streaming stages, so the tarball never touches
disk as a whole:

    HTTP response chunks
      -> ChunkReader (file-like adapter)
      -> gzip decompression
      -> tarfile stream reader
      -> strip the top-level directory
      -> ExtractionFilter
      -> write accepted entries under the install directory

A failure in any stage propagates out of the `with open_stream(...)` block,
which closes the HTTP response and stops the transfer.
"""

import gzip
import io
import logging
import os
import shutil
import tarfile
import zlib
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple

import requests

from headerkit.core.download import (
    CHUNK_SIZE,
    DEFAULT_DIST_URL,
    DEFAULT_TIMEOUT,
    iter_chunks,
    open_stream,
)
from headerkit.core.exceptions import (
    ExtractionFailedError,
    FilesystemError,
    HeaderKitError,
    InsecureArchiveError,
)
from headerkit.core.filesystem import ensure_directory, is_relative_to
from headerkit.headers.filters import ExtractionFilter
from headerkit.headers.version import ResolvedVersion

logger = logging.getLogger(__name__)


def tarball_url(dist_url: str, flat_version: str) -> str:
    """
    Build the source tarball URL for a version.

    Example:
        >>> tarball_url("https://nodejs.org/dist", "6.1.0")
        'https://nodejs.org/dist/v6.1.0/node-v6.1.0.tar.gz'
    """
    base = dist_url.rstrip("/")
    return f"{base}/v{flat_version}/node-v{flat_version}.tar.gz"


def strip_components(name: str, count: int = 1) -> str:
    """
    Drop the first `count` path components of an archive member name.

    Example:
        >>> strip_components("node-v6.1.0/include/node/node.h")
        'include/node/node.h'
        >>> strip_components("node-v6.1.0/")
        ''
    """
    parts = [part for part in name.split("/") if part not in ("", ".")]
    return "/".join(parts[count:])


class ChunkReader(io.RawIOBase):
    """Read-only file object over an iterator of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks: Iterator[bytes] = iter(chunks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class FetchPipeline:
    """
    Downloads the runtime tarball and extracts the wanted entries.

    Example:
        >>> pipeline = FetchPipeline("https://nodejs.org/dist")
        >>> count = pipeline.run(resolve_version("6.1.0"), Path("~/.headerkit/6.1.0"))
    """

    def __init__(
        self,
        dist_url: str = DEFAULT_DIST_URL,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.dist_url = dist_url
        self.timeout = timeout
        self.session = session

    def run(
        self,
        version: ResolvedVersion,
        version_dir: Path,
        proxy: Optional[str] = None,
    ) -> int:
        """
        Create the install directory, then download and extract into it.

        Args:
            version: Resolved version to fetch
            version_dir: Install directory for that version
            proxy: Optional proxy URL

        Returns:
            Number of entries extracted (the root directory is not counted)

        Raises:
            DownloadError: Non-200 status or transport failure
            ExtractionFailedError: Corrupt archive or no matching entries
            FilesystemError: Entries cannot be written
        """
        if ensure_directory(version_dir):
            logger.debug(f"created: {version_dir}")
        else:
            logger.debug(f"directory already existed: {version_dir}")

        url = tarball_url(self.dist_url, version.flat)
        entry_filter = ExtractionFilter(is_legacy=version.is_legacy)

        with open_stream(
            url, proxy=proxy, timeout=self.timeout, session=self.session
        ) as response:
            count = self.extract(iter_chunks(response, url), version_dir, entry_filter)

        logger.debug("done parsing tarball")
        return count

    def extract(
        self, chunks: Iterable[bytes], version_dir: Path, entry_filter: ExtractionFilter
    ) -> int:
        """
        Extract a gzipped tar stream, keeping only entries the filter accepts.

        The gzip stream is read to its trailer, so a download that ends early
        fails here even when the cut falls between tar members.

        Raises:
            ExtractionFailedError: Corrupt or truncated stream, or zero accepted entries
        """
        version_dir = Path(version_dir).resolve()
        stream = io.BufferedReader(ChunkReader(chunks))
        extracted = 0

        try:
            with gzip.GzipFile(fileobj=stream, mode="rb") as decompressed:
                with tarfile.open(fileobj=decompressed, mode="r|") as archive:
                    for member in archive:
                        if self._extract_member(
                            archive, member, version_dir, entry_filter
                        ):
                            extracted += 1
                # tar end-of-archive blocks may precede the gzip trailer
                while decompressed.read(CHUNK_SIZE):
                    pass
        except HeaderKitError:
            raise
        except (tarfile.TarError, gzip.BadGzipFile, zlib.error, EOFError) as e:
            raise ExtractionFailedError(f"Failed to extract tarball: {e}") from e

        if extracted == 0:
            raise ExtractionFailedError(
                "There was a fatal problem while downloading/extracting the tarball"
            )
        return extracted

    def _extract_member(
        self,
        archive: tarfile.TarFile,
        member: tarfile.TarInfo,
        version_dir: Path,
        entry_filter: ExtractionFilter,
    ) -> bool:
        """Write one member to disk if accepted. Returns True when counted."""
        relative = strip_components(member.name)

        if not entry_filter.accepts(relative, member.isdir()):
            return False
        if relative == "":
            # archive root, accepted but nothing to write
            return False
        if not (member.isfile() or member.isdir()):
            logger.debug(f"skipping special entry: {relative}")
            return False

        destination = self._destination_for(relative, version_dir)
        logger.debug(f"extracted file from tarball: {relative}")

        try:
            if member.isdir():
                destination.mkdir(parents=True, exist_ok=True)
                return True

            destination.parent.mkdir(parents=True, exist_ok=True)
            source = archive.extractfile(member)
            with source, open(destination, "wb") as target:
                shutil.copyfileobj(source, target)
            os.chmod(destination, 0o755 if member.mode & 0o111 else 0o644)
        except OSError as e:
            raise FilesystemError(f"Failed to write '{destination}': {e}") from e

        return True

    @staticmethod
    def _destination_for(relative: str, version_dir: Path) -> Path:
        """Map a member path into the install directory, refusing traversal."""
        if ".." in relative.split("/"):
            raise InsecureArchiveError(
                f"Archive member '{relative}' attempts directory traversal"
            )
        destination = (version_dir / relative).resolve()
        if not is_relative_to(destination, version_dir):
            raise InsecureArchiveError(
                f"Archive member '{relative}' resolves outside {version_dir}"
            )
        return destination


__all__ = [
    "tarball_url",
    "strip_components",
    "ChunkReader",
    "FetchPipeline",
]
