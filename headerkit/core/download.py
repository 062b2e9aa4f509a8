"""
Network download helpers for headerkit.

This module provides the HTTP side of the install pipeline:
- Proxy resolution from explicit options and environment variables
- Streaming GET requests with bounded connect/read timeouts
- Chunk iteration and streaming to disk

Failures surface as DownloadError. Nothing is retried: a failed fetch
aborts the install and triggers rollback.
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Optional, Tuple

import requests
import urllib3
from requests.exceptions import RequestException

from headerkit.core.exceptions import DownloadError, FilesystemError

logger = logging.getLogger(__name__)

DEFAULT_DIST_URL = "https://nodejs.org/dist"

CHUNK_SIZE = 64 * 1024

# (connect, read) in seconds; read bounds the wait between received bytes
DEFAULT_TIMEOUT: Tuple[float, float] = (10.0, 60.0)

# Checked in order after an explicit proxy option
PROXY_ENV_VARS = ("http_proxy", "HTTP_PROXY", "npm_config_proxy")


@dataclass(frozen=True)
class DownloadTarget:
    """A remote asset and where it should land on disk."""

    url: str
    destination: Path


def resolve_proxy(
    explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """
    Resolve the proxy URL to use for downloads.

    Precedence: explicit option > http_proxy > HTTP_PROXY > npm_config_proxy.

    Args:
        explicit: Proxy passed on the command line or in configuration
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Proxy URL or None when no proxy is configured

    Example:
        >>> resolve_proxy(None, {"HTTP_PROXY": "http://proxy:3128"})
        'http://proxy:3128'
    """
    if explicit:
        return explicit

    environ = os.environ if environ is None else environ
    for name in PROXY_ENV_VARS:
        value = environ.get(name)
        if value:
            return value
    return None


@contextmanager
def open_stream(
    url: str,
    proxy: Optional[str] = None,
    timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> Iterator[requests.Response]:
    """
    Open a streaming GET request and guarantee it is closed afterwards.

    The response is only yielded for a 200 status. Closing the response on
    exit cancels the upstream transfer when a downstream stage fails.

    Args:
        url: URL to download
        proxy: Optional proxy URL used for both http and https
        timeout: (connect, read) timeout in seconds
        session: Optional requests session (for connection reuse in tests)

    Yields:
        The open streaming response

    Raises:
        DownloadError: On transport failure or a non-200 status
    """
    logger.info(f"downloading: {url}")

    kwargs = {"stream": True, "timeout": timeout, "allow_redirects": True}
    if proxy:
        logger.debug(f"using proxy: {proxy}")
        kwargs["proxies"] = {"http": proxy, "https": proxy}

    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, **kwargs)
    except RequestException as e:
        raise DownloadError(url, f"Request failed ({e})") from e

    try:
        if response.status_code != 200:
            raise DownloadError(
                url,
                f"{response.status_code} status code",
                status_code=response.status_code,
            )
        yield response
    finally:
        response.close()


def iter_chunks(response: requests.Response, url: str) -> Iterator[bytes]:
    """
    Yield non-empty body chunks, converting transport failures to DownloadError.

    The body is passed through exactly as served. A `Content-Encoding: gzip`
    label on a .tar.gz must not strip the archive's own compression.
    """
    try:
        for chunk in response.raw.stream(CHUNK_SIZE, decode_content=False):
            if chunk:
                yield chunk
    except (RequestException, urllib3.exceptions.HTTPError) as e:
        raise DownloadError(url, f"Transfer interrupted ({e})") from e


def stream_to_file(
    target: DownloadTarget,
    proxy: Optional[str] = None,
    timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> int:
    """
    Download a single asset straight to disk.

    Args:
        target: URL and destination path
        proxy: Optional proxy URL
        timeout: (connect, read) timeout in seconds
        session: Optional requests session

    Returns:
        Number of bytes written

    Raises:
        DownloadError: On transport failure or a non-200 status
        FilesystemError: If the destination cannot be written
    """
    written = 0
    with open_stream(target.url, proxy=proxy, timeout=timeout, session=session) as response:
        try:
            with open(target.destination, "wb") as f:
                for chunk in iter_chunks(response, target.url):
                    f.write(chunk)
                    written += len(chunk)
        except OSError as e:
            raise FilesystemError(
                f"Failed to write '{target.destination}': {e}"
            ) from e

    logger.debug(f"wrote {written} bytes to {target.destination}")
    return written


__all__ = [
    "DEFAULT_DIST_URL",
    "CHUNK_SIZE",
    "DEFAULT_TIMEOUT",
    "PROXY_ENV_VARS",
    "DownloadTarget",
    "resolve_proxy",
    "open_stream",
    "iter_chunks",
    "stream_to_file",
]
