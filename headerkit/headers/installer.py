"""
Install orchestration for runtime development files.

This module coordinates the whole install of one version:
1. Resolve the requested version (no I/O happens before this succeeds)
2. In ensure mode, skip everything if a good install is already cached
3. Download and extract the source tarball
4. Run the finalization tasks concurrently and join them:
   - copy legacy gyp files (pre-0.8 runtimes)
   - download import libraries (Windows targets)
   - write the install record
5. On the first failure anywhere, remove the version directory once and
   re-raise that failure

Example:
    >>> installer = HeaderInstaller(load_config())
    >>> installer.install(InstallRequest("18.17.1", ensure_only=True))
    '18.17.1'
"""

import functools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import requests

from headerkit.config.parser import HeaderKitConfig
from headerkit.core.concurrency import CompletionGate, JoinCounter
from headerkit.core.directory import get_version_dir
from headerkit.core.download import resolve_proxy
from headerkit.headers.gate import GateDecision, InstallGate
from headerkit.headers.marker import copy_legacy_files, write_install_record
from headerkit.headers.pipeline import FetchPipeline
from headerkit.headers.remove import remove_version
from headerkit.headers.supplementary import SupplementaryAssetFetcher
from headerkit.headers.version import (
    ResolvedVersion,
    VersionResolver,
    detect_runtime_version,
)

logger = logging.getLogger(__name__)

FinalizeTask = Tuple[str, Callable[[], object]]


@dataclass(frozen=True)
class InstallRequest:
    """What the caller asked for."""

    requested_version: Optional[str] = None
    ensure_only: bool = False
    proxy_url: Optional[str] = None


class RollbackCoordinator:
    """
    Removes a partially installed version, at most once.

    Removal is best effort: its own failures are logged and swallowed so
    the caller always sees the error that caused the rollback.
    """

    def __init__(
        self,
        dev_dir: Path,
        remover: Callable[[Path, str], bool] = remove_version,
    ):
        self.dev_dir = dev_dir
        self._remover = remover
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def rollback(self, flat_version: str) -> bool:
        """
        Remove the version directory.

        Returns:
            True if this call performed the rollback, False if it already ran
        """
        with self._lock:
            if self._done:
                return False
            self._done = True

        logger.debug("got an error, rolling back install")
        try:
            self._remover(self.dev_dir, flat_version)
        except Exception as e:
            logger.warning(f"Failed to roll back install of {flat_version}: {e}")
        return True


class HeaderInstaller:
    """
    Installs runtime headers and build files into the dev root.

    Collaborators are built from configuration; the HTTP session and the
    runtime version probe can be injected for testing.
    """

    def __init__(
        self,
        config: HeaderKitConfig,
        session: Optional[requests.Session] = None,
        runtime_detector: Callable[[], Optional[str]] = detect_runtime_version,
    ):
        self.config = config
        self.dev_dir = Path(config.dev_dir)
        self.platform = config.platform_info()
        self.resolver = VersionResolver(
            target=config.target, runtime_detector=runtime_detector
        )
        self.gate = InstallGate(config.install_version)
        self.pipeline = FetchPipeline(
            config.dist_url, timeout=config.timeout, session=session
        )
        self.supplementary = SupplementaryAssetFetcher(
            config.dist_url, timeout=config.timeout, session=session
        )

    def install(self, request: InstallRequest) -> str:
        """
        Install the development files for one version.

        Args:
            request: Requested version, ensure flag and proxy override

        Returns:
            The installed version as "major.minor.patch"

        Raises:
            InvalidVersionError: Unparsable version (nothing touched)
            UnsupportedVersionError: Version below 0.6.0 (nothing touched)
            FilesystemError: Ensure check failed (nothing touched), or an
                install step failed (version directory removed)
            DownloadError: Any asset fetch failed (version directory removed)
            ExtractionFailedError: Tarball unusable (version directory removed)
        """
        version = self.resolver.resolve(request.requested_version)
        version_dir = get_version_dir(self.dev_dir, version.flat)

        if request.ensure_only:
            logger.debug("--ensure was passed, so won't reinstall if already installed")
            if self.gate.check(version_dir) is GateDecision.SATISFIED:
                logger.info(f"version {version.flat} is already installed")
                return version.flat

        proxy = resolve_proxy(request.proxy_url or self.config.proxy)
        completion = CompletionGate()
        rollback = RollbackCoordinator(self.dev_dir)

        logger.info(f"installing version {version.flat} ({self.platform})")
        try:
            self.pipeline.run(version, version_dir, proxy)
            self._finalize(version, version_dir, proxy, completion)
        except Exception as e:
            completion.fire(e)
        else:
            completion.fire()

        if completion.error is not None:
            rollback.rollback(version.flat)
            raise completion.error

        logger.info(f"installed development files for {version.flat} in {version_dir}")
        return version.flat

    def finalization_tasks(
        self, version: ResolvedVersion, version_dir: Path, proxy: Optional[str]
    ) -> List[FinalizeTask]:
        """Sub-operations to run once the tarball is extracted."""
        tasks: List[FinalizeTask] = []

        if version.is_legacy:
            tasks.append(
                ("legacy file copy", functools.partial(copy_legacy_files, version_dir))
            )

        if self.platform.needs_import_library:
            tasks.append(
                (
                    "import library download",
                    functools.partial(
                        self.supplementary.fetch, version.flat, version_dir, proxy
                    ),
                )
            )

        tasks.append(
            (
                "install record write",
                functools.partial(
                    write_install_record, version_dir, self.config.install_version
                ),
            )
        )
        return tasks

    def _finalize(
        self,
        version: ResolvedVersion,
        version_dir: Path,
        proxy: Optional[str],
        completion: CompletionGate,
    ) -> None:
        """
        Run the finalization tasks concurrently and wait for all of them.

        Failures are reported through `completion`; the first one wins.
        """
        tasks = self.finalization_tasks(version, version_dir, proxy)
        counter = JoinCounter(len(tasks))
        if not tasks:
            return

        futures: List[Future] = []
        with ThreadPoolExecutor(
            max_workers=len(tasks), thread_name_prefix="headerkit-finalize"
        ) as pool:
            for name, task in tasks:
                future = pool.submit(task)
                futures.append(future)
                future.add_done_callback(
                    functools.partial(self._settle, name, counter, completion, futures)
                )
            counter.wait()

    @staticmethod
    def _settle(
        name: str,
        counter: JoinCounter,
        completion: CompletionGate,
        futures: List[Future],
        future: Future,
    ) -> None:
        error = None if future.cancelled() else future.exception()
        if error is not None:
            if completion.fire(error):
                logger.debug(f"{name} failed: {error}")
                # tasks still queued never start; running ones finish
                for pending in list(futures):
                    pending.cancel()
            else:
                logger.debug(f"ignoring error from {name} after failure: {error}")
        counter.settle()


def install(
    config: HeaderKitConfig,
    version: Optional[str] = None,
    ensure: bool = False,
    proxy: Optional[str] = None,
) -> str:
    """
    Convenience function to install one version.

    Example:
        >>> from headerkit.headers.installer import install
        >>> install(load_config(), "18.17.1", ensure=True)
        '18.17.1'
    """
    installer = HeaderInstaller(config)
    return installer.install(
        InstallRequest(requested_version=version, ensure_only=ensure, proxy_url=proxy)
    )


__all__ = [
    "InstallRequest",
    "RollbackCoordinator",
    "HeaderInstaller",
    "install",
]
