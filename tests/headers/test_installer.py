"""
Tests for install orchestration.

These run the real pipeline against HTTP responses mocked with `responses`
and an in-memory tarball.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest
import responses

from headerkit.core.concurrency import CompletionGate
from headerkit.core.exceptions import (
    DownloadError,
    ExtractionFailedError,
    FilesystemError,
    InvalidVersionError,
    UnsupportedVersionError,
)
from headerkit.headers.installer import (
    HeaderInstaller,
    InstallRequest,
    RollbackCoordinator,
    install,
)
from headerkit.headers.marker import LEGACY_DIR
from headerkit.headers.version import resolve_version
from tests.fixtures.tarballs import DIST_URL, build_tarball


def tarball_url(version):
    return f"{DIST_URL}/v{version}/node-v{version}.tar.gz"


def no_runtime():
    return None


class TestRollbackCoordinator:
    """Test once-only best-effort rollback."""

    def test_runs_once(self, dev_dir):
        remover = MagicMock(return_value=True)
        coordinator = RollbackCoordinator(dev_dir, remover=remover)

        assert coordinator.rollback("6.1.0") is True
        assert coordinator.rollback("6.1.0") is False
        assert coordinator.done is True
        remover.assert_called_once_with(dev_dir, "6.1.0")

    def test_removal_errors_are_swallowed(self, dev_dir):
        remover = MagicMock(side_effect=FilesystemError("busy"))
        coordinator = RollbackCoordinator(dev_dir, remover=remover)

        assert coordinator.rollback("6.1.0") is True

    def test_concurrent_callers_remove_once(self, dev_dir):
        remover = MagicMock(return_value=True)
        coordinator = RollbackCoordinator(dev_dir, remover=remover)
        threads = [
            threading.Thread(target=coordinator.rollback, args=("6.1.0",))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert remover.call_count == 1

    def test_default_remover_deletes_version_dir(self, dev_dir):
        (dev_dir / "6.1.0" / "include").mkdir(parents=True)

        RollbackCoordinator(dev_dir).rollback("6.1.0")

        assert not (dev_dir / "6.1.0").exists()
        assert dev_dir.is_dir()


class TestVersionErrors:
    """Version failures happen before any I/O."""

    @responses.activate
    def test_unsupported_version(self, make_config, dev_dir):
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with pytest.raises(UnsupportedVersionError):
            installer.install(InstallRequest("0.5.10"))

        assert list(dev_dir.iterdir()) == []
        assert len(responses.calls) == 0

    @responses.activate
    def test_invalid_version(self, make_config, dev_dir):
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with pytest.raises(InvalidVersionError, match="Invalid version number: foo"):
            installer.install(InstallRequest("foo"))

        assert list(dev_dir.iterdir()) == []
        assert len(responses.calls) == 0


@pytest.mark.network
class TestInstall:
    """End-to-end installs against a mocked dist server."""

    @responses.activate
    def test_install_modern_version(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        result = installer.install(InstallRequest("6.1.0"))

        version_dir = dev_dir / "6.1.0"
        assert result == "6.1.0"
        assert (version_dir / "installVersion").read_bytes() == b"9\n"
        assert (version_dir / "include" / "node" / "node.h").is_file()
        assert (version_dir / "tools" / "gyp" / "gyp_main.py").is_file()
        assert not (version_dir / "ia32").exists()

    @responses.activate
    def test_install_pre_version(self, make_config, dev_dir):
        responses.add(
            responses.GET, tarball_url("0.8.2"), body=build_tarball("0.8.2")
        )
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        assert installer.install(InstallRequest("v0.8.3-pre")) == "0.8.2"
        assert (dev_dir / "0.8.2" / "installVersion").is_file()

    @responses.activate
    def test_install_legacy_version(self, make_config, dev_dir):
        responses.add(
            responses.GET, tarball_url("0.6.21"), body=build_tarball("0.6.21")
        )
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        installer.install(InstallRequest("0.6.21"))

        version_dir = dev_dir / "0.6.21"
        assert (version_dir / "include" / "node" / "node.h").is_file()
        # gyp files come from the bundled legacy set, not the tarball
        assert (version_dir / "common.gypi").read_text() == (
            LEGACY_DIR / "common.gypi"
        ).read_text()
        assert (version_dir / "tools" / "gyp_addon").is_file()
        assert not (version_dir / "tools" / "gyp").exists()
        assert not (version_dir / "config.gypi").exists()

    @responses.activate
    def test_install_on_windows_fetches_import_libraries(
        self, make_config, dev_dir, runtime_tarball
    ):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        responses.add(responses.GET, f"{DIST_URL}/v6.1.0/node.lib", body=b"ia32")
        responses.add(responses.GET, f"{DIST_URL}/v6.1.0/x64/node.lib", body=b"x64")
        installer = HeaderInstaller(
            make_config(platform="windows"), runtime_detector=no_runtime
        )

        installer.install(InstallRequest("6.1.0"))

        version_dir = dev_dir / "6.1.0"
        assert (version_dir / "ia32" / "node.lib").read_bytes() == b"ia32"
        assert (version_dir / "x64" / "node.lib").read_bytes() == b"x64"
        assert (version_dir / "installVersion").read_bytes() == b"9\n"

    @responses.activate
    def test_version_from_target(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(
            make_config(target="6.1.0"), runtime_detector=no_runtime
        )

        assert installer.install(InstallRequest()) == "6.1.0"

    @responses.activate
    def test_version_from_runtime(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=lambda: "v6.1.0")

        assert installer.install(InstallRequest()) == "6.1.0"

    @responses.activate
    def test_convenience_function(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)

        assert install(make_config(), "6.1.0") == "6.1.0"


@pytest.mark.network
class TestEnsure:
    """Test ensure-mode idempotence."""

    @responses.activate
    def test_second_ensure_does_no_network(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        assert installer.install(InstallRequest("6.1.0", ensure_only=True)) == "6.1.0"
        assert installer.install(InstallRequest("6.1.0", ensure_only=True)) == "6.1.0"

        assert len(responses.calls) == 1

    @responses.activate
    def test_outdated_record_triggers_reinstall(
        self, make_config, dev_dir, runtime_tarball
    ):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)
        installer.install(InstallRequest("6.1.0"))
        (dev_dir / "6.1.0" / "installVersion").write_text("8\n")

        installer.install(InstallRequest("6.1.0", ensure_only=True))

        assert len(responses.calls) == 2
        assert (dev_dir / "6.1.0" / "installVersion").read_bytes() == b"9\n"

    @responses.activate
    def test_without_ensure_always_reinstalls(
        self, make_config, dev_dir, runtime_tarball
    ):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        installer.install(InstallRequest("6.1.0"))
        installer.install(InstallRequest("6.1.0"))

        assert len(responses.calls) == 2

    def test_gate_error_is_not_rolled_back(self, make_config, dev_dir):
        (dev_dir / "6.1.0").mkdir()
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with patch.object(
            installer.gate, "check", side_effect=FilesystemError("permission denied")
        ):
            with pytest.raises(FilesystemError):
                installer.install(InstallRequest("6.1.0", ensure_only=True))

        assert (dev_dir / "6.1.0").is_dir()


@pytest.mark.network
class TestRollback:
    """Failed installs leave no version directory behind."""

    @responses.activate
    def test_tarball_not_found(self, make_config, dev_dir):
        responses.add(responses.GET, tarball_url("6.1.0"), status=404)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with pytest.raises(DownloadError, match="404 status code"):
            installer.install(InstallRequest("6.1.0"))

        assert not (dev_dir / "6.1.0").exists()

    @responses.activate
    def test_no_matching_entries(self, make_config, dev_dir, no_match_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=no_match_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with pytest.raises(ExtractionFailedError):
            installer.install(InstallRequest("6.1.0"))

        assert not (dev_dir / "6.1.0").exists()

    @responses.activate
    def test_truncated_tarball(self, make_config, dev_dir, runtime_tarball):
        half = runtime_tarball[: len(runtime_tarball) // 2]
        responses.add(responses.GET, tarball_url("6.1.0"), body=half)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with pytest.raises(ExtractionFailedError):
            installer.install(InstallRequest("6.1.0"))

        assert not (dev_dir / "6.1.0").exists()

    @responses.activate
    def test_windows_x64_library_failure(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        responses.add(responses.GET, f"{DIST_URL}/v6.1.0/node.lib", body=b"ia32")
        responses.add(responses.GET, f"{DIST_URL}/v6.1.0/x64/node.lib", status=404)
        installer = HeaderInstaller(
            make_config(platform="windows"), runtime_detector=no_runtime
        )

        with pytest.raises(DownloadError) as exc_info:
            installer.install(InstallRequest("6.1.0"))

        assert exc_info.value.url == f"{DIST_URL}/v6.1.0/x64/node.lib"
        assert not (dev_dir / "6.1.0").exists()
        assert dev_dir.is_dir()

    @responses.activate
    def test_record_write_failure(self, make_config, dev_dir, runtime_tarball):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)

        with patch(
            "headerkit.headers.installer.write_install_record",
            side_effect=FilesystemError("disk full"),
        ):
            with pytest.raises(FilesystemError, match="disk full"):
                installer.install(InstallRequest("6.1.0"))

        assert not (dev_dir / "6.1.0").exists()

    @responses.activate
    def test_failed_reinstall_removes_previous_install(
        self, make_config, dev_dir, runtime_tarball
    ):
        responses.add(responses.GET, tarball_url("6.1.0"), body=runtime_tarball)
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)
        installer.install(InstallRequest("6.1.0"))

        responses.replace(responses.GET, tarball_url("6.1.0"), status=500)
        with pytest.raises(DownloadError):
            installer.install(InstallRequest("6.1.0"))

        assert not (dev_dir / "6.1.0").exists()


class TestFinalization:
    """Test the concurrent finalization fan-out."""

    def test_task_list_per_platform(self, make_config, dev_dir):
        modern = resolve_version("6.1.0")
        legacy = resolve_version("0.6.21")

        linux = HeaderInstaller(make_config(), runtime_detector=no_runtime)
        windows = HeaderInstaller(
            make_config(platform="windows"), runtime_detector=no_runtime
        )

        def names(installer, version):
            return [
                name
                for name, _ in installer.finalization_tasks(version, dev_dir, None)
            ]

        assert names(linux, modern) == ["install record write"]
        assert names(linux, legacy) == ["legacy file copy", "install record write"]
        assert names(windows, legacy) == [
            "legacy file copy",
            "import library download",
            "install record write",
        ]

    def test_error_is_latched_and_all_tasks_settle(self, make_config, dev_dir):
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)
        finished = []
        first = FilesystemError("first")
        release = threading.Event()
        late_started = threading.Event()

        def fail_fast():
            release.wait(5)
            late_started.wait(5)
            raise first

        def fail_late():
            late_started.set()
            release.wait(5)
            completion.wait(5)
            finished.append("late")
            raise DownloadError("https://x", "500 status code")

        def succeed():
            release.set()
            finished.append("ok")

        completion = CompletionGate()
        tasks = [("a", fail_fast), ("b", fail_late), ("c", succeed)]
        with patch.object(installer, "finalization_tasks", return_value=tasks):
            installer._finalize(resolve_version("6.1.0"), dev_dir, None, completion)

        assert completion.error is first
        assert sorted(finished) == ["late", "ok"]
        assert completion.fired

    def test_all_success_leaves_gate_open(self, make_config, dev_dir):
        installer = HeaderInstaller(make_config(), runtime_detector=no_runtime)
        completion = CompletionGate()
        tasks = [("a", lambda: None), ("b", lambda: None)]

        with patch.object(installer, "finalization_tasks", return_value=tasks):
            installer._finalize(resolve_version("6.1.0"), dev_dir, None, completion)

        assert not completion.fired


class TestProxy:
    """Test proxy selection for downloads."""

    def _installer(self, make_config, **overrides):
        installer = HeaderInstaller(make_config(**overrides), runtime_detector=no_runtime)

        def fake_run(version, version_dir, proxy):
            version_dir.mkdir(parents=True, exist_ok=True)
            return 1

        installer.pipeline.run = MagicMock(side_effect=fake_run)
        return installer

    def test_request_proxy_wins(self, make_config, monkeypatch):
        monkeypatch.setenv("http_proxy", "http://env:1")
        installer = self._installer(make_config, proxy="http://config:2")

        installer.install(InstallRequest("6.1.0", proxy_url="http://cli:3"))

        assert installer.pipeline.run.call_args.args[2] == "http://cli:3"

    def test_config_proxy_before_environment(self, make_config, monkeypatch):
        monkeypatch.setenv("http_proxy", "http://env:1")
        installer = self._installer(make_config, proxy="http://config:2")

        installer.install(InstallRequest("6.1.0"))

        assert installer.pipeline.run.call_args.args[2] == "http://config:2"

    def test_environment_proxy(self, make_config, monkeypatch):
        monkeypatch.setenv("npm_config_proxy", "http://npm:4")
        installer = self._installer(make_config)

        installer.install(InstallRequest("6.1.0"))

        assert installer.pipeline.run.call_args.args[2] == "http://npm:4"
