"""
Pytest configuration and shared fixtures for headerkit tests.
"""

import logging
from pathlib import Path

import pytest

# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.tarballs import DIST_URL, no_match_tarball, runtime_tarball

from headerkit.config.parser import HeaderKitConfig
from headerkit.core.platform import clear_platform_cache


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: exercises the HTTP layer (mocked with responses)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's proxy and headerkit settings out of tests."""
    for name in (
        "http_proxy",
        "HTTP_PROXY",
        "https_proxy",
        "HTTPS_PROXY",
        "npm_config_proxy",
        "HEADERKIT_DEVDIR",
        "HEADERKIT_DIST_URL",
        "HEADERKIT_TARGET",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def dev_dir(tmp_path) -> Path:
    """Empty dev root."""
    path = tmp_path / ".headerkit"
    path.mkdir()
    return path


@pytest.fixture
def make_config(dev_dir):
    """Factory for a HeaderKitConfig pointing at the test dev root and dist URL."""

    def _make(**overrides) -> HeaderKitConfig:
        values = {"dev_dir": dev_dir, "dist_url": DIST_URL, "platform": "linux"}
        values.update(overrides)
        return HeaderKitConfig(**values)

    return _make


@pytest.fixture
def isolated_home(tmp_path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logging.basicConfig(force=True) calls made by CLI runs."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
