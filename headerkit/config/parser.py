"""YAML configuration parser for headerkit.

This module loads headerkit.yaml and environment overrides into a
HeaderKitConfig. Example file:

    dev_dir: ~/.cache/headerkit
    dist_url: https://nodejs.org/dist
    target: 18.17.1
    proxy: http://proxy.internal:3128
    platform: windows
    timeout:
      connect: 10
      read: 60
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from headerkit.core.directory import DEV_DIR_ENV, get_default_dev_dir
from headerkit.core.download import DEFAULT_DIST_URL, DEFAULT_TIMEOUT
from headerkit.core.exceptions import ConfigError
from headerkit.core.platform import PlatformInfo, detect_platform, platform_for_os

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "headerkit.yaml"

# Install-format version written to every install record. Bump when the
# cache layout or the set of extracted files changes.
INSTALL_VERSION = 9

DIST_URL_ENV = "HEADERKIT_DIST_URL"
TARGET_ENV = "HEADERKIT_TARGET"

_KNOWN_KEYS = {
    "dev_dir",
    "dist_url",
    "target",
    "proxy",
    "install_version",
    "platform",
    "timeout",
}


@dataclass
class HeaderKitConfig:
    """Complete headerkit configuration."""

    dev_dir: Path = field(default_factory=get_default_dev_dir)
    dist_url: str = DEFAULT_DIST_URL
    target: Optional[str] = None
    proxy: Optional[str] = None
    install_version: int = INSTALL_VERSION
    platform: Optional[str] = None  # OS override, e.g. 'windows'
    timeout: Tuple[float, float] = DEFAULT_TIMEOUT

    def platform_info(self) -> PlatformInfo:
        """Target platform: the configured OS, or the detected one."""
        if self.platform:
            return platform_for_os(self.platform)
        return detect_platform()


def parse_config(config_path: Path) -> HeaderKitConfig:
    """
    Parse a headerkit.yaml configuration file.

    Args:
        config_path: Path to headerkit.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}")

    if data is None:
        data = {}

    return _parse_and_validate(data, base_dir=config_path.parent)


def _parse_and_validate(data: Any, base_dir: Optional[Path] = None) -> HeaderKitConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    config = HeaderKitConfig()

    if data.get("dev_dir"):
        dev_dir = Path(str(data["dev_dir"])).expanduser()
        if not dev_dir.is_absolute() and base_dir is not None:
            dev_dir = base_dir / dev_dir
        config.dev_dir = dev_dir

    if data.get("dist_url"):
        config.dist_url = _require_str(data, "dist_url")

    if data.get("target") is not None:
        # YAML reads `target: 18.1` style values as numbers
        config.target = str(data["target"])

    if data.get("proxy"):
        config.proxy = _require_str(data, "proxy")

    if "install_version" in data:
        value = data["install_version"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(
                f"install_version must be a non-negative integer, got {value!r}"
            )
        config.install_version = value

    if data.get("platform"):
        config.platform = _require_str(data, "platform").lower()

    if "timeout" in data:
        config.timeout = _parse_timeout(data["timeout"])

    return config


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _parse_timeout(value: Any) -> Tuple[float, float]:
    """Accept a single number or a {connect, read} mapping."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid timeout: {value!r}")
    if isinstance(value, (int, float)):
        if value <= 0:
            raise ConfigError(f"timeout must be positive, got {value}")
        return (float(value), float(value))
    if isinstance(value, dict):
        connect = value.get("connect", DEFAULT_TIMEOUT[0])
        read = value.get("read", DEFAULT_TIMEOUT[1])
        for name, number in (("connect", connect), ("read", read)):
            if isinstance(number, bool) or not isinstance(number, (int, float)):
                raise ConfigError(f"timeout.{name} must be a number")
            if number <= 0:
                raise ConfigError(f"timeout.{name} must be positive, got {number}")
        return (float(connect), float(read))
    raise ConfigError(f"Invalid timeout: {value!r}")


def apply_environment(
    config: HeaderKitConfig, environ: Optional[Mapping[str, str]] = None
) -> HeaderKitConfig:
    """
    Apply HEADERKIT_* environment overrides on top of file configuration.
    """
    environ = os.environ if environ is None else environ

    if environ.get(DEV_DIR_ENV):
        config.dev_dir = Path(environ[DEV_DIR_ENV]).expanduser()
    if environ.get(DIST_URL_ENV):
        config.dist_url = environ[DIST_URL_ENV]
    if environ.get(TARGET_ENV):
        config.target = environ[TARGET_ENV]
    return config


def load_config(
    config_path: Optional[Path] = None,
    project_root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> HeaderKitConfig:
    """
    Load configuration from file (if any) and environment.

    Args:
        config_path: Explicit config file; must exist when given
        project_root: Directory searched for headerkit.yaml when no
            explicit path is given (default: current directory)
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If the explicit file is missing or any file is invalid
    """
    if config_path is not None:
        config = parse_config(Path(config_path))
    else:
        default_file = (project_root or Path.cwd()) / CONFIG_FILE_NAME
        if default_file.exists():
            logger.debug(f"Loading configuration from {default_file}")
            config = parse_config(default_file)
        else:
            logger.debug("No config file found, using defaults")
            config = HeaderKitConfig()

    return apply_environment(config, environ)


__all__ = [
    "CONFIG_FILE_NAME",
    "INSTALL_VERSION",
    "DIST_URL_ENV",
    "TARGET_ENV",
    "HeaderKitConfig",
    "parse_config",
    "apply_environment",
    "load_config",
]
