"""Configuration loading for headerkit."""

from .parser import (
    CONFIG_FILE_NAME,
    INSTALL_VERSION,
    HeaderKitConfig,
    parse_config,
    apply_environment,
    load_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "INSTALL_VERSION",
    "HeaderKitConfig",
    "parse_config",
    "apply_environment",
    "load_config",
]
