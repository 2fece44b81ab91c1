"""Configuration module for SDKProvision.

This module provides YAML parsing and validation for install manifests.
"""

from sdkprovision.config.parser import (
    ConfigError,
    InstallConfig,
    parse_config,
    parse_config_data,
)

__all__ = [
    "ConfigError",
    "InstallConfig",
    "parse_config",
    "parse_config_data",
]
