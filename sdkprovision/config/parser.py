"""YAML install manifest parser for SDKProvision.

An install manifest names the installer to run, the SDK version, where to
install it, and the archive published for each platform:

    installer: androidSdk
    version: "24.3.4"
    install_destination: /opt/android
    packages: [tools, platform-tools]
    platforms:
      win32:
        install_source: https://dl.google.com/android/android-sdk_r24.3.4-windows.zip
        bytes: 199701062
        sha1: 4b3b8d5d5b35ed6f5c1d62e4a1e2d1c0a8d9c1f2
      darwin:
        install_source: https://dl.google.com/android/android-sdk_r24.3.4-macosx.zip
        bytes: 98340900
        sha1: 128f10fba668ea490cc94a08e505a48a608879b9
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from sdkprovision.core.exceptions import SDKProvisionError, UnsupportedPlatformError
from sdkprovision.core.platform import HostPlatform, parse_host_platform
from sdkprovision.core.verification import is_valid_hash_format
from sdkprovision.installers.base import InstallerDescriptor


class ConfigError(SDKProvisionError):
    """Manifest parsing or validation error."""

    pass


@dataclass
class InstallConfig:
    """Complete install manifest."""

    installer: str
    version: str
    install_destination: str = ""
    packages: Optional[List[str]] = None
    platforms: Dict[HostPlatform, InstallerDescriptor] = field(default_factory=dict)

    def descriptor_for(self, platform: HostPlatform) -> InstallerDescriptor:
        """
        Get the archive descriptor published for a platform.

        Raises:
            UnsupportedPlatformError: If the manifest has no entry for it
        """
        try:
            return self.platforms[platform]
        except KeyError:
            raise UnsupportedPlatformError(
                f"manifest has no {platform.value} archive for {self.installer}"
            ) from None


def parse_config(config_path: Path) -> InstallConfig:
    """
    Parse an install manifest.

    Args:
        config_path: Path to the YAML manifest

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If the manifest is missing or invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise ConfigError("Configuration file is empty")

    return parse_config_data(data)


def parse_config_data(data: dict) -> InstallConfig:
    """Validate an already-loaded manifest."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    for field_name in ("installer", "version", "platforms"):
        if field_name not in data:
            raise ConfigError(f"Missing required field: {field_name}")

    # Versions like 24.3 load as floats unless quoted
    version = str(data["version"])

    packages = data.get("packages")
    if packages is not None:
        if not isinstance(packages, list) or not all(
            isinstance(p, str) and p for p in packages
        ):
            raise ConfigError("packages must be a list of package names")

    destination = data.get("install_destination") or ""

    return InstallConfig(
        installer=str(data["installer"]),
        version=version,
        install_destination=str(destination),
        packages=packages,
        platforms=_parse_platforms(data["platforms"], version),
    )


def _parse_platforms(data, version: str) -> Dict[HostPlatform, InstallerDescriptor]:
    """Parse per-platform archive descriptors."""
    if not isinstance(data, dict) or not data:
        raise ConfigError("At least one platform archive must be defined")

    platforms = {}
    for name, entry in data.items():
        try:
            platform = parse_host_platform(name)
        except UnsupportedPlatformError:
            raise ConfigError(f"Unknown platform: {name}") from None

        if platform in platforms:
            raise ConfigError(f"Duplicate platform: {name}")

        platforms[platform] = _parse_descriptor(name, entry, version)

    return platforms


def _parse_descriptor(name: str, data, version: str) -> InstallerDescriptor:
    """Parse one archive descriptor."""
    if not isinstance(data, dict):
        raise ConfigError(f"platforms.{name} must be a mapping")

    for field_name in ("install_source", "bytes", "sha1"):
        if field_name not in data:
            raise ConfigError(f"platforms.{name} missing required field: {field_name}")

    size = data["bytes"]
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ConfigError(f"platforms.{name}.bytes must be a non-negative integer")

    sha1 = str(data["sha1"])
    if not is_valid_hash_format(sha1, "sha1"):
        raise ConfigError(f"platforms.{name}.sha1 is not a SHA-1 digest: {sha1}")

    return InstallerDescriptor(
        install_source=str(data["install_source"]),
        bytes=size,
        sha1=sha1.lower(),
        version=version,
    )
