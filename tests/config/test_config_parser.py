"""
Unit tests for install manifest parsing.
"""

import pytest

from sdkprovision.config.parser import (
    ConfigError,
    InstallConfig,
    parse_config,
    parse_config_data,
)
from sdkprovision.core.exceptions import UnsupportedPlatformError
from sdkprovision.core.platform import HostPlatform

SHA1 = "128f10fba668ea490cc94a08e505a48a608879b9"

MANIFEST = f"""
installer: androidSdk
version: "24.3.4"
install_destination: /opt/android
packages: [tools, platform-tools]
platforms:
  win32:
    install_source: https://dl.google.com/android/android-sdk_r24.3.4-windows.zip
    bytes: 199701062
    sha1: {SHA1.upper()}
  macos:
    install_source: https://dl.google.com/android/android-sdk_r24.3.4-macosx.zip
    bytes: 98340900
    sha1: {SHA1}
"""


def _data(**overrides):
    data = {
        "installer": "androidSdk",
        "version": "24.3.4",
        "platforms": {
            "darwin": {"install_source": "http://x/sdk.zip", "bytes": 1024, "sha1": SHA1}
        },
    }
    data.update(overrides)
    return data


class TestParseConfig:
    """Test parse_config with files."""

    def test_full_manifest(self, tmp_path):
        """Test every field of a complete manifest is parsed."""
        path = tmp_path / "android.yaml"
        path.write_text(MANIFEST)

        config = parse_config(path)

        assert isinstance(config, InstallConfig)
        assert config.installer == "androidSdk"
        assert config.version == "24.3.4"
        assert config.install_destination == "/opt/android"
        assert config.packages == ["tools", "platform-tools"]
        assert set(config.platforms) == {HostPlatform.WINDOWS, HostPlatform.DARWIN}

        windows = config.descriptor_for(HostPlatform.WINDOWS)
        assert windows.bytes == 199701062
        assert windows.sha1 == SHA1
        assert windows.version == "24.3.4"
        assert windows.install_source.endswith("windows.zip")

    def test_missing_file(self, tmp_path):
        """Test missing manifest raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            parse_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        """Test empty manifest raises ConfigError."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        with pytest.raises(ConfigError, match="empty"):
            parse_config(path)

    def test_invalid_yaml(self, tmp_path):
        """Test YAML syntax errors raise ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("installer: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            parse_config(path)


class TestParseConfigData:
    """Test validation of loaded manifests."""

    @pytest.mark.parametrize("field", ["installer", "version", "platforms"])
    def test_required_fields(self, field):
        """Test missing required fields are reported."""
        data = _data()
        del data[field]

        with pytest.raises(ConfigError, match=f"Missing required field: {field}"):
            parse_config_data(data)

    def test_not_a_mapping(self):
        """Test a non-mapping manifest is rejected."""
        with pytest.raises(ConfigError, match="mapping"):
            parse_config_data(["installer"])

    def test_numeric_version(self):
        """Test unquoted versions are kept as text."""
        assert parse_config_data(_data(version=24.3)).version == "24.3"

    def test_destination_optional(self):
        """Test the destination may come from the command line instead."""
        config = parse_config_data(_data())
        assert config.install_destination == ""
        assert config.packages is None

    def test_invalid_packages(self):
        """Test packages must be a list of names."""
        with pytest.raises(ConfigError, match="packages"):
            parse_config_data(_data(packages="tools"))

    def test_no_platforms(self):
        """Test at least one platform is required."""
        with pytest.raises(ConfigError, match="At least one platform"):
            parse_config_data(_data(platforms={}))

    def test_unknown_platform(self):
        """Test unknown platform names are rejected."""
        platforms = {"beos": {"install_source": "x.zip", "bytes": 1, "sha1": SHA1}}

        with pytest.raises(ConfigError, match="Unknown platform: beos"):
            parse_config_data(_data(platforms=platforms))

    def test_duplicate_platform(self):
        """Test aliases of one platform cannot both be given."""
        entry = {"install_source": "x.zip", "bytes": 1, "sha1": SHA1}

        with pytest.raises(ConfigError, match="Duplicate platform"):
            parse_config_data(_data(platforms={"darwin": entry, "macos": entry}))

    @pytest.mark.parametrize("field", ["install_source", "bytes", "sha1"])
    def test_descriptor_fields_required(self, field):
        """Test every descriptor field is required."""
        entry = {"install_source": "x.zip", "bytes": 1, "sha1": SHA1}
        del entry[field]

        with pytest.raises(ConfigError, match=f"missing required field: {field}"):
            parse_config_data(_data(platforms={"win32": entry}))

    @pytest.mark.parametrize("size", [-1, "1024", True, 1.5])
    def test_invalid_size(self, size):
        """Test sizes must be non-negative integers."""
        entry = {"install_source": "x.zip", "bytes": size, "sha1": SHA1}

        with pytest.raises(ConfigError, match="bytes"):
            parse_config_data(_data(platforms={"win32": entry}))

    def test_invalid_sha1(self):
        """Test digests must look like SHA-1."""
        entry = {"install_source": "x.zip", "bytes": 1, "sha1": "abc"}

        with pytest.raises(ConfigError, match="not a SHA-1 digest"):
            parse_config_data(_data(platforms={"win32": entry}))


class TestDescriptorFor:
    """Test InstallConfig.descriptor_for."""

    def test_missing_platform(self):
        """Test a platform without an archive raises UnsupportedPlatformError."""
        config = parse_config_data(_data())

        with pytest.raises(UnsupportedPlatformError, match="win32"):
            config.descriptor_for(HostPlatform.WINDOWS)
