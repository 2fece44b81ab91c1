"""
Unit tests for platform module.
"""

from unittest.mock import patch

import pytest

from sdkprovision.core.exceptions import UnsupportedPlatformError
from sdkprovision.core.platform import (
    HostPlatform,
    detect_host_platform,
    parse_host_platform,
)


class TestDetectHostPlatform:
    """Test detect_host_platform function."""

    @pytest.mark.parametrize(
        "system,expected",
        [
            ("Windows", HostPlatform.WINDOWS),
            ("Darwin", HostPlatform.DARWIN),
            ("Linux", HostPlatform.LINUX),
            ("FreeBSD", HostPlatform.POSIX),
        ],
    )
    def test_detect(self, system, expected):
        """Test operating systems map to host platforms."""
        with patch("platform.system", return_value=system):
            assert detect_host_platform() is expected

    def test_unknown_system(self):
        """Test unrecognized systems raise UnsupportedPlatformError."""
        with patch("platform.system", return_value="Plan9"):
            with pytest.raises(UnsupportedPlatformError, match="plan9"):
                detect_host_platform()

    def test_cached(self):
        """Test detection runs once per process."""
        with patch("platform.system", return_value="Darwin") as system:
            detect_host_platform()
            detect_host_platform()
        assert system.call_count == 1


class TestParseHostPlatform:
    """Test parse_host_platform function."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("win32", HostPlatform.WINDOWS),
            ("windows", HostPlatform.WINDOWS),
            ("Darwin", HostPlatform.DARWIN),
            ("macos", HostPlatform.DARWIN),
            ("osx", HostPlatform.DARWIN),
            (" linux ", HostPlatform.LINUX),
            (HostPlatform.DARWIN, HostPlatform.DARWIN),
        ],
    )
    def test_parse(self, value, expected):
        """Test names and aliases are accepted."""
        assert parse_host_platform(value) is expected

    def test_unknown(self):
        """Test unknown names raise UnsupportedPlatformError."""
        with pytest.raises(UnsupportedPlatformError):
            parse_host_platform("amiga")


class TestHostPlatform:
    """Test HostPlatform enum."""

    def test_string_form(self):
        """Test platforms render as their values."""
        assert str(HostPlatform.WINDOWS) == "win32"
        assert f"{HostPlatform.DARWIN}" == "darwin"

    def test_is_windows(self):
        """Test is_windows only for win32."""
        assert HostPlatform.WINDOWS.is_windows
        assert not HostPlatform.DARWIN.is_windows
