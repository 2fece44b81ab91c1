"""
Unit tests for directory module.

Tests global cache resolution and installer cache paths.
"""

import os

import pytest

from sdkprovision.core.directory import (
    CACHE_DIR_ENV,
    DirectoryError,
    get_global_cache_dir,
    get_installer_cache_path,
    source_basename,
)

SOURCE = "https://dl.google.com/android/android-sdk_r24.3.4-macosx.zip"


class TestGlobalCacheDir:
    """Test get_global_cache_dir function."""

    def test_override_from_environment(self, tmp_path):
        """Test SDKPROVISION_HOME overrides the default location."""
        environ = {CACHE_DIR_ENV: str(tmp_path / "custom")}
        assert get_global_cache_dir(environ) == tmp_path / "custom"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX default location")
    def test_posix_default(self, isolated_home, monkeypatch):
        """Test default is ~/.sdkprovision on POSIX."""
        monkeypatch.delenv(CACHE_DIR_ENV, raising=False)
        assert get_global_cache_dir() == isolated_home / ".sdkprovision"

    @pytest.mark.skipif(os.name != "nt", reason="Windows default location")
    def test_windows_requires_userprofile(self):
        """Test missing USERPROFILE raises DirectoryError on Windows."""
        with pytest.raises(DirectoryError, match="USERPROFILE"):
            get_global_cache_dir({})


class TestSourceBasename:
    """Test source_basename function."""

    def test_url(self):
        """Test file name is taken from the URL path."""
        assert source_basename(SOURCE) == "android-sdk_r24.3.4-macosx.zip"

    def test_query_string_ignored(self):
        """Test query string and fragment are not part of the name."""
        assert source_basename(SOURCE + "?token=abc#frag") == "android-sdk_r24.3.4-macosx.zip"

    def test_percent_encoding_decoded(self):
        """Test percent-encoded names are decoded."""
        assert source_basename("https://example.com/sdk%20tools.zip") == "sdk tools.zip"

    def test_local_path(self):
        """Test plain paths are accepted."""
        assert source_basename("/mirror/android/sdk.zip") == "sdk.zip"

    def test_no_file_name(self):
        """Test URL without a file name raises DirectoryError."""
        with pytest.raises(DirectoryError):
            source_basename("https://example.com/")


class TestInstallerCachePath:
    """Test get_installer_cache_path function."""

    def test_layout(self, tmp_path):
        """Test path is <cache>/installers/<sdk>/<platform>/<version>/<basename>."""
        path = get_installer_cache_path(
            "androidSdk", "darwin", "24.3.4", SOURCE, cache_dir=tmp_path
        )

        assert path == (
            tmp_path
            / "installers"
            / "androidSdk"
            / "darwin"
            / "24.3.4"
            / "android-sdk_r24.3.4-macosx.zip"
        )

    def test_parent_created(self, tmp_path):
        """Test parent directories are created, the file is not."""
        path = get_installer_cache_path(
            "androidSdk", "darwin", "24.3.4", SOURCE, cache_dir=tmp_path
        )

        assert path.parent.is_dir()
        assert not path.exists()

    def test_deterministic(self, tmp_path):
        """Test identical inputs give identical paths."""
        first = get_installer_cache_path("a", "win32", "1", SOURCE, cache_dir=tmp_path)
        second = get_installer_cache_path("a", "win32", "1", SOURCE, cache_dir=tmp_path)
        assert first == second

    def test_uses_global_cache_by_default(self, cache_dir):
        """Test global cache is used when no cache_dir is given."""
        path = get_installer_cache_path("androidSdk", "win32", "24.3.4", SOURCE)
        assert cache_dir in path.parents

    def test_uncreatable_directory(self, tmp_path):
        """Test failure to create the directory raises DirectoryError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(DirectoryError, match="Failed to create cache directory"):
            get_installer_cache_path("a", "win32", "1", SOURCE, cache_dir=blocker)
