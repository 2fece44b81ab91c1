"""
Pytest configuration and shared fixtures for SDKProvision tests.
"""

import sys
import zipfile
from pathlib import Path

import pytest

from sdkprovision.core.platform import clear_platform_cache


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "posix_only: test needs POSIX process and permission semantics"
    )


def pytest_collection_modifyitems(config, items):
    """Skip POSIX-only tests on Windows."""
    if sys.platform != "win32":
        return
    skip_posix = pytest.mark.skip(reason="requires a POSIX host")
    for item in items:
        if "posix_only" in item.keywords:
            item.add_marker(skip_posix)


# ============================================================================
# Helpers
# ============================================================================


def write_zip(path: Path, members: dict) -> Path:
    """Create a zip archive with the given {name: content} members."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return path


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_platform_cache():
    """Platform detection is cached per process; tests may patch it."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home


@pytest.fixture
def cache_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point the global cache at a temporary directory."""
    cache = tmp_path / "cache"
    monkeypatch.setenv("SDKPROVISION_HOME", str(cache))
    return cache


@pytest.fixture
def make_zip():
    """Factory creating zip archives from {name: content} members."""
    return write_zip


@pytest.fixture
def sdk_zip(tmp_path: Path) -> Path:
    """Small Android-SDK-shaped zip archive."""
    return write_zip(
        tmp_path / "archives" / "android-sdk_r24.3.4-macosx.zip",
        {
            "android-sdk-macosx/tools/android": "#!/bin/sh\necho android\n",
            "android-sdk-macosx/platform-tools/adb": "#!/bin/sh\necho adb\n",
            "android-sdk-macosx/SDK Readme.txt": "readme",
        },
    )


@pytest.fixture
def no_network(monkeypatch):
    """Disable network access for tests."""
    import socket

    def guard(*args, **kwargs):
        raise RuntimeError("Network access not allowed in this test")

    monkeypatch.setattr(socket, "socket", guard)
