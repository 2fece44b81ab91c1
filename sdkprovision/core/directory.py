"""
Cache directory management for SDKProvision.

Directory Structure:
    Global Cache (~/.sdkprovision/ or %USERPROFILE%\\.sdkprovision\\):
        - installers/<sdk>/<platform>/<version>/<archive> : verified downloads
        - state.json : completed lifecycle stages per SDK
        - state.json.lock : lock guarding state.json

The installer cache is keyed by SDK name, platform, version and the basename
of the download URL, so re-running an install for the same SDK, version and
platform finds the previously verified archive.
"""

import os
import posixpath
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import unquote, urlparse


class DirectoryError(Exception):
    """Base exception for directory-related errors."""

    pass


CACHE_DIR_ENV = "SDKPROVISION_HOME"


def get_global_cache_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Get the platform-specific global cache directory path.

    Args:
        environ: Environment to read (defaults to os.environ)

    Returns:
        Path: The global cache directory path.
            - SDKPROVISION_HOME when set
            - Windows: %USERPROFILE%\\.sdkprovision
            - Linux/macOS: ~/.sdkprovision/

    Raises:
        DirectoryError: If USERPROFILE is missing on Windows
    """
    environ = os.environ if environ is None else environ

    override = environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)

    if os.name == "nt":  # Windows
        user_profile = environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global cache directory."
            )
        return Path(user_profile) / ".sdkprovision"
    else:  # Linux/macOS
        return Path.home() / ".sdkprovision"


def source_basename(install_source: str) -> str:
    """
    Get the file name component of a download URL or path.

    Query strings and fragments are ignored.

    Example:
        >>> source_basename("https://dl.google.com/android/android-sdk_r24.3.4-macosx.zip?x=1")
        'android-sdk_r24.3.4-macosx.zip'
    """
    parsed = urlparse(install_source)
    path = unquote(parsed.path) if parsed.scheme else install_source
    name = posixpath.basename(path.replace("\\", "/"))
    if not name:
        raise DirectoryError(f"Cannot derive a file name from source: {install_source}")
    return name


def get_installer_cache_path(
    sdk_name: str,
    platform: str,
    version: str,
    install_source: str,
    cache_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Derive the cache path for an SDK archive and ensure its parent exists.

    Args:
        sdk_name: Installer name (e.g. 'androidSdk')
        platform: Platform segment (e.g. 'darwin')
        version: SDK version
        install_source: Download URL of the archive
        cache_dir: Cache root (defaults to the global cache)

    Returns:
        <cache>/installers/<sdk>/<platform>/<version>/<basename>

    Raises:
        DirectoryError: If the directory cannot be created
    """
    root = Path(cache_dir) if cache_dir is not None else get_global_cache_dir()
    parent = root / "installers" / sdk_name / str(platform) / version

    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"Failed to create cache directory {parent}: {e}") from e

    return parent / source_basename(install_source)


__all__ = [
    "DirectoryError",
    "CACHE_DIR_ENV",
    "get_global_cache_dir",
    "source_basename",
    "get_installer_cache_path",
]
