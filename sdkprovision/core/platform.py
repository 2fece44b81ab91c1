"""
Host platform detection for SDKProvision.

Installers register stage implementations per host platform. This module
normalizes the running operating system into a HostPlatform value, whose
string form is also used as the platform segment of cache paths.

Usage:
    from sdkprovision.core.platform import detect_host_platform

    host = detect_host_platform()
    print(f"Running on {host.value}")
"""

import enum
import functools
import platform
from typing import Union

from sdkprovision.core.exceptions import UnsupportedPlatformError


class HostPlatform(str, enum.Enum):
    """
    Operating system family of the host.

    Values follow the names Node-style installers use for the same platforms
    ('win32', 'darwin', 'linux') so cache layouts stay recognizable.
    """

    WINDOWS = "win32"
    DARWIN = "darwin"
    LINUX = "linux"
    POSIX = "posix"

    @property
    def is_windows(self) -> bool:
        return self is HostPlatform.WINDOWS

    def __str__(self) -> str:
        return self.value


_SYSTEM_MAP = {
    "windows": HostPlatform.WINDOWS,
    "darwin": HostPlatform.DARWIN,
    "linux": HostPlatform.LINUX,
    "freebsd": HostPlatform.POSIX,
    "openbsd": HostPlatform.POSIX,
    "netbsd": HostPlatform.POSIX,
    "sunos": HostPlatform.POSIX,
}


@functools.lru_cache(maxsize=1)
def detect_host_platform() -> HostPlatform:
    """
    Detect the host platform.

    This function is cached - it only runs detection once per process.

    Returns:
        HostPlatform of the running interpreter

    Raises:
        UnsupportedPlatformError: If the operating system is not recognized
    """
    system = platform.system().lower()

    host = _SYSTEM_MAP.get(system)
    if host is None:
        raise UnsupportedPlatformError(f"unrecognized operating system '{system}'")
    return host


def parse_host_platform(value: Union[str, HostPlatform]) -> HostPlatform:
    """
    Convert a platform name into a HostPlatform.

    Accepts the enum values ('win32', 'darwin', ...) as well as the common
    aliases 'windows' and 'macos'.

    Raises:
        UnsupportedPlatformError: If the name is not recognized
    """
    if isinstance(value, HostPlatform):
        return value

    name = str(value).strip().lower()
    aliases = {"windows": "win32", "macos": "darwin", "osx": "darwin"}
    name = aliases.get(name, name)

    try:
        return HostPlatform(name)
    except ValueError:
        raise UnsupportedPlatformError(f"unrecognized platform '{value}'") from None


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Useful for testing when platform.system() is patched.
    """
    detect_host_platform.cache_clear()


__all__ = [
    "HostPlatform",
    "detect_host_platform",
    "parse_host_platform",
    "clear_platform_cache",
]
