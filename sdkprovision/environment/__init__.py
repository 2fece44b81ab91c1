"""
Persistent environment variable updaters.

WindowsEnvironmentUpdater writes the user's registry environment;
ProfileEnvironmentUpdater appends exports to a shell profile.
"""

from .posix import ProfileEnvironmentUpdater, build_export_block, default_profile_path
from .windows import (
    EnvironmentStore,
    RegistryEnvironmentStore,
    WindowsEnvironmentUpdater,
)

__all__ = [
    "ProfileEnvironmentUpdater",
    "build_export_block",
    "default_profile_path",
    "EnvironmentStore",
    "RegistryEnvironmentStore",
    "WindowsEnvironmentUpdater",
]
