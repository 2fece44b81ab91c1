"""
Persistent environment variables on Windows.

Variables are stored in the user's registry environment
(``HKEY_CURRENT_USER\\Environment``), which needs no elevation and is picked
up by every process launched afterwards. After a write, WM_SETTINGCHANGE is
broadcast so Explorer and new consoles reload the environment.

Both operations are idempotent: a variable already holding the requested
value is left alone, and a path entry already present in ``Path`` (compared
case-insensitively after normalization) is not appended again.
"""

import logging
import ntpath
from typing import Iterable, List, Optional, Protocol

from sdkprovision.core.exceptions import VariableUpdateFailedError

logger = logging.getLogger(__name__)

PATH_VARIABLE = "Path"
ENVIRONMENT_KEY = "Environment"


class EnvironmentStore(Protocol):
    """Backing store for persistent environment variables."""

    def get(self, name: str) -> Optional[str]: ...

    def set(self, name: str, value: str) -> None: ...


class RegistryEnvironmentStore:
    """EnvironmentStore backed by the current user's registry environment."""

    def get(self, name: str) -> Optional[str]:
        import winreg

        with winreg.OpenKey(
            winreg.HKEY_CURRENT_USER, ENVIRONMENT_KEY, 0, winreg.KEY_READ
        ) as key:
            try:
                value, _ = winreg.QueryValueEx(key, name)
            except FileNotFoundError:
                return None
        return value

    def set(self, name: str, value: str) -> None:
        import winreg

        with winreg.CreateKeyEx(
            winreg.HKEY_CURRENT_USER, ENVIRONMENT_KEY, 0, winreg.KEY_SET_VALUE
        ) as key:
            winreg.SetValueEx(key, name, 0, winreg.REG_EXPAND_SZ, value)

        self._broadcast_change()

    @staticmethod
    def _broadcast_change() -> None:
        """Tell running applications the environment changed."""
        import ctypes

        HWND_BROADCAST = 0xFFFF
        WM_SETTINGCHANGE = 0x001A
        SMTO_ABORTIFHUNG = 0x0002
        result = ctypes.c_long(0)
        ok = ctypes.windll.user32.SendMessageTimeoutW(
            HWND_BROADCAST,
            WM_SETTINGCHANGE,
            0,
            ENVIRONMENT_KEY,
            SMTO_ABORTIFHUNG,
            5000,
            ctypes.byref(result),
        )
        if not ok:
            logger.debug("Environment change broadcast timed out")


def _normalize_entry(entry: str) -> str:
    return ntpath.normcase(ntpath.normpath(entry.strip()))


def split_path_value(value: Optional[str]) -> List[str]:
    """Split a Windows PATH value into its non-empty entries."""
    if not value:
        return []
    return [entry.strip() for entry in value.split(";") if entry.strip()]


class WindowsEnvironmentUpdater:
    """
    Sets persistent variables and extends the persistent Path.

    Args:
        store: Where variables are persisted (defaults to the registry)
    """

    def __init__(self, store: Optional[EnvironmentStore] = None):
        self.store = store if store is not None else RegistryEnvironmentStore()

    def set_variable_if_needed(self, name: str, value: str) -> bool:
        """
        Set a variable unless it already holds the value.

        Returns:
            True if the variable was written

        Raises:
            VariableUpdateFailedError: If the store cannot be read or written
        """
        try:
            current = self.store.get(name)
            if current is not None and _normalize_entry(current) == _normalize_entry(
                value
            ):
                logger.debug(f"{name} already set to {value}")
                return False

            self.store.set(name, value)
        except OSError as e:
            raise VariableUpdateFailedError(f"could not set {name}: {e}") from e

        logger.info(f"Set {name}={value}")
        return True

    def add_to_path_if_needed(self, entries: Iterable[str]) -> List[str]:
        """
        Append entries that are not yet on the persistent Path.

        Args:
            entries: Directories to add, in order

        Returns:
            The entries that were appended

        Raises:
            VariableUpdateFailedError: If the store cannot be read or written
        """
        try:
            current = self.store.get(PATH_VARIABLE)
            existing = split_path_value(current)
            seen = {_normalize_entry(entry) for entry in existing}

            added = []
            for entry in entries:
                normalized = _normalize_entry(entry)
                if normalized in seen:
                    continue
                seen.add(normalized)
                added.append(entry)

            if not added:
                logger.debug("All entries already on Path")
                return []

            self.store.set(PATH_VARIABLE, ";".join(existing + added))
        except OSError as e:
            raise VariableUpdateFailedError(f"could not update Path: {e}") from e

        logger.info(f"Added to Path: {', '.join(added)}")
        return added


__all__ = [
    "PATH_VARIABLE",
    "EnvironmentStore",
    "RegistryEnvironmentStore",
    "split_path_value",
    "WindowsEnvironmentUpdater",
]
