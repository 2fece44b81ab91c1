"""
Lifecycle stage tracking for SDK installations.

Every SDK install moves through four fixed stages. StepFlags records which of
them already completed for one SDK, version and platform on this machine, so
a re-run skips satisfied stages. StepStateStore persists those records to a
JSON file in the global cache (``state.json``), guarded by a file lock so
concurrent installers don't overwrite each other's records.

Example:
    >>> store = StepStateStore(get_global_cache_dir() / "state.json")
    >>> flags = store.load("androidSdk", "24.3.4", "darwin")
    >>> flags.mark_satisfied(Stage.DOWNLOAD)
    >>> store.save("androidSdk", "24.3.4", "darwin", flags)
"""

import enum
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from filelock import FileLock, Timeout as LockTimeout

from sdkprovision.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class StateError(Exception):
    """Base exception for state management errors."""

    pass


class Stage(str, enum.Enum):
    """Installer lifecycle stages, in execution order."""

    DOWNLOAD = "download"
    INSTALL = "install"
    UPDATE_VARIABLES = "updateVariables"
    POST_INSTALL = "postInstall"

    @property
    def flag_name(self) -> str:
        """Name of the StepFlags field recording this stage."""
        return _FLAG_NAMES[self]

    def __str__(self) -> str:
        return self.value


_FLAG_NAMES = {
    Stage.DOWNLOAD: "downloaded",
    Stage.INSTALL: "installed",
    Stage.UPDATE_VARIABLES: "variables_set",
    Stage.POST_INSTALL: "post_installed",
}

STAGE_ORDER = (
    Stage.DOWNLOAD,
    Stage.INSTALL,
    Stage.UPDATE_VARIABLES,
    Stage.POST_INSTALL,
)


@dataclass
class StepFlags:
    """
    Which lifecycle stages have completed.

    Flags only move from False to True within a run.
    """

    downloaded: bool = False
    installed: bool = False
    variables_set: bool = False
    post_installed: bool = False

    def is_satisfied(self, stage: Stage) -> bool:
        return bool(getattr(self, stage.flag_name))

    def mark_satisfied(self, stage: Stage) -> None:
        setattr(self, stage.flag_name, True)

    def all_satisfied(self) -> bool:
        return all(self.is_satisfied(stage) for stage in STAGE_ORDER)

    def to_dict(self) -> Dict[str, bool]:
        """Convert to dictionary for JSON serialization."""
        return {stage.value: self.is_satisfied(stage) for stage in STAGE_ORDER}

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "StepFlags":
        """
        Build flags from a serialized record.

        Unknown keys are ignored; missing keys default to False.
        """
        flags = cls()
        for stage in STAGE_ORDER:
            if data.get(stage.value) is True:
                flags.mark_satisfied(stage)
        return flags


def state_key(sdk_name: str, version: str, platform: str) -> str:
    """Key identifying one SDK installation in the state file."""
    return f"{sdk_name}@{version}@{platform}"


class StepStateStore:
    """
    Persists StepFlags for many SDK installations in one JSON file.

    Attributes:
        state_file: Path to the JSON state file
        lock_timeout: Seconds to wait for the state lock
    """

    def __init__(self, state_file: Union[str, Path], lock_timeout: int = 30):
        self.state_file = Path(state_file)
        self.lock_timeout = lock_timeout
        self._lock_path = self.state_file.with_name(self.state_file.name + ".lock")

    def _read_all(self) -> Dict[str, Dict[str, object]]:
        if not self.state_file.exists():
            return {}

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(
                f"Invalid state file {self.state_file}, treating as empty: {e}"
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Invalid state file {self.state_file}, treating as empty")
            return {}

        if data.get("version", STATE_VERSION) != STATE_VERSION:
            logger.warning(
                f"State version {data.get('version')} not supported, ignoring records"
            )
            return {}

        installs = data.get("installs", {})
        return installs if isinstance(installs, dict) else {}

    def load(self, sdk_name: str, version: str, platform: str) -> StepFlags:
        """
        Load flags for one SDK installation.

        Returns:
            Recorded flags, or all-False flags when nothing is recorded
        """
        record = self._read_all().get(state_key(sdk_name, version, platform))
        if not isinstance(record, dict):
            return StepFlags()
        return StepFlags.from_dict(record)

    def save(self, sdk_name: str, version: str, platform: str, flags: StepFlags):
        """
        Record flags for one SDK installation.

        Raises:
            StateError: If the state lock cannot be acquired
        """
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self._lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                installs = self._read_all()
                installs[state_key(sdk_name, version, platform)] = flags.to_dict()
                content = json.dumps(
                    {"version": STATE_VERSION, "installs": installs}, indent=2
                )
                atomic_write(self.state_file, content)
        except LockTimeout as e:
            raise StateError(
                f"Could not acquire state lock after {self.lock_timeout}s. "
                "Another installer may be running."
            ) from e

        logger.debug(f"Saved state for {sdk_name} {version} to {self.state_file}")

    def clear(self, sdk_name: str, version: str, platform: str) -> None:
        """Forget recorded flags so the next run starts from scratch."""
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self._lock_path, timeout=self.lock_timeout)
        try:
            with lock:
                installs = self._read_all()
                if installs.pop(state_key(sdk_name, version, platform), None) is None:
                    return
                content = json.dumps(
                    {"version": STATE_VERSION, "installs": installs}, indent=2
                )
                atomic_write(self.state_file, content)
        except LockTimeout as e:
            raise StateError(
                f"Could not acquire state lock after {self.lock_timeout}s."
            ) from e


__all__ = [
    "StateError",
    "Stage",
    "STAGE_ORDER",
    "StepFlags",
    "state_key",
    "StepStateStore",
]
