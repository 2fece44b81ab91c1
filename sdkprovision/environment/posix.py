"""
Persistent environment variables on macOS and other Unix systems.

Variables are exported from the invoking user's shell profile. The exported
PATH additions reference the home variable (``$ANDROID_HOME/tools/``) rather
than its expanded value so the profile stays valid if the variable is edited.

When the installer runs under sudo, a profile created by this module would be
owned by root; passing ``owner`` hands a newly created profile back to the
invoking user.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from sdkprovision.core.exceptions import VariableUpdateFailedError
from sdkprovision.core.process import RunAsIdentity

logger = logging.getLogger(__name__)

PROFILE_NAME = ".bash_profile"


def default_profile_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Get the invoking user's shell profile path.

    Args:
        environ: Environment to read (defaults to os.environ)

    Raises:
        VariableUpdateFailedError: If HOME is not set
    """
    environ = os.environ if environ is None else environ
    home = environ.get("HOME")
    if not home:
        raise VariableUpdateFailedError("HOME is not set, cannot locate shell profile")
    return Path(home) / PROFILE_NAME


def build_export_block(
    name: str, value: Union[str, Path], path_subdirectories: Sequence[str], title: str
) -> str:
    """
    Build the profile lines exporting a variable and its PATH additions.

    For ``("ANDROID_HOME", "/opt/sdk", ["tools"], "Android SDK")`` the block is::

        # Android SDK
        export ANDROID_HOME=/opt/sdk
        export PATH="$PATH:$ANDROID_HOME/tools/"

    preceded by a blank line so it never joins an unterminated last line.
    """
    lines = ["", f"# {title}", f"export {name}={value}"]
    if path_subdirectories:
        additions = ":".join(f"${name}/{sub}/" for sub in path_subdirectories)
        lines.append(f'export PATH="$PATH:{additions}"')
    return "\n".join(lines) + "\n"


class ProfileEnvironmentUpdater:
    """
    Appends variable exports to a shell profile.

    Args:
        profile_path: Profile file to append to
        owner: Identity to hand a newly created profile to
    """

    def __init__(
        self, profile_path: Union[str, Path], owner: Optional[RunAsIdentity] = None
    ):
        self.profile_path = Path(profile_path)
        self.owner = owner

    def export_variable(
        self,
        name: str,
        value: Union[str, Path],
        path_subdirectories: Sequence[str] = (),
        title: Optional[str] = None,
    ) -> bool:
        """
        Export a variable and add subdirectories of it to PATH.

        Args:
            name: Variable name (e.g. 'ANDROID_HOME')
            value: Variable value
            path_subdirectories: Subdirectories of the variable to add to PATH
            title: Comment line written above the block (defaults to name)

        Returns:
            True if the block was appended, False if it was already present

        Raises:
            VariableUpdateFailedError: If the profile cannot be written
        """
        block = build_export_block(name, value, path_subdirectories, title or name)
        created = not self.profile_path.exists()

        try:
            if not created:
                existing = self.profile_path.read_text(encoding="utf-8")
                if block.strip() in existing:
                    logger.debug(f"{name} already exported in {self.profile_path}")
                    return False

            with open(self.profile_path, "a", encoding="utf-8") as f:
                f.write(block)

            if created and self.owner is not None:
                os.chown(self.profile_path, self.owner.uid, self.owner.gid)
        except OSError as e:
            raise VariableUpdateFailedError(
                f"could not update {self.profile_path}: {e}"
            ) from e

        logger.info(f"Exported {name}={value} in {self.profile_path}")
        return True


__all__ = [
    "PROFILE_NAME",
    "default_profile_path",
    "build_export_block",
    "ProfileEnvironmentUpdater",
]
