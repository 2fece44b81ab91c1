"""
Android SDK installer.

Installs the standalone Android SDK tools archive and provisions it:

- win32: extract to ``<destination>/android-sdk-windows``, register
  ANDROID_HOME and the tools directories in the user's registry environment
- darwin: extract to ``<destination>/android-sdk-macosx``, export ANDROID_HOME
  from ``~/.bash_profile``, and hand anything created as root back to the
  invoking user

On both platforms post-install runs the SDK's ``android`` tool to install a
fixed set of packages, accepting license prompts automatically, and then
stops any adb server the SDK tools left running (a stray adb server keeps the
installer's output pipes open and hangs the install).
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Sequence

from sdkprovision.core.exceptions import (
    DaemonKillFailedError,
    ExtractionFailedError,
    PostInstallFailedError,
)
from sdkprovision.core.filesystem import (
    add_execute_permission,
    chown_recursive,
    first_missing_ancestor,
)
from sdkprovision.core.platform import HostPlatform
from sdkprovision.core.process import ProcessLaunchError, PromptResponder
from sdkprovision.environment.posix import (
    ProfileEnvironmentUpdater,
    default_profile_path,
)
from sdkprovision.environment.windows import WindowsEnvironmentUpdater
from sdkprovision.installers.base import (
    InstallContext,
    InstallerBase,
    InstallerDescriptor,
    PlatformStages,
)

logger = logging.getLogger(__name__)

ANDROID_HOME_NAME = "ANDROID_HOME"

DEFAULT_PACKAGES = (
    "tools",
    "platform-tools",
    "extra-android-support",
    "extra-android-m2repository",
    "build-tools-19.1.0",
    "build-tools-21.1.2",
    "build-tools-22.0.1",
    "android-19",
    "android-21",
    "android-22",
)

_SDK_DIRECTORIES = {
    HostPlatform.WINDOWS: "android-sdk-windows",
    HostPlatform.DARWIN: "android-sdk-macosx",
}

PATH_SUBDIRECTORIES = ("tools", "platform-tools")


class AndroidSdkInstaller(InstallerBase):
    """
    Installer for the Android SDK.

    Args:
        packages: SDK packages installed during post-install
        windows_environment: Updater for the registry environment
        profile_environment: Updater for the shell profile (defaults to
            ``$HOME/.bash_profile`` owned by the invoking user)
        **kwargs: Passed to InstallerBase
    """

    name = "androidSdk"

    def __init__(
        self,
        packages: Optional[Sequence[str]] = None,
        windows_environment: Optional[WindowsEnvironmentUpdater] = None,
        profile_environment: Optional[ProfileEnvironmentUpdater] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.packages = tuple(packages) if packages else DEFAULT_PACKAGES
        self.windows_environment = windows_environment
        self.profile_environment = profile_environment

    def platform_stages(self) -> Dict[HostPlatform, PlatformStages]:
        return {
            HostPlatform.WINDOWS: PlatformStages(
                download=self.download_default,
                install=self.install_default,
                update_variables=self._update_variables_win32,
                post_install=self._post_install_default,
                home_directory=self.home_directory,
            ),
            HostPlatform.DARWIN: PlatformStages(
                download=self.download_default,
                install=self._install_darwin,
                update_variables=self._update_variables_darwin,
                post_install=self._post_install_darwin,
                home_directory=self.home_directory,
            ),
        }

    def home_directory(self, context: InstallContext) -> Path:
        """ANDROID_HOME for the context's destination and platform."""
        return Path(context.install_destination) / _SDK_DIRECTORIES[context.platform]

    @staticmethod
    def android_command(context: InstallContext) -> Path:
        name = "android.bat" if context.platform is HostPlatform.WINDOWS else "android"
        return context.sdk_home / "tools" / name

    @staticmethod
    def adb_command(context: InstallContext) -> Path:
        name = "adb.exe" if context.platform is HostPlatform.WINDOWS else "adb"
        return context.sdk_home / "platform-tools" / name

    # ------------------------------------------------------------------
    # win32
    # ------------------------------------------------------------------

    def _update_variables_win32(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        home = self.home_directory(context)
        updater = self.windows_environment or WindowsEnvironmentUpdater()

        updater.set_variable_if_needed(ANDROID_HOME_NAME, str(home))
        updater.add_to_path_if_needed([str(home / sub) for sub in PATH_SUBDIRECTORIES])

        return replace(context, sdk_home=home)

    # ------------------------------------------------------------------
    # darwin
    # ------------------------------------------------------------------

    def _install_darwin(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        # Directories created below are owned by root when running elevated
        created_root = None
        if context.install_destination:
            created_root = first_missing_ancestor(context.install_destination)

        context = self.install_default(descriptor, context)

        if created_root is not None and context.run_as is not None:
            logger.debug(f"Restoring ownership of {created_root}")
            try:
                chown_recursive(created_root, context.run_as.uid, context.run_as.gid)
            except OSError as e:
                self.telemetry.add(
                    "error.description", "ErrorOnChown in installDarwin"
                ).add_error(e)
                raise ExtractionFailedError(
                    f"could not restore ownership of {created_root}: {e}"
                ) from e

        return context

    def _update_variables_darwin(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        home = self.home_directory(context)
        updater = self.profile_environment or ProfileEnvironmentUpdater(
            default_profile_path(), owner=context.run_as
        )

        try:
            updater.export_variable(
                ANDROID_HOME_NAME, home, PATH_SUBDIRECTORIES, title="Android SDK"
            )
        except Exception as e:
            self.telemetry.add(
                "error.description", "ErrorOnProfileUpdate on updateVariablesDarwin"
            ).add_error(e)
            raise

        return replace(context, sdk_home=home)

    def _post_install_darwin(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        # Zip extraction drops the execute bit
        android = self.android_command(context)
        try:
            add_execute_permission(android)
        except OSError as e:
            self.telemetry.add(
                "error.description", "ErrorOnChmod in addExecutePermission"
            ).add_error(e)
            raise PostInstallFailedError(
                f"could not make {android} executable: {e}"
            ) from e

        return self._post_install_default(descriptor, context)

    # ------------------------------------------------------------------
    # shared
    # ------------------------------------------------------------------

    def _post_install_default(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        self._install_packages(context)
        self._kill_adb(context)
        return context

    def _install_packages(self, context: InstallContext) -> None:
        """
        Install SDK packages with the android tool, accepting licenses.

        Raises:
            PostInstallFailedError: If the tool fails to start, exits non-zero
                or writes anything to stderr
        """
        command = [
            self.android_command(context),
            "update",
            "sdk",
            "-u",
            "-a",
            "--filter",
            ",".join(self.packages),
        ]
        # The android tool refuses to run as root
        run_as = context.run_as if context.platform is HostPlatform.DARWIN else None

        logger.info(f"Installing Android packages: {', '.join(self.packages)}")
        try:
            outcome = self.runner.run(
                command, run_as=run_as, responder=PromptResponder()
            )
        except ProcessLaunchError as e:
            self.telemetry.add(
                "error.description", "ErrorOnChildProcess on postInstallDefault"
            ).add_error(e)
            raise PostInstallFailedError(str(e)) from e

        if not outcome.succeeded:
            self.telemetry.add(
                "error.description", "ErrorOnExitOfChildProcess on postInstallDefault"
            ).add("error.code", outcome.exit_code).add(
                "error.message", outcome.stderr, is_pii=True
            )
            raise PostInstallFailedError(
                "android package installation reported errors",
                exit_code=outcome.exit_code,
                captured_output=outcome.stderr,
            )

    def _kill_adb(self, context: InstallContext) -> None:
        """
        Stop the adb server the SDK tools may have started.

        Raises:
            DaemonKillFailedError: If adb cannot be started
        """
        adb = self.adb_command(context)
        try:
            outcome = self.runner.run([adb, "kill-server"])
        except ProcessLaunchError as e:
            self.telemetry.add(
                "error.description", "ErrorOnKillingAdb in killAdb"
            ).add_error(e)
            raise DaemonKillFailedError(str(e)) from e

        if outcome.exit_code != 0:
            logger.warning(f"adb kill-server exited with code {outcome.exit_code}")


__all__ = [
    "ANDROID_HOME_NAME",
    "DEFAULT_PACKAGES",
    "AndroidSdkInstaller",
]
