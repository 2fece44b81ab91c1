"""
Installer lifecycle engine.

The engine runs an installer's four stages in fixed order:

    download -> install -> update-variables -> post-install

Stages already recorded in StepFlags are skipped, so re-running after a
failure resumes where the previous run stopped. A failing stage ends the run
immediately; its flag stays False and no later stage runs. The engine never
retries and never undoes completed stages.

Platform dispatch happens once, at construction: the installer's stage table
for the host platform is looked up and an installer without an entry for the
platform is rejected before any stage can run.

Example:
    >>> engine = LifecycleEngine(AndroidSdkInstaller())
    >>> flags = StepFlags()
    >>> context = InstallContext("/opt/android", "24.3.4", engine.platform)
    >>> engine.run(descriptor, flags, context)
    >>> flags.all_satisfied()
    True
"""

import enum
import logging
import os
from dataclasses import replace
from typing import Dict, Mapping, Optional

from sdkprovision.core.exceptions import (
    DownloadFailedError,
    ExtractionFailedError,
    InstallerError,
    MissingInstallDestinationError,
    PostInstallFailedError,
    UnsupportedPlatformError,
    VariableUpdateFailedError,
)
from sdkprovision.core.platform import HostPlatform, detect_host_platform
from sdkprovision.core.process import RunAsIdentity
from sdkprovision.core.resources import get_string
from sdkprovision.core.state import STAGE_ORDER, Stage, StepFlags
from sdkprovision.core.telemetry import TelemetrySink, send_safely
from sdkprovision.installers.base import (
    InstallContext,
    InstallerBase,
    InstallerDescriptor,
    PlatformStages,
    StageFunction,
)

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    """Progress of one pipeline run."""

    NOT_STARTED = "NotStarted"
    DOWNLOADED = "Downloaded"
    INSTALLED = "Installed"
    VARIABLES_SET = "VariablesSet"
    POST_INSTALLED = "PostInstalled"
    FAILED = "Failed"


_STATE_AFTER: Dict[Stage, PipelineState] = {
    Stage.DOWNLOAD: PipelineState.DOWNLOADED,
    Stage.INSTALL: PipelineState.INSTALLED,
    Stage.UPDATE_VARIABLES: PipelineState.VARIABLES_SET,
    Stage.POST_INSTALL: PipelineState.POST_INSTALLED,
}

_FAILURE_TYPES = {
    Stage.DOWNLOAD: DownloadFailedError,
    Stage.INSTALL: ExtractionFailedError,
    Stage.UPDATE_VARIABLES: VariableUpdateFailedError,
    Stage.POST_INSTALL: PostInstallFailedError,
}


class LifecycleEngine:
    """
    Runs an installer's stages for the host platform.

    Args:
        installer: Installer supplying the stage tables
        platform: Platform to dispatch on (detected when None)
        log: Logger receiving progress messages (the module logger when None)
        telemetry_sink: Receives the installer's telemetry when a run ends
        environ: Environment used to resolve the elevation context

    Raises:
        UnsupportedPlatformError: If the installer has no stages for the platform
    """

    def __init__(
        self,
        installer: InstallerBase,
        platform: Optional[HostPlatform] = None,
        log: Optional[logging.Logger] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.installer = installer
        self.platform = platform or detect_host_platform()
        self.log = log or logger
        self.telemetry_sink = telemetry_sink
        self.environ = os.environ if environ is None else environ
        self.state = PipelineState.NOT_STARTED

        stages = installer.platform_stages().get(self.platform)
        if stages is None:
            raise UnsupportedPlatformError(
                f"{installer.name} does not support {self.platform.value}"
            )
        self.stages: PlatformStages = stages

    def _stage_function(self, stage: Stage) -> StageFunction:
        return {
            Stage.DOWNLOAD: self.stages.download,
            Stage.INSTALL: self.stages.install,
            Stage.UPDATE_VARIABLES: self.stages.update_variables,
            Stage.POST_INSTALL: self.stages.post_install,
        }[stage]

    def _restore_skipped(
        self, stage: Stage, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        """Re-derive the context values a skipped stage would have produced."""
        if stage is Stage.DOWNLOAD:
            archive = self.installer.archive_path(descriptor, context)
            return replace(context, cached_archive_path=archive)
        if stage is Stage.UPDATE_VARIABLES:
            return replace(context, sdk_home=self.stages.home_directory(context))
        return context

    def _resolve_run_as(self, context: InstallContext) -> InstallContext:
        if context.run_as is not None or self.platform is HostPlatform.WINDOWS:
            return context

        run_as = RunAsIdentity.from_environment(self.environ)
        if run_as is not None:
            self.log.debug(f"Elevated run, invoking user is {run_as.uid}:{run_as.gid}")
        return replace(context, run_as=run_as)

    def run(
        self,
        descriptor: InstallerDescriptor,
        flags: StepFlags,
        context: InstallContext,
    ) -> InstallContext:
        """
        Run all unsatisfied stages in order.

        Args:
            descriptor: Artifact to install
            flags: Completed stages; updated in place as stages succeed
            context: Initial context (destination and version)

        Returns:
            The final context

        Raises:
            MissingInstallDestinationError: If no destination was given
            InstallerError: The first stage failure, annotated with its stage
        """
        name = self.installer.name
        telemetry = self.installer.start_telemetry()
        telemetry.add("installer.platform", self.platform.value).add(
            "installer.version", context.software_version
        )

        if not context.install_destination:
            self.state = PipelineState.FAILED
            telemetry.add("error.description", "NeedInstallDestination on run")
            send_safely(self.telemetry_sink, telemetry)
            raise MissingInstallDestinationError(stage=str(Stage.INSTALL))

        context = self._resolve_run_as(replace(context, platform=self.platform))

        for stage in STAGE_ORDER:
            if flags.is_satisfied(stage):
                self.log.info(f"{name}: {get_string('StageSkipped', stage=stage)}")
                context = self._restore_skipped(stage, descriptor, context)
                self.state = _STATE_AFTER[stage]
                continue

            self.log.info(f"{name}: running stage {stage}")
            try:
                context = self._stage_function(stage)(descriptor, context)
            except InstallerError as e:
                self._fail(stage, e)
                raise
            except Exception as e:
                error = _FAILURE_TYPES[stage](str(e))
                self._fail(stage, error)
                raise error from e

            flags.mark_satisfied(stage)
            self.state = _STATE_AFTER[stage]
            self.log.info(f"{name}: {get_string('StageCompleted', stage=stage)}")

        send_safely(self.telemetry_sink, telemetry)
        return context

    def _fail(self, stage: Stage, error: InstallerError) -> None:
        """Annotate a stage failure and flush telemetry."""
        if error.stage is None:
            error.stage = str(stage)
        self.state = PipelineState.FAILED

        telemetry = self.installer.telemetry
        telemetry.add("error.stage", str(stage)).add(
            "error.type", type(error).__name__
        )
        if error.exit_code is not None:
            telemetry.add("error.code", error.exit_code)
        if error.captured_output:
            telemetry.add("error.message", error.captured_output, is_pii=True)

        self.log.error(f"{self.installer.name}: {error}")
        send_safely(self.telemetry_sink, telemetry)


__all__ = [
    "PipelineState",
    "LifecycleEngine",
]
