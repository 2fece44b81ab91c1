"""
Base installer abstractions.

An installer describes how to acquire one SDK. It registers, per host
platform, a PlatformStages table holding one callable for each lifecycle
stage plus a function deriving the SDK home directory. Stage callables take
the descriptor and the current InstallContext and return an updated context;
the LifecycleEngine threads that context through the stages in order.

Installers share two default stage bodies:

- download_default: fetch the archive into the installer cache and verify
  its size and SHA-1
- install_default: create the destination and extract the cached archive

Example:
    class MySdkInstaller(InstallerBase):
        name = "mySdk"

        def platform_stages(self):
            return {
                HostPlatform.WINDOWS: PlatformStages(
                    download=self.download_default,
                    install=self.install_default,
                    update_variables=self._update_variables_win32,
                    post_install=self._post_install,
                    home_directory=self._home,
                ),
            }
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from sdkprovision.core.directory import DirectoryError, get_installer_cache_path
from sdkprovision.core.download import DownloadError, download_file
from sdkprovision.core.exceptions import (
    DownloadFailedError,
    ExtractionFailedError,
    MissingInstallDestinationError,
)
from sdkprovision.core.filesystem import (
    ArchiveExtractionError,
    ensure_directory,
    extract_archive,
)
from sdkprovision.core.platform import HostPlatform
from sdkprovision.core.process import ProcessRunner, RunAsIdentity
from sdkprovision.core.telemetry import TelemetryEvent
from sdkprovision.core.verification import FileSignature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallerDescriptor:
    """
    One downloadable SDK artifact, as published by the SDK catalog.

    Attributes:
        install_source: Download URL
        bytes: Expected archive size
        sha1: Expected archive SHA-1 digest
        version: SDK version
    """

    install_source: str
    bytes: int
    sha1: str
    version: str = ""

    @property
    def signature(self) -> FileSignature:
        return FileSignature(bytes=self.bytes, sha1=self.sha1)


@dataclass(frozen=True)
class InstallContext:
    """
    Values one pipeline run passes from stage to stage.

    Attributes:
        install_destination: Directory the SDK is extracted into
        software_version: Version being installed
        platform: Host platform the stages were selected for
        cached_archive_path: Verified archive (set by the download stage)
        sdk_home: SDK home directory (set by the update-variables stage)
        run_as: Invoking user when running elevated
    """

    install_destination: str
    software_version: str
    platform: HostPlatform
    cached_archive_path: Optional[Path] = None
    sdk_home: Optional[Path] = None
    run_as: Optional[RunAsIdentity] = None


StageFunction = Callable[[InstallerDescriptor, InstallContext], InstallContext]


@dataclass(frozen=True)
class PlatformStages:
    """Stage implementations registered for one platform."""

    download: StageFunction
    install: StageFunction
    update_variables: StageFunction
    post_install: StageFunction
    home_directory: Callable[[InstallContext], Path]


Downloader = Callable[[str, Path, FileSignature], Path]
Extractor = Callable[[Path, Path], None]


class InstallerBase(ABC):
    """
    Base class for SDK installers.

    Attributes:
        name: Installer name, also the cache directory of its archives
        cache_dir: Cache root (None means the global cache)
        runner: Process runner used for child processes
        telemetry: Annotations collected during the run
    """

    name: str = ""

    def __init__(
        self,
        cache_dir: Optional[Union[str, Path]] = None,
        runner: Optional[ProcessRunner] = None,
        downloader: Optional[Downloader] = None,
        extractor: Optional[Extractor] = None,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.runner = runner or ProcessRunner()
        self.downloader: Downloader = downloader or download_file
        self.extractor: Extractor = extractor or extract_archive
        self.telemetry = self.start_telemetry()

    def start_telemetry(self) -> TelemetryEvent:
        """Replace the telemetry event with an empty one for a new run."""
        self.telemetry = TelemetryEvent(f"installer.{self.name}")
        return self.telemetry

    @abstractmethod
    def platform_stages(self) -> Dict[HostPlatform, PlatformStages]:
        """Stage tables keyed by the platforms this installer supports."""

    def archive_path(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> Path:
        """
        Cache location of the descriptor's archive.

        Raises:
            DownloadFailedError: If the cache directory cannot be created
        """
        try:
            return get_installer_cache_path(
                self.name,
                context.platform.value,
                context.software_version,
                descriptor.install_source,
                cache_dir=self.cache_dir,
            )
        except DirectoryError as e:
            raise DownloadFailedError(str(e)) from e

    def download_default(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        """
        Download and verify the SDK archive into the installer cache.

        Raises:
            DownloadFailedError: On transport, HTTP status or signature failure
        """
        archive = self.archive_path(descriptor, context)

        try:
            self.downloader(descriptor.install_source, archive, descriptor.signature)
        except DownloadError as e:
            self.telemetry.add(
                "error.description", "ErrorOnDownload in downloadDefault"
            ).add_error(e)
            raise DownloadFailedError(str(e)) from e

        return replace(context, cached_archive_path=archive)

    def install_default(
        self, descriptor: InstallerDescriptor, context: InstallContext
    ) -> InstallContext:
        """
        Extract the cached archive into the install destination.

        Raises:
            MissingInstallDestinationError: If no destination was given
            ExtractionFailedError: If the archive is missing or extraction fails
        """
        if not context.install_destination:
            self.telemetry.add(
                "error.description", "NeedInstallDestination on installDefault"
            )
            raise MissingInstallDestinationError()

        archive = context.cached_archive_path
        if archive is None or not archive.exists():
            raise ExtractionFailedError(f"archive not found in cache: {archive}")

        destination = Path(context.install_destination)
        logger.info(f"Extracting {archive.name} to {destination}")

        try:
            ensure_directory(destination, mode=0o777)
            self.extractor(archive, destination)
        except (ArchiveExtractionError, OSError) as e:
            self.telemetry.add(
                "error.description", "ErrorOnExtract in installDefault"
            ).add_error(e)
            raise ExtractionFailedError(str(e)) from e

        return context


__all__ = [
    "InstallerDescriptor",
    "InstallContext",
    "StageFunction",
    "PlatformStages",
    "InstallerBase",
]
