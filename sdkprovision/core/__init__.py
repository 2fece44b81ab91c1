"""
Core functionality for SDKProvision.

This package contains the leaf components installers are built from:
verification, caching, downloads, extraction, process supervision and
stage-state persistence.
"""

from .exceptions import (
    SDKProvisionError,
    InstallerError,
    MissingInstallDestinationError,
    DownloadFailedError,
    ExtractionFailedError,
    VariableUpdateFailedError,
    PostInstallFailedError,
    DaemonKillFailedError,
    UnsupportedPlatformError,
)

from .platform import (
    HostPlatform,
    detect_host_platform,
    parse_host_platform,
    clear_platform_cache,
)

from .verification import (
    FileSignature,
    compute_file_hash,
    verify_file_signature,
)

from .directory import (
    DirectoryError,
    get_global_cache_dir,
    get_installer_cache_path,
)

from .process import (
    ProcessLaunchError,
    ProcessOutcome,
    ProcessRunner,
    PromptResponder,
    RunAsIdentity,
)

from .state import (
    Stage,
    STAGE_ORDER,
    StepFlags,
    StepStateStore,
)

__all__ = [
    "SDKProvisionError",
    "InstallerError",
    "MissingInstallDestinationError",
    "DownloadFailedError",
    "ExtractionFailedError",
    "VariableUpdateFailedError",
    "PostInstallFailedError",
    "DaemonKillFailedError",
    "UnsupportedPlatformError",
    "HostPlatform",
    "detect_host_platform",
    "parse_host_platform",
    "clear_platform_cache",
    "FileSignature",
    "compute_file_hash",
    "verify_file_signature",
    "DirectoryError",
    "get_global_cache_dir",
    "get_installer_cache_path",
    "ProcessLaunchError",
    "ProcessOutcome",
    "ProcessRunner",
    "PromptResponder",
    "RunAsIdentity",
    "Stage",
    "STAGE_ORDER",
    "StepFlags",
    "StepStateStore",
]
