"""
Centralized exception hierarchy for SDKProvision.

This module defines the error taxonomy surfaced by the installer lifecycle.
Every stage failure is reported as one InstallerError subclass carrying the
stage name and whatever diagnostic context was captured (exit code, captured
process output) so callers can diagnose without re-running.
"""

from typing import Optional

from sdkprovision.core.resources import get_string


# ============================================================================
# Base Exceptions
# ============================================================================


class SDKProvisionError(Exception):
    """Base exception for all SDKProvision errors."""

    pass


# ============================================================================
# Installer Exceptions
# ============================================================================


class InstallerError(SDKProvisionError):
    """
    Base exception for installer lifecycle failures.

    Attributes:
        key: Resource key used to build the message
        stage: Name of the stage that failed (set by the engine if unknown)
        exit_code: Exit code of the failing child process, if any
        captured_output: Text captured from the failing child process, if any
    """

    key = "InstallerError"

    def __init__(
        self,
        detail: str = "",
        stage: Optional[str] = None,
        exit_code: Optional[int] = None,
        captured_output: Optional[str] = None,
    ):
        self.detail = detail
        self.stage = stage
        self.exit_code = exit_code
        self.captured_output = captured_output
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        message = get_string(self.key)
        if self.detail:
            message = f"{message}: {self.detail}"
        return message

    def __str__(self) -> str:
        message = self._build_message()
        if self.stage:
            message = f"[{self.stage}] {message}"
        if self.exit_code is not None:
            message += f" (exit code {self.exit_code})"
        return message


class MissingInstallDestinationError(InstallerError):
    """Raised when no install destination was supplied."""

    key = "NeedInstallDestination"


class DownloadFailedError(InstallerError):
    """Raised when the SDK archive could not be fetched or verified."""

    key = "DownloadFailed"


class ExtractionFailedError(InstallerError):
    """Raised when the SDK archive could not be extracted."""

    key = "ExtractionFailed"


class VariableUpdateFailedError(InstallerError):
    """Raised when environment variables could not be persisted."""

    key = "VariableUpdateFailed"


class PostInstallFailedError(InstallerError):
    """Raised when the SDK's package manager fails or reports errors."""

    key = "PostInstallFailed"


class DaemonKillFailedError(InstallerError):
    """Raised when a stray SDK daemon could not be terminated."""

    key = "DaemonKillFailed"


class UnsupportedPlatformError(InstallerError):
    """Raised when an installer has no implementation for the host platform."""

    key = "UnsupportedPlatform"


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
]
