"""
Shared utilities for CLI commands.

Provides consistent error output, exit-code mapping and the default state
file location used by every command.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from sdkprovision.config.parser import ConfigError
from sdkprovision.core.directory import get_global_cache_dir
from sdkprovision.core.exceptions import (
    DaemonKillFailedError,
    DownloadFailedError,
    ExtractionFailedError,
    InstallerError,
    MissingInstallDestinationError,
    PostInstallFailedError,
    UnsupportedPlatformError,
    VariableUpdateFailedError,
)
from sdkprovision.core.state import StateError

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "state.json"


# ============================================================================
# Exit Codes
# ============================================================================

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 3
EXIT_STATE_ERROR = 4

# Ordered most specific first; the first isinstance match wins
_EXIT_CODES = (
    (MissingInstallDestinationError, 10),
    (DownloadFailedError, 11),
    (ExtractionFailedError, 12),
    (VariableUpdateFailedError, 13),
    (PostInstallFailedError, 14),
    (DaemonKillFailedError, 15),
    (UnsupportedPlatformError, 16),
    (InstallerError, EXIT_FAILURE),
    (ConfigError, EXIT_CONFIG_ERROR),
    (StateError, EXIT_STATE_ERROR),
)


def exit_code_for(error: BaseException) -> int:
    """
    Map an error to the process exit code reported for it.

    Args:
        error: Error that ended the command

    Returns:
        Distinct code per installer failure type, 1 for anything unknown
    """
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return EXIT_FAILURE


# ============================================================================
# Paths
# ============================================================================


def default_state_file() -> Path:
    """State file in the global cache directory."""
    return get_global_cache_dir() / STATE_FILE_NAME


# ============================================================================
# Output
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_captured_output(output: Optional[str], limit: int = 20):
    """Print the last lines of captured child process output to stderr."""
    if not output:
        return
    lines = output.rstrip().splitlines()
    if len(lines) > limit:
        print(f"  ... ({len(lines) - limit} earlier lines omitted)", file=sys.stderr)
    for line in lines[-limit:]:
        print(f"  | {line}", file=sys.stderr)
