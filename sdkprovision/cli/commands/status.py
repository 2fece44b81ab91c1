"""
Status command implementation.

Shows which lifecycle stages are recorded as completed for the SDK described
by an install manifest.
"""

import logging
from pathlib import Path

from sdkprovision.cli.utils import (
    EXIT_SUCCESS,
    default_state_file,
    exit_code_for,
    print_error,
)
from sdkprovision.config.parser import ConfigError, parse_config
from sdkprovision.core.platform import detect_host_platform
from sdkprovision.core.state import STAGE_ORDER, StepStateStore

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the status command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        config = parse_config(Path(args.config))
    except ConfigError as e:
        print_error("Failed to load configuration", str(e))
        return exit_code_for(e)

    platform = detect_host_platform()
    store = StepStateStore(args.state_file or default_state_file())
    flags = store.load(config.installer, config.version, platform.value)

    print(f"{config.installer} {config.version} ({platform})")
    for stage in STAGE_ORDER:
        mark = "x" if flags.is_satisfied(stage) else " "
        print(f"  [{mark}] {stage}")

    if flags.all_satisfied():
        print("Installed")
    return EXIT_SUCCESS
