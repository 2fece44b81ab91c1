"""
Install command implementation.

Runs the lifecycle for the SDK described by an install manifest, resuming
from the stages recorded in the state file.
"""

import logging
from pathlib import Path

from sdkprovision.cli.utils import (
    EXIT_SUCCESS,
    default_state_file,
    exit_code_for,
    print_captured_output,
    print_error,
)
from sdkprovision.config.parser import ConfigError, parse_config
from sdkprovision.core.exceptions import InstallerError
from sdkprovision.core.platform import detect_host_platform
from sdkprovision.core.state import StateError, StepFlags, StepStateStore
from sdkprovision.core.telemetry import LoggingTelemetrySink
from sdkprovision.installers import (
    InstallContext,
    LifecycleEngine,
    UnknownInstallerError,
    get_installer_class,
)

logger = logging.getLogger(__name__)


def _save_flags(store, name, version, platform, flags) -> None:
    """Record completed stages without masking the outcome of the run."""
    try:
        store.save(name, version, platform, flags)
    except (StateError, OSError) as e:
        logger.warning(f"Could not record install progress in {store.state_file}: {e}")


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, see cli.utils for failure codes)
    """
    logger.debug(f"Arguments: {args}")

    # 1. Load manifest
    try:
        config = parse_config(Path(args.config))
    except ConfigError as e:
        print_error("Failed to load configuration", str(e))
        return exit_code_for(e)

    # 2. Resolve installer and platform
    try:
        installer_cls = get_installer_class(config.installer)
    except UnknownInstallerError as e:
        print_error("Unknown installer", e.args[0])
        return exit_code_for(ConfigError(e.args[0]))

    installer_kwargs = {}
    if config.packages:
        installer_kwargs["packages"] = config.packages
    installer = installer_cls(**installer_kwargs)

    try:
        platform = detect_host_platform()
        descriptor = config.descriptor_for(platform)
        engine = LifecycleEngine(
            installer, platform=platform, telemetry_sink=LoggingTelemetrySink()
        )
    except InstallerError as e:
        print_error("Cannot install on this platform", str(e))
        return exit_code_for(e)

    # 3. Load completed stages
    store = StepStateStore(args.state_file or default_state_file())
    try:
        if args.force:
            logger.info("Forcing a full reinstall")
            store.clear(installer.name, config.version, platform.value)
            flags = StepFlags()
        else:
            flags = store.load(installer.name, config.version, platform.value)
    except StateError as e:
        print_error("Failed to read install state", str(e))
        return exit_code_for(e)

    context = InstallContext(
        install_destination=args.destination or config.install_destination,
        software_version=config.version,
        platform=platform,
    )

    # 4. Run, recording progress whether or not the run succeeds
    logger.info(f"Installing {installer.name} {config.version} for {platform}")
    try:
        context = engine.run(descriptor, flags, context)
    except InstallerError as e:
        print_error(f"{installer.name} installation failed", str(e))
        print_captured_output(e.captured_output)
        return exit_code_for(e)
    finally:
        _save_flags(store, installer.name, config.version, platform.value, flags)

    logger.info(f"{installer.name} {config.version} installed")
    if context.sdk_home is not None:
        print(f"SDK home: {context.sdk_home}")
    return EXIT_SUCCESS
