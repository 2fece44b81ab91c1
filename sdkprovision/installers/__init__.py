"""
SDK installers and the lifecycle engine that runs them.

Installers are registered by name so install manifests can refer to them:

    >>> installer_cls = get_installer_class("androidSdk")
    >>> engine = LifecycleEngine(installer_cls())
"""

from typing import Dict, List, Type

from .android_sdk import AndroidSdkInstaller
from .base import (
    InstallContext,
    InstallerBase,
    InstallerDescriptor,
    PlatformStages,
)
from .engine import LifecycleEngine, PipelineState

_INSTALLERS: Dict[str, Type[InstallerBase]] = {
    AndroidSdkInstaller.name: AndroidSdkInstaller,
}


class UnknownInstallerError(KeyError):
    """Raised when no installer is registered under a name."""

    pass


def register_installer(installer_cls: Type[InstallerBase]) -> None:
    """Register an installer class under its name."""
    if not installer_cls.name:
        raise ValueError(f"{installer_cls.__name__} has no name")
    _INSTALLERS[installer_cls.name] = installer_cls


def get_installer_class(name: str) -> Type[InstallerBase]:
    """
    Look up an installer class by name.

    Raises:
        UnknownInstallerError: If no installer has that name
    """
    try:
        return _INSTALLERS[name]
    except KeyError:
        raise UnknownInstallerError(
            f"Unknown installer '{name}'. Available: {', '.join(list_installers())}"
        ) from None


def list_installers() -> List[str]:
    return sorted(_INSTALLERS)


__all__ = [
    "AndroidSdkInstaller",
    "InstallContext",
    "InstallerBase",
    "InstallerDescriptor",
    "PlatformStages",
    "LifecycleEngine",
    "PipelineState",
    "UnknownInstallerError",
    "register_installer",
    "get_installer_class",
    "list_installers",
]
