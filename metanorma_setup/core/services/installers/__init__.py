"""Installation strategies and the factory that picks one."""

from metanorma_setup.core.services.installers.base import Installer, InstallerKind
from metanorma_setup.core.services.installers.factory import (
    INSTALLER_CLASSES,
    create_installer,
    select_installer_kind,
)

__all__ = [
    "INSTALLER_CLASSES",
    "Installer",
    "InstallerKind",
    "create_installer",
    "select_installer_kind",
]
