"""
Installer factory — pure selection of an installation strategy.

``select_installer_kind`` is a deterministic function of
(platform, method, container info) with no side effects;
``create_installer`` only instantiates what it picked.

    native  → brew | snap | choco         by platform
    gem     → gem_alpine                  container, alpine
            → gem_ubuntu                  container, anything else
            → gem_native                  no container
    binary  → binary
    auto    → gem rule in a container, native rule otherwise
"""

from __future__ import annotations

import logging

from metanorma_setup.core.context import RunContext
from metanorma_setup.core.errors import ConfigError
from metanorma_setup.core.models.settings import (
    ContainerInfo,
    InstallationMethod,
    LinuxDistribution,
    MetanormaSettings,
    Platform,
)
from metanorma_setup.core.services.installers.base import Installer, InstallerKind
from metanorma_setup.core.services.installers.binary import BinaryInstaller
from metanorma_setup.core.services.installers.brew import BrewInstaller
from metanorma_setup.core.services.installers.choco import ChocoInstaller
from metanorma_setup.core.services.installers.gem_alpine import GemAlpineInstaller
from metanorma_setup.core.services.installers.gem_native import NativeGemInstaller
from metanorma_setup.core.services.installers.gem_ubuntu import GemUbuntuInstaller
from metanorma_setup.core.services.installers.snap import SnapInstaller

logger = logging.getLogger(__name__)

_NATIVE: dict[Platform, InstallerKind] = {
    Platform.MACOS: InstallerKind.BREW,
    Platform.LINUX: InstallerKind.SNAP,
    Platform.WINDOWS: InstallerKind.CHOCO,
}

INSTALLER_CLASSES: dict[InstallerKind, type[Installer]] = {
    InstallerKind.BREW: BrewInstaller,
    InstallerKind.SNAP: SnapInstaller,
    InstallerKind.CHOCO: ChocoInstaller,
    InstallerKind.GEM_ALPINE: GemAlpineInstaller,
    InstallerKind.GEM_UBUNTU: GemUbuntuInstaller,
    InstallerKind.GEM_NATIVE: NativeGemInstaller,
    InstallerKind.BINARY: BinaryInstaller,
}


def select_installer_kind(
    platform: Platform,
    method: InstallationMethod,
    container_info: ContainerInfo | None = None,
) -> InstallerKind:
    """Decide which strategy serves (platform, method).

    Raises:
        ConfigError: Unknown platform or method.
    """
    in_container = bool(container_info and container_info.is_container)

    if method is InstallationMethod.BINARY:
        return InstallerKind.BINARY
    if method is InstallationMethod.AUTO:
        method = InstallationMethod.GEM if in_container else InstallationMethod.NATIVE

    if method is InstallationMethod.NATIVE:
        try:
            return _NATIVE[platform]
        except KeyError:
            raise ConfigError(f"Unsupported platform: {platform}") from None

    if method is InstallationMethod.GEM:
        if not in_container:
            return InstallerKind.GEM_NATIVE
        if container_info.distribution is LinuxDistribution.ALPINE:
            return InstallerKind.GEM_ALPINE
        return InstallerKind.GEM_UBUNTU

    raise ConfigError(f"Unsupported installation method: {method}")


def create_installer(
    platform: Platform,
    method: InstallationMethod,
    settings: MetanormaSettings,
    *,
    context: RunContext,
) -> Installer:
    kind = select_installer_kind(platform, method, settings.container_info)
    logger.debug("Selected %s installer for %s/%s", kind, platform, method)
    return INSTALLER_CLASSES[kind](context)
