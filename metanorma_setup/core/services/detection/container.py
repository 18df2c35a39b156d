"""
Container detection — bare OS vs. container, and the Linux distribution.

Read-only and best-effort: every file or command probe that fails is
treated as "absent".  Nothing here is cached; each run detects afresh.
"""

from __future__ import annotations

import logging
import sys

from metanorma_setup.adapters.shell.probe import CommandProbe
from metanorma_setup.core.errors import ConfigError
from metanorma_setup.core.models.settings import (
    ContainerInfo,
    ContainerType,
    InstallationMethod,
    LinuxDistribution,
)

logger = logging.getLogger(__name__)

DOCKERENV = "/.dockerenv"
INIT_CGROUP = "/proc/1/cgroup"
ALPINE_RELEASE = "/etc/alpine-release"
OS_RELEASE = "/etc/os-release"
DEBIAN_VERSION = "/etc/debian_version"

# cgroup substring → container type, checked in order
_CGROUP_MARKERS: tuple[tuple[str, ContainerType], ...] = (
    ("docker", ContainerType.DOCKER),
    ("containerd", ContainerType.DOCKER),
    ("podman", ContainerType.PODMAN),
    ("lxc", ContainerType.LXC),
)


def detect_container(
    probe: CommandProbe,
    *,
    platform_name: str | None = None,
) -> ContainerInfo:
    """Classify the execution context.

    Args:
        probe: Host probe used for files and commands.
        platform_name: ``sys.platform``-style name; distribution is only
            detected on ``linux``.

    Returns:
        ContainerInfo for this run.
    """
    container_type = detect_container_type(probe)
    distribution = LinuxDistribution.UNKNOWN
    if (platform_name or sys.platform).startswith("linux"):
        distribution = detect_distribution(probe)

    info = ContainerInfo(
        is_container=container_type is not ContainerType.NONE,
        type=container_type,
        distribution=distribution,
        has_ruby=probe.command_exists("ruby"),
        has_metanorma=probe.command_exists("metanorma"),
    )
    logger.debug("Container detection result: %s", info.model_dump(mode="json"))
    return info


def detect_container_type(probe: CommandProbe) -> ContainerType:
    """First match wins: ``/.dockerenv``, then the init process cgroup."""
    if probe.file_exists(DOCKERENV):
        logger.debug("Detected Docker container (via %s)", DOCKERENV)
        return ContainerType.DOCKER

    cgroup = (probe.read_text(INIT_CGROUP) or "").lower()
    for marker, container_type in _CGROUP_MARKERS:
        if marker in cgroup:
            logger.debug("Detected %s container (via %s)", container_type, INIT_CGROUP)
            return container_type

    logger.debug("No container detected")
    return ContainerType.NONE


def detect_distribution(probe: CommandProbe) -> LinuxDistribution:
    if probe.file_exists(ALPINE_RELEASE):
        return LinuxDistribution.ALPINE

    os_release = (probe.read_text(OS_RELEASE) or "").lower()
    if "ubuntu" in os_release:
        return LinuxDistribution.UBUNTU
    if "debian" in os_release:
        return LinuxDistribution.DEBIAN

    if probe.file_exists(DEBIAN_VERSION):
        return LinuxDistribution.DEBIAN

    logger.debug("Could not detect specific Linux distribution")
    return LinuxDistribution.UNKNOWN


def get_installation_method(
    preference: str | InstallationMethod,
    probe: CommandProbe,
    *,
    platform_name: str | None = None,
) -> tuple[InstallationMethod, str]:
    """Resolve the user's preference into a concrete method.

    Returns:
        ``(method, reason)``; ``auto`` becomes ``gem`` inside a container
        and ``native`` otherwise.

    Raises:
        ConfigError: On an unknown preference.
    """
    try:
        method = InstallationMethod(str(preference).lower())
    except ValueError:
        raise ConfigError(f"Invalid installation method: {preference}") from None

    if method is InstallationMethod.NATIVE:
        return method, "User explicitly requested native package manager installation"
    if method is InstallationMethod.GEM:
        return method, "User explicitly requested gem-based installation"
    if method is InstallationMethod.BINARY:
        return method, "User explicitly requested binary installation"

    info = detect_container(probe, platform_name=platform_name)
    if info.is_container:
        return InstallationMethod.GEM, (
            f"Running in {info.type} container with {info.distribution} "
            "distribution - using gem-based installation"
        )
    return InstallationMethod.NATIVE, "Running on native OS - using native package manager"
