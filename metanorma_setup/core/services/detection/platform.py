"""
Host platform detection — OS, CPU architecture and libc variant.

Read-only.  Maps Python's ``platform`` module names onto the names used
by action settings, snap metadata and binary release artifacts.
"""

from __future__ import annotations

import platform as _platform
from dataclasses import dataclass
from pathlib import Path

from metanorma_setup.core.errors import ConfigError
from metanorma_setup.core.models.settings import Platform

_SYSTEM_MAP: dict[str, Platform] = {
    "darwin": Platform.MACOS,
    "linux": Platform.LINUX,
    "windows": Platform.WINDOWS,
}

# platform.machine() → Node-style names used in settings and logs
_HOST_ARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

_SNAP_ARCH_MAP: dict[str, str] = {
    "x64": "amd64",
    "amd64": "amd64",
    "x86_64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

_BINARY_ARCH_MAP: dict[str, str] = {
    "x64": "x86_64",
    "arm64": "arm64",
}

_BINARY_OS_MAP: dict[Platform, str] = {
    Platform.MACOS: "darwin",
    Platform.LINUX: "linux",
    Platform.WINDOWS: "windows",
}

ALPINE_MARKER = "/etc/alpine-release"


def detect_platform(system: str | None = None) -> Platform:
    """Return the host platform.

    Raises:
        ConfigError: On an operating system Metanorma cannot be set up on.
    """
    name = (system or _platform.system()).lower()
    try:
        return _SYSTEM_MAP[name]
    except KeyError:
        raise ConfigError(f"Unsupported platform: {name}") from None


def host_arch(machine: str | None = None) -> str:
    """Node-style architecture name (``x64`` / ``arm64``)."""
    name = (machine or _platform.machine()).lower()
    return _HOST_ARCH_MAP.get(name, name)


def snap_arch(arch: str) -> str:
    """Snap store architecture for a host architecture name."""
    return _SNAP_ARCH_MAP.get(arch.lower(), "amd64")


@dataclass(frozen=True)
class BinaryTarget:
    """What the binary release table calls the running host."""

    os_name: str
    arch: str
    variant: str | None = None


def detect_binary_target(
    platform: Platform | None = None,
    arch: str | None = None,
    alpine_marker: str = ALPINE_MARKER,
) -> BinaryTarget:
    """Describe the host in binary-artifact terms.

    musl is reported on Alpine, where glibc builds do not run.
    """
    plat = platform or detect_platform()
    node_arch = arch or host_arch()
    variant = None
    if plat is Platform.LINUX and _exists(alpine_marker):
        variant = "musl"
    return BinaryTarget(
        os_name=_BINARY_OS_MAP[plat],
        arch=_BINARY_ARCH_MAP.get(node_arch, node_arch),
        variant=variant,
    )


def _exists(path: str) -> bool:
    try:
        return Path(path).exists()
    except OSError:
        return False
