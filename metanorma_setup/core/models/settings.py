"""
Settings models — the read-only input shared by every component.

``MetanormaSettings`` is built once by the config loader and passed
down unchanged.  Enum values match the strings persisted in state
files and written to action outputs.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BUNDLER_VERSION = "2.6.5"


class Platform(StrEnum):
    """Host operating system."""

    MACOS = "darwin"
    LINUX = "linux"
    WINDOWS = "win32"


class InstallationMethod(StrEnum):
    """How the user asked for Metanorma to be installed."""

    AUTO = "auto"
    NATIVE = "native"
    GEM = "gem"
    BINARY = "binary"


class SnapChannel(StrEnum):
    STABLE = "stable"
    CANDIDATE = "candidate"
    BETA = "beta"
    EDGE = "edge"


class ContainerType(StrEnum):
    DOCKER = "docker"
    PODMAN = "podman"
    LXC = "lxc"
    NONE = "none"


class LinuxDistribution(StrEnum):
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    ALPINE = "alpine"
    UNKNOWN = "unknown"


class ContainerInfo(BaseModel):
    """Execution context classification, computed fresh every run."""

    model_config = ConfigDict(frozen=True)

    is_container: bool = False
    type: ContainerType = ContainerType.NONE
    has_ruby: bool = False
    has_metanorma: bool = False
    distribution: LinuxDistribution = LinuxDistribution.UNKNOWN


class MetanormaSettings(BaseModel):
    """Validated action inputs plus detected host facts."""

    model_config = ConfigDict(frozen=True)

    # ── Version request ──────────────────────────────────────────
    version: str | None = None
    snap_channel: SnapChannel = SnapChannel.STABLE
    choco_prerelease: bool = False

    # ── Host ─────────────────────────────────────────────────────
    platform: Platform
    install_path: str = "/"
    installation_method: InstallationMethod = InstallationMethod.AUTO
    container_info: ContainerInfo | None = None

    # ── Gem installs ─────────────────────────────────────────────
    bundler_version: str = DEFAULT_BUNDLER_VERSION
    gemfile: str | None = None
    fontist_update: bool = True
    bundle_update: bool = False
    use_prebuilt_locks: bool = True
    extra_flavors: list[str] = Field(default_factory=list)
    github_packages_token: str | None = Field(default=None, repr=False)

    # ── Run behaviour ────────────────────────────────────────────
    idempotent: bool = True
    reinstall_on_config_change: bool = True
    cleanup_state: bool = True

    @property
    def is_latest(self) -> bool:
        """True when no specific version is pinned."""
        return not self.version or self.version == "latest"
