"""
Domain models — Pydantic types for the setup run.

    from metanorma_setup.core.models import MetanormaSettings, InstallationState
"""

from metanorma_setup.core.models.settings import (
    DEFAULT_BUNDLER_VERSION,
    ContainerInfo,
    ContainerType,
    InstallationMethod,
    LinuxDistribution,
    MetanormaSettings,
    Platform,
    SnapChannel,
)
from metanorma_setup.core.models.state import (
    IdempotencyReason,
    IdempotencyResult,
    InstallationState,
)
from metanorma_setup.core.models.versions import (
    BinaryArtifact,
    BinaryFormat,
    BinaryVersion,
    ChocolateyVersion,
    GemfileVersion,
    HomebrewVersion,
    PlatformVersionData,
    SnapVersion,
    VersionPlatform,
    VersionRecord,
    VersionTable,
)

__all__ = [
    "DEFAULT_BUNDLER_VERSION",
    "BinaryArtifact",
    "BinaryFormat",
    "BinaryVersion",
    "ChocolateyVersion",
    "ContainerInfo",
    "ContainerType",
    "GemfileVersion",
    "HomebrewVersion",
    "IdempotencyReason",
    "IdempotencyResult",
    "InstallationMethod",
    "InstallationState",
    "LinuxDistribution",
    "MetanormaSettings",
    "Platform",
    "PlatformVersionData",
    "SnapChannel",
    "SnapVersion",
    "VersionPlatform",
    "VersionRecord",
    "VersionTable",
]
