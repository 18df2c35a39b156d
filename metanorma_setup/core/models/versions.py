"""
Version records — typed rows of the per-platform version tables.

The fetcher produces ``PlatformVersionData`` (raw but normalised dicts);
providers turn each row into one of the frozen record models below.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from metanorma_setup.core.models.settings import SnapChannel


class VersionPlatform(StrEnum):
    """Sources of version metadata, one YAML document each."""

    SNAP = "snap"
    GEMFILE = "gemfile"
    HOMEBREW = "homebrew"
    CHOCOLATEY = "chocolatey"
    BINARY = "binary"


class BinaryFormat(StrEnum):
    TGZ = "tgz"
    ZIP = "zip"
    EXE = "exe"


# ── Raw tables (fetcher output) ──────────────────────────────────


class VersionTable(BaseModel):
    """One platform's document after normalisation."""

    count: int = 0
    latest: str = ""
    versions: list[dict[str, Any]] = Field(default_factory=list)


class PlatformVersionData(BaseModel):
    """Everything ``fetch_all()`` returns."""

    snap: VersionTable = Field(default_factory=VersionTable)
    gemfile: VersionTable = Field(default_factory=VersionTable)
    homebrew: VersionTable = Field(default_factory=VersionTable)
    chocolatey: VersionTable = Field(default_factory=VersionTable)
    binary: VersionTable = Field(default_factory=VersionTable)

    def table(self, platform: VersionPlatform) -> VersionTable:
        return getattr(self, platform.value)


# ── Typed records (provider rows) ────────────────────────────────


class VersionRecord(BaseModel):
    """Fields shared by every platform's version row."""

    model_config = ConfigDict(frozen=True)

    version: str
    published_at: str | None = None
    parsed_at: str | None = None
    display_name: str = ""


class SnapVersion(VersionRecord):
    revision: int
    channel: SnapChannel = SnapChannel.STABLE
    architecture: str = "amd64"


class GemfileVersion(VersionRecord):
    gemfile_exists: bool = True


class HomebrewVersion(VersionRecord):
    tag_name: str = ""
    commit_sha: str = ""


class ChocolateyVersion(VersionRecord):
    package_name: str = "metanorma"
    is_pre_release: bool = False


class BinaryArtifact(BaseModel):
    """One downloadable file of a binary release."""

    model_config = ConfigDict(frozen=True)

    os_name: str
    arch: str
    format: BinaryFormat
    filename: str
    url: str
    size: int = 0
    variant: str | None = None

    @property
    def label(self) -> str:
        """``os/arch[/variant]`` for messages."""
        parts = [self.os_name, self.arch]
        if self.variant:
            parts.append(self.variant)
        return "/".join(parts)


class BinaryVersion(VersionRecord):
    tag_name: str = ""
    html_url: str = ""
    platforms: tuple[BinaryArtifact, ...] = ()
