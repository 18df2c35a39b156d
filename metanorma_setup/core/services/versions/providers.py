"""
Version providers — immutable per-platform version tables.

Each provider is built from one ``VersionTable`` and never changes
afterwards: rows are validated into frozen record models and stored in
tuples/dicts that no method mutates.

Uniqueness on construction:
    snap      (version, architecture) — a later row replaces an earlier one
    others    version                 — the first row wins

``get_latest()`` always names a version in the table when the table is
non-empty; a missing or stale ``latest_version`` is replaced by the
highest version in semantic order.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import ValidationError

from metanorma_setup.core.models.settings import SnapChannel
from metanorma_setup.core.models.versions import (
    BinaryArtifact,
    BinaryVersion,
    ChocolateyVersion,
    GemfileVersion,
    HomebrewVersion,
    SnapVersion,
    VersionPlatform,
    VersionRecord,
    VersionTable,
)
from metanorma_setup.core.services.detection.platform import detect_binary_target
from metanorma_setup.core.services.versions.semver import highest

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=VersionRecord)


class VersionProvider(Generic[T]):
    """Uniform lookups over one platform's version table."""

    platform: ClassVar[VersionPlatform]
    record_model: ClassVar[type[VersionRecord]]

    def __init__(self, table: VersionTable) -> None:
        records = self._dedupe(self._build_records(table.versions))
        self._versions: tuple[T, ...] = tuple(records)
        self._by_version: dict[str, T] = {}
        for record in self._versions:
            self._by_version.setdefault(record.version, record)
        self._latest = self._resolve_latest(table.latest)

    # ── Uniform contract ─────────────────────────────────────────

    def get_versions(self) -> tuple[T, ...]:
        return self._versions

    def get_version(self, version: str) -> T | None:
        return self._by_version.get(version)

    def get_latest(self) -> str:
        return self._latest

    def is_available(self, version: str) -> bool:
        return version in self._by_version

    def get_available_versions(self) -> list[str]:
        """Distinct versions in table order."""
        return list(self._by_version)

    def __len__(self) -> int:
        return len(self._by_version)

    # ── Construction helpers ─────────────────────────────────────

    def _build_records(self, rows: list[dict[str, Any]]) -> list[T]:
        records: list[T] = []
        for row in rows:
            try:
                records.append(self.record_model.model_validate(row))  # type: ignore[arg-type]
            except ValidationError as exc:
                logger.debug(
                    "Skipping malformed %s row %r: %s",
                    self.platform.value, row.get("version"), exc.errors()[:1],
                )
        return records

    def _dedupe(self, records: list[T]) -> list[T]:
        seen: set[str] = set()
        unique = []
        for record in records:
            if record.version in seen:
                continue
            seen.add(record.version)
            unique.append(record)
        return unique

    def _resolve_latest(self, declared: str) -> str:
        if not self._by_version:
            return ""
        if declared in self._by_version:
            return declared
        computed = highest(list(self._by_version))
        if declared:
            logger.debug(
                "%s latest %r not in table, using %s",
                self.platform.value, declared, computed,
            )
        return computed


# ── Snap ─────────────────────────────────────────────────────────


class SnapProvider(VersionProvider[SnapVersion]):
    """Snap rows, one per (version, architecture)."""

    platform = VersionPlatform.SNAP
    record_model = SnapVersion

    def __init__(self, table: VersionTable) -> None:
        super().__init__(table)
        self._by_arch: dict[str, dict[str, SnapVersion]] = {}
        for record in self._versions:
            self._by_arch.setdefault(record.version, {})[record.architecture] = record

    def _dedupe(self, records: list[SnapVersion]) -> list[SnapVersion]:
        keyed: dict[tuple[str, str], SnapVersion] = {}
        for record in records:
            keyed[(record.version, record.architecture)] = record
        return list(keyed.values())

    def get_revision(self, version: str, arch: str = "amd64") -> int | None:
        record = self._by_arch.get(version, {}).get(arch)
        return record.revision if record else None

    def get_channel(self, version: str, arch: str = "amd64") -> SnapChannel | None:
        record = self._by_arch.get(version, {}).get(arch)
        return record.channel if record else None

    def get_latest_for_channel(self, channel: SnapChannel | str) -> str | None:
        versions = [r.version for r in self._versions if r.channel == channel]
        return highest(versions) or None

    def get_architectures(self, version: str) -> list[str]:
        return list(self._by_arch.get(version, {}))


# ── Gemfile / Homebrew / Chocolatey ──────────────────────────────


class GemfileProvider(VersionProvider[GemfileVersion]):
    platform = VersionPlatform.GEMFILE
    record_model = GemfileVersion

    def has_gemfile(self, version: str) -> bool:
        record = self.get_version(version)
        return bool(record and record.gemfile_exists)


class HomebrewProvider(VersionProvider[HomebrewVersion]):
    platform = VersionPlatform.HOMEBREW
    record_model = HomebrewVersion

    def get_tag_name(self, version: str) -> str | None:
        record = self.get_version(version)
        return record.tag_name or None if record else None

    def get_commit_sha(self, version: str) -> str | None:
        record = self.get_version(version)
        return record.commit_sha or None if record else None


class ChocolateyProvider(VersionProvider[ChocolateyVersion]):
    platform = VersionPlatform.CHOCOLATEY
    record_model = ChocolateyVersion

    def get_package_name(self, version: str) -> str | None:
        record = self.get_version(version)
        return record.package_name if record else None

    def is_pre_release(self, version: str) -> bool:
        record = self.get_version(version)
        return bool(record and record.is_pre_release)


# ── Binary releases ──────────────────────────────────────────────


class BinaryProvider(VersionProvider[BinaryVersion]):
    """Binary releases with per-platform artifacts."""

    platform = VersionPlatform.BINARY
    record_model = BinaryVersion

    def get_platforms(self, version: str) -> list[BinaryArtifact]:
        record = self.get_version(version)
        return list(record.platforms) if record else []

    def get_artifact(
        self,
        version: str,
        os_name: str,
        arch: str,
        variant: str | None = None,
    ) -> BinaryArtifact | None:
        """Exact lookup; ``variant=None`` only matches artifacts without one."""
        for artifact in self.get_platforms(version):
            if (
                artifact.os_name == os_name
                and artifact.arch == arch
                and artifact.variant == variant
            ):
                return artifact
        return None

    def get_best_match(
        self,
        version: str,
        os_name: str | None = None,
        arch: str | None = None,
        variant: str | None = None,
    ) -> BinaryArtifact | None:
        """Pick the artifact for a host, in three tiers.

        1. same OS, arch and variant
        2. same OS and arch, artifact without a variant
        3. first artifact for the same OS

        The running host is used when ``os_name`` is omitted.  An artifact
        for a different OS is never returned.
        """
        platforms = self.get_platforms(version)
        if not platforms:
            return None

        if os_name is None:
            target = detect_binary_target()
            os_name = target.os_name
            arch = arch or target.arch
            variant = variant or target.variant

        same_os = [p for p in platforms if p.os_name == os_name]

        for artifact in same_os:
            if artifact.arch == arch and artifact.variant == variant:
                return artifact

        for artifact in same_os:
            if artifact.arch == arch and not artifact.variant:
                return artifact

        return same_os[0] if same_os else None

    def get_download_url(
        self,
        version: str,
        os_name: str | None = None,
        arch: str | None = None,
    ) -> str | None:
        if os_name and arch:
            artifact = self.get_artifact(version, os_name, arch)
        else:
            artifact = self.get_best_match(version)
        return artifact.url if artifact else None

    def get_available_platforms(self, version: str) -> list[str]:
        return list(dict.fromkeys(p.os_name for p in self.get_platforms(version)))

    def get_available_architectures(self, version: str, os_name: str) -> list[str]:
        return list(dict.fromkeys(
            p.arch for p in self.get_platforms(version) if p.os_name == os_name
        ))


PROVIDER_CLASSES: dict[VersionPlatform, type[VersionProvider[Any]]] = {
    VersionPlatform.SNAP: SnapProvider,
    VersionPlatform.GEMFILE: GemfileProvider,
    VersionPlatform.HOMEBREW: HomebrewProvider,
    VersionPlatform.CHOCOLATEY: ChocolateyProvider,
    VersionPlatform.BINARY: BinaryProvider,
}
