"""
Installer base — the contract every installation strategy implements.

    install(settings)   run the strategy; raises SetupError subclasses
    cleanup()           best-effort; logs failures, never raises

Strategies run commands through ``context.runner`` and ask questions
through ``context.probe``; neither is created here so tests can inject
fakes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from enum import StrEnum
from typing import ClassVar

from metanorma_setup.adapters.shell.command import BenignFailure, CommandResult
from metanorma_setup.core.context import RunContext
from metanorma_setup.core.errors import PrerequisiteMissingError
from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.services.detection.tool_version import (
    METANORMA_VERSION_CMD,
    parse_metanorma_version,
)

logger = logging.getLogger(__name__)


class InstallerKind(StrEnum):
    """One variant per (platform, method) pair."""

    BREW = "brew"
    SNAP = "snap"
    CHOCO = "choco"
    GEM_ALPINE = "gem_alpine"
    GEM_UBUNTU = "gem_ubuntu"
    GEM_NATIVE = "gem_native"
    BINARY = "binary"


class Installer(ABC):
    """Abstract base class for installation strategies."""

    kind: ClassVar[InstallerKind]
    title: ClassVar[str] = "Installing Metanorma"

    def __init__(self, context: RunContext) -> None:
        self.context = context

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    def install(self, settings: MetanormaSettings) -> None:
        """Install Metanorma according to ``settings``."""

    def cleanup(self) -> None:
        """Remove temporary artifacts.  Default: nothing to do."""
        logger.debug("%s installer: no cleanup needed", self.name)

    # ── Helpers for subclasses ───────────────────────────────────

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        cwd: str | None = None,
        allow: Iterable[BenignFailure] = (),
        secrets: Iterable[str] = (),
    ) -> CommandResult:
        return self.context.runner.run(
            cmd, check=check, cwd=cwd, allow=allow, secrets=secrets,
        )

    def command_exists(self, name: str) -> bool:
        return self.context.probe.command_exists(name)

    def verify_installation(
        self,
        cmd: Sequence[str] = METANORMA_VERSION_CMD,
    ) -> str | None:
        """Run ``metanorma --version``; raises if it fails.

        Returns:
            The reported version, when it can be parsed.
        """
        logger.info("Verifying Metanorma installation")
        result = self.run(cmd)
        version = parse_metanorma_version(result.stdout)
        logger.info("Metanorma installed: %s", version or result.stdout.strip())
        return version

    def require_command(self, name: str, message: str, remediation: str = "") -> None:
        if not self.command_exists(name):
            raise PrerequisiteMissingError(message, remediation)
