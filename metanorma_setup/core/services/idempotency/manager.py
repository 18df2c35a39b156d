"""
Idempotency manager — decide whether an install can be skipped.

One decision per run, in this order (first failing check wins):

    1. checking disabled                         → install
    2. no valid state file                       → install (not_installed)
    3. platform / method / install path changed  → install (configuration_changed)
    4. settings checksum changed                 → install (configuration_changed),
                                                   unless reinstall-on-config-change
                                                   is off: warn and keep checking
    5. metanorma not resolvable on PATH          → install (not_installed)
    6. otherwise                                 → skip (already_installed)

The checksum is an MD5 over the sorted-key JSON of the settings that
change what gets installed.  It detects changes; it is not a security
boundary.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from metanorma_setup.adapters.shell.probe import CommandProbe
from metanorma_setup.core.models.settings import DEFAULT_BUNDLER_VERSION, MetanormaSettings
from metanorma_setup.core.models.state import (
    IdempotencyReason,
    IdempotencyResult,
    InstallationState,
)
from metanorma_setup.core.persistence.state_file import (
    DEFAULT_STATE_FILE,
    delete_state,
    load_state,
    save_state,
)
from metanorma_setup.core.services.detection.tool_version import get_installed_version

logger = logging.getLogger(__name__)

TOOL = "metanorma"


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


class IdempotencyConfig(BaseModel):
    """Knobs for the skip decision."""

    enabled: bool = True
    reinstall_on_config_change: bool = True
    state_file_name: str = DEFAULT_STATE_FILE
    now: Callable[[], str] = _utc_now

    @classmethod
    def from_settings(cls, settings: MetanormaSettings) -> IdempotencyConfig:
        return cls(
            enabled=settings.idempotent,
            reinstall_on_config_change=settings.reinstall_on_config_change,
        )


def checksum_fields(settings: MetanormaSettings) -> dict[str, object]:
    """The settings subset that defines an installation."""
    fields: dict[str, object] = {
        "platform": str(settings.platform),
        "installationMethod": str(settings.installation_method),
        "version": settings.version or "",
        "snapChannel": str(settings.snap_channel),
        "chocoPrerelease": settings.choco_prerelease,
        "bundlerVersion": settings.bundler_version or DEFAULT_BUNDLER_VERSION,
    }
    if settings.gemfile is not None:
        fields["gemfile"] = settings.gemfile
    return fields


def calculate_checksum(settings: MetanormaSettings) -> str:
    content = json.dumps(
        checksum_fields(settings),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.md5(content.encode("utf-8")).hexdigest()


class IdempotencyManager:
    """Skip decision and state bookkeeping for one workspace."""

    def __init__(
        self,
        workspace: Path,
        probe: CommandProbe,
        config: IdempotencyConfig | None = None,
    ) -> None:
        self.config = config or IdempotencyConfig()
        self.probe = probe
        self.state_file_path = Path(workspace) / self.config.state_file_name
        logger.debug("Idempotency state file: %s", self.state_file_path)

    def check_and_skip(self, settings: MetanormaSettings) -> IdempotencyResult:
        """Decide whether installation can be skipped.  Never raises."""
        if not self.config.enabled:
            return IdempotencyResult(
                should_skip=False,
                reason=IdempotencyReason.NOT_INSTALLED,
                details="Idempotency checking is disabled",
            )

        previous = self.load_installation_state()
        if previous is None:
            return IdempotencyResult(
                should_skip=False,
                reason=IdempotencyReason.NOT_INSTALLED,
                details="No previous installation state found",
            )

        mismatch = self._environment_mismatch(settings, previous)
        if mismatch:
            return IdempotencyResult(
                should_skip=False,
                reason=IdempotencyReason.CONFIGURATION_CHANGED,
                details=mismatch,
                previous_state=previous,
            )

        current = self.calculate_checksum(settings)
        if current != previous.checksum:
            logger.info("Configuration changed since last installation")
            logger.debug("Previous checksum: %s, current: %s", previous.checksum, current)
            if self.config.reinstall_on_config_change:
                return IdempotencyResult(
                    should_skip=False,
                    reason=IdempotencyReason.CONFIGURATION_CHANGED,
                    details="Configuration changed, will reinstall",
                    previous_state=previous,
                )
            logger.warning(
                "Configuration changed but reinstall-on-config-change is disabled"
            )

        if not self.is_tool_available():
            logger.info("%s not found in PATH despite state file existing", TOOL)
            return IdempotencyResult(
                should_skip=False,
                reason=IdempotencyReason.NOT_INSTALLED,
                details="Metanorma not found, will reinstall",
                previous_state=previous,
            )

        installed = self.get_installed_version()
        details = (
            f"Metanorma {installed} is already installed (installed at {previous.installed_at})"
            if installed
            else "Metanorma is already installed"
        )
        return IdempotencyResult(
            should_skip=True,
            reason=IdempotencyReason.ALREADY_INSTALLED,
            details=details,
            previous_state=previous,
            installed_version=installed,
        )

    def calculate_checksum(self, settings: MetanormaSettings) -> str:
        return calculate_checksum(settings)

    def is_tool_available(self) -> bool:
        """``command -v``, then ``which``: either may be missing on a host."""
        if self.probe.capture(["sh", "-c", f"command -v {TOOL}"]).ok:
            return True
        return self.probe.capture(["which", TOOL]).ok

    def get_installed_version(self) -> str | None:
        return get_installed_version(self.probe)

    # ── State ────────────────────────────────────────────────────

    def save_installation_state(
        self,
        settings: MetanormaSettings,
        installed_version: str | None,
    ) -> None:
        """Persist the state of a successful install.  Failures only warn."""
        state = InstallationState(
            platform=str(settings.platform),
            installation_method=str(settings.installation_method),
            version=settings.version,
            install_path=settings.install_path,
            installed_at=self.config.now(),
            metanorma_version=installed_version,
            checksum=self.calculate_checksum(settings),
        )
        try:
            save_state(state, self.state_file_path)
        except OSError as e:
            logger.warning("Failed to save installation state: %s", e)
            return
        logger.info("Saved installation state to %s", self.state_file_path)

    def load_installation_state(self) -> InstallationState | None:
        return load_state(self.state_file_path)

    def clear_state(self) -> None:
        try:
            if delete_state(self.state_file_path):
                logger.info("Cleared installation state")
        except OSError as e:
            logger.warning("Failed to clear state: %s", e)

    # ── Internals ────────────────────────────────────────────────

    @staticmethod
    def _environment_mismatch(
        settings: MetanormaSettings,
        state: InstallationState,
    ) -> str:
        if state.platform != settings.platform:
            return f"Platform changed: {state.platform} → {settings.platform}"
        if state.installation_method != settings.installation_method:
            return (
                f"Installation method changed: "
                f"{state.installation_method} → {settings.installation_method}"
            )
        current, previous = settings.install_path, state.install_path
        if not (current.startswith(previous) or previous.startswith(current)):
            return f"Install path changed: {previous} → {current}"
        return ""
