"""
Installation state — the fingerprint persisted after a successful install.

Serialized with camelCase keys to ``.metanorma-setup-state.json`` in the
workspace.  Only the idempotency manager reads or writes it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class InstallationState(BaseModel):
    """What was installed, where, and under which settings checksum."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    platform: str
    installation_method: str
    version: str | None = None
    install_path: str = ""
    installed_at: str = Field(default_factory=_now_iso)
    metanorma_version: str | None = None
    checksum: str


class IdempotencyReason(StrEnum):
    ALREADY_INSTALLED = "already_installed"
    CONFIGURATION_CHANGED = "configuration_changed"
    NOT_INSTALLED = "not_installed"
    ERROR = "error"


class IdempotencyResult(BaseModel):
    """Outcome of one ``check_and_skip`` decision."""

    should_skip: bool
    reason: IdempotencyReason
    details: str = ""
    previous_state: InstallationState | None = None
    installed_version: str | None = None
