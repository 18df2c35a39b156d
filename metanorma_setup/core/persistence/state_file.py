"""
State file persistence — atomic read/write for InstallationState.

Writes are atomic (write to temp file, then rename) so a runner killed
mid-write never leaves a half-written state behind.  Anything that
cannot be read back as a valid state is treated as "no prior state".
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from metanorma_setup.core.models.state import InstallationState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = ".metanorma-setup-state.json"

_REQUIRED_FIELDS = ("platform", "installationMethod", "checksum")
_CHECKSUM_LENGTH = 32


def default_state_path(workspace: Path) -> Path:
    """Get the default state file path for a workspace."""
    return workspace / DEFAULT_STATE_FILE


def validate_state_data(data: Any) -> str:
    """Check the raw JSON shape.  Returns an error string, empty if valid."""
    if not isinstance(data, dict):
        return "State is not a JSON object"
    for field in _REQUIRED_FIELDS:
        if data.get(field) is None:
            return f"Missing required field: {field}"
    checksum = data["checksum"]
    if not isinstance(checksum, str) or len(checksum) != _CHECKSUM_LENGTH:
        return "Invalid checksum format"
    return ""


def load_state(path: Path) -> InstallationState | None:
    """Load installation state from a JSON file.

    Args:
        path: Path to the state JSON file.

    Returns:
        InstallationState, or None if the file is missing, corrupt or
        fails validation.
    """
    if not path.is_file():
        logger.debug("State file does not exist: %s", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s", path, e)
        return None
    except OSError as e:
        logger.warning("Cannot read state file %s: %s", path, e)
        return None

    problem = validate_state_data(data)
    if problem:
        logger.warning("Invalid state file %s: %s", path, problem)
        return None

    try:
        state = InstallationState.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid state file %s: %s", path, e.errors()[:1])
        return None

    logger.debug("Loaded installation state from %s", path)
    return state


def save_state(state: InstallationState, path: Path) -> None:
    """Save installation state to a JSON file (atomic write).

    Args:
        state: The state to save.
        path: Target path for the state file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    data = state.model_dump(mode="json", by_alias=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    # Atomic write: temp file in same directory, then rename
    _fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".metanorma-state_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
        logger.debug("State saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def delete_state(path: Path) -> bool:
    """Remove the state file.  Returns True if a file was deleted."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("State file removed: %s", path)
    return True
