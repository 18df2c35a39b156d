"""
GitHub Actions adapter — workflow commands and environment files.

Outputs, PATH additions, exported variables and saved state are written
to the files GitHub names in ``GITHUB_OUTPUT``, ``GITHUB_PATH``,
``GITHUB_ENV`` and ``GITHUB_STATE``.  Outside a workflow run (no such
files) the values are only logged, so the CLI works on a laptop too.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class GitHubActions:
    """Thin wrapper over the runner's file commands."""

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    @property
    def active(self) -> bool:
        """True inside a GitHub Actions job."""
        return self.environ.get("GITHUB_ACTIONS") == "true"

    # ── Outputs / state ──────────────────────────────────────────

    def set_output(self, name: str, value: object) -> None:
        text = _stringify(value)
        if not self._append_key_value("GITHUB_OUTPUT", name, text):
            logger.info("output %s=%s", name, text)

    def save_state(self, name: str, value: object) -> None:
        text = _stringify(value)
        if not self._append_key_value("GITHUB_STATE", name, text):
            logger.debug("state %s=%s", name, text)
        # Visible to later reads within the same process as well
        self.environ[f"STATE_{name}"] = text

    def get_state(self, name: str) -> str:
        return self.environ.get(f"STATE_{name}", "")

    # ── Environment ──────────────────────────────────────────────

    def add_path(self, directory: str | Path) -> None:
        """Prepend ``directory`` to PATH for this process and later steps."""
        directory = str(directory)
        path_file = self.environ.get("GITHUB_PATH")
        if path_file:
            with open(path_file, "a", encoding="utf-8") as fh:
                fh.write(f"{directory}\n")
        current = self.environ.get("PATH", "")
        self.environ["PATH"] = f"{directory}{os.pathsep}{current}" if current else directory
        logger.info("Added %s to PATH", directory)

    def export_variable(self, name: str, value: str) -> None:
        """Set an environment variable for this process and later steps."""
        self.environ[name] = value
        self._append_key_value("GITHUB_ENV", name, value)
        logger.debug("Exported %s", name)

    # ── Log decorations ──────────────────────────────────────────

    def annotate(self, level: str, message: str) -> None:
        """Emit a ``::warning::`` / ``::error::`` / ``::notice::`` annotation."""
        if self.active:
            escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
            sys.stdout.write(f"::{level}::{escaped}\n")
            sys.stdout.flush()

    @contextmanager
    def group(self, title: str) -> Iterator[None]:
        """Fold the enclosed log lines under ``title`` in the job log."""
        if self.active:
            sys.stdout.write(f"::group::{title}\n")
            sys.stdout.flush()
        else:
            logger.info("── %s ──", title)
        try:
            yield
        finally:
            if self.active:
                sys.stdout.write("::endgroup::\n")
                sys.stdout.flush()

    # ── Internals ────────────────────────────────────────────────

    def _append_key_value(self, env_name: str, key: str, value: str) -> bool:
        target = self.environ.get(env_name)
        if not target:
            return False
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(target, "a", encoding="utf-8") as fh:
            fh.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")
        return True


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
