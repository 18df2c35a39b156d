"""
Command probe — read-only, best-effort questions about the host.

Every probe swallows OS and subprocess errors and answers with a falsy
value, so callers never need a try/except around "is X installed?".
Components receive a ``CommandProbe`` instead of reaching for
``shutil``/``subprocess`` themselves; tests pass a scripted fake.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from metanorma_setup.adapters.shell.command import CommandResult

logger = logging.getLogger(__name__)


class CommandProbe(ABC):
    """Capability interface for host probing."""

    @abstractmethod
    def command_exists(self, name: str) -> bool:
        """Whether ``name`` resolves to an executable on PATH."""

    @abstractmethod
    def capture(self, cmd: Sequence[str], timeout: float = 30) -> CommandResult:
        """Run a read-only command and capture its output.  Never raises."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Whether ``path`` exists."""

    @abstractmethod
    def read_text(self, path: str) -> str | None:
        """File contents, or None when unreadable."""


class SystemProbe(CommandProbe):
    """Probe the real host."""

    def command_exists(self, name: str) -> bool:
        # Two independent lookups: shell builtin first, then PATH walk.
        if os.name != "nt" and self._command_v(name):
            return True
        return shutil.which(name) is not None

    def capture(self, cmd: Sequence[str], timeout: float = 30) -> CommandResult:
        try:
            proc = subprocess.run(
                list(cmd), capture_output=True, text=True, timeout=timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("Probe %s failed: %s", " ".join(cmd), exc)
            return CommandResult(cmd=list(cmd), returncode=127, stderr=str(exc))
        return CommandResult(
            cmd=list(cmd),
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

    def file_exists(self, path: str) -> bool:
        try:
            return Path(path).exists()
        except OSError:
            return False

    def read_text(self, path: str) -> str | None:
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    def _command_v(self, name: str) -> bool:
        result = self.capture(["sh", "-c", f'command -v "{name}"'], timeout=10)
        return result.ok and bool(result.stdout.strip())
