"""
Shell command adapter — the SINGLE PLACE where install commands run.

Installers never call ``subprocess`` directly; they go through a
``CommandRunner`` so tests can substitute a recorder and so logging,
secret masking and failure policy live in one place.

Failure policy: a non-zero exit raises ``InstallCommandError`` when
``check=True``, unless the captured output matches one of the
``BenignFailure`` patterns passed in ``allow``.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from metanorma_setup.core.errors import InstallCommandError

logger = logging.getLogger(__name__)

_MASK = "***"


class CommandResult(BaseModel):
    """Outcome of one command."""

    cmd: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0
    allowed_failure: str | None = None  # reason, when a benign pattern matched

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass(frozen=True)
class BenignFailure:
    """A known-harmless failure, recognised by its output text."""

    pattern: str
    reason: str

    def matches(self, output: str) -> bool:
        return re.search(self.pattern, output) is not None


def mask_secrets(cmd: Sequence[str], secrets: Iterable[str] = ()) -> str:
    """Render ``cmd`` for logs with every secret replaced."""
    text = " ".join(cmd)
    for secret in secrets:
        if secret:
            text = text.replace(secret, _MASK)
    return text


class CommandRunner:
    """Run commands with captured output."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        # Extra environment shared by every command of the run
        # (BUNDLE_GEMFILE and friends).
        self.env: dict[str, str] = dict(env or {})

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        check: bool = True,
        allow: Iterable[BenignFailure] = (),
        timeout: float | None = None,
        secrets: Iterable[str] = (),
    ) -> CommandResult:
        """Run ``cmd`` and return its result.

        Args:
            cmd: Command list.
            cwd: Working directory.
            env: Extra environment for this command only.
            check: Raise on non-zero exit.
            allow: Benign failure patterns tolerated when ``check`` is set.
            timeout: Seconds; no limit by default.
            secrets: Strings to mask in logs and errors.

        Raises:
            InstallCommandError: On a non-zero exit with ``check=True``
                and no matching benign pattern.
        """
        secrets = [s for s in secrets if s]
        display = mask_secrets(cmd, secrets)
        logger.info("$ %s", display)

        start = time.monotonic()
        returncode, stdout, stderr = self._execute(
            list(cmd), cwd=cwd, env={**self.env, **(env or {})}, timeout=timeout,
        )
        elapsed_ms = int((time.monotonic() - start) * 1000)

        result = CommandResult(
            cmd=[mask_secrets([arg], secrets) for arg in cmd],
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            elapsed_ms=elapsed_ms,
        )
        self._log_output(result, secrets)
        return self._apply_policy(result, check=check, allow=allow)

    # ── Internals ────────────────────────────────────────────────

    def _execute(
        self,
        cmd: list[str],
        *,
        cwd: str | None,
        env: dict[str, str],
        timeout: float | None,
    ) -> tuple[int, str, str]:
        """Spawn the process.  Returns ``(returncode, stdout, stderr)``."""
        full_env = os.environ.copy()
        full_env.update(env)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=full_env,
                cwd=cwd,
            )
        except FileNotFoundError:
            return 127, "", f"{cmd[0]}: command not found"
        except subprocess.TimeoutExpired:
            return 124, "", f"Command timed out after {timeout}s"
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    def _log_output(self, result: CommandResult, secrets: list[str]) -> None:
        for line in result.output.splitlines():
            logger.debug("  %s", mask_secrets([line], secrets))
        logger.debug("exit %d (%dms)", result.returncode, result.elapsed_ms)

    @staticmethod
    def _apply_policy(
        result: CommandResult,
        *,
        check: bool,
        allow: Iterable[BenignFailure],
    ) -> CommandResult:
        if result.ok or not check:
            return result
        for benign in allow:
            if benign.matches(result.output):
                logger.warning(
                    "Ignoring exit %d of %s: %s",
                    result.returncode, " ".join(result.cmd), benign.reason,
                )
                return result.model_copy(update={"allowed_failure": benign.reason})
        raise InstallCommandError(result.cmd, result.returncode, result.stdout, result.stderr)
