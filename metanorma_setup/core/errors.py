"""
Error taxonomy for the setup run.

Every fatal condition raises a ``SetupError`` subclass; the CLI catches
the base class and turns it into an annotated non-zero exit. Conditions
that only degrade the run (unavailable metadata, corrupt state) are
logged and never reach this module.
"""

from __future__ import annotations


class SetupError(Exception):
    """Base class for fatal setup errors."""


class ConfigError(SetupError):
    """Raised when an input or config file value is invalid."""


class UnsupportedConfigurationError(SetupError):
    """Raised when the requested version/platform/method cannot be served.

    ``alternatives`` lists what *is* available, newest first, so the
    message can point the user at something that works.
    """

    def __init__(self, message: str, alternatives: list[str] | None = None) -> None:
        self.alternatives = list(alternatives or [])
        if self.alternatives:
            message = f"{message}\nAvailable: {', '.join(self.alternatives)}"
        super().__init__(message)


class PrerequisiteMissingError(SetupError):
    """Raised when a required tool is missing from the runner."""

    def __init__(self, message: str, remediation: str = "") -> None:
        self.remediation = remediation
        if remediation:
            message = f"{message}\n{remediation}"
        super().__init__(message)


class InstallCommandError(SetupError):
    """Raised when an install command exits non-zero."""

    def __init__(
        self,
        cmd: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip().splitlines()[-5:]
        message = f"Command failed (exit {returncode}): {' '.join(cmd)}"
        if detail:
            message += "\n" + "\n".join(detail)
        super().__init__(message)


class VersionStoreError(SetupError):
    """Raised when a provider is requested from an uninitialised store."""
