"""
Logging configuration — root logger setup for the metanorma-setup CLI.

``main.py`` calls ``setup_logging`` once per process; modules only do
``logger = logging.getLogger(__name__)``.

Console level, highest priority first:
    --debug  >  RUNNER_DEBUG=1  >  --verbose  >  --quiet  >  MNSETUP_LOG_LEVEL  >  INFO

``MNSETUP_LOG_FILE`` adds a file handler, at ``MNSETUP_LOG_FILE_LEVEL``
or the console level.
"""

from __future__ import annotations

import logging
import os
import sys

# ── Formats ─────────────────────────────────────────────────────

# Console layout per level.  The runner log stamps every line itself,
# so only DEBUG carries a time.
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(levelname)s %(message)s", None),
    logging.WARNING: ("%(message)s", None),
}

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: dict[str, str] | None = None,
) -> str:
    """Pick the console log level from CLI flags and the environment."""
    env = os.environ if environ is None else environ
    if debug or env.get("RUNNER_DEBUG") == "1":
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env.get("MNSETUP_LOG_LEVEL", "INFO")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler (and optionally a file handler) on the root logger.

    Args:
        level: Console level name; unknown names mean INFO.
        log_file: Path for a full-detail log file.
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _to_level(level)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))

    lowest = console_level
    if log_file:
        file_level = _to_level(log_file_level) if log_file_level else console_level
        root.addHandler(_file_handler(log_file, file_level))
        lowest = min(lowest, file_level)
    root.setLevel(lowest)

    # Write errors on a closed stream are dropped.
    logging.raiseExceptions = False


# ── Handlers ────────────────────────────────────────────────────


def _console_handler(level: int) -> logging.Handler:
    tier = max(t for t in _CONSOLE_FORMATS if t <= level) if level >= logging.DEBUG else logging.DEBUG
    fmt, datefmt = _CONSOLE_FORMATS[tier]
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _to_level(name: str | None) -> int:
    value = logging.getLevelName(name.upper()) if name else logging.INFO
    return value if isinstance(value, int) else logging.INFO
