"""
Tool version checking — run ``--version`` commands and parse the output.

Read-only.  Patterns are tried in order; the first capture wins.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from metanorma_setup.adapters.shell.probe import CommandProbe

METANORMA_VERSION_CMD: tuple[str, ...] = ("metanorma", "--version")

_METANORMA_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"metanorma\s+version\s+v?(\d+\.\d+\.\d+)", re.IGNORECASE),
    re.compile(r"^v?(\d+\.\d+\.\d+)$", re.MULTILINE),
)

_RUBY_PATTERN = re.compile(r"ruby\s+(\d+\.\d+\.\d+)")


def parse_metanorma_version(output: str) -> str | None:
    """Extract the metanorma version from ``metanorma --version`` output."""
    for pattern in _METANORMA_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return None


def get_installed_version(
    probe: CommandProbe,
    cmd: Sequence[str] = METANORMA_VERSION_CMD,
) -> str | None:
    """Version reported by the installed tool, or None."""
    result = probe.capture(list(cmd))
    if not result.ok:
        return None
    return parse_metanorma_version(result.stdout)


def get_ruby_version(probe: CommandProbe) -> str | None:
    result = probe.capture(["ruby", "--version"])
    if not result.ok:
        return None
    match = _RUBY_PATTERN.search(result.stdout)
    return match.group(1) if match else result.stdout.strip() or None
