"""
Semantic version comparison (pure).

Versions here are plain ``MAJOR.MINOR.PATCH`` strings, optionally with a
leading ``v`` or a pre-release suffix; only the numeric triple is
compared.  No I/O.
"""

from __future__ import annotations

import re

_NUMERIC = re.compile(r"\d+")


def parse_semver(version: str) -> tuple[int, int, int]:
    """Parse ``"v1.7.1"`` into ``(1, 7, 1)``.

    Missing parts count as zero; parts with trailing text (``"3-pre"``)
    keep their leading digits.

    Raises:
        ValueError: If the string has no numeric component at all.
    """
    core = version.strip().lstrip("vV").split("+", 1)[0]
    parts: list[int] = []
    for piece in core.split(".")[:3]:
        match = _NUMERIC.match(piece)
        if not match:
            break
        parts.append(int(match.group()))
    if not parts:
        raise ValueError(f"Not a semantic version: {version!r}")
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def version_lte(version: str, threshold: str) -> bool:
    """True when ``version`` <= ``threshold``.  Unparseable → False."""
    try:
        return parse_semver(version) <= parse_semver(threshold)
    except ValueError:
        return False


def sort_key(version: str) -> tuple[int, int, int]:
    """Sort key that pushes unparseable versions to the bottom."""
    try:
        return parse_semver(version)
    except ValueError:
        return (-1, -1, -1)


def highest(versions: list[str]) -> str:
    """Highest version by semantic order, or ``""`` for an empty list."""
    if not versions:
        return ""
    return max(versions, key=sort_key)


def newest_first(versions: list[str], limit: int | None = None) -> list[str]:
    """Versions sorted newest first, optionally truncated."""
    ordered = sorted(versions, key=sort_key, reverse=True)
    return ordered[:limit] if limit is not None else ordered
