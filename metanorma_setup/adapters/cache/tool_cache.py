"""
Tool cache — versioned directories for downloaded tools.

Layout mirrors the hosted runners' tool cache so a runner-provided
``RUNNER_TOOL_CACHE`` can be shared::

    <root>/<tool>/<version>/<arch>/           files
    <root>/<tool>/<version>/<arch>.complete   marker written last

A directory without its marker is a half-finished copy and is ignored.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_CACHE_DIR = Path.home() / ".cache" / "metanorma-setup" / "tools"


def get_cache_root(environ: dict[str, str] | None = None) -> Path:
    """Return the tool cache root (``RUNNER_TOOL_CACHE`` when set)."""
    env = os.environ if environ is None else environ
    return Path(env.get("RUNNER_TOOL_CACHE") or _DEFAULT_CACHE_DIR)


class ToolCache:
    """Find and store tool directories keyed by (name, version, arch)."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or get_cache_root()

    def path_for(self, name: str, version: str, arch: str) -> Path:
        return self.root / name / version.lstrip("v") / arch

    def find(self, name: str, version: str, arch: str) -> Path | None:
        """Cached directory, or None on a miss."""
        path = self.path_for(name, version, arch)
        marker = path.with_name(f"{path.name}.complete")
        if path.is_dir() and marker.is_file():
            logger.debug("Tool cache hit: %s", path)
            return path
        logger.debug("Tool cache miss: %s", path)
        return None

    def cache_dir(self, source: Path, name: str, version: str, arch: str) -> Path:
        """Copy ``source`` into the cache and mark it complete."""
        dest = self.path_for(name, version, arch)
        marker = dest.with_name(f"{dest.name}.complete")
        marker.unlink(missing_ok=True)
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, dest, symlinks=True)
        marker.write_text("", encoding="utf-8")
        logger.info("Cached %s %s (%s) at %s", name, version, arch, dest)
        return dest
