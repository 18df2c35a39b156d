"""
Pre-built Gemfile / Gemfile.lock pairs published per metanorma release.

Existence is probed by fetching the file itself: the index can lag
behind the files, so it is only used for listings.  Every failure
(network, status, parse) is answered with ``None`` or ``[]``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import yaml

from metanorma_setup.adapters.network.http import fetch_text

logger = logging.getLogger(__name__)

GEMFILE_BASE_URL = "https://raw.githubusercontent.com/metanorma/versions/main/data/gemfile"
FETCH_TIMEOUT = 10

_LOCK_NAMES = ("Gemfile.lock.archived", "Gemfile.lock")


class GemfileLocksFetcher:
    """Fetch pre-built dependency manifests for one metanorma version."""

    def __init__(
        self,
        http_fetch: Callable[[str, float], str | None] = fetch_text,
        base_url: str = GEMFILE_BASE_URL,
        timeout: float = FETCH_TIMEOUT,
    ) -> None:
        self._fetch = http_fetch
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._index: dict[str, Any] | None = None

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/versions.yaml"

    def fetch_gemfile(self, version: str) -> str | None:
        return self._get(f"{self.base_url}/v{version}/Gemfile")

    def fetch_gemfile_lock(self, version: str) -> str | None:
        """The archived lock when present, else the plain one."""
        for name in _LOCK_NAMES:
            content = self._get(f"{self.base_url}/v{version}/{name}")
            if content:
                return content
        return None

    def is_version_available(self, version: str) -> bool:
        available = self.fetch_gemfile(version) is not None
        logger.debug("Version %s available in pre-built locks: %s", version, available)
        return available

    def fetch_index(self) -> dict[str, Any] | None:
        """Parsed ``versions.yaml``; cached for the fetcher's lifetime."""
        if self._index is not None:
            return self._index
        content = self._get(self.index_url)
        if not content:
            return None
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            logger.debug("Failed to parse %s: %s", self.index_url, e)
            return None
        if not isinstance(data, dict):
            return None
        self._index = data
        return data

    def get_latest_version(self) -> str | None:
        index = self.fetch_index()
        if not index:
            return None
        metadata = index.get("metadata") or {}
        latest = metadata.get("latest_version")
        return str(latest) if latest else None

    def get_available_versions(self) -> list[str]:
        index = self.fetch_index()
        if not index:
            return []
        return [
            str(entry["version"])
            for entry in index.get("versions") or []
            if isinstance(entry, dict) and entry.get("version")
        ]

    def _get(self, url: str) -> str | None:
        logger.debug("Fetching %s", url)
        try:
            return self._fetch(url, self.timeout)
        except OSError as e:
            logger.debug("Fetch error for %s: %s", url, e)
            return None
