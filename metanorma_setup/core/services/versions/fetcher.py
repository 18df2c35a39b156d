"""
Version metadata fetcher — per-platform YAML documents over HTTP.

Documents live at ``{base}/{platform}/versions.yaml`` in the
metanorma/versions repository.  The five GETs run concurrently with an
independent timeout each.  One bad document only empties that
platform's table; the fetch as a whole is reported as unavailable
(``None``) only when nothing could be reached at all.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Callable
from typing import Any

import yaml

from metanorma_setup.adapters.network.http import http_get as _default_http_get
from metanorma_setup.core.models.versions import (
    PlatformVersionData,
    VersionPlatform,
    VersionTable,
)

logger = logging.getLogger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com/metanorma/versions/main/data"
FETCH_TIMEOUT = 30

HttpGet = Callable[[str, float], tuple[int, str]]


class VersionMetadataFetcher:
    """Fetch and normalise the version tables of every platform."""

    def __init__(
        self,
        http_get: HttpGet | None = None,
        base_url: str = RAW_BASE_URL,
        timeout: float = FETCH_TIMEOUT,
    ) -> None:
        self._http_get = http_get or _default_http_get
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url_for(self, platform: VersionPlatform) -> str:
        return f"{self.base_url}/{platform.value}/versions.yaml"

    def fetch_all(self) -> PlatformVersionData | None:
        """Fetch all five documents.

        Returns:
            Normalised tables, or None when version data is unavailable.
        """
        logger.info("Fetching version data from %s", self.base_url)
        try:
            documents, unreachable = self._fetch_documents()
        except Exception as exc:
            logger.warning("Failed to fetch version data: %s", exc)
            return None

        if unreachable == len(VersionPlatform):
            logger.warning("Version data unavailable: no platform document reachable")
            return None

        data = PlatformVersionData(
            **{
                platform.value: self._normalise(platform, documents.get(platform))
                for platform in VersionPlatform
            }
        )
        self._log_summary(data)
        return data

    # ── Internals ─────────────────────────────────────────────────

    def _fetch_documents(self) -> tuple[dict[VersionPlatform, Any], int]:
        documents: dict[VersionPlatform, Any] = {}
        unreachable = 0
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=len(VersionPlatform),
        ) as pool:
            futures = {
                pool.submit(self._fetch_one, platform): platform
                for platform in VersionPlatform
            }
            for future in concurrent.futures.as_completed(futures):
                platform = futures[future]
                document, reachable = future.result()
                documents[platform] = document
                if not reachable:
                    unreachable += 1
        return documents, unreachable

    def _fetch_one(self, platform: VersionPlatform) -> tuple[Any, bool]:
        """Return ``(parsed document or None, reachable)``."""
        url = self.url_for(platform)
        logger.debug("Fetching %s", url)
        try:
            status, body = self._http_get(url, self.timeout)
        except OSError as exc:
            logger.warning("Could not fetch %s: %s", url, exc)
            return None, False

        if status != 200:
            logger.warning("HTTP %s for %s", status, url)
            return None, True

        try:
            return yaml.safe_load(body), True
        except yaml.YAMLError as exc:
            logger.warning("Failed to parse YAML from %s: %s", url, exc)
            return None, True

    def _normalise(self, platform: VersionPlatform, document: Any) -> VersionTable:
        try:
            return normalise_document(platform, document)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring malformed %s version data: %s", platform.value, exc)
            return VersionTable()

    def _log_summary(self, data: PlatformVersionData) -> None:
        logger.info("Version data loaded:")
        for platform in VersionPlatform:
            table = data.table(platform)
            logger.info(
                "  %s: %d versions (latest: %s)",
                platform.value.capitalize(), table.count, table.latest or "-",
            )


# ── Normalisation (pure) ─────────────────────────────────────────


def normalise_document(platform: VersionPlatform, document: Any) -> VersionTable:
    """Turn one parsed YAML document into a ``VersionTable``.

    Missing or malformed documents produce an empty table.
    """
    if not isinstance(document, dict) or not isinstance(document.get("versions"), list):
        return VersionTable()

    metadata = document.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}

    extra = _EXTRA_FIELDS[platform]
    versions = [
        {**_common_fields(raw), **extra(raw)}
        for raw in document["versions"]
        if isinstance(raw, dict) and raw.get("version")
    ]

    count = (
        _as_count(metadata.get("count"))
        or _as_count(metadata.get("local_count")) + _as_count(metadata.get("remote_count"))
        or len(versions)
    )
    return VersionTable(
        count=count,
        latest=str(metadata.get("latest_version") or ""),
        versions=versions,
    )


def _as_count(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _common_fields(raw: dict[str, Any]) -> dict[str, Any]:
    version = str(raw["version"])
    return {
        "version": version,
        "published_at": _as_text(raw.get("published_at")),
        "parsed_at": _as_text(raw.get("parsed_at")),
        "display_name": str(raw.get("display_name") or version),
    }


def _as_text(value: Any) -> str | None:
    # YAML turns bare timestamps into datetime objects
    if value is None or value == "":
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _snap_fields(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "revision": raw.get("revision"),
        "channel": raw.get("channel") or "stable",
        "architecture": raw.get("arch") or "amd64",
    }


def _gemfile_fields(raw: dict[str, Any]) -> dict[str, Any]:
    exists = raw.get("gemfile_exists")
    return {"gemfile_exists": True if exists is None else bool(exists)}


def _homebrew_fields(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "tag_name": raw.get("tag_name") or "",
        "commit_sha": raw.get("commit_sha") or "",
    }


def _chocolatey_fields(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "package_name": raw.get("package_name") or "metanorma",
        "is_pre_release": bool(raw.get("is_pre_release") or False),
    }


def _binary_fields(raw: dict[str, Any]) -> dict[str, Any]:
    platforms = []
    listed = raw.get("platforms")
    for p in listed if isinstance(listed, list) else []:
        if not isinstance(p, dict):
            continue
        platforms.append({
            "os_name": p.get("name"),
            "arch": p.get("arch"),
            "format": p.get("format"),
            "filename": p.get("filename") or "",
            "url": p.get("url") or "",
            "size": p.get("size") or 0,
            "variant": p.get("variant") or None,
        })
    return {
        "tag_name": raw.get("tag_name") or "",
        "html_url": raw.get("html_url") or "",
        "platforms": platforms,
    }


_EXTRA_FIELDS: dict[VersionPlatform, Callable[[dict[str, Any]], dict[str, Any]]] = {
    VersionPlatform.SNAP: _snap_fields,
    VersionPlatform.GEMFILE: _gemfile_fields,
    VersionPlatform.HOMEBREW: _homebrew_fields,
    VersionPlatform.CHOCOLATEY: _chocolatey_fields,
    VersionPlatform.BINARY: _binary_fields,
}
