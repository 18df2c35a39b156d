"""
HTTP adapter — plain GETs and file downloads over urllib.

Metadata fetches go through ``http_get`` (status + body, raises on
network failure) or ``fetch_text`` (body or None, never raises).
Release artifacts are streamed to disk by ``download``.
"""

from __future__ import annotations

import logging
import time
import urllib.error
import urllib.request
from pathlib import Path

from metanorma_setup import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"metanorma-setup/{__version__}"
_CHUNK = 64 * 1024


def http_get(url: str, timeout: float = 30) -> tuple[int, str]:
    """GET ``url`` and return ``(status, body)``.

    Non-2xx responses return their status with an empty body.

    Raises:
        OSError: On DNS, connection or timeout failures.
    """
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    start = time.monotonic()
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = resp.read().decode("utf-8", errors="replace")
            status = resp.getcode()
    except urllib.error.HTTPError as exc:
        logger.debug("GET %s → HTTP %s", url, exc.code)
        return exc.code, ""
    elapsed = int((time.monotonic() - start) * 1000)
    logger.debug("GET %s → %s (%d bytes, %dms)", url, status, len(body), elapsed)
    return status, body


def fetch_text(url: str, timeout: float = 10) -> str | None:
    """GET ``url`` and return the body on HTTP 200, else None."""
    try:
        status, body = http_get(url, timeout=timeout)
    except Exception as exc:
        logger.debug("GET %s failed: %s", url, exc)
        return None
    return body if status == 200 else None


def download(url: str, dest: Path, timeout: float = 300) -> Path:
    """Stream ``url`` into ``dest``.

    Raises:
        OSError: If the request or the write fails.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    logger.info("Downloading %s", url)
    start = time.monotonic()
    with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as fh:
        for chunk in iter(lambda: resp.read(_CHUNK), b""):
            fh.write(chunk)
    elapsed = int((time.monotonic() - start) * 1000)
    logger.debug("Downloaded %s (%d bytes, %dms)", dest, dest.stat().st_size, elapsed)
    return dest
