"""Network adapter — urllib-based GETs and downloads."""

from metanorma_setup.adapters.network.http import (  # noqa: F401
    download,
    fetch_text,
    http_get,
)
