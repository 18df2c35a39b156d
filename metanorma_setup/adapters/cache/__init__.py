"""Tool cache adapter."""

from metanorma_setup.adapters.cache.tool_cache import ToolCache, get_cache_root  # noqa: F401
