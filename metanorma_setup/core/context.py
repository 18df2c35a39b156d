"""
Run context — everything one setup run shares, passed explicitly.

Built ONCE by the entry point and threaded through to the use cases,
installers and the idempotency manager:

    - CLI:    main.py  → RunContext.create(workspace=..., is_post=...)
    - Tests:  conftest → RunContext(workspace=tmp_path, runner=FakeRunner(), ...)

The version store is resolved lazily on first use and then kept for
the rest of the run, so a run with no version lookups never touches
the network.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from metanorma_setup.adapters.actions.github import GitHubActions
from metanorma_setup.adapters.cache.tool_cache import ToolCache
from metanorma_setup.adapters.network.http import fetch_text
from metanorma_setup.adapters.shell.command import CommandRunner
from metanorma_setup.adapters.shell.probe import CommandProbe, SystemProbe
from metanorma_setup.core.services.versions.fetcher import VersionMetadataFetcher
from metanorma_setup.core.services.versions.store import VersionStore

logger = logging.getLogger(__name__)

_UNRESOLVED = object()


def default_workspace(environ: dict[str, str] | None = None) -> Path:
    """``GITHUB_WORKSPACE`` or the current directory."""
    env = os.environ if environ is None else environ
    return Path(env.get("GITHUB_WORKSPACE") or Path.cwd())


@dataclass
class RunContext:
    """Collaborators of one run."""

    workspace: Path
    runner: CommandRunner = field(default_factory=CommandRunner)
    probe: CommandProbe = field(default_factory=SystemProbe)
    actions: GitHubActions = field(default_factory=GitHubActions)
    tool_cache: ToolCache = field(default_factory=ToolCache)
    http_fetch: Callable[[str, float], str | None] = fetch_text
    fetcher: VersionMetadataFetcher | None = None
    is_post: bool = False
    _version_store: object = field(default=_UNRESOLVED, init=False, repr=False)

    @classmethod
    def create(
        cls,
        *,
        workspace: Path | None = None,
        is_post: bool = False,
        environ: dict[str, str] | None = None,
    ) -> RunContext:
        """Context wired to the real host."""
        return cls(
            workspace=workspace or default_workspace(environ),
            actions=GitHubActions(environ),
            is_post=is_post,
        )

    @property
    def version_store(self) -> VersionStore | None:
        """Version store for this run, or None when metadata is unavailable."""
        if self._version_store is _UNRESOLVED:
            self._version_store = VersionStore.get_instance(self.fetcher)
        return self._version_store  # type: ignore[return-value]

    def use_version_store(self, store: VersionStore | None) -> None:
        """Pin the store (tests, or a store built elsewhere)."""
        self._version_store = store

    def cleanup(self) -> None:
        """Release run-scoped resources."""
        if isinstance(self._version_store, VersionStore):
            self._version_store.cleanup()
        self._version_store = _UNRESOLVED
