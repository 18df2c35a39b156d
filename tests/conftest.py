"""
Shared test fixtures.

Every fixture wires fakes from ``helpers`` into a ``RunContext`` so no
test spawns a process or touches the network.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from helpers import FakeHttp, FakeProbe, FakeRunner, build_version_data
from metanorma_setup.adapters.actions.github import GitHubActions
from metanorma_setup.adapters.cache.tool_cache import ToolCache
from metanorma_setup.core.context import RunContext
from metanorma_setup.core.services.versions.store import VersionStore


@pytest.fixture(autouse=True)
def _reset_version_store():
    VersionStore.reset()
    yield
    VersionStore.reset()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def version_store() -> VersionStore:
    return VersionStore.from_data(build_version_data())


@pytest.fixture
def actions_env(tmp_path: Path) -> dict[str, str]:
    """Environment with GitHub file commands pointed at temp files."""
    files = tmp_path / "gh"
    files.mkdir()
    env = {"PATH": "/usr/bin"}
    for name in ("GITHUB_OUTPUT", "GITHUB_STATE", "GITHUB_PATH", "GITHUB_ENV"):
        target = files / name.lower()
        target.touch()
        env[name] = str(target)
    return env


@pytest.fixture
def context(tmp_path: Path, runner, probe, http, version_store, actions_env) -> RunContext:
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    ctx = RunContext(
        workspace=workspace,
        runner=runner,
        probe=probe,
        actions=GitHubActions(actions_env),
        tool_cache=ToolCache(tmp_path / "toolcache"),
        http_fetch=http,
    )
    ctx.use_version_store(version_store)
    return ctx
