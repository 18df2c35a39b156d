"""
Test doubles and sample data.

External effects go through injected capabilities, so tests swap in:

    FakeRunner   records every command, returns scripted results
    FakeProbe    scripted command availability, files and outputs
    FakeHttp     serves YAML / Gemfile bodies from a dict
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from metanorma_setup.adapters.shell.command import CommandResult, CommandRunner
from metanorma_setup.adapters.shell.probe import CommandProbe
from metanorma_setup.core.models.settings import MetanormaSettings, Platform
from metanorma_setup.core.models.versions import PlatformVersionData, VersionPlatform
from metanorma_setup.core.services.versions.fetcher import normalise_document


class FakeRunner(CommandRunner):
    """CommandRunner that never spawns a process."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[list[str]] = []
        self.cwds: list[str | None] = []
        self._scripted: list[tuple[tuple[str, ...], tuple[int, str, str]]] = []

    def script(self, prefix: Sequence[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        """Return this result for commands starting with ``prefix``."""
        self._scripted.insert(0, (tuple(prefix), (returncode, stdout, stderr)))

    @property
    def commands(self) -> list[str]:
        return [" ".join(c) for c in self.calls]

    def ran(self, text: str) -> bool:
        return any(text in c for c in self.commands)

    def _execute(self, cmd, *, cwd, env, timeout):
        self.calls.append(list(cmd))
        self.cwds.append(cwd)
        for prefix, result in self._scripted:
            if tuple(cmd[: len(prefix)]) == prefix:
                return result
        return 0, "", ""


class FakeProbe(CommandProbe):
    """Scripted host."""

    def __init__(
        self,
        commands: Sequence[str] = (),
        files: dict[str, str] | None = None,
        outputs: dict[tuple[str, ...], tuple[int, str]] | None = None,
    ) -> None:
        self.commands = set(commands)
        self.files = dict(files or {})
        self.outputs = dict(outputs or {})
        self.captured: list[list[str]] = []

    def command_exists(self, name: str) -> bool:
        return name in self.commands

    def capture(self, cmd: Sequence[str], timeout: float = 30) -> CommandResult:
        self.captured.append(list(cmd))
        rc, out = self.outputs.get(tuple(cmd), (127, ""))
        return CommandResult(cmd=list(cmd), returncode=rc, stdout=out)

    def file_exists(self, path: str) -> bool:
        return path in self.files

    def read_text(self, path: str) -> str | None:
        return self.files.get(path)


class FakeHttp:
    """``http_fetch`` stand-in: URL → body, records requests."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.requested: list[str] = []

    def __call__(self, url: str, timeout: float = 10) -> str | None:
        self.requested.append(url)
        return self.pages.get(url)


# ── Version data ────────────────────────────────────────────────────

SNAP_DOC = {
    "metadata": {"count": 4, "latest_version": "1.14.3"},
    "versions": [
        {"version": "1.13.9", "revision": 276, "arch": "amd64", "channel": "stable"},
        {"version": "1.13.9", "revision": 277, "arch": "arm64", "channel": "stable"},
        {"version": "1.14.3", "revision": 301, "arch": "amd64", "channel": "stable"},
        {"version": "1.14.4", "revision": 310, "arch": "amd64", "channel": "edge"},
    ],
}

GEMFILE_DOC = {
    "metadata": {"count": 3, "latest_version": "1.14.4"},
    "versions": [
        {"version": "1.7.1", "gemfile_exists": True},
        {"version": "1.14.3", "gemfile_exists": True},
        {"version": "1.14.4", "gemfile_exists": True},
    ],
}

HOMEBREW_DOC = {
    "metadata": {"latest_version": "1.14.3"},
    "versions": [
        {"version": "1.14.3", "tag_name": "v1.14.3", "commit_sha": "abc123"},
    ],
}

CHOCOLATEY_DOC = {
    "metadata": {"latest_version": "1.14.3"},
    "versions": [
        {"version": "1.14.3", "package_name": "metanorma", "is_pre_release": False},
        {"version": "1.14.4", "package_name": "metanorma", "is_pre_release": True},
    ],
}


def _artifact(name, arch, fmt, variant=None):
    filename = f"metanorma-{name}-{arch}{'-' + variant if variant else ''}.{fmt}"
    return {
        "name": name,
        "arch": arch,
        "format": fmt,
        "filename": filename,
        "url": f"https://example.test/{filename}",
        "size": 1536,
        "variant": variant,
    }


BINARY_DOC = {
    "metadata": {"latest_version": "1.14.3"},
    "versions": [
        {
            "version": "1.14.3",
            "tag_name": "v1.14.3",
            "platforms": [
                _artifact("linux", "x86_64", "tgz"),
                _artifact("linux", "x86_64", "tgz", "musl"),
                _artifact("linux", "arm64", "tgz"),
                _artifact("darwin", "arm64", "tgz", "musl"),
                _artifact("windows", "x86_64", "exe"),
            ],
        },
        {
            "version": "1.13.0",
            "tag_name": "v1.13.0",
            "platforms": [_artifact("darwin", "x86_64", "tgz")],
        },
    ],
}

DOCUMENTS = {
    VersionPlatform.SNAP: SNAP_DOC,
    VersionPlatform.GEMFILE: GEMFILE_DOC,
    VersionPlatform.HOMEBREW: HOMEBREW_DOC,
    VersionPlatform.CHOCOLATEY: CHOCOLATEY_DOC,
    VersionPlatform.BINARY: BINARY_DOC,
}


def build_version_data(documents=None) -> PlatformVersionData:
    docs = DOCUMENTS if documents is None else documents
    return PlatformVersionData(**{
        platform.value: normalise_document(platform, docs.get(platform))
        for platform in VersionPlatform
    })


def make_settings(**overrides) -> MetanormaSettings:
    values = {"platform": Platform.LINUX, "installation_method": "native"}
    values.update(overrides)
    return MetanormaSettings(**values)


def read_outputs(env: dict[str, str]) -> dict[str, str]:
    """Parse the heredoc-style GITHUB_OUTPUT file."""
    lines = Path(env["GITHUB_OUTPUT"]).read_text().splitlines()
    outputs: dict[str, str] = {}
    i = 0
    while i < len(lines):
        key, _, delimiter = lines[i].partition("<<")
        value_lines = []
        i += 1
        while lines[i] != delimiter:
            value_lines.append(lines[i])
            i += 1
        outputs[key] = "\n".join(value_lines)
        i += 1
    return outputs
