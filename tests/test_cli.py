"""
Tests for the CLI — invoked through click's CliRunner.

Host-touching pieces (settings loading, platform probes, the version
store) are patched so every command runs against fakes.
"""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from helpers import FakeProbe, build_version_data, make_settings
from metanorma_setup import __version__
from metanorma_setup.core.models.settings import Platform
from metanorma_setup.core.services.versions.store import VersionStore
from metanorma_setup.core.use_cases.setup import SetupResult
from metanorma_setup.main import cli


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


class TestCliBasics:
    def test_help(self, cli_runner):
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("install", "post", "action", "versions", "detect"):
            assert command in result.output

    def test_version(self, cli_runner):
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_install_help_lists_inputs(self, cli_runner):
        result = cli_runner.invoke(cli, ["install", "--help"])
        assert "--snap-channel" in result.output
        assert "--use-prebuilt-locks" in result.output


class TestInstallCommand:
    def test_json_output(self, cli_runner, context):
        result_obj = SetupResult(
            version="1.14.3", platform="linux", installation_method="native",
            installer="snap", metanorma_version="1.14.3",
        )
        with patch("metanorma_setup.main._load", return_value=(make_settings(), context)), \
             patch("metanorma_setup.core.use_cases.setup.run_setup", return_value=result_obj) as run:
            result = cli_runner.invoke(cli, ["-q", "install", "--version", "1.14.3", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["installer"] == "snap"
        assert data["idempotent-skipped"] is False
        assert run.call_args.args[1] is context

    def test_inputs_passed_as_overrides(self, cli_runner, context):
        with patch("metanorma_setup.main._load", return_value=(make_settings(), context)) as load, \
             patch("metanorma_setup.core.use_cases.setup.run_setup",
                   return_value=SetupResult("latest", "linux", "native")):
            cli_runner.invoke(cli, ["install", "--snap-channel", "edge", "--idempotent", "false"])

        overrides = load.call_args.args[1]
        assert overrides["snap_channel"] == "edge"
        assert overrides["idempotent"] == "false"
        assert overrides["version"] is None

    def test_invalid_input_exits_1(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            cli,
            ["install", "--snap-channel", "nightly"],
            env={"GITHUB_WORKSPACE": str(tmp_path), "GITHUB_ACTIONS": None},
        )
        assert result.exit_code == 1
        assert "Invalid snap-channel 'nightly'" in result.output

    def test_install_failure_annotates(self, cli_runner, context, actions_env):
        from metanorma_setup.core.errors import UnsupportedConfigurationError

        actions_env["GITHUB_ACTIONS"] = "true"
        error = UnsupportedConfigurationError("Version 9.9.9 is not available", ["1.14.3"])
        with patch("metanorma_setup.main._load", return_value=(make_settings(), context)), \
             patch("metanorma_setup.core.use_cases.setup.run_setup", side_effect=error):
            result = cli_runner.invoke(cli, ["install"])

        assert result.exit_code == 1
        assert "::error::Version 9.9.9 is not available%0AAvailable: 1.14.3" in result.output


class TestPostCommand:
    def test_load_error_never_fails(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            cli,
            ["post", "--installation-method", "apt"],
            env={"GITHUB_WORKSPACE": str(tmp_path)},
        )
        assert result.exit_code == 0
        assert "Cleanup skipped" in result.output

    def test_runs_cleanup(self, cli_runner, context):
        with patch("metanorma_setup.main._load", return_value=(make_settings(), context)), \
             patch("metanorma_setup.core.use_cases.setup.run_cleanup") as cleanup:
            result = cli_runner.invoke(cli, ["post"])
        assert result.exit_code == 0
        cleanup.assert_called_once()


class TestActionCommand:
    def test_first_call_installs_second_cleans_up(self, cli_runner):
        with patch("metanorma_setup.main._install") as install, \
             patch("metanorma_setup.main._cleanup") as cleanup:
            first = cli_runner.invoke(cli, ["action"], env={"STATE_isPost": None, "GITHUB_STATE": None})
            second = cli_runner.invoke(cli, ["action"], env={"STATE_isPost": "true"})

        assert first.exit_code == 0 and second.exit_code == 0
        install.assert_called_once()
        cleanup.assert_called_once()


class TestVersionsCommand:
    def test_json_listing(self, cli_runner):
        store = VersionStore.from_data(build_version_data())
        with patch.object(VersionStore, "get_instance", return_value=store):
            result = cli_runner.invoke(cli, ["-q", "versions", "--platform", "snap", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data == {
            "platform": "snap",
            "latest": "1.14.3",
            "count": 3,
            "versions": ["1.14.4", "1.14.3", "1.13.9"],
        }

    def test_text_listing_marks_latest(self, cli_runner):
        store = VersionStore.from_data(build_version_data())
        with patch.object(VersionStore, "get_instance", return_value=store):
            result = cli_runner.invoke(cli, ["versions", "--platform", "homebrew"])
        assert "1.14.3 ← latest" in result.output

    def test_unavailable(self, cli_runner):
        with patch.object(VersionStore, "get_instance", return_value=None):
            result = cli_runner.invoke(cli, ["versions"], env={"GITHUB_ACTIONS": None})
        assert result.exit_code == 1
        assert "Version data is unavailable" in result.output


class TestDetectCommand:
    def _patched(self, probe, system=Platform.LINUX):
        return (
            patch("metanorma_setup.adapters.shell.probe.SystemProbe", return_value=probe),
            patch(
                "metanorma_setup.core.services.detection.platform.detect_platform",
                return_value=system,
            ),
            patch("metanorma_setup.core.services.detection.platform.host_arch", return_value="x64"),
        )

    def test_alpine_container(self, cli_runner):
        probe = FakeProbe(files={"/.dockerenv": "", "/etc/alpine-release": "3.19"})
        a, b, c = self._patched(probe)
        with a, b, c:
            result = cli_runner.invoke(cli, ["-q", "detect", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["platform"] == "linux"
        assert data["arch"] == "x64"
        assert data["installation_method"] == "gem"
        assert data["installer"] == "gem_alpine"
        assert data["container"]["distribution"] == "alpine"

    def test_macos_native(self, cli_runner):
        a, b, c = self._patched(FakeProbe(), Platform.MACOS)
        with a, b, c:
            result = cli_runner.invoke(cli, ["detect"])
        assert result.exit_code == 0
        assert "Installer: brew" in result.output

    def test_invalid_method(self, cli_runner):
        a, b, c = self._patched(FakeProbe())
        with a, b, c:
            result = cli_runner.invoke(cli, ["detect", "--method", "apt"], env={"GITHUB_ACTIONS": None})
        assert result.exit_code == 1
