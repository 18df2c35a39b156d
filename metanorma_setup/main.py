"""
metanorma-setup — CLI entrypoint.

Usage:
    metanorma-setup install --version 1.14.3
    metanorma-setup post
    metanorma-setup action          # GitHub Actions main + post entry
    metanorma-setup versions --platform snap
    metanorma-setup detect --json
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable
from pathlib import Path

import click

from metanorma_setup import __version__
from metanorma_setup.core.errors import SetupError
from metanorma_setup.core.observability.logging_config import resolve_level, setup_logging

POST_STATE_KEY = "isPost"


def _input_options(func: Callable) -> Callable:
    """One ``--<input>`` option per action input, all optional strings."""
    from metanorma_setup.core.config.loader import INPUT_NAMES

    for name in reversed(INPUT_NAMES):
        func = click.option(
            f"--{name}",
            name.replace("-", "_"),
            default=None,
            help=f"Action input '{name}'.",
        )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="metanorma-setup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to a YAML file with setup inputs (default: .metanorma-setup.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Install Metanorma on a CI runner."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("MNSETUP_LOG_FILE"),
        log_file_level=os.environ.get("MNSETUP_LOG_FILE_LEVEL"),
    )


# ── Helpers ─────────────────────────────────────────────────────────


def _fail(error: Exception, actions=None) -> None:
    from metanorma_setup.adapters.actions.github import GitHubActions

    click.secho(f"❌ {error}", fg="red", err=True)
    (actions or GitHubActions()).annotate("error", str(error))
    sys.exit(1)


def _load(ctx: click.Context, overrides: dict | None = None):
    """Settings and run context for this invocation."""
    from metanorma_setup.core.config.loader import collect_inputs, load_settings
    from metanorma_setup.core.context import RunContext

    context = RunContext.create(is_post=ctx.obj.get("is_post", False))
    inputs = collect_inputs(
        config_path=ctx.obj.get("config_path"),
        workspace=context.workspace,
        overrides=overrides,
    )
    settings = load_settings(inputs, probe=context.probe)
    return settings, context


def _install(ctx: click.Context, overrides: dict, as_json: bool) -> None:
    from metanorma_setup.core.use_cases.setup import run_setup

    context = None
    try:
        settings, context = _load(ctx, overrides)
        result = run_setup(settings, context)
    except SetupError as e:
        _fail(e, context.actions if context else None)
        return
    finally:
        if context is not None:
            context.cleanup()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    if ctx.obj.get("quiet"):
        return
    if result.skipped:
        click.secho(
            f"✓ Metanorma {result.metanorma_version or ''} already installed, skipped",
            fg="green",
        )
    else:
        click.secho(
            f"✅ Metanorma {result.metanorma_version or result.version} installed "
            f"({result.platform}, {result.installation_method}, {result.installer})",
            fg="green",
            bold=True,
        )


def _cleanup(ctx: click.Context, overrides: dict | None = None) -> None:
    from metanorma_setup.core.use_cases.setup import run_cleanup

    ctx.obj["is_post"] = True
    try:
        settings, context = _load(ctx, overrides)
    except SetupError as e:
        # The post phase must never fail the job.
        click.secho(f"⚠️  Cleanup skipped: {e}", fg="yellow", err=True)
        return
    try:
        run_cleanup(settings, context)
    finally:
        context.cleanup()


# ── Commands ────────────────────────────────────────────────────────


@cli.command()
@_input_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, as_json: bool, **inputs: str | None) -> None:
    """Install Metanorma (main phase)."""
    _install(ctx, inputs, as_json)


@cli.command()
@_input_options
@click.pass_context
def post(ctx: click.Context, **inputs: str | None) -> None:
    """Clean up after an install (post phase)."""
    _cleanup(ctx, inputs)


@cli.command()
@click.pass_context
def action(ctx: click.Context) -> None:
    """GitHub Actions entry: install on the first call, clean up on the second."""
    from metanorma_setup.adapters.actions.github import GitHubActions

    actions = GitHubActions()
    if actions.get_state(POST_STATE_KEY):
        _cleanup(ctx)
        return
    actions.save_state(POST_STATE_KEY, "true")
    _install(ctx, {}, as_json=False)


@cli.command()
@click.option(
    "--platform",
    "platform_name",
    type=click.Choice(["snap", "gemfile", "homebrew", "chocolatey", "binary"]),
    default="gemfile",
    show_default=True,
    help="Version table to list.",
)
@click.option("--limit", type=int, default=20, show_default=True, help="Newest N versions.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def versions(platform_name: str, limit: int, as_json: bool) -> None:
    """List versions known to the release metadata."""
    from metanorma_setup.core.errors import UnsupportedConfigurationError
    from metanorma_setup.core.services.versions.semver import newest_first
    from metanorma_setup.core.services.versions.store import VersionStore

    store = VersionStore.get_instance()
    if store is None:
        _fail(UnsupportedConfigurationError("Version data is unavailable"))
        return

    provider = store.get_provider(platform_name)
    listed = newest_first(provider.get_available_versions(), limit=limit)
    latest = provider.get_latest()

    if as_json:
        click.echo(json.dumps({
            "platform": platform_name,
            "latest": latest,
            "count": len(provider),
            "versions": listed,
        }, indent=2))
        return

    click.secho(f"\n📦 {platform_name}: {len(provider)} versions", fg="cyan", bold=True)
    for v in listed:
        marker = " ← latest" if v == latest else ""
        click.echo(f"     • {v}{marker}")
    click.echo()


@cli.command()
@click.option("--method", default="auto", show_default=True, help="Requested installation method.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(method: str, as_json: bool) -> None:
    """Show the detected host and the installer that would be used."""
    from metanorma_setup.adapters.shell.probe import SystemProbe
    from metanorma_setup.core.models.settings import Platform
    from metanorma_setup.core.services.detection.container import (
        detect_container,
        get_installation_method,
    )
    from metanorma_setup.core.services.detection.platform import detect_platform, host_arch
    from metanorma_setup.core.services.installers.factory import select_installer_kind

    probe = SystemProbe()
    try:
        platform = detect_platform()
        resolved, reason = get_installation_method(method, probe, platform_name=str(platform))
    except SetupError as e:
        _fail(e)
        return
    info = detect_container(probe, platform_name=str(platform)) if platform is Platform.LINUX else None
    kind = select_installer_kind(platform, resolved, info)

    data = {
        "platform": str(platform),
        "arch": host_arch(),
        "container": info.model_dump(mode="json") if info else None,
        "installation_method": str(resolved),
        "reason": reason,
        "installer": str(kind),
    }
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"\n🖥  {data['platform']} ({data['arch']})", fg="cyan", bold=True)
    if info and info.is_container:
        click.echo(f"   Container: {info.type} / {info.distribution}")
    click.echo(f"   Method:    {resolved}  ({reason})")
    click.echo(f"   Installer: {kind}")
    click.echo()


if __name__ == "__main__":
    cli()
