"""
Configuration loader — named inputs into a validated MetanormaSettings.

Inputs are merged from three sources, later ones winning:

    1. a YAML file (``--config`` or ``.metanorma-setup.yml`` in the workspace)
    2. GitHub Actions step inputs (``INPUT_<NAME>`` environment variables)
    3. explicit CLI options

Every value is a string at this point, exactly as the action runner
hands them over; ``load_settings`` parses and validates them and adds
the detected host facts (platform, container, resolved method).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from metanorma_setup.adapters.shell.probe import CommandProbe, SystemProbe
from metanorma_setup.core.errors import ConfigError
from metanorma_setup.core.models.settings import (
    DEFAULT_BUNDLER_VERSION,
    MetanormaSettings,
    Platform,
    SnapChannel,
)
from metanorma_setup.core.services.detection.container import (
    detect_container,
    get_installation_method,
)
from metanorma_setup.core.services.detection.platform import detect_platform

logger = logging.getLogger(__name__)

CONFIG_FILE = ".metanorma-setup.yml"

INPUT_NAMES: tuple[str, ...] = (
    "version",
    "snap-channel",
    "choco-prerelease",
    "installation-method",
    "bundler-version",
    "gemfile",
    "fontist-update",
    "bundle-update",
    "use-prebuilt-locks",
    "extra-flavors",
    "github-packages-token",
    "idempotent",
    "reinstall-on-config-change",
    "cleanup-state",
)

# Historical spellings still accepted
INPUT_ALIASES: dict[str, str] = {
    "choco-prerelase": "choco-prerelease",
}


def _canonical(name: str) -> str:
    name = name.strip().lower().replace("_", "-")
    return INPUT_ALIASES.get(name, name)


def find_config_file(workspace: Path) -> Path | None:
    candidate = workspace / CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_config_file(path: Path) -> dict[str, str]:
    """Read inputs from a YAML file.

    The file is a flat mapping of input names, optionally wrapped in a
    ``setup:`` key.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading setup config from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    section = data.get("setup", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'setup' to be a mapping in {path}")

    inputs: dict[str, str] = {}
    for key, value in section.items():
        name = _canonical(str(key))
        if name not in INPUT_NAMES:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            continue
        inputs[name] = _to_text(value)
    return inputs


def read_env_inputs(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Step inputs the runner exported as ``INPUT_<NAME>``."""
    env = os.environ if environ is None else environ
    inputs: dict[str, str] = {}
    for key, value in env.items():
        if not key.startswith("INPUT_"):
            continue
        name = _canonical(key[len("INPUT_"):])
        if name in INPUT_NAMES and value.strip():
            inputs[name] = value.strip()
    return inputs


def collect_inputs(
    *,
    config_path: Path | None = None,
    workspace: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Merge file, environment and CLI inputs (later wins)."""
    inputs: dict[str, str] = {}

    path = config_path or (find_config_file(workspace) if workspace else None)
    if path is not None:
        inputs.update(load_config_file(path))

    inputs.update(read_env_inputs(environ))

    for key, value in (overrides or {}).items():
        if value is not None:
            inputs[_canonical(key)] = _to_text(value)
    return inputs


def load_settings(
    inputs: Mapping[str, str],
    *,
    environ: Mapping[str, str] | None = None,
    probe: CommandProbe | None = None,
    platform: Platform | None = None,
) -> MetanormaSettings:
    """Validate inputs and combine them with detected host facts.

    Raises:
        ConfigError: On any invalid input value.
    """
    env = os.environ if environ is None else environ
    probe = probe or SystemProbe()
    values = {_canonical(k): v for k, v in inputs.items()}

    def text(name: str) -> str:
        return str(values.get(name) or "").strip()

    snap_channel = text("snap-channel") or SnapChannel.STABLE.value
    if snap_channel not in {c.value for c in SnapChannel}:
        raise ConfigError(
            f"Invalid snap-channel '{snap_channel}'. "
            f"Valid values: {', '.join(c.value for c in SnapChannel)}"
        )

    host = platform or detect_platform()
    method, reason = get_installation_method(
        text("installation-method") or "auto", probe, platform_name=str(host),
    )
    logger.info("Installation method: %s (%s)", method, reason)

    container_info = None
    if host is Platform.LINUX:
        container_info = detect_container(probe, platform_name=str(host))

    try:
        settings = MetanormaSettings(
            version=text("version") or None,
            snap_channel=SnapChannel(snap_channel),
            choco_prerelease=parse_bool("choco-prerelease", text("choco-prerelease"), False),
            platform=host,
            install_path=env.get("GITHUB_WORKSPACE") or "/",
            installation_method=method,
            container_info=container_info,
            bundler_version=text("bundler-version") or DEFAULT_BUNDLER_VERSION,
            gemfile=text("gemfile") or None,
            fontist_update=parse_bool("fontist-update", text("fontist-update"), True),
            bundle_update=parse_bool("bundle-update", text("bundle-update"), False),
            use_prebuilt_locks=parse_bool(
                "use-prebuilt-locks", text("use-prebuilt-locks"), True,
            ),
            extra_flavors=text("extra-flavors").split(),
            github_packages_token=text("github-packages-token") or None,
            idempotent=parse_bool("idempotent", text("idempotent"), True),
            reinstall_on_config_change=parse_bool(
                "reinstall-on-config-change", text("reinstall-on-config-change"), True,
            ),
            cleanup_state=parse_bool("cleanup-state", text("cleanup-state"), True),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug("Settings: %s", settings)
    return settings


def parse_bool(name: str, value: str, default: bool) -> bool:
    """``true`` / ``false`` in any case; empty means ``default``.

    Raises:
        ConfigError: On any other value.
    """
    if not value:
        return default
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ConfigError(f"Invalid boolean for {name}: '{value}' (expected true or false)")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return "" if value is None else str(value)
