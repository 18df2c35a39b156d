"""
Gem-based installation — shared flow for every RubyGems strategy.

Flow::

    verify ruby → dev headers → runtime deps → resolve Gemfile
      → ensure bundler → install gems → extra flavors
      → fontist update → verify

Gemfile resolution is a priority chain; the first step that applies
wins and no later step runs:

    1. custom gemfile input               used verbatim
    2. /setup/Gemfile (container image)   used verbatim
    3. use-prebuilt-locks=false           workspace Gemfile, else synthesized
    4. workspace Gemfile                  used as-is, never overwritten
    5. workspace Gemfile.lock pinning the requested version
    6. upstream pre-built Gemfile + lock  written, replacing any lock
    7. synthesized Gemfile

Subclasses supply the host-specific steps (ruby check, dev headers,
runtime packages).
"""

from __future__ import annotations

import logging
import re
from abc import abstractmethod
from enum import StrEnum
from pathlib import Path

from metanorma_setup.core.errors import PrerequisiteMissingError
from metanorma_setup.core.models.settings import DEFAULT_BUNDLER_VERSION, MetanormaSettings
from metanorma_setup.core.services.detection.tool_version import get_ruby_version
from metanorma_setup.core.services.installers.base import Installer
from metanorma_setup.core.services.installers.flavors import FlavorInstaller
from metanorma_setup.core.services.installers.gemfile_locks import GemfileLocksFetcher
from metanorma_setup.core.services.versions.semver import version_lte

logger = logging.getLogger(__name__)

CONTAINER_GEMFILE = "/setup/Gemfile"
GEM_NAME = "metanorma-cli"

# metanorma-cli up to this version pulls fontist 2.0.3, which fails to load.
FONTIST_FIX_THRESHOLD = "1.7.1"
FONTIST_PIN = "gem 'fontist', '~> 2.1'"

_LOCK_VERSION_RE = re.compile(r"    metanorma-cli \((\d+\.\d+\.\d+)")

BUNDLE_VERIFY_CMD: tuple[str, ...] = ("bundle", "exec", "metanorma", "--version")


class GemfileSource(StrEnum):
    """Which step of the resolution chain produced the Gemfile."""

    CUSTOM = "custom"
    CONTAINER = "container"
    WORKSPACE = "workspace"
    WORKSPACE_LOCK = "workspace-lock"
    PREBUILT = "prebuilt"
    SYNTHESIZED = "synthesized"


def needs_fontist_fix(version: str | None) -> bool:
    """True for metanorma-cli releases that need the fontist pin."""
    if not version or version == "latest":
        return False
    return version_lte(version, FONTIST_FIX_THRESHOLD)


def synthesize_gemfile(version: str | None) -> str:
    """Minimal Gemfile for ``version`` (or the latest release)."""
    lines = ['source "https://rubygems.org"']
    if version and version != "latest":
        if needs_fontist_fix(version):
            logger.info(
                "metanorma-cli %s depends on fontist 2.0.3; pinning fontist ~> 2.1",
                version,
            )
            lines.append(FONTIST_PIN)
        lines.append(f"gem '{GEM_NAME}', '{version}'")
    else:
        lines.append(FONTIST_PIN)
        lines.append(f"gem '{GEM_NAME}'")
    return "\n".join(lines) + "\n"


def lock_version(content: str) -> str | None:
    """metanorma-cli version pinned by a Gemfile.lock."""
    match = _LOCK_VERSION_RE.search(content)
    return match.group(1) if match else None


def _box(title: str, body: list[str]) -> str:
    width = max(len(line) for line in [title, *body]) + 2
    rule = "─" * width
    rows = [f"┌{rule}┐", f"│ {title.ljust(width - 1)}│", f"├{rule}┤"]
    rows += [f"│ {line.ljust(width - 1)}│" for line in body]
    rows.append(f"└{rule}┘")
    return "\n".join(rows)


class GemInstaller(Installer):
    """Shared RubyGems flow; subclasses provide the host-specific steps."""

    title = "Installing Metanorma via RubyGems"

    def __init__(self, context, locks: GemfileLocksFetcher | None = None) -> None:
        super().__init__(context)
        self.locks = locks or GemfileLocksFetcher(context.http_fetch)

    @property
    def workspace(self) -> Path:
        return Path(self.context.workspace)

    def run(self, cmd, *, cwd: str | None = None, **kwargs):
        # bundle resolves ./Gemfile relative to the working directory.
        return super().run(cmd, cwd=cwd or str(self.workspace), **kwargs)

    def install(self, settings: MetanormaSettings) -> None:
        self.verify_ruby()
        self.install_dev_headers(settings)
        self.install_runtime_dependencies(settings)
        gemfile, source = self.resolve_gemfile(settings)
        logger.info("Gemfile: %s (%s)", gemfile, source)
        self.ensure_bundler(settings)
        self.install_gems(settings)
        if settings.extra_flavors:
            FlavorInstaller(self.context).install(
                settings.extra_flavors, settings.github_packages_token,
            )
        if settings.fontist_update:
            self.update_fontist()
        self.verify_installation(BUNDLE_VERIFY_CMD)

    # ── Host-specific steps ──────────────────────────────────────

    @abstractmethod
    def verify_ruby(self) -> None:
        """Raise PrerequisiteMissingError when Ruby is absent."""

    @abstractmethod
    def install_dev_headers(self, settings: MetanormaSettings) -> None:
        """Compilers and headers needed to build native gem extensions."""

    @abstractmethod
    def install_runtime_dependencies(self, settings: MetanormaSettings) -> None:
        """inkscape, a JRE, fontconfig and friends."""

    def require_ruby(self, message: str, remediation: str) -> str:
        version = get_ruby_version(self.context.probe)
        if not version:
            raise PrerequisiteMissingError(message, remediation)
        logger.info("Ruby detected: %s", version)
        return version

    # ── Gemfile resolution ───────────────────────────────────────

    def resolve_gemfile(self, settings: MetanormaSettings) -> tuple[Path, GemfileSource]:
        """Pick the Gemfile to install from.  See the module docstring."""
        if settings.gemfile:
            logger.info("Using custom Gemfile: %s", settings.gemfile)
            self._use_gemfile(settings.gemfile)
            return Path(settings.gemfile), GemfileSource.CUSTOM

        if self.context.probe.file_exists(CONTAINER_GEMFILE):
            logger.info("Using Gemfile from the container image: %s", CONTAINER_GEMFILE)
            self._use_gemfile(CONTAINER_GEMFILE)
            return Path(CONTAINER_GEMFILE), GemfileSource.CONTAINER

        gemfile = self.workspace / "Gemfile"
        lock = self.workspace / "Gemfile.lock"

        if not settings.use_prebuilt_locks:
            logger.info("Pre-built locks disabled; respecting the workspace Gemfile")
            if gemfile.is_file():
                return gemfile, GemfileSource.WORKSPACE
            return self._write_synthesized(gemfile, settings.version), GemfileSource.SYNTHESIZED

        if gemfile.is_file():
            logger.info("Using existing Gemfile from workspace: %s", gemfile)
            return gemfile, GemfileSource.WORKSPACE

        if settings.version and lock.is_file():
            pinned = lock_version(lock.read_text(encoding="utf-8", errors="replace"))
            if pinned == settings.version:
                logger.info("Using existing Gemfile.lock (matches version %s)", pinned)
                return gemfile, GemfileSource.WORKSPACE_LOCK

        if not settings.is_latest and self.locks.is_version_available(settings.version):
            if self._write_prebuilt(settings.version, gemfile, lock):
                return gemfile, GemfileSource.PREBUILT
            return self._write_synthesized(gemfile, settings.version), GemfileSource.SYNTHESIZED

        return self._write_synthesized(gemfile, settings.version), GemfileSource.SYNTHESIZED

    def _use_gemfile(self, path: str) -> None:
        self.context.runner.env["BUNDLE_GEMFILE"] = path

    def _write_synthesized(self, gemfile: Path, version: str | None) -> Path:
        gemfile.parent.mkdir(parents=True, exist_ok=True)
        gemfile.write_text(synthesize_gemfile(version), encoding="utf-8")
        logger.info("Created default Gemfile at: %s", gemfile)
        return gemfile

    def _write_prebuilt(self, version: str, gemfile: Path, lock: Path) -> bool:
        logger.info("Fetching pre-built Gemfile.lock for version %s...", version)
        gemfile_content = self.locks.fetch_gemfile(version)
        lock_content = self.locks.fetch_gemfile_lock(version)
        if not gemfile_content or not lock_content:
            logger.warning(
                "Failed to fetch pre-built files for version %s; "
                "falling back to a generated Gemfile", version,
            )
            return False

        replaced = lock.is_file()
        gemfile.parent.mkdir(parents=True, exist_ok=True)
        gemfile.write_text(gemfile_content, encoding="utf-8")
        lock.write_text(lock_content, encoding="utf-8")

        if replaced:
            message = _box("GEMFILE.LOCK REPLACED WITH PRE-BUILT VERSION", [
                "Your Gemfile.lock has been replaced with a pre-tested lock file",
                "from the metanorma/versions repository.",
                "",
                f"Original: {lock}",
                f"Pre-built: metanorma/versions/v{version}/Gemfile.lock",
                "",
                "Set use-prebuilt-locks: false to keep your own lock file.",
            ])
            logger.warning("\n%s", message)
            self.context.actions.annotate(
                "warning",
                f"Gemfile.lock replaced with the pre-built lock for metanorma-cli {version}",
            )
        else:
            logger.info("\n%s", _box(f"USING PRE-BUILT GEMFILE.LOCK FOR VERSION {version}", [
                "Using pre-tested Gemfile.lock from metanorma/versions",
                "for deterministic, tested dependency resolution.",
            ]))
        return True

    # ── Bundler ──────────────────────────────────────────────────

    def ensure_bundler(self, settings: MetanormaSettings) -> None:
        if self.context.probe.capture(["bundle", "--version"]).ok:
            logger.info("Bundler already installed")
            return
        logger.info("Bundler not found, installing...")
        self.run([
            "gem", "install", "bundler", "-v",
            settings.bundler_version or DEFAULT_BUNDLER_VERSION,
        ])

    def install_gems(self, settings: MetanormaSettings) -> None:
        """``bundle update --except``, ``bundle update`` or ``bundle install``."""
        if settings.bundle_update:
            logger.info("Running bundle update (keeping %s pinned)", GEM_NAME)
            self.run(["bundle", "update", "--except", GEM_NAME])
        elif settings.version == "latest":
            logger.info('version "latest" → running bundle update')
            self.run(["bundle", "update"])
        else:
            logger.info("Running bundle install (respects Gemfile.lock)")
            self.run(["bundle", "install"])

    def update_fontist(self) -> None:
        logger.info("Updating Fontist formulas")
        result = self.run(["bundle", "exec", "fontist", "update"], check=False)
        if not result.ok:
            logger.warning("fontist update failed, continuing...")

    # ── Package manager helper ───────────────────────────────────

    def install_packages(self, manager: list[str], packages: list[str], label: str) -> None:
        logger.info("Installing %s: %s", label, " ".join(packages))
        self.run(manager + packages)
