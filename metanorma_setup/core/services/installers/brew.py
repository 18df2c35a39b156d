"""
Homebrew strategy (macOS native).

Versions are addressed through the tap's git tags: the tap is checked
out at ``v<version>`` before ``brew install`` runs.
"""

from __future__ import annotations

import logging

from metanorma_setup.core.errors import UnsupportedConfigurationError
from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.services.installers.base import Installer, InstallerKind
from metanorma_setup.core.services.versions.semver import newest_first

logger = logging.getLogger(__name__)

TAP = "metanorma/metanorma"
FORMULA = "metanorma/metanorma/metanorma"
LOCAL_TAP = "actions-mn/setup"
DEFAULT_TAP_DIR = "/opt/homebrew/Library/Taps/metanorma/homebrew-metanorma"


class BrewInstaller(Installer):
    kind = InstallerKind.BREW
    title = "Installing Metanorma via Homebrew"

    def install(self, settings: MetanormaSettings) -> None:
        if settings.version and settings.version != "latest":
            self._check_version(settings.version)
            self.run(["brew", "tap", TAP], check=False)
            tap_dir = self._tap_dir()
            logger.info("Checking out v%s in %s", settings.version, tap_dir)
            self.run(["git", "checkout", f"v{settings.version}"], cwd=tap_dir, check=False)
            self.run(["brew", "update", TAP], check=False)
            logger.info("Installing Metanorma version %s...", settings.version)
        else:
            logger.info("Installing Metanorma latest...")

        self.run(["brew", "install", FORMULA])
        logger.info("Metanorma installed successfully via Homebrew")

    def cleanup(self) -> None:
        try:
            self.run(["brew", "untap", LOCAL_TAP], check=False)
        except Exception as e:
            logger.warning("Homebrew cleanup failed: %s", e)

    # ── Internals ────────────────────────────────────────────────

    def _check_version(self, version: str) -> None:
        store = self.context.version_store
        if store is None:
            return
        provider = store.get_homebrew_provider()
        if not len(provider):
            return
        if not provider.is_available(version):
            raise UnsupportedConfigurationError(
                f"Metanorma {version} is not available via Homebrew",
                newest_first(provider.get_available_versions(), limit=10),
            )
        logger.info(
            "Homebrew formula for %s: tag %s, commit %s",
            version,
            provider.get_tag_name(version) or "-",
            provider.get_commit_sha(version) or "-",
        )

    def _tap_dir(self) -> str:
        result = self.context.probe.capture(["brew", "--repository", TAP])
        path = result.stdout.strip()
        return path if result.ok and path else DEFAULT_TAP_DIR
