"""
Chocolatey strategy (Windows native).

The metanorma package pulls in ``git.install``, whose own installer is
known to exit 1 even when everything is in place.  That failure is
tolerated only when its text appears in the output AND ``metanorma``
is on PATH afterwards; any other non-zero exit is fatal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from metanorma_setup.adapters.shell.command import BenignFailure
from metanorma_setup.core.errors import InstallCommandError, UnsupportedConfigurationError
from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.services.installers.base import Installer, InstallerKind
from metanorma_setup.core.services.versions.semver import newest_first

logger = logging.getLogger(__name__)

PYTHON_VERSION = "3.9.13"

GIT_INSTALL_EXIT = BenignFailure(
    pattern=r" - git\.install \(exited 1\)",
    reason="git.install reports exit 1 although git is installed",
)


class ChocoInstaller(Installer):
    kind = InstallerKind.CHOCO
    title = "Installing Metanorma via Chocolatey"

    def __init__(
        self,
        context,
        benign_failures: Sequence[BenignFailure] = (GIT_INSTALL_EXIT,),
    ) -> None:
        super().__init__(context)
        self.benign_failures = tuple(benign_failures)

    def install(self, settings: MetanormaSettings) -> None:
        self._install_python()
        if not settings.is_latest:
            self._check_version(settings.version, settings.choco_prerelease)

        cmd = self.build_command(settings)
        result = self.run(cmd, check=False)
        if result.ok:
            logger.info("Metanorma installed successfully via Chocolatey")
            return

        benign = next((b for b in self.benign_failures if b.matches(result.output)), None)
        if benign and self.command_exists("metanorma"):
            logger.warning(
                "choco exited %d (%s); metanorma is on PATH, continuing",
                result.returncode, benign.reason,
            )
            return
        raise InstallCommandError(result.cmd, result.returncode, result.stdout, result.stderr)

    @staticmethod
    def build_command(settings: MetanormaSettings) -> list[str]:
        cmd = ["choco", "install", "metanorma", "--yes", "--no-progress"]
        if settings.choco_prerelease:
            cmd.append("--pre")
        if not settings.is_latest:
            version = settings.version
            if settings.choco_prerelease:
                version = f"{version}-pre"
            cmd += ["--version", version]
        return cmd

    # ── Internals ────────────────────────────────────────────────

    def _install_python(self) -> None:
        result = self.run(
            ["choco", "install", "python3", "--version", PYTHON_VERSION,
             "--yes", "--no-progress"],
            check=False,
        )
        if not result.ok:
            logger.warning("Python %s install failed; continuing", PYTHON_VERSION)

    def _check_version(self, version: str, prerelease: bool) -> None:
        store = self.context.version_store
        if store is None:
            return
        provider = store.get_chocolatey_provider()
        if not len(provider):
            return
        if not provider.is_available(version):
            raise UnsupportedConfigurationError(
                f"Metanorma {version} is not available via Chocolatey",
                newest_first(provider.get_available_versions(), limit=10),
            )
        if provider.is_pre_release(version) != prerelease:
            logger.warning(
                "choco-prerelease=%s but %s is %sa pre-release",
                str(prerelease).lower(), version,
                "" if provider.is_pre_release(version) else "not ",
            )
