"""
Snap strategy (Linux native).

The snap store has no per-version channels, only revision numbers, so a
requested version is translated to a revision for the host architecture
through the snap version table.  A revision-pinned install is then held
so ``snapd`` does not refresh it behind our back; this trades automatic
updates for a deterministic version.

When no revision can be resolved the version string is used as the
channel name instead (degraded, logged as a warning).
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from metanorma_setup.core.models.settings import MetanormaSettings, SnapChannel
from metanorma_setup.core.services.detection.platform import host_arch, snap_arch
from metanorma_setup.core.services.installers.base import Installer, InstallerKind

logger = logging.getLogger(__name__)

SNAP_NAME = "metanorma"


class SnapInstaller(Installer):
    kind = InstallerKind.SNAP
    title = "Installing Metanorma via Snap"

    def __init__(self, context, arch: Callable[[], str] = host_arch) -> None:
        super().__init__(context)
        self._arch = arch

    def install(self, settings: MetanormaSettings) -> None:
        cmd = ["sudo", "snap", "install", SNAP_NAME]

        if settings.is_latest:
            if settings.snap_channel != SnapChannel.STABLE:
                cmd += [f"--channel={settings.snap_channel}", "--classic"]
            self.run(cmd)
            logger.info("Metanorma installed successfully via Snap")
            return

        version = settings.version
        arch = snap_arch(self._arch())
        revision = self.resolve_revision(version, arch)

        if revision is None:
            logger.warning(
                "No snap revision found for %s (%s); falling back to channel %s",
                version, arch, version,
            )
            self.run(cmd + [f"--channel={version}", "--classic"])
            logger.info("Metanorma installed successfully via Snap")
            return

        logger.info("Installing Metanorma %s (revision %d, %s)", version, revision, arch)
        self.run(cmd + [f"--revision={revision}", "--classic"])
        self.hold()
        logger.info("Metanorma installed successfully via Snap")

    def resolve_revision(self, version: str, arch: str) -> int | None:
        """Revision of ``version`` for ``arch``, or None if unknown."""
        store = self.context.version_store
        if store is None:
            return None
        provider = store.get_snap_provider()
        revision = provider.get_revision(version, arch)
        if revision is not None:
            channel = provider.get_channel(version, arch)
            logger.debug("Snap %s/%s: revision %d, channel %s", version, arch, revision, channel)
        return revision

    def hold(self) -> None:
        """Stop automatic refreshes of the pinned revision."""
        result = self.run(["sudo", "snap", "refresh", SNAP_NAME, "--hold"], check=False)
        if result.ok:
            logger.info("Held snap %s at the installed revision", SNAP_NAME)
        else:
            logger.warning(
                "Could not hold snap %s; automatic refreshes may replace it: %s",
                SNAP_NAME, result.output.strip(),
            )
