"""
Setup use case — one install run and its post-run cleanup.

    run_setup    idempotency check → installer → verify → state → outputs
    run_cleanup  installer cleanup → state file removal; never raises
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metanorma_setup.core.context import RunContext
from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.models.state import IdempotencyReason
from metanorma_setup.core.services.detection.tool_version import get_installed_version
from metanorma_setup.core.services.idempotency.manager import (
    IdempotencyConfig,
    IdempotencyManager,
)
from metanorma_setup.core.services.installers.base import InstallerKind
from metanorma_setup.core.services.installers.factory import (
    INSTALLER_CLASSES,
    create_installer,
    select_installer_kind,
)
from metanorma_setup.core.services.installers.gem_base import BUNDLE_VERIFY_CMD

logger = logging.getLogger(__name__)

INSTALLER_STATE_KEY = "installer-kind"

_GEM_KINDS = frozenset({
    InstallerKind.GEM_ALPINE,
    InstallerKind.GEM_UBUNTU,
    InstallerKind.GEM_NATIVE,
})


@dataclass
class SetupResult:
    """Outcome of one setup run."""

    version: str
    platform: str
    installation_method: str
    installer: str | None = None
    skipped: bool = False
    reason: str = ""
    metanorma_version: str | None = None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "platform": self.platform,
            "installation-method": self.installation_method,
            "installer": self.installer,
            "idempotent-skipped": self.skipped,
            "reason": self.reason,
            "metanorma-version": self.metanorma_version,
        }


def default_idempotency(settings: MetanormaSettings, context: RunContext) -> IdempotencyManager:
    return IdempotencyManager(
        context.workspace,
        context.probe,
        IdempotencyConfig.from_settings(settings),
    )


def run_setup(
    settings: MetanormaSettings,
    context: RunContext,
    idempotency: IdempotencyManager | None = None,
) -> SetupResult:
    """Install Metanorma unless the same configuration is already in place.

    Raises:
        SetupError: Any fatal configuration, prerequisite or command failure.
    """
    idempotency = idempotency or default_idempotency(settings, context)
    result = SetupResult(
        version=settings.version or "latest",
        platform=str(settings.platform),
        installation_method=str(settings.installation_method),
    )

    check = idempotency.check_and_skip(settings)
    logger.info("Idempotency check: %s (%s)", check.reason, check.details)
    result.reason = str(check.reason)

    if check.should_skip:
        logger.info("Skipping installation: %s", check.details)
        result.skipped = True
        result.metanorma_version = check.installed_version
        publish_outputs(result, context)
        return result

    if check.reason is IdempotencyReason.CONFIGURATION_CHANGED:
        logger.info("Reinstalling: %s", check.details)

    installer = create_installer(
        settings.platform, settings.installation_method, settings, context=context,
    )
    result.installer = installer.name
    context.actions.save_state(INSTALLER_STATE_KEY, installer.kind)

    with context.actions.group(installer.title):
        installer.install(settings)

    cmd = BUNDLE_VERIFY_CMD if installer.kind in _GEM_KINDS else ("metanorma", "--version")
    result.metanorma_version = get_installed_version(context.probe, cmd)
    idempotency.save_installation_state(settings, result.metanorma_version)

    publish_outputs(result, context)
    logger.info("Metanorma installation completed successfully")
    return result


def run_cleanup(
    settings: MetanormaSettings,
    context: RunContext,
    idempotency: IdempotencyManager | None = None,
) -> None:
    """Post-run cleanup.  Every failure is logged as a warning."""
    try:
        stored = context.actions.get_state(INSTALLER_STATE_KEY)
        if stored:
            kind = InstallerKind(stored)
        else:
            kind = select_installer_kind(
                settings.platform, settings.installation_method, settings.container_info,
            )
        INSTALLER_CLASSES[kind](context).cleanup()
    except Exception as e:
        logger.warning("Cleanup failed: %s", e)

    if settings.cleanup_state:
        (idempotency or default_idempotency(settings, context)).clear_state()


def publish_outputs(result: SetupResult, context: RunContext) -> None:
    actions = context.actions
    actions.set_output("version", result.version)
    actions.set_output("platform", result.platform)
    actions.set_output("installation-method", result.installation_method)
    actions.set_output("idempotent-skipped", result.skipped)
    actions.set_output("metanorma-version", result.metanorma_version or "")
