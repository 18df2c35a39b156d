"""Shell adapters — command execution and read-only host probes."""

from metanorma_setup.adapters.shell.command import (  # noqa: F401
    BenignFailure,
    CommandResult,
    CommandRunner,
    mask_secrets,
)
from metanorma_setup.adapters.shell.probe import CommandProbe, SystemProbe  # noqa: F401
