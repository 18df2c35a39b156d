"""Skip re-installs when the same configuration is already in place."""

from metanorma_setup.core.services.idempotency.manager import (
    IdempotencyConfig,
    IdempotencyManager,
    calculate_checksum,
    checksum_fields,
)

__all__ = [
    "IdempotencyConfig",
    "IdempotencyManager",
    "calculate_checksum",
    "checksum_fields",
]
