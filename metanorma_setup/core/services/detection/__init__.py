"""
Detection — read-only probes of the host.

These functions READ system state but never WRITE.
"""

from metanorma_setup.core.services.detection.container import (  # noqa: F401
    detect_container,
    detect_container_type,
    detect_distribution,
    get_installation_method,
)
from metanorma_setup.core.services.detection.platform import (  # noqa: F401
    BinaryTarget,
    detect_binary_target,
    detect_platform,
    host_arch,
    snap_arch,
)
from metanorma_setup.core.services.detection.tool_version import (  # noqa: F401
    get_installed_version,
    get_ruby_version,
    parse_metanorma_version,
)
