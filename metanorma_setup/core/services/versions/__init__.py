"""
Version resolution — fetch, normalise and look up per-platform versions.

    fetcher    remote YAML documents → ``PlatformVersionData``
    providers  immutable per-platform tables with typed lookups
    store      one-per-process access point, failure cached
"""

from metanorma_setup.core.services.versions.fetcher import (  # noqa: F401
    RAW_BASE_URL,
    VersionMetadataFetcher,
    normalise_document,
)
from metanorma_setup.core.services.versions.providers import (  # noqa: F401
    BinaryProvider,
    ChocolateyProvider,
    GemfileProvider,
    HomebrewProvider,
    SnapProvider,
    VersionProvider,
)
from metanorma_setup.core.services.versions.store import VersionStore  # noqa: F401
