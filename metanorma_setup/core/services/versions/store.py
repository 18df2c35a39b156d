"""
Version store — one access point for every platform's provider.

``VersionStore.get_instance()`` fetches metadata once per process and
caches the outcome, including failure: a store that could not be built
returns ``None`` to every later caller without another network round.
The run context keeps the resolved store and hands it to components
explicitly.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from metanorma_setup.core.errors import VersionStoreError
from metanorma_setup.core.models.versions import PlatformVersionData, VersionPlatform
from metanorma_setup.core.services.versions.fetcher import VersionMetadataFetcher
from metanorma_setup.core.services.versions.providers import (
    PROVIDER_CLASSES,
    BinaryProvider,
    ChocolateyProvider,
    GemfileProvider,
    HomebrewProvider,
    SnapProvider,
    VersionProvider,
)

logger = logging.getLogger(__name__)

_UNSET = object()


class VersionStore:
    """Providers for all platforms, built from one metadata fetch."""

    _instance: Any = _UNSET
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._providers: dict[VersionPlatform, VersionProvider[Any]] = {}
        self._initialized = False

    # ── Process-wide access ──────────────────────────────────────

    @classmethod
    def get_instance(
        cls,
        fetcher: VersionMetadataFetcher | None = None,
    ) -> VersionStore | None:
        """Return the shared store, initialising it on first use.

        Returns:
            The store, or None if version data could not be fetched
            (now or on an earlier call).
        """
        with cls._lock:
            if cls._instance is _UNSET:
                store = cls()
                cls._instance = store if store.initialize(fetcher) else None
            elif cls._instance is None:
                logger.debug("Version store previously failed to initialise")
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance (including a cached failure)."""
        with cls._lock:
            cls._instance = _UNSET

    # ── Initialisation ───────────────────────────────────────────

    def initialize(self, fetcher: VersionMetadataFetcher | None = None) -> bool:
        """Fetch metadata and build providers.  Returns success."""
        if self._initialized:
            return True
        logger.info("Initializing version store...")
        data = (fetcher or VersionMetadataFetcher()).fetch_all()
        if data is None:
            logger.warning(
                "Version data unavailable; continuing without version pinning"
            )
            return False
        self.load(data)
        logger.info("Version store initialized")
        return True

    def load(self, data: PlatformVersionData) -> None:
        """Build providers from already-fetched data."""
        self._providers = {
            platform: PROVIDER_CLASSES[platform](data.table(platform))
            for platform in VersionPlatform
        }
        self._initialized = True

    @classmethod
    def from_data(cls, data: PlatformVersionData) -> VersionStore:
        store = cls()
        store.load(data)
        return store

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ── Providers ────────────────────────────────────────────────

    def get_provider(self, platform: VersionPlatform | str) -> VersionProvider[Any]:
        """Provider for one platform.

        Raises:
            VersionStoreError: If the store is not initialised or the
                platform is unknown.
        """
        if not self._initialized:
            raise VersionStoreError("Version store not initialized")
        try:
            return self._providers[VersionPlatform(platform)]
        except (KeyError, ValueError):
            raise VersionStoreError(f"Unknown version platform: {platform}") from None

    def get_snap_provider(self) -> SnapProvider:
        return self.get_provider(VersionPlatform.SNAP)  # type: ignore[return-value]

    def get_gemfile_provider(self) -> GemfileProvider:
        return self.get_provider(VersionPlatform.GEMFILE)  # type: ignore[return-value]

    def get_homebrew_provider(self) -> HomebrewProvider:
        return self.get_provider(VersionPlatform.HOMEBREW)  # type: ignore[return-value]

    def get_chocolatey_provider(self) -> ChocolateyProvider:
        return self.get_provider(VersionPlatform.CHOCOLATEY)  # type: ignore[return-value]

    def get_binary_provider(self) -> BinaryProvider:
        return self.get_provider(VersionPlatform.BINARY)  # type: ignore[return-value]

    def cleanup(self) -> None:
        """Drop providers; the store must be re-initialised to be used again."""
        self._providers = {}
        self._initialized = False
