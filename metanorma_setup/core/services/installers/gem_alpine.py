"""Gem strategy for Alpine containers (apk, musl toolchain)."""

from __future__ import annotations

import logging

from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.services.installers.base import InstallerKind
from metanorma_setup.core.services.installers.gem_base import GemInstaller

logger = logging.getLogger(__name__)

DEV_PACKAGES = [
    "ruby-dev", "musl-dev", "build-base", "cmake", "pkgconf", "openssl-dev",
    "libxml2-dev", "libxslt-dev", "yaml-dev", "zlib-dev", "curl-dev", "sqlite-dev",
]
RUNTIME_PACKAGES = ["git", "inkscape", "openjdk11-jre", "python3", "fontconfig"]

RUBY_MISSING = "Ruby is not installed but is required for gem-based installation."
RUBY_REMEDIATION = (
    "Alpine Linux images need Ruby installed (e.g. `apk add ruby`, or an image "
    "that ships it).\n"
    'Alternatively, use installation-method: "binary" for a standalone install.'
)


class GemAlpineInstaller(GemInstaller):
    kind = InstallerKind.GEM_ALPINE
    title = "Installing Metanorma via gem (Alpine)"

    def verify_ruby(self) -> None:
        self.require_ruby(RUBY_MISSING, RUBY_REMEDIATION)

    def install_dev_headers(self, settings: MetanormaSettings) -> None:
        self.run(["apk", "update"])
        self.install_packages(["apk", "add"], DEV_PACKAGES, "Ruby development headers")

    def install_runtime_dependencies(self, settings: MetanormaSettings) -> None:
        self.install_packages(["apk", "add"], RUNTIME_PACKAGES, "runtime dependencies")
