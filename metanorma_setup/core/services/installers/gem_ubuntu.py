"""Gem strategy for Debian/Ubuntu containers (apt-get, run as root)."""

from __future__ import annotations

import logging

from metanorma_setup.core.models.settings import MetanormaSettings
from metanorma_setup.core.services.installers.base import InstallerKind
from metanorma_setup.core.services.installers.gem_base import GemInstaller

logger = logging.getLogger(__name__)

DEV_PACKAGES = [
    "ruby-dev", "build-essential", "cmake", "pkg-config", "libssl-dev",
    "libxml2-dev", "libxslt1-dev", "zlib1g-dev", "libyaml-dev",
    "libcurl4-openssl-dev", "libsqlite3-dev",
]
RUNTIME_PACKAGES = ["git", "inkscape", "default-jre", "python3", "fontconfig"]

RUBY_MISSING = "Ruby is not installed but is required for gem-based installation."
RUBY_REMEDIATION = (
    "Please add this step BEFORE the setup action:\n"
    "  - uses: ruby/setup-ruby@v1\n"
    "    with:\n"
    '      ruby-version: "3.4"\n'
    "      bundler-cache: true\n\n"
    'Alternatively, use installation-method: "native" for a standalone install.'
)


class GemUbuntuInstaller(GemInstaller):
    kind = InstallerKind.GEM_UBUNTU
    title = "Installing Metanorma via gem (Ubuntu/Debian)"

    def verify_ruby(self) -> None:
        self.require_ruby(RUBY_MISSING, RUBY_REMEDIATION)

    def install_dev_headers(self, settings: MetanormaSettings) -> None:
        self.run(["apt-get", "update"])
        self.install_packages(
            ["apt-get", "install", "-y"], DEV_PACKAGES, "Ruby development headers",
        )

    def install_runtime_dependencies(self, settings: MetanormaSettings) -> None:
        self.install_packages(
            ["apt-get", "install", "-y"], RUNTIME_PACKAGES, "runtime dependencies",
        )
