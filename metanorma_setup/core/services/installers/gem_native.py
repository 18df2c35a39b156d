"""
Gem strategy on a regular runner (no container).

Ruby is expected to be provisioned by an earlier step.  System packages
are installed with whichever package manager is actually on PATH, tried
in a fixed order, since the distribution name alone is not reliable.
"""

from __future__ import annotations

import logging

from metanorma_setup.core.models.settings import MetanormaSettings, Platform
from metanorma_setup.core.services.installers.base import InstallerKind
from metanorma_setup.core.services.installers.gem_base import GemInstaller
from metanorma_setup.core.services.installers.gem_ubuntu import RUBY_MISSING, RUBY_REMEDIATION

logger = logging.getLogger(__name__)

# (binary, install command, build packages)
BUILD_MANAGERS: list[tuple[str, list[str], list[str]]] = [
    ("apt-get", ["sudo", "apt-get", "install", "-y"], [
        "build-essential", "cmake", "pkg-config", "libssl-dev", "libxml2-dev",
        "libxslt1-dev", "zlib1g-dev", "libyaml-dev", "libcurl4-openssl-dev",
        "libsqlite3-dev",
    ]),
    ("apk", ["sudo", "apk", "add"], [
        "build-base", "cmake", "openssl-dev", "libxml2-dev", "libxslt-dev",
        "yaml-dev", "zlib-dev", "curl-dev", "sqlite-dev",
    ]),
]

# (binary, install command, runtime packages)
RUNTIME_MANAGERS: list[tuple[str, list[str], list[str]]] = [
    ("apt-get", ["sudo", "apt-get", "install", "-y"],
     ["git", "inkscape", "default-jre", "fontconfig"]),
    ("yum", ["sudo", "yum", "install", "-y"],
     ["git", "inkscape", "java-11-openjdk", "fontconfig"]),
    ("dnf", ["sudo", "dnf", "install", "-y"],
     ["git", "inkscape", "java-11-openjdk", "fontconfig"]),
    ("apk", ["apk", "add"],
     ["git", "inkscape", "openjdk11-jre", "fontconfig"]),
]


class NativeGemInstaller(GemInstaller):
    kind = InstallerKind.GEM_NATIVE
    title = "Installing Metanorma via gem"

    def verify_ruby(self) -> None:
        self.require_ruby(RUBY_MISSING, RUBY_REMEDIATION)

    def install_dev_headers(self, settings: MetanormaSettings) -> None:
        if settings.platform is not Platform.LINUX:
            logger.debug("Skipping Ruby dev headers on %s", settings.platform)
            return
        for binary, command, packages in BUILD_MANAGERS:
            if self.command_exists(binary):
                if binary == "apt-get":
                    self.run(["sudo", "apt-get", "update"])
                self.install_packages(command, packages, "build dependencies")
                return
        logger.warning("Could not detect package manager. Native gems may fail to build.")

    def install_runtime_dependencies(self, settings: MetanormaSettings) -> None:
        if settings.platform is Platform.MACOS:
            self._macos_dependencies()
        elif settings.platform is Platform.LINUX:
            self._linux_dependencies()
        elif settings.platform is Platform.WINDOWS:
            self._windows_dependencies()

    def _macos_dependencies(self) -> None:
        if not self.command_exists("inkscape"):
            logger.info("Installing Inkscape via Homebrew...")
            self.run(["brew", "install", "inkscape"])
        if not self.command_exists("python3"):
            logger.warning("Python3 not found. Some Metanorma features may not work.")

    def _linux_dependencies(self) -> None:
        for binary, command, packages in RUNTIME_MANAGERS:
            if self.command_exists(binary):
                self.install_packages(command, packages, f"runtime dependencies via {binary}")
                return
        logger.warning(
            "Could not detect package manager. "
            "Please install Git, Inkscape, a JRE and fontconfig manually."
        )

    def _windows_dependencies(self) -> None:
        if self.command_exists("choco"):
            logger.info("Installing dependencies via Chocolatey...")
            self.run(["choco", "install", "inkscape", "-y", "--no-progress"])
        else:
            logger.warning("Chocolatey not found. Please install Inkscape manually.")
