"""
Binary strategy — standalone packed-mn executables.

Works on every platform and needs no Ruby.  The release table decides
which artifact fits the host; the executable is cached in the tool
cache keyed by (name, version, arch), so a later run with the same
version skips the download entirely.

Downloads and extraction directories are recorded in the action state
so the post phase (a separate process) can remove them.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

from metanorma_setup.adapters.network.http import download
from metanorma_setup.core.errors import SetupError, UnsupportedConfigurationError
from metanorma_setup.core.models.settings import MetanormaSettings, Platform
from metanorma_setup.core.models.versions import BinaryArtifact, BinaryFormat
from metanorma_setup.core.services.installers.base import Installer, InstallerKind
from metanorma_setup.core.services.versions.semver import newest_first

logger = logging.getLogger(__name__)

TOOL_NAME = "metanorma"
TEMP_STATE_KEY = "binaryTempFiles"


def format_size(size: int) -> str:
    """Human-readable byte count (``1.5 MB``)."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def binary_name(platform: Platform) -> str:
    return "metanorma.exe" if platform is Platform.WINDOWS else "metanorma"


def find_binary(root: Path, name: str) -> Path | None:
    """Executable at ``root`` or one directory below it."""
    candidate = root / name
    if candidate.is_file():
        return candidate
    for entry in sorted(root.iterdir()):
        if entry.is_dir() and (entry / name).is_file():
            return entry / name
    return None


class BinaryInstaller(Installer):
    kind = InstallerKind.BINARY
    title = "Installing Metanorma via binary (packed-mn)"

    def __init__(
        self,
        context,
        downloader: Callable[[str, Path], Path] = download,
    ) -> None:
        super().__init__(context)
        self._download = downloader
        self.temp_paths: list[Path] = []

    def install(self, settings: MetanormaSettings) -> None:
        version, artifact = self.select_artifact(settings)
        logger.info("Selected binary: %s (%s)", artifact.filename, format_size(artifact.size))

        name = binary_name(settings.platform)
        cached = self.context.tool_cache.find(TOOL_NAME, version, artifact.arch)
        if cached:
            logger.info("Found cached binary at: %s", cached)
            self._activate(cached, name)
            logger.info("Metanorma installed successfully from cache")
            return

        archive = self._fetch(artifact)
        extracted = self.extract(archive, artifact.format)
        binary = find_binary(extracted, name)
        if binary is None:
            raise SetupError(f"Binary not found after extraction: {extracted / name}")
        if settings.platform is not Platform.WINDOWS:
            binary.chmod(0o755)

        cached = self.context.tool_cache.cache_dir(binary.parent, TOOL_NAME, version, artifact.arch)
        self._activate(cached, name)
        logger.info("Metanorma %s installed successfully via binary", version)

    def select_artifact(self, settings: MetanormaSettings) -> tuple[str, BinaryArtifact]:
        """Resolve the version and the artifact for this host.

        Raises:
            UnsupportedConfigurationError: No version data, unknown
                version, or no artifact for the host OS.
        """
        store = self.context.version_store
        if store is None:
            raise UnsupportedConfigurationError(
                "Binary installation needs release metadata, but version data is unavailable"
            )
        provider = store.get_binary_provider()

        version = provider.get_latest() if settings.is_latest else settings.version
        if not version:
            raise UnsupportedConfigurationError(
                f"Could not resolve version: {settings.version or 'latest'}"
            )
        if not provider.is_available(version):
            raise UnsupportedConfigurationError(
                f"Version {version} is not available as binary",
                newest_first(provider.get_available_versions(), limit=10),
            )

        logger.info("Installing Metanorma %s via packed-mn binary", version)
        artifact = provider.get_best_match(version)
        if artifact is None:
            raise UnsupportedConfigurationError(
                f"No binary of {version} is available for this platform",
                [p.label for p in provider.get_platforms(version)],
            )
        return version, artifact

    def extract(self, archive: Path, fmt: BinaryFormat) -> Path:
        """Unpack ``archive`` into a fresh directory and return it."""
        if fmt is BinaryFormat.EXE:
            target = Path(os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()) / "metanorma-binary"
            target.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(archive, target / "metanorma.exe")
        else:
            target = Path(tempfile.mkdtemp(prefix="metanorma-extract_"))
            if fmt is BinaryFormat.ZIP:
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(target)
            else:
                with tarfile.open(archive) as tf:
                    tf.extractall(target, filter="data")
        self._track(target)
        logger.debug("Extracted to: %s", target)
        return target

    def cleanup(self) -> None:
        paths = self.temp_paths or self._tracked_from_state()
        for path in paths:
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                elif path.exists():
                    path.unlink()
                logger.debug("Cleaned up: %s", path)
            except OSError as e:
                logger.warning("Failed to clean up %s: %s", path, e)
        self.temp_paths = []

    # ── Internals ────────────────────────────────────────────────

    def _fetch(self, artifact: BinaryArtifact) -> Path:
        logger.info("Downloading from: %s", artifact.url)
        dest = Path(tempfile.mkdtemp(prefix="metanorma-download_")) / artifact.filename
        self._track(dest.parent)
        try:
            return self._download(artifact.url, dest)
        except OSError as e:
            raise SetupError(f"Download of {artifact.url} failed: {e}") from e

    def _activate(self, directory: Path, name: str) -> None:
        self.context.actions.add_path(directory)
        logger.info("Added to PATH: %s", directory)
        self.verify_installation([str(directory / name), "--version"])

    def _track(self, path: Path) -> None:
        self.temp_paths.append(path)
        self.context.actions.save_state(
            TEMP_STATE_KEY, json.dumps([str(p) for p in self.temp_paths]),
        )

    def _tracked_from_state(self) -> list[Path]:
        raw = self.context.actions.get_state(TEMP_STATE_KEY)
        if not raw:
            return []
        try:
            return [Path(p) for p in json.loads(raw)]
        except (json.JSONDecodeError, TypeError):
            logger.debug("Ignoring malformed %s state", TEMP_STATE_KEY)
            return []
