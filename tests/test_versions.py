"""
Tests for version resolution — semver helpers, fetcher, providers, store.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
import yaml

from helpers import BINARY_DOC, DOCUMENTS, SNAP_DOC, build_version_data
from metanorma_setup.core.errors import VersionStoreError
from metanorma_setup.core.models.versions import VersionPlatform, VersionTable
from metanorma_setup.core.services.detection.platform import BinaryTarget
from metanorma_setup.core.services.versions.fetcher import (
    RAW_BASE_URL,
    VersionMetadataFetcher,
    normalise_document,
)
from metanorma_setup.core.services.versions.providers import (
    BinaryProvider,
    ChocolateyProvider,
    GemfileProvider,
    HomebrewProvider,
    SnapProvider,
)
from metanorma_setup.core.services.versions.semver import (
    highest,
    newest_first,
    parse_semver,
    version_lte,
)
from metanorma_setup.core.services.versions.store import VersionStore


# ═══════════════════════════════════════════════════════════════════
#  Semver
# ═══════════════════════════════════════════════════════════════════


class TestSemver:
    def test_parse_plain(self):
        assert parse_semver("1.14.3") == (1, 14, 3)

    def test_parse_leading_v_and_missing_parts(self):
        assert parse_semver("v2") == (2, 0, 0)
        assert parse_semver("1.7") == (1, 7, 0)

    def test_parse_prerelease_suffix(self):
        assert parse_semver("1.7.3-pre") == (1, 7, 3)

    def test_parse_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_semver("latest")

    def test_lte_compares_numerically(self):
        assert version_lte("1.7.1", "1.7.1")
        assert version_lte("1.6.10", "1.7.1")
        assert not version_lte("1.10.0", "1.7.1")

    def test_lte_unparseable_is_false(self):
        assert not version_lte("latest", "1.7.1")

    def test_highest_and_newest_first(self):
        versions = ["1.9.0", "1.10.0", "1.2.3", "junk"]
        assert highest(versions) == "1.10.0"
        assert newest_first(versions, limit=2) == ["1.10.0", "1.9.0"]
        assert highest([]) == ""


# ═══════════════════════════════════════════════════════════════════
#  Fetcher
# ═══════════════════════════════════════════════════════════════════


def _http_from(documents, status=200, failing=()):
    """http_get stand-in serving ``documents`` keyed by platform."""
    calls = []

    def http_get(url, timeout):
        calls.append((url, timeout))
        platform = url.rsplit("/", 2)[-2]
        if platform in failing:
            raise OSError("connection refused")
        doc = documents.get(VersionPlatform(platform))
        if doc is None:
            return 404, ""
        return status, yaml.safe_dump(doc)

    http_get.calls = calls
    return http_get


class TestVersionMetadataFetcher:
    def test_url_layout(self):
        fetcher = VersionMetadataFetcher()
        assert fetcher.url_for(VersionPlatform.SNAP) == f"{RAW_BASE_URL}/snap/versions.yaml"

    def test_fetch_all_builds_every_table(self):
        http_get = _http_from(DOCUMENTS)
        data = VersionMetadataFetcher(http_get=http_get, timeout=5).fetch_all()

        assert data is not None
        assert data.snap.latest == "1.14.3"
        assert len(data.binary.versions) == 2
        assert len(http_get.calls) == 5
        assert all(timeout == 5 for _, timeout in http_get.calls)

    def test_one_missing_document_only_empties_that_table(self):
        docs = {k: v for k, v in DOCUMENTS.items() if k is not VersionPlatform.HOMEBREW}
        data = VersionMetadataFetcher(http_get=_http_from(docs)).fetch_all()

        assert data is not None
        assert data.homebrew == VersionTable()
        assert data.snap.count == 4

    def test_unparseable_yaml_empties_table(self):
        def http_get(url, timeout):
            if "/gemfile/" in url:
                return 200, "versions: [unclosed"
            return 200, yaml.safe_dump(SNAP_DOC)

        data = VersionMetadataFetcher(http_get=http_get).fetch_all()
        assert data is not None
        assert data.gemfile.versions == []

    def test_all_unreachable_is_unavailable(self):
        failing = {p.value for p in VersionPlatform}
        fetcher = VersionMetadataFetcher(http_get=_http_from(DOCUMENTS, failing=failing))
        assert fetcher.fetch_all() is None

    def test_unexpected_error_is_unavailable(self):
        def http_get(url, timeout):
            raise RuntimeError("boom")

        assert VersionMetadataFetcher(http_get=http_get).fetch_all() is None

    def test_non_numeric_count_falls_back_to_rows(self):
        docs = dict(DOCUMENTS)
        docs[VersionPlatform.SNAP] = {**SNAP_DOC, "metadata": {"count": "unknown"}}
        data = VersionMetadataFetcher(http_get=_http_from(docs)).fetch_all()

        assert data is not None
        assert data.snap.count == 4
        assert data.homebrew.latest == "1.14.3"

    def test_scalar_platforms_list_ignored(self):
        docs = dict(DOCUMENTS)
        rows = [dict(row) for row in BINARY_DOC["versions"]]
        rows[0]["platforms"] = 5
        docs[VersionPlatform.BINARY] = {**BINARY_DOC, "versions": rows}
        data = VersionMetadataFetcher(http_get=_http_from(docs)).fetch_all()

        assert data is not None
        assert data.binary.versions[0]["platforms"] == []
        assert len(data.binary.versions) == 2

    def test_normalisation_error_only_empties_that_table(self, caplog):
        caplog.set_level(logging.WARNING)
        real = normalise_document

        def flaky(platform, document):
            if platform is VersionPlatform.CHOCOLATEY:
                raise AttributeError("unexpected shape")
            return real(platform, document)

        with patch("metanorma_setup.core.services.versions.fetcher.normalise_document", flaky):
            data = VersionMetadataFetcher(http_get=_http_from(DOCUMENTS)).fetch_all()

        assert data is not None
        assert data.chocolatey == VersionTable()
        assert data.snap.latest == "1.14.3"
        assert "Ignoring malformed chocolatey version data" in caplog.text

    def test_store_builds_despite_bad_count(self):
        docs = dict(DOCUMENTS)
        gemfile = DOCUMENTS[VersionPlatform.GEMFILE]
        docs[VersionPlatform.GEMFILE] = {**gemfile, "metadata": {"count": "n/a"}}
        store = VersionStore.get_instance(VersionMetadataFetcher(http_get=_http_from(docs)))

        assert store is not None
        assert store.get_gemfile_provider().is_available("1.14.3")


class TestNormaliseDocument:
    def test_malformed_documents_give_empty_table(self):
        assert normalise_document(VersionPlatform.SNAP, None) == VersionTable()
        assert normalise_document(VersionPlatform.SNAP, ["a"]) == VersionTable()
        assert normalise_document(VersionPlatform.SNAP, {"versions": "x"}) == VersionTable()

    def test_rows_without_version_dropped(self):
        table = normalise_document(VersionPlatform.GEMFILE, {
            "versions": [{"version": "1.0.0"}, {"gemfile_exists": True}, "junk"],
        })
        assert [row["version"] for row in table.versions] == ["1.0.0"]
        assert table.count == 1

    def test_count_from_local_and_remote(self):
        table = normalise_document(VersionPlatform.GEMFILE, {
            "metadata": {"local_count": 2, "remote_count": 3},
            "versions": [{"version": "1.0.0"}],
        })
        assert table.count == 5

    def test_snap_defaults(self):
        table = normalise_document(VersionPlatform.SNAP, {
            "versions": [{"version": "1.0.0", "revision": 10}],
        })
        row = table.versions[0]
        assert row["channel"] == "stable"
        assert row["architecture"] == "amd64"
        assert row["display_name"] == "1.0.0"

    def test_timestamps_become_text(self):
        table = normalise_document(VersionPlatform.GEMFILE, yaml.safe_load(
            "versions:\n  - version: 1.0.0\n    published_at: 2024-01-02T03:04:05Z\n"
        ))
        assert table.versions[0]["published_at"].startswith("2024-01-02T03:04:05")

    def test_binary_platform_rows(self):
        table = normalise_document(VersionPlatform.BINARY, BINARY_DOC)
        first = table.versions[0]["platforms"][0]
        assert first["os_name"] == "linux"
        assert first["format"] == "tgz"


# ═══════════════════════════════════════════════════════════════════
#  Providers
# ═══════════════════════════════════════════════════════════════════


def _table(platform, rows, latest=""):
    return normalise_document(platform, {"metadata": {"latest_version": latest}, "versions": rows})


class TestSnapProvider:
    def test_revision_per_architecture(self):
        provider = SnapProvider(build_version_data().snap)
        assert provider.get_revision("1.13.9", "amd64") == 276
        assert provider.get_revision("1.13.9", "arm64") == 277
        assert provider.get_revision("1.14.3", "arm64") is None
        assert provider.get_revision("9.9.9") is None

    def test_later_row_replaces_same_version_and_arch(self):
        provider = SnapProvider(_table(VersionPlatform.SNAP, [
            {"version": "1.0.0", "revision": 1, "arch": "amd64"},
            {"version": "1.0.0", "revision": 2, "arch": "amd64"},
        ]))
        assert provider.get_revision("1.0.0") == 2
        assert len(provider.get_versions()) == 1

    def test_rows_without_revision_are_skipped(self):
        provider = SnapProvider(_table(VersionPlatform.SNAP, [
            {"version": "1.0.0"},
            {"version": "1.1.0", "revision": 5},
        ]))
        assert provider.get_available_versions() == ["1.1.0"]

    def test_channel_queries(self):
        provider = SnapProvider(build_version_data().snap)
        assert provider.get_channel("1.14.4") == "edge"
        assert provider.get_latest_for_channel("edge") == "1.14.4"
        assert provider.get_latest_for_channel("beta") is None
        assert provider.get_architectures("1.13.9") == ["amd64", "arm64"]

    def test_declared_latest(self):
        assert SnapProvider(build_version_data().snap).get_latest() == "1.14.3"


class TestLatestResolution:
    def test_missing_latest_uses_highest(self):
        provider = GemfileProvider(_table(VersionPlatform.GEMFILE, [
            {"version": "1.9.0"}, {"version": "1.10.0"},
        ]))
        assert provider.get_latest() == "1.10.0"

    def test_stale_latest_is_replaced(self):
        provider = GemfileProvider(_table(VersionPlatform.GEMFILE, [
            {"version": "1.9.0"},
        ], latest="2.0.0"))
        assert provider.get_latest() == "1.9.0"

    def test_empty_table(self):
        provider = GemfileProvider(VersionTable())
        assert provider.get_latest() == ""
        assert len(provider) == 0
        assert not provider.is_available("1.0.0")

    @pytest.mark.parametrize("platform", list(VersionPlatform))
    @pytest.mark.parametrize("latest", ["as-published", "stale", "missing"])
    def test_listed_versions_available_and_latest_listed(self, platform, latest):
        document = dict(DOCUMENTS[platform])
        metadata = dict(document.get("metadata") or {})
        if latest == "stale":
            metadata["latest_version"] = "99.0.0"
        elif latest == "missing":
            metadata.pop("latest_version", None)
        document["metadata"] = metadata

        store = VersionStore.from_data(build_version_data({platform: document}))
        provider = store.get_provider(platform)
        listed = provider.get_available_versions()

        assert listed
        assert all(provider.is_available(v) for v in listed)
        assert provider.get_latest() in listed


class TestOtherProviders:
    def test_first_duplicate_wins(self):
        provider = HomebrewProvider(_table(VersionPlatform.HOMEBREW, [
            {"version": "1.0.0", "tag_name": "first"},
            {"version": "1.0.0", "tag_name": "second"},
        ]))
        assert provider.get_tag_name("1.0.0") == "first"

    def test_homebrew_fields(self):
        provider = HomebrewProvider(build_version_data().homebrew)
        assert provider.get_tag_name("1.14.3") == "v1.14.3"
        assert provider.get_commit_sha("1.14.3") == "abc123"
        assert provider.get_tag_name("0.0.1") is None

    def test_chocolatey_prerelease(self):
        provider = ChocolateyProvider(build_version_data().chocolatey)
        assert provider.is_pre_release("1.14.4")
        assert not provider.is_pre_release("1.14.3")
        assert provider.get_package_name("1.14.3") == "metanorma"

    def test_gemfile_has_gemfile(self):
        provider = GemfileProvider(_table(VersionPlatform.GEMFILE, [
            {"version": "1.0.0", "gemfile_exists": False},
            {"version": "1.1.0"},
        ]))
        assert not provider.has_gemfile("1.0.0")
        assert provider.has_gemfile("1.1.0")

    def test_records_are_immutable(self):
        provider = HomebrewProvider(build_version_data().homebrew)
        record = provider.get_version("1.14.3")
        with pytest.raises(Exception):
            record.tag_name = "changed"
        assert isinstance(provider.get_versions(), tuple)


class TestBinaryProvider:
    """Best-match tiers: exact → same arch without variant → same OS."""

    @pytest.fixture
    def provider(self) -> BinaryProvider:
        return BinaryProvider(build_version_data().binary)

    def test_exact_match(self, provider):
        artifact = provider.get_best_match("1.14.3", "linux", "x86_64", "musl")
        assert artifact.variant == "musl"

    def test_glibc_host_gets_plain_build(self, provider):
        artifact = provider.get_best_match("1.14.3", "linux", "x86_64")
        assert artifact.variant is None
        assert artifact.arch == "x86_64"

    def test_variant_falls_back_to_plain_build(self, provider):
        artifact = provider.get_best_match("1.14.3", "linux", "arm64", "musl")
        assert artifact.label == "linux/arm64"

    def test_only_variant_build_for_os(self, provider):
        artifact = provider.get_best_match("1.14.3", "darwin", "arm64")
        assert artifact.label == "darwin/arm64/musl"

    def test_other_arch_same_os(self, provider):
        artifact = provider.get_best_match("1.14.3", "windows", "arm64")
        assert artifact.os_name == "windows"
        assert artifact.format == "exe"

    def test_never_crosses_os(self, provider):
        assert provider.get_best_match("1.13.0", "linux", "x86_64") is None
        assert provider.get_best_match("1.14.3", "freebsd", "x86_64") is None

    def test_unknown_version(self, provider):
        assert provider.get_best_match("0.0.1", "linux", "x86_64") is None

    def test_host_detection_when_os_omitted(self, provider):
        target = BinaryTarget(os_name="linux", arch="arm64")
        with patch(
            "metanorma_setup.core.services.versions.providers.detect_binary_target",
            return_value=target,
        ):
            artifact = provider.get_best_match("1.14.3")
        assert artifact.label == "linux/arm64"

    def test_exact_artifact_lookup(self, provider):
        assert provider.get_artifact("1.14.3", "linux", "x86_64") is not None
        assert provider.get_artifact("1.14.3", "darwin", "arm64") is None
        assert provider.get_download_url("1.14.3", "windows", "x86_64").endswith(".exe")

    def test_listings(self, provider):
        assert provider.get_available_platforms("1.14.3") == ["linux", "darwin", "windows"]
        assert provider.get_available_architectures("1.14.3", "linux") == ["x86_64", "arm64"]


# ═══════════════════════════════════════════════════════════════════
#  Store
# ═══════════════════════════════════════════════════════════════════


class _CountingFetcher:
    def __init__(self, data):
        self.data = data
        self.calls = 0

    def fetch_all(self):
        self.calls += 1
        return self.data


class TestVersionStore:
    def test_get_instance_is_shared(self):
        fetcher = _CountingFetcher(build_version_data())
        first = VersionStore.get_instance(fetcher)
        second = VersionStore.get_instance(fetcher)
        assert first is second
        assert fetcher.calls == 1

    def test_failure_is_cached(self):
        fetcher = _CountingFetcher(None)
        assert VersionStore.get_instance(fetcher) is None
        assert VersionStore.get_instance(fetcher) is None
        assert fetcher.calls == 1

    def test_reset_allows_retry(self):
        assert VersionStore.get_instance(_CountingFetcher(None)) is None
        VersionStore.reset()
        assert VersionStore.get_instance(_CountingFetcher(build_version_data())) is not None

    def test_typed_providers(self):
        store = VersionStore.from_data(build_version_data())
        assert isinstance(store.get_snap_provider(), SnapProvider)
        assert isinstance(store.get_binary_provider(), BinaryProvider)
        assert store.get_provider("chocolatey").is_available("1.14.3")

    def test_uninitialised_store_raises(self):
        with pytest.raises(VersionStoreError):
            VersionStore().get_snap_provider()

    def test_unknown_platform_raises(self):
        store = VersionStore.from_data(build_version_data())
        with pytest.raises(VersionStoreError, match="Unknown version platform"):
            store.get_provider("apt")

    def test_cleanup_requires_reinitialisation(self):
        store = VersionStore.from_data(build_version_data())
        store.cleanup()
        assert not store.initialized
        with pytest.raises(VersionStoreError):
            store.get_gemfile_provider()
