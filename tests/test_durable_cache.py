"""Tests for DurableCacheAdapter.

The adapter never raises: corrupted slots read as "not cached" and storage
failures degrade to memory-only operation.
"""

from __future__ import annotations

import json

import pytest

from langbundle.config import BundleConfig
from langbundle.diagnostics import Diagnostic, DiagnosticCode, DurableStoreUnavailableError
from langbundle.enums import ErrorKind
from langbundle.localization.bundle import Bundle
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.storage.backends import MemoryKeyValueStore


class VersionRejectingStore(MemoryKeyValueStore):
    """Accepts bundle writes, rejects version-token writes."""

    __slots__ = ()

    def set(self, key: str, value: str) -> None:
        if key.startswith("i18n_version_"):
            raise DurableStoreUnavailableError(
                Diagnostic(code=DiagnosticCode.STORE_WRITE_FAILED, message="version slot full")
            )
        super().set(key, value)


class TestReadWrite:
    def test_round_trip(self, durable: DurableCacheAdapter, kv: MemoryKeyValueStore) -> None:
        assert durable.write_bundle("pl", {"nav.home": "Strona główna"}, "pl-v1")

        bundle = durable.read_bundle("PL")

        assert bundle is not None
        assert bundle.language == "PL"
        assert bundle.get("nav.home") == "Strona główna"
        assert bundle.version == "pl-v1"
        assert kv.get("i18n_bundle_PL") == '{"nav.home":"Strona główna"}'
        assert kv.get("i18n_version_PL") == "pl-v1"

    def test_accepts_bundle_snapshot(self, durable: DurableCacheAdapter) -> None:
        durable.write_bundle("EN", Bundle.create("EN", {"nav.home": "Home"}), "en-v1")

        assert durable.read_version("EN") == "en-v1"

    def test_empty_slot_reads_none(self, durable: DurableCacheAdapter) -> None:
        assert durable.read_bundle("UA") is None
        assert durable.read_version("UA") is None

    def test_missing_version_reads_as_unknown(
        self, durable: DurableCacheAdapter, kv: MemoryKeyValueStore
    ) -> None:
        kv.set("i18n_bundle_EN", json.dumps({"nav.home": "Home"}))

        bundle = durable.read_bundle("EN")

        assert bundle is not None
        assert bundle.version is None

    def test_none_version_removes_stored_token(
        self, durable: DurableCacheAdapter, kv: MemoryKeyValueStore
    ) -> None:
        durable.write_bundle("PL", {"a": "b"}, "pl-v1")

        assert durable.write_bundle("PL", {"a": "c"}, None)

        assert kv.get("i18n_version_PL") is None


class TestCorruption:
    @pytest.mark.parametrize("raw", ["{not json", '["nav.home"]', '{"nav.home": 1}', "null"])
    def test_corrupted_bundle_reads_none(
        self, durable: DurableCacheAdapter, kv: MemoryKeyValueStore, raw: str
    ) -> None:
        kv.set("i18n_bundle_PL", raw)
        kv.set("i18n_version_PL", "pl-v1")

        assert durable.read_bundle("PL") is None


class TestStorageFailures:
    def test_quota_exceeded_returns_false(self, config: BundleConfig) -> None:
        durable = DurableCacheAdapter(MemoryKeyValueStore(capacity=10), config)

        assert not durable.write_bundle("PL", {"nav.home": "Strona główna"}, "pl-v1")

        assert durable.last_error is not None
        assert durable.last_error.kind == ErrorKind.DURABLE_STORE_UNAVAILABLE
        assert "Quota exceeded" in durable.last_error.message

    def test_failed_version_write_drops_stale_token(self, config: BundleConfig) -> None:
        kv = VersionRejectingStore()
        MemoryKeyValueStore.set(kv, "i18n_version_PL", "pl-old")
        durable = DurableCacheAdapter(kv, config)

        assert not durable.write_bundle("PL", {"nav.home": "Nowa"}, "pl-new")

        bundle = durable.read_bundle("PL")
        assert bundle is not None
        assert bundle.get("nav.home") == "Nowa"
        assert bundle.version is None

    def test_disabled_store_reads_none(self, config: BundleConfig) -> None:
        durable = DurableCacheAdapter(MemoryKeyValueStore(disabled=True), config)

        assert durable.read_bundle("PL") is None
        assert durable.read_version("PL") is None
        assert durable.last_error is not None

    def test_default_config(self) -> None:
        durable = DurableCacheAdapter(MemoryKeyValueStore())

        assert durable.config == BundleConfig()


class TestClearAll:
    def test_only_cache_slots_are_deleted(
        self, durable: DurableCacheAdapter, kv: MemoryKeyValueStore
    ) -> None:
        durable.write_bundle("PL", {"a": "b"}, "pl-v1")
        kv.set("i18n_bundle_XX", "{}")
        kv.set("elearn_lang", "PL")

        assert durable.clear_all() == 3

        assert list(kv.keys()) == ["elearn_lang"]

    def test_disabled_store_deletes_nothing(self, config: BundleConfig) -> None:
        durable = DurableCacheAdapter(MemoryKeyValueStore(disabled=True), config)

        assert durable.clear_all() == 0
        assert durable.last_error is not None
