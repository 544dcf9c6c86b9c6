"""Property-based tests for system invariants.

Uses Hypothesis to test properties that must always hold, regardless of input.
"""

from __future__ import annotations

import asyncio

from hypothesis import event, given, settings
from hypothesis import strategies as st

from langbundle.config import BundleConfig
from langbundle.diagnostics import DurableStoreUnavailableError
from langbundle.enums import LoadStatus
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.localization.resolver import resolve
from langbundle.localization.store import BundleStore
from langbundle.remote.source import StaticBundleSource, bundle_version
from langbundle.storage.backends import MemoryKeyValueStore

keys = st.text(min_size=1, max_size=20)
tables = st.dictionaries(keys, st.text(max_size=20), max_size=10)
non_empty_tables = st.dictionaries(keys, st.text(min_size=1, max_size=20), min_size=1, max_size=10)
languages = st.sampled_from(["UA", "PL", "EN", "DE", "pl", ""])


def _store(active: dict[str, str], default: dict[str, str]) -> BundleStore:
    config = BundleConfig(retry_backoff=0.0)
    durable = DurableCacheAdapter(MemoryKeyValueStore(), config)
    store = BundleStore(config, durable, StaticBundleSource({"PL": active, "EN": default}))

    async def load() -> None:
        await store.ensure_loaded("PL")
        await store.ensure_loaded("EN")

    asyncio.run(load())
    return store


class TestResolveProperties:
    """resolve() is total: it always returns a string."""

    @given(tables, tables, st.one_of(st.none(), keys), st.one_of(st.none(), st.text()), languages)
    @settings(deadline=None, max_examples=100)
    def test_resolve_always_returns_string(
        self,
        active: dict[str, str],
        default: dict[str, str],
        key: str | None,
        fallback: str | None,
        language: str,
    ) -> None:
        store = _store(active, default)

        value = resolve(key, language, "EN", store, fallback)

        assert isinstance(value, str)
        event(f"resolved_from_table={value in active.values() or value in default.values()}")

    @given(tables, tables, keys)
    @settings(deadline=None, max_examples=100)
    def test_active_value_takes_precedence(
        self, active: dict[str, str], default: dict[str, str], key: str
    ) -> None:
        store = _store(active, default)

        value = resolve(key, "PL", "EN", store)

        if active.get(key):
            assert value == active[key]
        elif default.get(key):
            assert value == default[key]
        else:
            assert value == key


class TestRefreshProperties:
    @given(non_empty_tables, non_empty_tables)
    @settings(deadline=None, max_examples=50)
    def test_background_refresh_replaces_whole_bundle(
        self, cached: dict[str, str], fresh: dict[str, str]
    ) -> None:
        """After a refresh the bundle equals the new payload; no old keys survive."""
        config = BundleConfig(retry_backoff=0.0)
        durable = DurableCacheAdapter(MemoryKeyValueStore(), config)
        durable.write_bundle("PL", cached, "old")
        store = BundleStore(config, durable, StaticBundleSource({"PL": fresh}))

        async def run() -> LoadStatus:
            result = await store.ensure_loaded("PL")
            await store.wait_for_refreshes()
            return result.status

        assert asyncio.run(run()) == LoadStatus.CACHED
        bundle = store.bundle("PL")
        assert bundle is not None
        assert dict(bundle.entries) == fresh
        assert store.version("PL") == bundle_version(fresh)
        persisted = durable.read_bundle("PL")
        assert persisted is not None
        assert dict(persisted.entries) == fresh


class TestStorageProperties:
    @given(
        st.integers(min_value=0, max_value=200),
        st.lists(st.tuples(st.sampled_from("abcde"), st.text(max_size=60)), max_size=30),
    )
    def test_memory_store_never_exceeds_capacity(
        self, capacity: int, writes: list[tuple[str, str]]
    ) -> None:
        store = MemoryKeyValueStore(capacity=capacity)
        for key, value in writes:
            try:
                store.set(key, value)
            except DurableStoreUnavailableError:
                event("quota_exceeded")
            assert store.used <= capacity

    @given(tables)
    def test_bundle_version_is_stable_hex(self, table: dict[str, str]) -> None:
        version = bundle_version(table)

        assert version == bundle_version(dict(table))
        assert len(version) == 12
        assert all(char in "0123456789abcdef" for char in version)
