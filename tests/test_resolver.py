"""Tests for the fallback resolver.

Lookup order: active memory, active local, default memory, default local,
default durable, caller fallback, raw key.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from pathlib import Path

from langbundle.config import BundleConfig
from langbundle.enums import LookupSource
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.localization.loading import PathBundleLoader
from langbundle.localization.resolver import resolve, resolve_with_source
from langbundle.localization.store import BundleStore
from langbundle.remote.source import StaticBundleSource
from langbundle.storage.backends import MemoryKeyValueStore


class ExplodingStore:
    """KeyValueStore whose reads fail with an unexpected exception."""

    def get(self, key: str) -> str | None:
        msg = "backend bug"
        raise RuntimeError(msg)

    def set(self, key: str, value: str) -> None:
        pass

    def delete(self, key: str) -> None:
        pass

    def keys(self) -> Iterator[str]:
        return iter(())


def _pl_session(config: BundleConfig, durable: DurableCacheAdapter) -> BundleStore:
    """Fresh session: PL from the remote, EN only in the durable cache."""
    durable.write_bundle("EN", {"nav.home": "Home", "nav.profile": "Profile"}, "en-v1")
    source = StaticBundleSource({"PL": {"nav.home": "Strona główna"}})
    store = BundleStore(config, durable, source)
    asyncio.run(store.ensure_loaded("PL"))
    return store


class TestFallbackOrder:
    """Concrete scenario: default EN, active PL."""

    def test_active_language_wins(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        store = _pl_session(config, durable)

        assert resolve("nav.home", "PL", "EN", store) == "Strona główna"

    def test_default_durable_cache_fills_gaps(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        store = _pl_session(config, durable)

        resolution = resolve_with_source("nav.profile", "PL", "EN", store)

        assert resolution.value == "Profile"
        assert resolution.source == LookupSource.DURABLE
        assert resolution.language == "EN"

    def test_missing_everywhere_returns_key(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        store = _pl_session(config, durable)

        resolution = resolve_with_source("nav.missing", "PL", "EN", store)

        assert resolution.value == "nav.missing"
        assert resolution.source == LookupSource.KEY
        assert resolution.is_missing

    def test_caller_fallback_precedes_key(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        store = _pl_session(config, durable)

        resolution = resolve_with_source("nav.missing", "PL", "EN", store, "Missing")

        assert resolution.value == "Missing"
        assert resolution.source == LookupSource.CALLER_FALLBACK

    def test_caller_fallback_does_not_shadow_translations(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        store = _pl_session(config, durable)

        assert resolve("nav.home", "PL", "EN", store, fallback="Start") == "Strona główna"

    def test_default_memory_bundle_used_when_loaded(self, store: BundleStore) -> None:
        asyncio.run(store.ensure_loaded("EN"))

        resolution = resolve_with_source("nav.profile", "PL", "EN", store)

        assert resolution.value == "Profile"
        assert resolution.source == LookupSource.MEMORY
        assert resolution.language == "EN"

    def test_same_active_and_default_skips_durable(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        """With active == default only the active tiers are consulted."""
        durable.write_bundle("EN", {"nav.profile": "Profile"}, "en-v1")
        store = BundleStore(config, durable, StaticBundleSource())

        assert resolve("nav.profile", "EN", "EN", store) == "nav.profile"


class TestMissingValues:
    def test_empty_string_counts_as_missing(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        durable.write_bundle("EN", {"quiz.title": "Quiz"}, "en-v1")
        source = StaticBundleSource({"PL": {"quiz.title": "", "nav.home": "Start"}})
        store = BundleStore(config, durable, source)
        asyncio.run(store.ensure_loaded("PL"))

        assert resolve("quiz.title", "PL", "EN", store) == "Quiz"

    def test_non_string_key_is_stringified(self, store: BundleStore) -> None:
        assert resolve(42, "PL", "EN", store) == "42"

    def test_nothing_loaded_returns_key(self, store: BundleStore) -> None:
        assert resolve("nav.home", "PL", "EN", store) == "nav.home"

    def test_unsupported_active_language_falls_through(self, store: BundleStore) -> None:
        asyncio.run(store.ensure_loaded("EN"))

        assert resolve("nav.home", "DE", "EN", store) == "Home"

    def test_clear_then_lookup_before_reload(self, store: BundleStore) -> None:
        asyncio.run(store.ensure_loaded("PL"))
        store.clear()

        assert resolve("nav.home", "PL", "EN", store) == "nav.home"


class TestTierFailures:
    def test_broken_durable_tier_is_a_miss(self, config: BundleConfig) -> None:
        durable = DurableCacheAdapter(ExplodingStore(), config)
        store = BundleStore(config, durable, StaticBundleSource())

        resolution = resolve_with_source("nav.home", "PL", "EN", store, "Home page")

        assert resolution.value == "Home page"
        assert resolution.source == LookupSource.CALLER_FALLBACK


class TestLocalTier:
    def test_local_bundle_between_active_and_default(
        self, tmp_path: Path, config: BundleConfig
    ) -> None:
        (tmp_path / "pl.json").write_text(
            json.dumps({"nav.about": "O nas", "nav.home": "Lokalna"}), encoding="utf-8"
        )
        (tmp_path / "en.json").write_text(json.dumps({"nav.help": "Help"}), encoding="utf-8")
        loader = PathBundleLoader(str(tmp_path / "{lang}.json"))
        durable = DurableCacheAdapter(MemoryKeyValueStore(), config)
        source = StaticBundleSource({"PL": {"nav.home": "Strona główna"}})
        store = BundleStore(config, durable, source, local_loader=loader)
        store.load_local("PL")
        store.load_local("EN")
        asyncio.run(store.ensure_loaded("PL"))

        home = resolve_with_source("nav.home", "PL", "EN", store)
        about = resolve_with_source("nav.about", "PL", "EN", store)
        help_ = resolve_with_source("nav.help", "PL", "EN", store)

        assert (home.value, home.source) == ("Strona główna", LookupSource.MEMORY)
        assert (about.value, about.source) == ("O nas", LookupSource.LOCAL)
        assert (help_.value, help_.source, help_.language) == ("Help", LookupSource.LOCAL, "EN")


class TestSubstitutedBundles:
    def test_substitute_reports_its_own_language(
        self, config: BundleConfig, durable: DurableCacheAdapter
    ) -> None:
        """Default-language text served under a failed language is attributed to the default."""
        durable.write_bundle("EN", {"nav.home": "Home"}, "en-v1")
        store = BundleStore(config, durable, StaticBundleSource())
        asyncio.run(store.ensure_loaded("PL"))

        resolution = resolve_with_source("nav.home", "PL", "EN", store)

        assert resolution.value == "Home"
        assert resolution.source == LookupSource.MEMORY
        assert resolution.language == "EN"


class TestDurableTierReads:
    def test_default_durable_bundle_decoded_once(self, config: BundleConfig) -> None:
        reads: list[str] = []

        class RecordingStore(MemoryKeyValueStore):
            __slots__ = ()

            def get(self, key: str) -> str | None:
                reads.append(key)
                return super().get(key)

        durable = DurableCacheAdapter(RecordingStore(), config)
        durable.write_bundle("EN", {"nav.profile": "Profile"}, "en-v1")
        store = BundleStore(config, durable, StaticBundleSource())

        values = [resolve("nav.profile", "PL", "EN", store) for _ in range(5)]

        assert values == ["Profile"] * 5
        assert reads.count("i18n_bundle_EN") == 1
