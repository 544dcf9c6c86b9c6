"""Lookup surface bound to the active language.

``Translator.t()`` is what UI code calls. It never blocks and never raises:
while a language is loading, lookups fall through to the default language,
the caller's fallback, or the raw key.

Python 3.13+.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from langbundle.constants import MAX_MISSING_KEYS_PER_REPORT
from langbundle.diagnostics import RemoteBundleError
from langbundle.localization.loading import FallbackInfo, LoadResult, LoadSummary
from langbundle.localization.preference import LanguagePreference
from langbundle.localization.resolver import Resolution, resolve_with_source
from langbundle.localization.store import BundleStore
from langbundle.localization.types import LanguageCode, TranslationKey
from langbundle.locale_utils import language_display_name, normalize_language

__all__ = ["MissingKeyReporter", "Translator"]

logger = logging.getLogger(__name__)


class MissingKeyReporter(Protocol):
    """Anything that can report missing keys upstream (e.g. HttpBundleSource)."""

    async def report_missing(
        self, keys: Iterable[TranslationKey], language: LanguageCode | None = None
    ) -> int: ...


class Translator:
    """Translation lookups for the language held by a LanguagePreference.

    Changing the preference while an event loop is running schedules
    ``ensure_loaded`` for the new language. Without a running loop nothing
    is scheduled; call ``activate()`` later to load it.

    Example:
        >>> translator = Translator(store, preference)
        >>> await translator.activate("PL")
        >>> translator.t("nav.home")
        'Strona główna'
        >>> translator.t("nav.missing", fallback="Missing")
        'Missing'

    Attributes:
        store: BundleStore supplying bundles
        preference: Holder of the active language
    """

    __slots__ = (
        "_missing",
        "_on_fallback",
        "_on_missing",
        "_pending",
        "_unsubscribe",
        "preference",
        "store",
    )

    def __init__(
        self,
        store: BundleStore,
        preference: LanguagePreference,
        *,
        on_fallback: Callable[[FallbackInfo], None] | None = None,
        on_missing: Callable[[TranslationKey, LanguageCode], None] | None = None,
    ) -> None:
        """Initialize translator.

        Args:
            store: BundleStore to read from and load into
            preference: Active language holder (subscribed to for changes)
            on_fallback: Called when a value came from another language
            on_missing: Called with (key, language) when no data had the key
        """
        self.store = store
        self.preference = preference
        self._on_fallback = on_fallback
        self._on_missing = on_missing
        self._missing: dict[LanguageCode, set[TranslationKey]] = {}
        self._pending: set[asyncio.Task[LoadResult]] = set()
        self._unsubscribe = preference.subscribe(self._language_changed)

    def __repr__(self) -> str:
        return f"Translator(language={self.language!r}, store={self.store!r})"

    @property
    def language(self) -> LanguageCode:
        return self.preference.language

    def display_name(self, language: LanguageCode | None = None) -> str:
        """Native name of ``language`` (default: active language), via Babel."""
        return language_display_name(language or self.language)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def t(self, key: TranslationKey, fallback: str | None = None) -> str:
        """Translate ``key`` for the active language. Never raises.

        Args:
            key: TranslationKey, e.g. "nav.home"
            fallback: Literal text preferred over the raw key when missing

        Returns:
            Translated text, the fallback, or the key itself
        """
        language = self.language
        try:
            resolution = resolve_with_source(
                key, language, self.store.config.default_language, self.store, fallback
            )
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Lookup of %r failed", key)
            return fallback or str(key)

        self._observe(str(key), language, resolution)
        return resolution.value

    def _observe(self, key: str, language: LanguageCode, resolution: Resolution) -> None:
        try:
            if resolution.is_missing:
                seen = self._missing.setdefault(language, set())
                if key not in seen:
                    seen.add(key)
                    logger.debug("Missing translation %r for %s", key, language)
                if self._on_missing is not None:
                    self._on_missing(key, language)
            elif resolution.language != language and self._on_fallback is not None:
                self._on_fallback(
                    FallbackInfo(
                        key=key,
                        requested_language=language,
                        resolved_language=resolution.language,
                        source=resolution.source,
                    )
                )
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Lookup observer failed for %r", key)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_local(self, language: LanguageCode) -> None:
        if self.store.has_local_loader:
            self.store.load_local(language)

    def _language_changed(self, language: LanguageCode, previous: LanguageCode) -> None:
        self._load_local(language)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; %s will load on activate()", language)
            return
        task = loop.create_task(self.store.ensure_loaded(language))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def activate(self, language: LanguageCode | None = None) -> LoadResult:
        """Switch to ``language`` (if given) and wait until it is loaded.

        Returns:
            LoadResult for the active language

        Raises:
            ValueError: If the language is not supported
        """
        if language is not None:
            self.preference.set(language)
        code = self.language
        self._load_local(code)
        self._load_local(self.store.config.default_language)
        return await self.store.ensure_loaded(code)

    def preload(
        self, languages: Iterable[LanguageCode] | None = None
    ) -> asyncio.Task[LoadSummary]:
        """Start loading ``languages`` (default: all supported) concurrently.

        Returns immediately. Must be called from a running event loop.

        Returns:
            Task resolving to a LoadSummary

        Raises:
            ValueError: If any language is not supported
            RuntimeError: If no event loop is running
        """
        codes = self.store.config.languages_or_all(languages)
        for code in codes:
            self._load_local(code)
        return asyncio.get_running_loop().create_task(self._preload(codes))

    async def _preload(self, codes: tuple[LanguageCode, ...]) -> LoadSummary:
        results = await asyncio.gather(*(self.store.ensure_loaded(code) for code in codes))
        summary = LoadSummary(tuple(results))
        logger.debug("Preload finished: %r", summary)
        return summary

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def clear_cache(self) -> int:
        """Drop every cached bundle, in memory and durable.

        Returns:
            Number of durable slots deleted
        """
        return self.store.clear()

    def missing_keys(self, language: LanguageCode | None = None) -> frozenset[TranslationKey]:
        """Keys that resolved to a caller fallback or the raw key.

        Args:
            language: Only keys missed under this language (default: all)
        """
        if language is not None:
            return frozenset(self._missing.get(normalize_language(language), ()))
        return frozenset(key for keys in self._missing.values() for key in keys)

    async def flush_missing(self, reporter: MissingKeyReporter) -> int:
        """Report collected missing keys and forget the ones reported.

        Failures are logged; keys that could not be reported are kept for
        the next flush.

        Returns:
            Number of keys the provider acknowledged
        """
        received = 0
        for language in tuple(self._missing):
            keys = sorted(self._missing.get(language, ()))
            for start in range(0, len(keys), MAX_MISSING_KEYS_PER_REPORT):
                batch = keys[start : start + MAX_MISSING_KEYS_PER_REPORT]
                try:
                    received += await reporter.report_missing(batch, language)
                except RemoteBundleError as e:
                    logger.warning(
                        "Failed to report %d missing keys for %s: %s",
                        len(batch),
                        language,
                        e.summary,
                    )
                    break
                logger.warning(
                    "Reported %d missing translation keys for %s", len(batch), language
                )
                self._forget_missing(language, batch)
        return received

    def _forget_missing(self, language: LanguageCode, keys: Iterable[TranslationKey]) -> None:
        remaining = self._missing.get(language, set()).difference(keys)
        if remaining:
            self._missing[language] = remaining
        else:
            self._missing.pop(language, None)

    async def aclose(self) -> None:
        """Stop following the preference and cancel scheduled loads."""
        self._unsubscribe()
        pending = tuple(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
