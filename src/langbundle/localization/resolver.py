"""Fallback Resolver: key -> display string, total and non-blocking.

Lookup order, first hit wins:
    1. Active language, in-memory bundle
    2. Active language, bundled (local) table
    3. Default language, in-memory bundle
    4. Default language, bundled (local) table
    5. Default language, synchronous durable-cache read (only while the
       default language has no bundle in memory)
    6. Caller-supplied fallback string
    7. The key itself

Steps 3-5 only run when the active and default languages differ. Steps 2
and 4 only find anything when the store has a local loader. Empty strings
count as missing at every tier.

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from langbundle.enums import LookupSource
from langbundle.localization.types import LanguageCode
from langbundle.locale_utils import normalize_language

if TYPE_CHECKING:
    from langbundle.localization.bundle import Bundle
    from langbundle.localization.store import BundleStore

__all__ = ["Resolution", "resolve", "resolve_with_source"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Resolution:
    """Resolved string and where it came from.

    Attributes:
        value: Display string (never None)
        source: Tier that supplied the value
        language: Language whose data supplied it (None for fallback and key)
    """

    value: str
    source: LookupSource
    language: LanguageCode | None = None

    @property
    def is_missing(self) -> bool:
        """True when no translation data supplied the value."""
        return self.source in (LookupSource.CALLER_FALLBACK, LookupSource.KEY)


def _lookup(
    read: Callable[[], Bundle | None], key: str, tier: str, language: str
) -> tuple[str, LanguageCode] | None:
    """Value and the language it is written in, or None on a miss."""
    try:
        bundle = read()
        if bundle is None:
            return None
        value = bundle.get(key)
        return (value, bundle.language) if value is not None else None
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Lookup of %r in %s tier for %s failed", key, tier, language)
        return None


def resolve_with_source(
    key: object,
    active_language: LanguageCode,
    default_language: LanguageCode,
    store: BundleStore,
    fallback: str | None = None,
) -> Resolution:
    """Resolve ``key`` through the fallback chain.

    Args:
        key: TranslationKey (non-strings are converted with ``str()``)
        active_language: Current LanguageCode
        default_language: Designated default LanguageCode
        store: BundleStore to read snapshots from
        fallback: Literal string preferred over the raw key

    Returns:
        Resolution with the value, tier and language
    """
    text_key = key if isinstance(key, str) else str(key)
    active = normalize_language(active_language) if isinstance(active_language, str) else ""
    default = normalize_language(default_language) if isinstance(default_language, str) else ""
    config = store.config

    chain: list[tuple[LanguageCode, LookupSource, Callable[[], Bundle | None]]] = []
    if config.is_supported(active):
        chain.append((active, LookupSource.MEMORY, lambda: store.bundle(active)))
        chain.append((active, LookupSource.LOCAL, lambda: store.local_bundle(active)))
    if default != active and config.is_supported(default):
        chain.append((default, LookupSource.MEMORY, lambda: store.bundle(default)))
        chain.append((default, LookupSource.LOCAL, lambda: store.local_bundle(default)))
        chain.append((default, LookupSource.DURABLE, lambda: _durable_bundle(store, default)))

    for language, source, read in chain:
        hit = _lookup(read, text_key, source, language)
        if hit is not None:
            value, written_in = hit
            return Resolution(value=value, source=source, language=written_in)

    if fallback:
        return Resolution(value=fallback, source=LookupSource.CALLER_FALLBACK)
    return Resolution(value=text_key, source=LookupSource.KEY)


def _durable_bundle(store: BundleStore, language: LanguageCode) -> Bundle | None:
    memory = store.bundle(language)
    if memory is not None and not memory.is_empty:
        return None
    return store.durable_bundle(language)


def resolve(
    key: object,
    active_language: LanguageCode,
    default_language: LanguageCode,
    store: BundleStore,
    fallback: str | None = None,
) -> str:
    """Resolve ``key`` to a display string. Never raises.

    Example:
        >>> resolve("nav.home", "PL", "EN", store)
        'Strona główna'
        >>> resolve("nav.missing", "PL", "EN", store)
        'nav.missing'
    """
    try:
        return resolve_with_source(key, active_language, default_language, store, fallback).value
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Resolution of %r failed", key)
        if fallback:
            return fallback
        try:
            return key if isinstance(key, str) else str(key)
        except Exception:  # pylint: disable=broad-exception-caught
            return ""
