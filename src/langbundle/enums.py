"""Enumerations for langbundle type-safe constants.

Uses StrEnum (Python 3.11+) for automatic string conversion.
StrEnum members are strings themselves, so they log and serialize as plain values.

Python 3.13+.
"""

from enum import StrEnum


class LoadState(StrEnum):
    """Per-language lifecycle inside the BundleStore.

    StrEnum provides automatic string conversion: str(LoadState.LOADED) == "loaded"
    """

    UNREQUESTED = "unrequested"
    """Language never passed to ensure_loaded (or forgotten by clear)."""

    LOADING = "loading"
    """Remote fetch in progress with nothing to serve yet."""

    LOADED = "loaded"
    """Bundle confirmed by the remote source."""

    LOADED_FROM_CACHE_ONLY = "loaded_from_cache_only"
    """Bundle adopted from durable storage, not yet confirmed remotely."""

    FAILED = "failed"
    """Every tier failed; lookups degrade to the raw key."""


class LoadStatus(StrEnum):
    """Outcome of a single ensure_loaded or load_local call."""

    ALREADY_LOADED = "already_loaded"
    """Non-empty bundle was already in memory; nothing was done."""

    LOADED = "loaded"
    """Fresh bundle adopted from the remote source."""

    CACHED = "cached"
    """Bundle adopted from durable storage; background refresh may follow."""

    SUBSTITUTED = "substituted"
    """Remote failed; a durable copy (own or default language) stands in."""

    FAILED = "failed"
    """Nothing could be loaded."""


class BundleSource(StrEnum):
    """Tier that supplied a bundle."""

    MEMORY = "memory"
    DURABLE = "durable"
    REMOTE = "remote"
    LOCAL = "local"
    NONE = "none"


class LookupSource(StrEnum):
    """Tier that supplied a resolved string."""

    MEMORY = "memory"
    """In-memory remote bundle (active or default language)."""

    LOCAL = "local"
    """Bundled JSON shipped with the application."""

    DURABLE = "durable"
    """Synchronous durable-cache read for the default language."""

    CALLER_FALLBACK = "caller_fallback"
    """Literal fallback string supplied by the caller."""

    KEY = "key"
    """Raw translation key; the translation is missing everywhere."""


class ErrorKind(StrEnum):
    """Failure taxonomy recorded on LanguageState.error."""

    NETWORK_UNAVAILABLE = "network_unavailable"
    REMOTE_REJECTED = "remote_rejected"
    MALFORMED_PAYLOAD = "malformed_payload"
    DURABLE_STORE_UNAVAILABLE = "durable_store_unavailable"


__all__ = [
    "BundleSource",
    "ErrorKind",
    "LoadState",
    "LoadStatus",
    "LookupSource",
]
