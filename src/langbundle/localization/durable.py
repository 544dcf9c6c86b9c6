"""Durable Cache Adapter: bundles and version tokens in a KeyValueStore.

Each language owns two slots under collision-avoiding prefixes::

    i18n_bundle_PL  -> '{"nav.home": "Strona główna", ...}'
    i18n_version_PL -> '9f2c1e0b7a41'

The adapter never raises. Corrupted or non-conforming data reads as "not
cached"; write and delete failures are logged and swallowed so that losing
the durable copy never breaks the running session.

Python 3.13+.
"""

from __future__ import annotations

import json
import logging

from langbundle.config import BundleConfig
from langbundle.diagnostics import DurableStoreUnavailableError, MalformedPayloadError
from langbundle.localization.bundle import Bundle, validate_entries
from langbundle.localization.loading import LoadError
from langbundle.localization.types import BundleEntries, LanguageCode, VersionToken
from langbundle.storage.backends import KeyValueStore

__all__ = ["DurableCacheAdapter"]

logger = logging.getLogger(__name__)


class DurableCacheAdapter:
    """Serialized bundle persistence on top of an opaque KeyValueStore.

    Only the BundleStore writes through this adapter. The Fallback Resolver
    may read from it synchronously for the default language.

    Attributes:
        store: Underlying key-value store
        config: Key prefixes and supported languages
        last_error: Most recent storage failure, for diagnostics
    """

    __slots__ = ("config", "last_error", "store")

    def __init__(self, store: KeyValueStore, config: BundleConfig | None = None) -> None:
        """Initialize adapter.

        Args:
            store: KeyValueStore holding the slots
            config: Configuration supplying key prefixes (default: BundleConfig())
        """
        self.store = store
        self.config = config if config is not None else BundleConfig()
        self.last_error: LoadError | None = None

    def __repr__(self) -> str:
        return f"DurableCacheAdapter(store={self.store!r})"

    def _record(self, error: DurableStoreUnavailableError) -> None:
        self.last_error = LoadError.from_exception(error)

    def read_bundle(self, language: LanguageCode) -> Bundle | None:
        """Read the cached bundle for ``language``.

        Args:
            language: LanguageCode

        Returns:
            Bundle carrying the stored VersionToken, or None if the slot is
            empty, unreadable or does not hold a JSON object of strings
        """
        key = self.config.bundle_key(language)
        try:
            raw = self.store.get(key)
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning("Durable read of %s failed: %s", key, e.summary)
            return None
        if raw is None:
            return None

        try:
            entries = self._decode(raw, language, key)
        except MalformedPayloadError as e:
            logger.warning("Discarding corrupted durable bundle %s: %s", key, e.summary)
            return None

        return Bundle.create(language, entries, self.read_version(language))

    @staticmethod
    def _decode(raw: str, language: LanguageCode, key: str) -> BundleEntries:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            msg = f"Stored bundle is not valid JSON: {e}"
            raise MalformedPayloadError(msg, language=language) from e
        return validate_entries(data, language=language, location=key)

    def read_version(self, language: LanguageCode) -> VersionToken | None:
        """Read the cached VersionToken for ``language`` (None if absent or unreadable)."""
        key = self.config.version_key(language)
        try:
            value = self.store.get(key)
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning("Durable read of %s failed: %s", key, e.summary)
            return None
        return value if isinstance(value, str) else None

    def write_bundle(
        self,
        language: LanguageCode,
        bundle: Bundle | BundleEntries,
        version: VersionToken | None,
    ) -> bool:
        """Persist a complete bundle and its VersionToken (best effort).

        The bundle slot is written first. If the version write then fails,
        the bundle slot stays as written and the old token is removed, so
        a stale token never describes a newer bundle.

        Args:
            language: LanguageCode
            bundle: Bundle snapshot or plain entries
            version: VersionToken (None removes the stored token)

        Returns:
            True if both slots were written, False if storage failed
        """
        entries = bundle.entries if isinstance(bundle, Bundle) else bundle
        bundle_key = self.config.bundle_key(language)
        version_key = self.config.version_key(language)
        try:
            payload = json.dumps(dict(entries), ensure_ascii=False, separators=(",", ":"))
            self.store.set(bundle_key, payload)
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning(
                "Failed to cache bundle for %s; continuing from memory: %s", language, e.summary
            )
            return False

        try:
            if version is None:
                self.store.delete(version_key)
            else:
                self.store.set(version_key, version)
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning("Failed to cache version token for %s: %s", language, e.summary)
            self._forget(version_key)
            return False

        logger.debug("Cached bundle for %s (%d keys, version %s)", language, len(entries), version)
        return True

    def _forget(self, key: str) -> None:
        try:
            self.store.delete(key)
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning("Failed to delete %s: %s", key, e.summary)

    def clear_all(self) -> int:
        """Delete every bundle and version slot, whatever language it names.

        Enumerates the store instead of iterating supported languages, so
        slots left behind by languages dropped from the configuration are
        purged as well.

        Returns:
            Number of slots deleted
        """
        try:
            keys = [key for key in self.store.keys() if self.config.owns_key(key)]
        except DurableStoreUnavailableError as e:
            self._record(e)
            logger.warning("Failed to enumerate durable cache: %s", e.summary)
            return 0

        deleted = 0
        for key in keys:
            try:
                self.store.delete(key)
            except DurableStoreUnavailableError as e:
                self._record(e)
                logger.warning("Failed to delete %s: %s", key, e.summary)
            else:
                deleted += 1
        return deleted
