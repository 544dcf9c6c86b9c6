"""Language preference holder.

Holds the active LanguageCode, persists it in a KeyValueStore and notifies
subscribers when it changes. The Translator subscribes to start loading
bundles for a newly selected language.

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeAlias

from langbundle.config import BundleConfig
from langbundle.constants import LANGUAGE_PREFERENCE_KEY
from langbundle.diagnostics import DurableStoreUnavailableError
from langbundle.localization.types import LanguageCode
from langbundle.locale_utils import negotiate_language
from langbundle.storage.backends import KeyValueStore

__all__ = ["LanguageChangeCallback", "LanguagePreference"]

logger = logging.getLogger(__name__)

# Called with (new_language, previous_language)
LanguageChangeCallback: TypeAlias = Callable[[LanguageCode, LanguageCode], None]


class LanguagePreference:
    """Active language with persistence and change notification.

    Initial language, in order:
        1. Persisted choice under ``storage_key`` (if supported)
        2. Negotiated from ``preferred`` against the supported set
        3. ``config.default_language``

    Example:
        >>> pref = LanguagePreference(config, store, preferred=["pl_PL.UTF-8"])
        >>> pref.language
        'PL'
        >>> unsubscribe = pref.subscribe(lambda new, old: print(old, "->", new))
        >>> pref.set("ua")
        PL -> UA
    """

    __slots__ = ("_config", "_language", "_store", "_storage_key", "_subscribers")

    def __init__(
        self,
        config: BundleConfig,
        store: KeyValueStore | None = None,
        *,
        storage_key: str = LANGUAGE_PREFERENCE_KEY,
        preferred: Iterable[str] = (),
    ) -> None:
        """Initialize preference holder.

        Args:
            config: Supported languages and default
            store: Where the choice is persisted (None keeps it in memory only)
            storage_key: Key of the persisted choice
            preferred: Locale preferences used when nothing is persisted,
                e.g. ``[get_system_language(...)]`` or Accept-Language tags
        """
        self._config = config
        self._store = store
        self._storage_key = storage_key
        self._subscribers: list[LanguageChangeCallback] = []

        persisted = self._read_persisted()
        if persisted is not None:
            self._language = persisted
        else:
            self._language = negotiate_language(
                preferred, config.supported_languages, config.default_language
            )

    def __repr__(self) -> str:
        return f"LanguagePreference(language={self._language!r})"

    @property
    def language(self) -> LanguageCode:
        return self._language

    @property
    def default_language(self) -> LanguageCode:
        return self._config.default_language

    def _read_persisted(self) -> LanguageCode | None:
        if self._store is None:
            return None
        try:
            value = self._store.get(self._storage_key)
        except DurableStoreUnavailableError as e:
            logger.warning("Could not read language preference: %s", e.summary)
            return None
        if value is None:
            return None
        if not self._config.is_supported(value):
            logger.debug("Ignoring unsupported persisted language %r", value)
            return None
        return self._config.validate_language(value)

    def _persist(self, language: LanguageCode) -> None:
        if self._store is None:
            return
        try:
            self._store.set(self._storage_key, language)
        except DurableStoreUnavailableError as e:
            logger.warning("Could not persist language preference: %s", e.summary)

    def set(self, language: LanguageCode) -> LanguageCode:
        """Make ``language`` the active language.

        Setting the current language again persists nothing and notifies no one.

        Returns:
            Normalized LanguageCode now active

        Raises:
            ValueError: If the language is not supported
        """
        code = self._config.validate_language(language)
        previous = self._language
        if code == previous:
            return code
        self._language = code
        self._persist(code)
        logger.debug("Active language changed %s -> %s", previous, code)
        for callback in tuple(self._subscribers):
            try:
                callback(code, previous)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Language change subscriber %r failed", callback)
        return code

    def subscribe(self, callback: LanguageChangeCallback) -> Callable[[], None]:
        """Register ``callback`` for language changes.

        Returns:
            Function that removes the subscription (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
