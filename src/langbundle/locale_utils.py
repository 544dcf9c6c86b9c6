"""Language code utilities on top of Babel.

LanguageCodes are short product codes ("UA", "PL", "EN") used as cache
partition keys. This module normalizes them at the system boundary and maps
them to CLDR locales for display names and preference negotiation.

Python 3.13+.
"""

from __future__ import annotations

import functools
import os
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from langbundle.constants import LANGUAGE_LOCALES

if TYPE_CHECKING:
    from babel import Locale

__all__ = [
    "get_babel_locale",
    "get_system_language",
    "language_display_name",
    "negotiate_language",
    "normalize_language",
    "to_babel_locale",
]


def normalize_language(language: str) -> str:
    """Normalize a LanguageCode to its canonical upper-case form.

    This is the canonical normalization function. Normalize at the entry
    point, then use the normalized form for cache keys and lookups.

    Args:
        language: LanguageCode in any case (e.g., "pl", " EN ")

    Returns:
        Upper-case code without surrounding whitespace

    Example:
        >>> normalize_language(" pl ")
        'PL'
    """
    return language.strip().upper()


def to_babel_locale(language: str) -> str:
    """Map a LanguageCode to the CLDR locale identifier Babel understands.

    Args:
        language: LanguageCode (e.g., "UA")

    Returns:
        CLDR identifier (e.g., "uk"); unknown codes are lower-cased as-is

    Example:
        >>> to_babel_locale("UA")
        'uk'
        >>> to_babel_locale("DE")
        'de'
    """
    code = normalize_language(language)
    return LANGUAGE_LOCALES.get(code, code.lower())


@functools.lru_cache(maxsize=32)
def get_babel_locale(language: str) -> Locale:
    """Get a Babel Locale object for a LanguageCode, with caching.

    Args:
        language: LanguageCode (e.g., "PL")

    Returns:
        Babel Locale object

    Raises:
        babel.core.UnknownLocaleError: If the mapped locale is not in CLDR
        ValueError: If the locale format is invalid
    """
    # Lazy import: Babel loads CLDR data at import time; defer until needed
    from babel import Locale  # noqa: PLC0415

    return Locale.parse(to_babel_locale(language))


def language_display_name(language: str, in_language: str | None = None) -> str:
    """Return the human-readable name of a language.

    By default the name is given in the language itself ("polski"), which
    is what language pickers show.

    Args:
        language: LanguageCode to describe
        in_language: LanguageCode to write the name in (default: itself)

    Returns:
        Display name, or the normalized code when CLDR has no data

    Example:
        >>> language_display_name("UA")
        'українська'
        >>> language_display_name("PL", in_language="EN")
        'Polish'
    """
    from babel.core import UnknownLocaleError  # noqa: PLC0415

    try:
        locale = get_babel_locale(language)
        target = get_babel_locale(in_language) if in_language else locale
        name = locale.get_display_name(target)
    except (UnknownLocaleError, ValueError):
        return normalize_language(language)
    return name or normalize_language(language)


def negotiate_language(
    preferred: Iterable[str],
    supported: Iterable[str],
    default: str,
) -> str:
    """Pick the best supported LanguageCode for a list of user preferences.

    Preferences may be product codes ("PL") or POSIX/BCP-47 locales
    ("uk_UA.UTF-8", "pl-PL"). Product codes match directly; locales are
    negotiated against the supported set with ``babel.negotiate_locale``.

    Args:
        preferred: Preferences in priority order
        supported: Supported LanguageCodes
        default: Returned when nothing matches

    Returns:
        A supported LanguageCode, or ``default``

    Example:
        >>> negotiate_language(["de_DE", "uk_UA.UTF-8"], ["UA", "PL", "EN"], "EN")
        'UA'
    """
    from babel import negotiate_locale  # noqa: PLC0415

    supported_codes = [normalize_language(code) for code in supported]
    by_locale: Mapping[str, str] = {to_babel_locale(code): code for code in supported_codes}

    for preference in preferred:
        if not isinstance(preference, str) or not preference.strip():
            continue
        code = normalize_language(preference)
        if code in supported_codes:
            return code
        # Strip encoding suffix (e.g., ".UTF-8") and use POSIX separators
        candidate = preference.strip().split(".")[0].replace("-", "_")
        negotiated = negotiate_locale([candidate], list(by_locale), sep="_")
        # negotiate_locale echoes the caller's spelling, not the available entry
        if negotiated is not None and negotiated.lower() in by_locale:
            return by_locale[negotiated.lower()]

    return normalize_language(default)


def get_system_language(
    supported: Iterable[str],
    default: str,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Detect the user's language from locale environment variables.

    Detection order follows POSIX precedence: LC_ALL, LC_MESSAGES, LANG.
    Each value may be a colon-separated list (as in LANGUAGE-style values);
    "C" and "POSIX" pseudo-locales are ignored.

    Args:
        supported: Supported LanguageCodes
        default: Returned when no variable yields a supported language
        environ: Mapping to read instead of ``os.environ``

    Returns:
        Supported LanguageCode
    """
    env = os.environ if environ is None else environ
    preferences: list[str] = []
    for var in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = env.get(var)
        if not value:
            continue
        preferences.extend(
            part for part in value.split(":") if part and part not in ("C", "POSIX")
        )
    return negotiate_language(preferences, supported, default)
