"""Shared constants for langbundle.

Constants are grouped by domain:
- Languages: the supported LanguageCode set and the default language
- Durable storage: key prefixes for bundle and version slots
- Remote provider: endpoint paths and request limits

Python 3.13+.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Languages
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    "LANGUAGE_LOCALES",
    # Durable storage
    "BUNDLE_KEY_PREFIX",
    "VERSION_KEY_PREFIX",
    "LANGUAGE_PREFERENCE_KEY",
    # Remote provider
    "BUNDLE_ENDPOINT",
    "MISSING_KEYS_ENDPOINT",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RETRY_AFTER",
    "MAX_MISSING_KEYS_PER_REPORT",
]

# ============================================================================
# LANGUAGES
# ============================================================================

SUPPORTED_LANGUAGES: tuple[str, ...] = ("UA", "PL", "EN")
"""Closed set of LanguageCodes served by the provider."""

DEFAULT_LANGUAGE: str = "EN"
"""Language consulted when the active language lacks a key."""

# LanguageCodes are product codes, not BCP-47 tags: "UA" names the Ukrainian
# interface, whose CLDR language is "uk".
LANGUAGE_LOCALES: dict[str, str] = {
    "UA": "uk",
    "PL": "pl",
    "EN": "en",
}

# ============================================================================
# DURABLE STORAGE
# ============================================================================

BUNDLE_KEY_PREFIX: str = "i18n_bundle_"
VERSION_KEY_PREFIX: str = "i18n_version_"
LANGUAGE_PREFERENCE_KEY: str = "elearn_lang"

# ============================================================================
# REMOTE PROVIDER
# ============================================================================

BUNDLE_ENDPOINT: str = "/api/i18n/bundle"
MISSING_KEYS_ENDPOINT: str = "/api/i18n/missing"

DEFAULT_REQUEST_TIMEOUT: float = 10.0
"""Seconds before a bundle request is abandoned as NetworkUnavailable."""

DEFAULT_RETRY_AFTER: int = 60
"""Seconds assumed for a 429 response that carries no Retry-After header."""

MAX_MISSING_KEYS_PER_REPORT: int = 100
"""Server-side cap on keys accepted by one missing-key report."""
