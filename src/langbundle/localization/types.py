"""Type aliases for the localization domain.

Provides semantic type aliases used throughout langbundle and by user
code when annotating Translator call sites.

Python 3.13+.
"""

from collections.abc import Mapping
from typing import TypeAlias

__all__ = [
    "BundleEntries",
    "LanguageCode",
    "TranslationKey",
    "VersionToken",
]

LanguageCode: TypeAlias = str
"""Product language code from the supported set (e.g., 'UA', 'PL', 'EN')."""

TranslationKey: TypeAlias = str
"""Namespaced translation key (e.g., 'nav.home', 'quiz.submit')."""

VersionToken: TypeAlias = str
"""Opaque identifier of one bundle snapshot, issued by the provider."""

BundleEntries: TypeAlias = Mapping[TranslationKey, str]
"""Complete key -> display string table for one language."""
