"""Bundle cache and fallback resolution.

Submodules:
    types       - PEP 695 type aliases (LanguageCode, TranslationKey, VersionToken)
    bundle      - Bundle snapshots and BundlePayload validation
    loading     - LoadResult, LoadSummary, FallbackInfo, local bundle loaders
    durable     - DurableCacheAdapter (bundles and version tokens in a KeyValueStore)
    store       - BundleStore orchestration and LanguageState snapshots
    resolver    - resolve() / resolve_with_source() fallback chain
    preference  - LanguagePreference (active language holder)
    translator  - Translator (t(), preload, administrative surface)

Python 3.13+.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability

from langbundle.enums import LoadState, LoadStatus
from langbundle.localization.bundle import Bundle, BundlePayload
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.localization.loading import (
    FallbackInfo,
    LoadError,
    LoadResult,
    LoadSummary,
    LocalBundleLoader,
    PathBundleLoader,
)
from langbundle.localization.preference import LanguagePreference
from langbundle.localization.resolver import Resolution, resolve, resolve_with_source
from langbundle.localization.store import BundleStore, LanguageState
from langbundle.localization.translator import MissingKeyReporter, Translator
from langbundle.localization.types import BundleEntries, LanguageCode, TranslationKey, VersionToken

__all__ = [
    # Orchestration
    "BundleStore",
    "LanguageState",
    "LoadState",
    # Lookup surface
    "Translator",
    "LanguagePreference",
    "MissingKeyReporter",
    "Resolution",
    "resolve",
    "resolve_with_source",
    # Data
    "Bundle",
    "BundlePayload",
    "DurableCacheAdapter",
    # Local bundles
    "LocalBundleLoader",
    "PathBundleLoader",
    # Load tracking
    "LoadError",
    "LoadResult",
    "LoadStatus",
    "LoadSummary",
    # Fallback observability
    "FallbackInfo",
    # Type aliases for user code type annotations
    "BundleEntries",
    "LanguageCode",
    "TranslationKey",
    "VersionToken",
]
