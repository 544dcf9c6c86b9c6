"""langbundle - localization bundle cache with fallback resolution.

Fetches per-language translation bundles from a remote provider, keeps them
in memory and in a durable key-value store, and resolves lookups through an
active -> default -> caller fallback -> raw key chain that never raises.

Public API:
    BundleConfig - Supported languages, key scheme and load policy
    BundleStore - Per-language bundle cache (memory, durable, remote tiers)
    Translator - t(key) bound to the active language, preload, clear_cache
    LanguagePreference - Active language holder with persistence
    DurableCacheAdapter - Bundle persistence over a KeyValueStore
    HttpBundleSource - Remote provider client (httpx)
    StaticBundleSource - In-process bundle source
    resolve - Fallback chain as a plain function

Exceptions:
    BundleError - Base exception class
    NetworkUnavailableError - Provider unreachable or timed out
    RemoteRejectedError - Non-success status or rejected envelope
    MalformedPayloadError - Response or cached data has the wrong shape
    DurableStoreUnavailableError - Durable storage read/write failed

Submodules:
    langbundle.localization - Store, resolver, translator and value types
    langbundle.remote - Remote Bundle Sources
    langbundle.storage - Key-value backends (memory, file)
    langbundle.diagnostics - Error types and diagnostic codes
    langbundle.locale_utils - Babel-backed language helpers
"""

from .config import BundleConfig
from .diagnostics import (
    BundleError,
    DurableStoreUnavailableError,
    MalformedPayloadError,
    NetworkUnavailableError,
    RemoteRejectedError,
)
from .localization import (
    BundleStore,
    DurableCacheAdapter,
    LanguagePreference,
    Translator,
    resolve,
)
from .remote import HttpBundleSource, StaticBundleSource
from .storage import FileKeyValueStore, MemoryKeyValueStore

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("langbundle")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "BundleConfig",
    "BundleError",
    "BundleStore",
    "DurableCacheAdapter",
    "DurableStoreUnavailableError",
    "FileKeyValueStore",
    "HttpBundleSource",
    "LanguagePreference",
    "MalformedPayloadError",
    "MemoryKeyValueStore",
    "NetworkUnavailableError",
    "RemoteRejectedError",
    "StaticBundleSource",
    "Translator",
    "__version__",
    "resolve",
]
