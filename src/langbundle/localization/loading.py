"""Load results and local bundle loading.

Provides the records the BundleStore returns from load attempts, the
fallback observability record used by the Translator, and the loader for
per-language JSON bundles shipped with the application.

Components:
    LoadError - Immutable description of a failed tier (never a live exception)
    LoadResult - Immutable outcome of one ensure_loaded/load_local call
    LoadSummary - Immutable aggregate of LoadResults (preload)
    FallbackInfo - Immutable record of a cross-language fallback event
    LocalBundleLoader - Protocol for bundled JSON loaders (structural typing)
    PathBundleLoader - Disk-based loader with path-traversal prevention

Python 3.13+.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from langbundle.diagnostics import BundleError, Diagnostic, DiagnosticCode, MalformedPayloadError
from langbundle.diagnostics.errors import RemoteRejectedError
from langbundle.enums import BundleSource, ErrorKind, LoadStatus, LookupSource
from langbundle.localization.bundle import validate_entries
from langbundle.localization.types import LanguageCode, TranslationKey, VersionToken
from langbundle.locale_utils import normalize_language

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Protocol
    "LocalBundleLoader",
    # Concrete loader
    "PathBundleLoader",
    # Fallback observability
    "FallbackInfo",
    # Load result types
    "LoadError",
    "LoadResult",
    "LoadSummary",
]


class LocalBundleLoader(Protocol):
    """Protocol for loading bundled translation tables for a language.

    Local bundles ship with the application (e.g. ``locales/{lang}.json``).
    They are a fast fallback consulted before the default language, and
    are never written to the durable cache.

    Example:
        >>> class PackageLoader:
        ...     def load(self, language: str) -> Mapping[str, str]:
        ...         path = files("myapp.locales") / f"{language.lower()}.json"
        ...         text = path.read_text(encoding="utf-8")
        ...         return json.loads(text)
        ...     def describe_path(self, language: str) -> str:
        ...         return f"myapp/locales/{language.lower()}.json"
    """

    def load(self, language: LanguageCode) -> Mapping[str, str]:
        """Load the bundled table for ``language``.

        Raises:
            FileNotFoundError: If no bundle ships for this language
            MalformedPayloadError: If the file is not a mapping of strings
            OSError: If the file cannot be read
        """

    def describe_path(self, language: LanguageCode) -> str:
        """Return human-readable path for diagnostics."""
        return f"locales/{language.lower()}.json"


@dataclass(frozen=True, slots=True)
class PathBundleLoader:
    """File system loader for bundled JSON tables using a path template.

    Uses a ``{lang}`` placeholder, substituted with the lower-cased
    LanguageCode: ``"locales/{lang}.json"`` loads ``locales/pl.json`` for PL.

    Security:
        LanguageCodes containing path separators or ".." are rejected and the
        resolved path must stay inside ``root_dir``.

    Attributes:
        base_path: Path template with {lang} placeholder
        root_dir: Fixed root directory for path traversal validation.
                  Defaults to the static prefix of base_path.
    """

    base_path: str
    root_dir: str | None = None
    _resolved_root: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Cache resolved root directory and validate template at initialization.

        Raises:
            ValueError: If base_path does not contain {lang} placeholder
        """
        if "{lang}" not in self.base_path:
            msg = f"base_path must contain '{{lang}}' placeholder, got: '{self.base_path}'"
            raise ValueError(msg)

        if self.root_dir is not None:
            resolved = Path(self.root_dir).resolve()
        else:
            # e.g., "app/locales/{lang}.json" -> "app/locales"
            static_prefix = self.base_path.split("{lang}")[0].rstrip("/\\")
            resolved = Path(static_prefix).resolve() if static_prefix else Path.cwd().resolve()
        object.__setattr__(self, "_resolved_root", resolved)

    @staticmethod
    def _validate_language(language: LanguageCode) -> None:
        if not language:
            msg = "Language code cannot be empty"
            raise ValueError(msg)
        if ".." in language:
            msg = f"Path traversal sequences not allowed in language: '{language}'"
            raise ValueError(msg)
        if "/" in language or "\\" in language:
            msg = f"Path separators not allowed in language: '{language}'"
            raise ValueError(msg)

    def describe_path(self, language: LanguageCode) -> str:
        return self.base_path.replace("{lang}", language.lower())

    def load(self, language: LanguageCode) -> Mapping[str, str]:
        """Load and validate the bundled table for ``language``.

        Raises:
            ValueError: If the language code contains path traversal sequences
            FileNotFoundError: If the file doesn't exist
            MalformedPayloadError: If the file is not a JSON object of strings
            OSError: If the file cannot be read
        """
        self._validate_language(language)
        path = Path(self.describe_path(language)).resolve()
        try:
            path.relative_to(self._resolved_root)
        except ValueError:
            msg = f"Path traversal detected: resolved path escapes root directory: '{language}'"
            raise ValueError(msg) from None

        text = path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            diagnostic = Diagnostic(
                code=DiagnosticCode.LOCAL_BUNDLE_INVALID,
                message=f"Bundled translations are not valid JSON: {e.msg}",
                language=language,
                location=str(path),
            )
            raise MalformedPayloadError(diagnostic, language=language) from e
        return validate_entries(data, language=language, location=str(path))


@dataclass(frozen=True, slots=True)
class LoadError:
    """Immutable description of a failed load tier.

    Stored on LanguageState instead of a live exception so snapshots stay
    hashable and free of tracebacks.

    Attributes:
        kind: Failure taxonomy member
        message: Human-readable description
        status: HTTP status for remote rejections
    """

    kind: ErrorKind
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_exception(cls, error: BundleError) -> LoadError:
        """Describe a taxonomy exception."""
        status = error.status if isinstance(error, RemoteRejectedError) else None
        kind = error.kind or ErrorKind.MALFORMED_PAYLOAD
        return cls(kind=kind, message=error.summary, status=status)


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Result of one attempt to make a language available.

    Attributes:
        language: LanguageCode that was requested
        status: Outcome of the attempt
        source: Tier that supplied the adopted bundle
        version: VersionToken of the adopted bundle, if any
        key_count: Number of keys now served for the language
        error: Failure that was recovered from or that ended the attempt
    """

    language: LanguageCode
    status: LoadStatus
    source: BundleSource = BundleSource.NONE
    version: VersionToken | None = None
    key_count: int = 0
    error: LoadError | None = None

    @property
    def is_success(self) -> bool:
        """True when the language now has something to serve."""
        return self.status != LoadStatus.FAILED

    @property
    def is_failure(self) -> bool:
        return self.status == LoadStatus.FAILED

    @property
    def is_degraded(self) -> bool:
        """True when data is served but the remote source was not confirmed."""
        return self.status in (LoadStatus.CACHED, LoadStatus.SUBSTITUTED)


@dataclass(frozen=True, slots=True)
class LoadSummary:
    """Immutable aggregate of load results from a preload.

    All statistics are computed properties derived from ``results``.

    Example:
        >>> summary = await translator.preload()
        >>> if summary.failed:
        ...     for result in summary.get_failures():
        ...         print(f"{result.language}: {result.error}")
    """

    results: tuple[LoadResult, ...]

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        return (
            f"LoadSummary(total={self.total_attempted}, "
            f"ok={self.successful}, "
            f"degraded={self.degraded}, "
            f"failed={self.failed})"
        )

    @property
    def total_attempted(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.is_success)

    @property
    def degraded(self) -> int:
        return sum(1 for r in self.results if r.is_degraded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.is_failure)

    @property
    def all_successful(self) -> bool:
        return self.failed == 0

    def get_failures(self) -> tuple[LoadResult, ...]:
        return tuple(r for r in self.results if r.is_failure)

    def get_by_language(self, language: LanguageCode) -> LoadResult | None:
        """Result for ``language``, or None if it was not part of the preload."""
        code = normalize_language(language)
        return next((r for r in self.results if r.language == code), None)


@dataclass(frozen=True, slots=True)
class FallbackInfo:
    """Information about a lookup served by something other than the active language.

    Provided to the Translator's on_fallback callback.

    Attributes:
        key: Translation key that was looked up
        requested_language: Active language at lookup time
        resolved_language: Language whose data supplied the value
            (None for caller fallbacks and raw keys)
        source: Tier that supplied the value

    Example:
        >>> def log_fallback(info: FallbackInfo) -> None:
        ...     print(f"{info.key}: {info.requested_language} -> {info.resolved_language}")
        >>> translator = Translator(store, preference, on_fallback=log_fallback)
    """

    key: TranslationKey
    requested_language: LanguageCode
    resolved_language: LanguageCode | None
    source: LookupSource

    @property
    def is_missing(self) -> bool:
        """True when no language had the key."""
        return self.source in (LookupSource.CALLER_FALLBACK, LookupSource.KEY)
