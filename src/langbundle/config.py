"""Configuration for the bundle cache.

Provides a single frozen dataclass that encapsulates the supported
language set, durable key scheme, provider endpoint and load policy.
Pass one instance to every component instead of repeating parameters.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from langbundle.constants import (
    BUNDLE_KEY_PREFIX,
    DEFAULT_LANGUAGE,
    DEFAULT_REQUEST_TIMEOUT,
    SUPPORTED_LANGUAGES,
    VERSION_KEY_PREFIX,
)
from langbundle.locale_utils import normalize_language

__all__ = ["BundleConfig", "BundleSettings"]

_ENV_PREFIX = "LANGBUNDLE_"


class BundleSettings(BaseSettings):
    """Raw ``LANGBUNDLE_*`` environment settings; unset fields stay None."""

    model_config = SettingsConfigDict(env_prefix=_ENV_PREFIX, extra="ignore")

    api_url: str | None = None
    default_language: str | None = None
    supported_languages: str | None = None
    timeout: float | None = None
    retries: int | None = None


@dataclass(frozen=True, slots=True)
class BundleConfig:
    """Immutable configuration for BundleStore and its collaborators.

    All fields have sensible defaults; constructing ``BundleConfig()`` with
    no arguments produces a usable configuration for an offline store.

    Attributes:
        supported_languages: Closed LanguageCode set, normalized to upper case.
        default_language: Language consulted when the active one lacks a key.
            Must be one of ``supported_languages``.
        bundle_key_prefix: Durable slot prefix for serialized bundles.
        version_key_prefix: Durable slot prefix for version tokens.
        api_base_url: Base URL of the remote provider ("" for none).
        request_timeout: Seconds before a bundle request is abandoned.
        fetch_retries: Extra attempts after a NetworkUnavailable failure.
        retry_backoff: Base delay in seconds; attempt ``n`` waits
            ``retry_backoff * 2**n``.
        deduplicate_requests: Share one in-flight fetch per language.
        background_refresh: Refresh from the provider after serving a
            durable-cache hit (stale-while-revalidate).

    Example:
        >>> config = BundleConfig(api_base_url="https://elearn.example", fetch_retries=2)
        >>> config.default_language
        'EN'
        >>> config.bundle_key("pl")
        'i18n_bundle_PL'
    """

    supported_languages: tuple[str, ...] = SUPPORTED_LANGUAGES
    default_language: str = DEFAULT_LANGUAGE
    bundle_key_prefix: str = BUNDLE_KEY_PREFIX
    version_key_prefix: str = VERSION_KEY_PREFIX
    api_base_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    fetch_retries: int = 0
    retry_backoff: float = 0.1
    deduplicate_requests: bool = True
    background_refresh: bool = True

    def __post_init__(self) -> None:
        """Normalize language codes and validate values at construction time.

        Raises:
            ValueError: If the language set is empty, the default language is
                not supported, the key prefixes collide, or a numeric field
                is out of range.
        """
        languages = tuple(
            dict.fromkeys(normalize_language(code) for code in self.supported_languages)
        )
        if not languages or not all(languages):
            msg = "At least one supported language is required"
            raise ValueError(msg)
        object.__setattr__(self, "supported_languages", languages)

        default = normalize_language(self.default_language)
        if default not in languages:
            msg = f"default_language '{default}' not in supported languages {languages}"
            raise ValueError(msg)
        object.__setattr__(self, "default_language", default)

        if not self.bundle_key_prefix or not self.version_key_prefix:
            msg = "Durable key prefixes must be non-empty"
            raise ValueError(msg)
        if self.bundle_key_prefix.startswith(self.version_key_prefix) or (
            self.version_key_prefix.startswith(self.bundle_key_prefix)
        ):
            msg = (
                f"Durable key prefixes overlap: '{self.bundle_key_prefix}' "
                f"and '{self.version_key_prefix}'"
            )
            raise ValueError(msg)

        object.__setattr__(self, "api_base_url", self.api_base_url.rstrip("/"))

        if self.request_timeout <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        if self.fetch_retries < 0:
            msg = "fetch_retries must be non-negative"
            raise ValueError(msg)
        if self.retry_backoff < 0:
            msg = "retry_backoff must be non-negative"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BundleConfig:
        """Build a configuration from ``LANGBUNDLE_*`` environment variables.

        Recognized variables:
            LANGBUNDLE_API_URL: provider base URL
            LANGBUNDLE_DEFAULT_LANGUAGE: default LanguageCode
            LANGBUNDLE_SUPPORTED_LANGUAGES: comma-separated LanguageCodes
            LANGBUNDLE_TIMEOUT: request timeout in seconds
            LANGBUNDLE_RETRIES: extra attempts after network failures

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Validated BundleConfig

        Raises:
            ValueError: If a numeric variable does not parse or the resulting
                configuration is invalid
        """
        try:
            if environ is None:
                settings = BundleSettings()
            else:
                settings = BundleSettings.model_validate(
                    {
                        name.removeprefix(_ENV_PREFIX).lower(): value
                        for name, value in environ.items()
                        if name.startswith(_ENV_PREFIX)
                    }
                )
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]).upper() if error["loc"] else "?"
            msg = f"{_ENV_PREFIX}{field} is invalid: {error['msg']}"
            raise ValueError(msg) from None

        kwargs: dict[str, object] = {}
        if settings.api_url is not None:
            kwargs["api_base_url"] = settings.api_url
        if settings.default_language is not None:
            kwargs["default_language"] = settings.default_language
        if settings.supported_languages is not None:
            parts = (part.strip() for part in settings.supported_languages.split(","))
            kwargs["supported_languages"] = tuple(part for part in parts if part)
        if settings.timeout is not None:
            kwargs["request_timeout"] = settings.timeout
        if settings.retries is not None:
            kwargs["fetch_retries"] = settings.retries

        return cls(**kwargs)  # type: ignore[arg-type]

    def validate_language(self, language: str) -> str:
        """Normalize a LanguageCode and check it belongs to the supported set.

        Args:
            language: LanguageCode in any case, surrounding whitespace allowed

        Returns:
            Normalized LanguageCode

        Raises:
            ValueError: If the language is not supported
        """
        normalized = normalize_language(language) if isinstance(language, str) else ""
        if normalized not in self.supported_languages:
            msg = f"Language '{language}' not in supported languages {self.supported_languages}"
            raise ValueError(msg)
        return normalized

    def is_supported(self, language: object) -> bool:
        """Check membership without raising."""
        if not isinstance(language, str):
            return False
        return normalize_language(language) in self.supported_languages

    def bundle_key(self, language: str) -> str:
        """Durable slot holding the serialized bundle for ``language``."""
        return f"{self.bundle_key_prefix}{normalize_language(language)}"

    def version_key(self, language: str) -> str:
        """Durable slot holding the VersionToken for ``language``."""
        return f"{self.version_key_prefix}{normalize_language(language)}"

    def owns_key(self, key: str) -> bool:
        """Check whether a durable key belongs to the bundle cache."""
        return key.startswith((self.bundle_key_prefix, self.version_key_prefix))

    def languages_or_all(self, languages: Iterable[str] | None) -> tuple[str, ...]:
        """Validate ``languages`` (deduplicated), or return every supported one."""
        if languages is None:
            return self.supported_languages
        return tuple(dict.fromkeys(self.validate_language(code) for code in languages))
