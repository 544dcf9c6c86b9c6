"""Bundle snapshots and payload validation.

A Bundle is either absent or a complete snapshot as written by a successful
fetch. Snapshots are immutable: the store replaces them whole and never
edits one in place, so a reader can never observe a half-updated table.

Everything that crosses a trust boundary (durable-store JSON, provider
responses, bundled JSON files) passes through the pydantic schemas here
before it becomes a Bundle. Validation failures surface as
MalformedPayloadError carrying a Diagnostic.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from langbundle.diagnostics import Diagnostic, DiagnosticCode, MalformedPayloadError
from langbundle.localization.types import BundleEntries, LanguageCode, VersionToken
from langbundle.locale_utils import normalize_language

__all__ = [
    "Bundle",
    "BundlePayload",
    "BundleResponse",
    "validate_entries",
]

# Keys and values must already be strings; no coercion from numbers or null
_ENTRIES = TypeAdapter(dict[StrictStr, StrictStr])


def validate_entries(
    value: object, *, language: str = "", location: str | None = None
) -> dict[str, str]:
    """Validate a decoded JSON value as a bundle table.

    Args:
        value: Decoded JSON value
        language: LanguageCode for diagnostics
        location: Storage key, URL or path for diagnostics

    Returns:
        Plain dict copy of the entries

    Raises:
        MalformedPayloadError: If value is not a mapping of str to str
    """
    try:
        return _ENTRIES.validate_python(value)
    except ValidationError as e:
        error = e.errors()[0]
        where = ".".join(str(part) for part in error["loc"])
        detail = f" ({where}: {error['msg']})" if where else f" ({error['msg']})"
        diagnostic = Diagnostic(
            code=DiagnosticCode.MALFORMED_PAYLOAD,
            message=f"Bundle for '{language}' is not a mapping of strings to strings{detail}",
            language=language or None,
            location=location,
        )
        raise MalformedPayloadError(diagnostic, language=language) from None


@dataclass(frozen=True, slots=True)
class Bundle:
    """Immutable key -> string table for exactly one language.

    A substitute bundle keeps the language it was written for, even when it
    is served under another language's slot.

    Attributes:
        language: LanguageCode the entries are written in
        entries: Read-only translation table
        version: VersionToken of the snapshot, if known

    Example:
        >>> bundle = Bundle.create("PL", {"nav.home": "Strona główna"}, "a1b2")
        >>> bundle.get("nav.home")
        'Strona główna'
        >>> bundle.get("nav.profile") is None
        True
    """

    language: LanguageCode
    entries: BundleEntries = field(default_factory=lambda: MappingProxyType({}))
    version: VersionToken | None = None

    @classmethod
    def create(
        cls,
        language: LanguageCode,
        entries: Mapping[str, str],
        version: VersionToken | None = None,
    ) -> Bundle:
        """Build a snapshot from a mapping, copying it so later edits don't leak in."""
        return cls(
            language=normalize_language(language),
            entries=MappingProxyType(dict(entries)),
            version=version,
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    @property
    def is_empty(self) -> bool:
        """True when the snapshot has no keys (treated as not loaded)."""
        return not self.entries

    def get(self, key: str) -> str | None:
        """Return the value for ``key``, treating empty strings as missing."""
        value = self.entries.get(key)
        return value if value else None


class BundleResponse(BaseModel):
    """Wire schema of the remote bundle endpoint.

    Validated with an ``expected_language`` context entry when the caller
    knows which language it asked for.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    lang: Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]
    version: StrictStr
    count: StrictInt = Field(ge=0)
    namespaces: list[StrictStr]
    bundle: dict[StrictStr, StrictStr]

    @field_validator("lang")
    @classmethod
    def _normalize_lang(cls, value: str) -> str:
        return normalize_language(value)

    @model_validator(mode="after")
    def _check_consistency(self, info: ValidationInfo) -> Self:
        if self.count != len(self.bundle):
            msg = f"Bundle response count {self.count} does not match {len(self.bundle)} entries"
            raise ValueError(msg)
        expected = (info.context or {}).get("expected_language")
        if expected and normalize_language(expected) != self.lang:
            raise PydanticCustomError(
                "language_mismatch",
                "Requested '{expected}' but provider served '{served}'",
                {"expected": expected, "served": self.lang},
            )
        return self


@dataclass(frozen=True, slots=True)
class BundlePayload:
    """Validated response of the remote bundle endpoint.

    Wire shape::

        {"lang": "PL", "version": "9f2c1e0b7a41", "count": 2,
         "namespaces": ["all"], "bundle": {"nav.home": "..."}}

    Attributes:
        lang: LanguageCode the provider says it served
        version: VersionToken of the snapshot
        count: Number of entries
        namespaces: Namespaces included in the bundle
        entries: Translation table (complete replacement, never a patch)
    """

    lang: LanguageCode
    version: VersionToken
    count: int
    namespaces: tuple[str, ...]
    entries: BundleEntries

    @classmethod
    def from_json(
        cls,
        data: Any,
        *,
        expected_language: LanguageCode | None = None,
        location: str | None = None,
    ) -> BundlePayload:
        """Validate a decoded JSON body and build a payload.

        Args:
            data: Decoded JSON body (envelope already unwrapped)
            expected_language: Requested LanguageCode; the payload must match it
            location: Endpoint URL for diagnostics

        Returns:
            Validated BundlePayload

        Raises:
            MalformedPayloadError: On any missing field, wrong type, count
                mismatch or language mismatch
        """
        language = expected_language or ""
        try:
            response = BundleResponse.model_validate(
                data, context={"expected_language": expected_language}
            )
        except ValidationError as e:
            error = e.errors()[0]
            code = DiagnosticCode.MALFORMED_PAYLOAD
            if error["type"] == "language_mismatch":
                code = DiagnosticCode.LANGUAGE_MISMATCH
                message = error["msg"]
            elif error["type"] == "model_type":
                message = f"Bundle response must be a JSON object, got {type(data).__name__}"
            elif error["loc"]:
                message = f"Bundle response field '{error['loc'][0]}' is invalid: {error['msg']}"
            else:
                message = error["msg"].removeprefix("Value error, ")
            diagnostic = Diagnostic(
                code=code,
                message=message,
                language=language or None,
                location=location,
            )
            raise MalformedPayloadError(diagnostic, language=language) from None

        return cls(
            lang=response.lang,
            version=response.version,
            count=response.count,
            namespaces=tuple(response.namespaces),
            entries=MappingProxyType(dict(response.bundle)),
        )

    def to_bundle(self) -> Bundle:
        """Snapshot for the in-memory store."""
        return Bundle(language=self.lang, entries=self.entries, version=self.version)
