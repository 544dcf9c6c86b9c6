"""Remote Bundle Source contract and an in-process implementation.

A source turns a LanguageCode into a validated BundlePayload or raises one
of the remote taxonomy errors (NetworkUnavailableError, RemoteRejectedError,
MalformedPayloadError). Sources never retry; retry policy belongs to the
BundleStore.

Python 3.13+.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol

from langbundle.diagnostics import Diagnostic, DiagnosticCode, RemoteRejectedError
from langbundle.localization.bundle import BundlePayload
from langbundle.localization.types import LanguageCode, VersionToken
from langbundle.locale_utils import normalize_language

__all__ = [
    "RemoteBundleSource",
    "StaticBundleSource",
    "bundle_version",
]


class RemoteBundleSource(Protocol):
    """Protocol for fetching a complete bundle for one language.

    Implementations apply their own timeout and fail cleanly past it.
    A successful payload is a complete replacement, never a patch.
    """

    async def fetch(self, language: LanguageCode) -> BundlePayload:
        """Fetch the current bundle for ``language``.

        Raises:
            NetworkUnavailableError: Provider unreachable or timed out
            RemoteRejectedError: Non-success status or rejected envelope
            MalformedPayloadError: Response does not have the bundle shape
        """
        ...


def bundle_version(entries: Mapping[str, str]) -> VersionToken:
    """Content hash used as VersionToken, matching the provider's scheme.

    The provider hashes the JSON of the assembled bundle with MD5 and keeps
    the first 12 hex digits.
    """
    # Compact separators and insertion order, as JSON.stringify produces
    encoded = json.dumps(dict(entries), ensure_ascii=False, separators=(",", ":"))
    return hashlib.md5(encoded.encode("utf-8"), usedforsecurity=False).hexdigest()[:12]


class StaticBundleSource:
    """RemoteBundleSource backed by an in-process mapping.

    Useful offline, for seeding a durable cache, and in tests. Languages
    without a table answer like a provider returning 404.

    Attributes:
        fetch_count: Number of fetch() calls, per language
    """

    __slots__ = ("_bundles", "_versions", "fetch_count")

    def __init__(
        self,
        bundles: Mapping[LanguageCode, Mapping[str, str]] | None = None,
        versions: Mapping[LanguageCode, VersionToken] | None = None,
    ) -> None:
        """Initialize static source.

        Args:
            bundles: Tables keyed by LanguageCode
            versions: Explicit VersionTokens; missing ones are content hashes
        """
        self._bundles: dict[str, MappingProxyType[str, str]] = {}
        self._versions: dict[str, VersionToken] = {}
        self.fetch_count: dict[str, int] = {}
        for language, entries in (bundles or {}).items():
            self.set_bundle(language, entries, (versions or {}).get(language))

    def set_bundle(
        self,
        language: LanguageCode,
        entries: Mapping[str, str],
        version: VersionToken | None = None,
    ) -> None:
        """Replace the table served for ``language``."""
        code = normalize_language(language)
        self._bundles[code] = MappingProxyType(dict(entries))
        self._versions[code] = version if version is not None else bundle_version(entries)

    def remove_bundle(self, language: LanguageCode) -> None:
        """Stop serving ``language`` (subsequent fetches are rejected with 404)."""
        code = normalize_language(language)
        self._bundles.pop(code, None)
        self._versions.pop(code, None)

    async def fetch(self, language: LanguageCode) -> BundlePayload:
        code = normalize_language(language)
        self.fetch_count[code] = self.fetch_count.get(code, 0) + 1
        entries = self._bundles.get(code)
        if entries is None:
            diagnostic = Diagnostic(
                code=DiagnosticCode.REMOTE_REJECTED,
                message=f"No bundle for language '{code}'",
                language=code,
                status=404,
            )
            raise RemoteRejectedError(diagnostic, language=code, status=404)
        return BundlePayload(
            lang=code,
            version=self._versions[code],
            count=len(entries),
            namespaces=("all",),
            entries=entries,
        )
