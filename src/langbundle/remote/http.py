"""HTTP Remote Bundle Source built on httpx.

Talks to the provider's i18n endpoints::

    GET  {base}/api/i18n/bundle?lang=PL[&ns=common,auth]
    POST {base}/api/i18n/missing   {"keys": [...], "lang": "PL"}

Responses may be bare JSON or wrapped in the standard envelope
``{"success": bool, "data": ..., "error": {"code", "message"}}``.
Every failure is mapped onto the remote taxonomy; nothing is retried here.

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Self

import httpx

from langbundle.constants import (
    BUNDLE_ENDPOINT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_AFTER,
    MAX_MISSING_KEYS_PER_REPORT,
    MISSING_KEYS_ENDPOINT,
)
from langbundle.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    MalformedPayloadError,
    NetworkUnavailableError,
    RemoteRejectedError,
)
from langbundle.localization.bundle import BundlePayload
from langbundle.localization.types import LanguageCode, TranslationKey
from langbundle.locale_utils import normalize_language

if TYPE_CHECKING:
    from types import TracebackType

    from langbundle.config import BundleConfig

__all__ = ["HttpBundleSource"]

logger = logging.getLogger(__name__)


def _extract_message(data: Any) -> str | None:
    """Pull a human-readable message out of an error body.

    Accepts ``{"message": ...}``, ``{"error": "..."}`` and
    ``{"error": {"message": ...}}`` shapes.
    """
    if not isinstance(data, dict):
        return None
    for candidate in (data.get("message"), data.get("error")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    nested = data.get("error")
    if isinstance(nested, dict):
        for candidate in (nested.get("message"), nested.get("error")):
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
    return None


def _parse_retry_after(value: str | None) -> int:
    if value is None:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0, int(value.strip()))
    except ValueError:
        # HTTP-date form; not worth a date parser for an advisory delay
        return DEFAULT_RETRY_AFTER


class HttpBundleSource:
    """RemoteBundleSource over HTTP using ``httpx.AsyncClient``.

    The source is an async context manager. A client passed in by the caller
    stays owned by the caller and is not closed by ``aclose()``.

    Example:
        >>> async with HttpBundleSource("https://elearn.example") as source:
        ...     payload = await source.fetch("PL")
        ...     payload.count
        412

    Attributes:
        base_url: Provider origin without trailing slash
        timeout: Per-request timeout in seconds
        namespaces: Namespaces to request ("" means all)
    """

    __slots__ = ("_client", "_owns_client", "base_url", "namespaces", "timeout")

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        namespaces: Iterable[str] = (),
    ) -> None:
        """Initialize HTTP source.

        Args:
            base_url: Provider origin (e.g., "https://elearn.example")
            timeout: Per-request timeout in seconds
            client: Shared AsyncClient; created lazily when omitted
            namespaces: Restrict bundles to these namespaces

        Raises:
            ValueError: If timeout is not positive
        """
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.namespaces: tuple[str, ...] = tuple(n.strip() for n in namespaces if n.strip())
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: BundleConfig, **kwargs: Any) -> HttpBundleSource:
        """Build a source for ``config.api_base_url`` and ``config.request_timeout``."""
        kwargs.setdefault("timeout", config.request_timeout)
        return cls(config.api_base_url, **kwargs)

    def __repr__(self) -> str:
        return f"HttpBundleSource(base_url={self.base_url!r}, timeout={self.timeout})"

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def fetch(self, language: LanguageCode) -> BundlePayload:
        """Fetch and validate the bundle for ``language``.

        Raises:
            NetworkUnavailableError: Connection failure or timeout
            RemoteRejectedError: Non-2xx status or ``success: false`` envelope
            MalformedPayloadError: Body is not JSON or not the bundle shape
        """
        code = normalize_language(language)
        url = f"{self.base_url}{BUNDLE_ENDPOINT}"
        params = {"lang": code}
        if self.namespaces:
            params["ns"] = ",".join(self.namespaces)

        response = await self._send("GET", url, code, params=params)
        data = self._unwrap(response, code, url)
        payload = BundlePayload.from_json(data, expected_language=code, location=url)
        logger.debug("Fetched %s bundle version %s (%d keys)", code, payload.version, payload.count)
        return payload

    async def report_missing(
        self,
        keys: Iterable[TranslationKey],
        language: LanguageCode | None = None,
    ) -> int:
        """Report translation keys the client could not resolve.

        The provider accepts at most 100 keys per report; the first 100
        distinct keys are sent and the rest dropped.

        Args:
            keys: Missing translation keys
            language: Active LanguageCode when they were missed

        Returns:
            Number of keys the provider acknowledged

        Raises:
            NetworkUnavailableError: Connection failure or timeout
            RemoteRejectedError: Non-2xx status or rejected envelope
            MalformedPayloadError: Acknowledgement is not the expected shape
        """
        batch = list(dict.fromkeys(keys))[:MAX_MISSING_KEYS_PER_REPORT]
        if not batch:
            return 0
        code = normalize_language(language) if language else ""
        body: dict[str, Any] = {"keys": batch}
        if code:
            body["lang"] = code

        url = f"{self.base_url}{MISSING_KEYS_ENDPOINT}"
        response = await self._send("POST", url, code, json=body)
        data = self._unwrap(response, code, url)
        received = data.get("received") if isinstance(data, dict) else None
        if not isinstance(received, int) or isinstance(received, bool):
            diagnostic = Diagnostic(
                code=DiagnosticCode.MALFORMED_PAYLOAD,
                message="Missing-key acknowledgement lacks an integer 'received' field",
                language=code or None,
                location=url,
            )
            raise MalformedPayloadError(diagnostic, language=code)
        return received

    async def _send(
        self, method: str, url: str, language: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await self._get_client().request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            diagnostic = Diagnostic(
                code=DiagnosticCode.REQUEST_TIMEOUT,
                message=f"{method} {url} timed out after {self.timeout}s",
                language=language or None,
                location=url,
            )
            raise NetworkUnavailableError(diagnostic, language=language) from e
        except httpx.DecodingError as e:
            diagnostic = Diagnostic(
                code=DiagnosticCode.MALFORMED_PAYLOAD,
                message=f"{method} {url} returned an undecodable body: {e}",
                language=language or None,
                location=url,
            )
            raise MalformedPayloadError(diagnostic, language=language) from e
        # RequestError covers transport failures and TooManyRedirects;
        # InvalidURL derives from Exception directly
        except (httpx.RequestError, httpx.InvalidURL) as e:
            diagnostic = Diagnostic(
                code=DiagnosticCode.NETWORK_UNAVAILABLE,
                message=f"{method} {url} failed: {e}",
                language=language or None,
                location=url,
            )
            raise NetworkUnavailableError(diagnostic, language=language) from e

    @staticmethod
    def _unwrap(response: httpx.Response, language: str, url: str) -> Any:
        """Map status and envelope onto the taxonomy and return the payload data."""
        status = response.status_code

        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("retry-after"))
            diagnostic = Diagnostic(
                code=DiagnosticCode.RATE_LIMITED,
                message=f"Too many requests. Please wait {retry_after} seconds.",
                language=language or None,
                status=status,
                location=url,
            )
            raise RemoteRejectedError(
                diagnostic, language=language, status=status, retry_after=retry_after
            )

        text = response.text
        data: Any = None
        decoded = False
        if text.strip():
            try:
                data = response.json()
                decoded = True
            except ValueError:
                decoded = False

        if not response.is_success:
            message = _extract_message(data) or text.strip() or "Request failed"
            diagnostic = Diagnostic(
                code=DiagnosticCode.REMOTE_REJECTED,
                message=message,
                language=language or None,
                status=status,
                location=url,
            )
            raise RemoteRejectedError(diagnostic, language=language, status=status)

        if not decoded:
            diagnostic = Diagnostic(
                code=DiagnosticCode.MALFORMED_PAYLOAD,
                message="Response body is not JSON",
                language=language or None,
                status=status,
                location=url,
            )
            raise MalformedPayloadError(diagnostic, language=language)

        if isinstance(data, dict) and "success" in data:
            if data["success"] is not True:
                message = _extract_message(data.get("error")) or _extract_message(data)
                diagnostic = Diagnostic(
                    code=DiagnosticCode.REMOTE_REJECTED,
                    message=message or "Request failed",
                    language=language or None,
                    status=status,
                    location=url,
                )
                raise RemoteRejectedError(diagnostic, language=language, status=status)
            return data.get("data")

        return data
