"""Bundle exception hierarchy with structured diagnostics.

Every exception can carry a Diagnostic for rich error information. The
remote taxonomy (network, rejected, malformed) reaches the BundleStore,
which records it; durable-store failures never leave the cache adapter.

Python 3.13+.
"""

from langbundle.enums import ErrorKind

from .codes import Diagnostic

__all__ = [
    "BundleError",
    "DurableStoreUnavailableError",
    "MalformedPayloadError",
    "NetworkUnavailableError",
    "RemoteBundleError",
    "RemoteRejectedError",
]


class BundleError(Exception):
    """Base exception for all langbundle errors.

    Attributes:
        diagnostic: Structured diagnostic information (optional)
    """

    kind: ErrorKind | None = None

    def __init__(self, message: str | Diagnostic) -> None:
        """Initialize BundleError.

        Args:
            message: Error message string OR Diagnostic object
        """
        if isinstance(message, Diagnostic):
            self.diagnostic: Diagnostic | None = message
            super().__init__(message.format_error())
        else:
            self.diagnostic = None
            super().__init__(message)

    @property
    def summary(self) -> str:
        """One-line description suitable for LanguageState.error."""
        if self.diagnostic is not None:
            return self.diagnostic.message
        return str(self)


class RemoteBundleError(BundleError):
    """Remote Bundle Source failure.

    Raised by RemoteBundleSource implementations and propagated verbatim to
    the BundleStore, which decides whether to retry or degrade.

    Attributes:
        language: LanguageCode that was requested
    """

    def __init__(self, message: str | Diagnostic, *, language: str = "") -> None:
        """Initialize RemoteBundleError.

        Args:
            message: Error message string OR Diagnostic object
            language: LanguageCode that was requested
        """
        super().__init__(message)
        self.language = language


class NetworkUnavailableError(RemoteBundleError):
    """Provider unreachable: connection failure, DNS failure or timeout.

    The only remote failure the BundleStore retries.
    """

    kind = ErrorKind.NETWORK_UNAVAILABLE


class RemoteRejectedError(RemoteBundleError):
    """Provider answered with a non-success outcome.

    Covers non-2xx statuses and ``{"success": false}`` envelopes.

    Attributes:
        status: HTTP status code (200 for a rejected envelope)
        retry_after: Seconds the provider asked us to wait (429 only)
    """

    kind = ErrorKind.REMOTE_REJECTED

    def __init__(
        self,
        message: str | Diagnostic,
        *,
        language: str = "",
        status: int = 0,
        retry_after: int | None = None,
    ) -> None:
        """Initialize RemoteRejectedError.

        Args:
            message: Error message string OR Diagnostic object
            language: LanguageCode that was requested
            status: HTTP status code of the response
            retry_after: Seconds from the Retry-After header, if any
        """
        super().__init__(message, language=language)
        self.status = status
        self.retry_after = retry_after


class MalformedPayloadError(RemoteBundleError):
    """Response or stored data did not match the expected bundle shape."""

    kind = ErrorKind.MALFORMED_PAYLOAD


class DurableStoreUnavailableError(BundleError):
    """Persistent key-value storage rejected an operation.

    Raised by KeyValueStore backends (quota exceeded, storage disabled,
    I/O failure). DurableCacheAdapter always catches it and degrades to
    memory-only operation.
    """

    kind = ErrorKind.DURABLE_STORE_UNAVAILABLE
