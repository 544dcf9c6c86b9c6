"""Diagnostic codes and data structures.

Defines error codes and structured diagnostic messages for bundle loading.
Python 3.13+.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from langbundle.enums import ErrorKind

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
]


class DiagnosticCode(Enum):
    """Error codes with unique identifiers.

    Organized by category:
        1000-1999: Remote provider errors (transport, status, payload)
        2000-2999: Durable storage errors (read, write, delete)
        3000-3999: Local bundle errors (bundled JSON shipped with the app)
    """

    # Remote provider errors (1000-1999)
    NETWORK_UNAVAILABLE = 1001
    REQUEST_TIMEOUT = 1002
    REMOTE_REJECTED = 1003
    RATE_LIMITED = 1004
    MALFORMED_PAYLOAD = 1005
    LANGUAGE_MISMATCH = 1006

    # Durable storage errors (2000-2999)
    STORE_READ_FAILED = 2001
    STORE_WRITE_FAILED = 2002
    STORE_DELETE_FAILED = 2003
    STORE_QUOTA_EXCEEDED = 2004
    STORE_DISABLED = 2005
    STORE_KEY_INVALID = 2006

    # Local bundle errors (3000-3999)
    LOCAL_BUNDLE_INVALID = 3001

    @property
    def kind(self) -> ErrorKind | None:
        """Taxonomy bucket for this code (None for local bundle codes)."""
        match self.value // 1000:
            case 1 if self in (DiagnosticCode.NETWORK_UNAVAILABLE, DiagnosticCode.REQUEST_TIMEOUT):
                return ErrorKind.NETWORK_UNAVAILABLE
            case 1 if self in (DiagnosticCode.REMOTE_REJECTED, DiagnosticCode.RATE_LIMITED):
                return ErrorKind.REMOTE_REJECTED
            case 1:
                return ErrorKind.MALFORMED_PAYLOAD
            case 2:
                return ErrorKind.DURABLE_STORE_UNAVAILABLE
            case _:
                return None


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Structured diagnostic message.

    Inspired by Rust compiler diagnostics: a code, a one-line message and
    optional context lines.

    Attributes:
        code: Unique error code
        message: Human-readable error description
        hint: Suggestion for fixing the error
        language: LanguageCode involved, if any
        status: HTTP status returned by the provider, if any
        location: Endpoint URL, storage key or file path involved
        severity: Error severity level
    """

    code: DiagnosticCode
    message: str
    hint: str | None = None
    language: str | None = None
    status: int | None = None
    location: str | None = None
    severity: Literal["error", "warning"] = "error"

    def __str__(self) -> str:
        """Return human-readable error description."""
        return self.message

    def format_error(self) -> str:
        """Format diagnostic like Rust compiler.

        Example output:
            error[REMOTE_REJECTED]: Bundle request for 'PL' rejected
              --> https://example.test/api/i18n/bundle
              = language: PL
              = status: 503
              = help: The provider is unavailable; cached bundles keep serving

        Returns:
            Formatted error message
        """
        parts = [f"{self.severity}[{self.code.name}]: {_escape(self.message)}"]
        if self.location:
            parts.append(f"  --> {_escape(self.location)}")
        if self.language:
            parts.append(f"  = language: {self.language}")
        if self.status is not None:
            parts.append(f"  = status: {self.status}")
        if self.hint:
            parts.append(f"  = help: {_escape(self.hint)}")
        return "\n".join(parts)


def _escape(text: str) -> str:
    # Provider messages end up in logs; keep each diagnostic on its own lines.
    return text.replace("\r", "\\r").replace("\n", "\\n")
