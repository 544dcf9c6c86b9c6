"""Diagnostic system for bundle loading errors.

Provides structured error diagnostics with codes and hints, and the
exception taxonomy shared by the storage, remote and localization layers.

Python 3.13+.
"""

from .codes import Diagnostic, DiagnosticCode
from .errors import (
    BundleError,
    DurableStoreUnavailableError,
    MalformedPayloadError,
    NetworkUnavailableError,
    RemoteBundleError,
    RemoteRejectedError,
)

__all__ = [
    "BundleError",
    "Diagnostic",
    "DiagnosticCode",
    "DurableStoreUnavailableError",
    "MalformedPayloadError",
    "NetworkUnavailableError",
    "RemoteBundleError",
    "RemoteRejectedError",
]
