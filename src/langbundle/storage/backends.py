"""Persistent key-value backends for the durable cache.

The durable cache treats its store as an opaque string -> string slot map
with enumeration, the shape of a browser's localStorage. Backends raise
DurableStoreUnavailableError for every failure so the adapter can catch a
single exception type.

Components:
    KeyValueStore - Protocol for durable slot storage (structural typing)
    MemoryKeyValueStore - Dict-backed store with optional quota
    FileKeyValueStore - One UTF-8 file per key under a root directory

Python 3.13+.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from langbundle.diagnostics import Diagnostic, DiagnosticCode, DurableStoreUnavailableError

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Protocol
    "KeyValueStore",
    # Concrete stores
    "MemoryKeyValueStore",
    "FileKeyValueStore",
]

_FILE_SUFFIX = ".txt"


class KeyValueStore(Protocol):
    """Protocol for durable string slots.

    This is a Protocol (structural typing) rather than ABC so that any
    object with these four methods (a shelve wrapper, a Redis client shim,
    a browser bridge) can back the cache.

    Implementations signal every failure with DurableStoreUnavailableError.

    Example:
        >>> class DictStore:
        ...     def __init__(self) -> None:
        ...         self.data: dict[str, str] = {}
        ...     def get(self, key: str) -> str | None:
        ...         return self.data.get(key)
        ...     def set(self, key: str, value: str) -> None:
        ...         self.data[key] = value
        ...     def delete(self, key: str) -> None:
        ...         self.data.pop(key, None)
        ...     def keys(self) -> Iterator[str]:
        ...         return iter(list(self.data))
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the slot is empty.

        Raises:
            DurableStoreUnavailableError: If the store cannot be read
        """

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            DurableStoreUnavailableError: If the store rejects the write
        """

    def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error.

        Raises:
            DurableStoreUnavailableError: If the store cannot be modified
        """

    def keys(self) -> Iterator[str]:
        """Enumerate every key currently stored.

        Raises:
            DurableStoreUnavailableError: If the store cannot be listed
        """


def _unavailable(
    code: DiagnosticCode, message: str, location: str | None = None
) -> DurableStoreUnavailableError:
    return DurableStoreUnavailableError(Diagnostic(code=code, message=message, location=location))


class MemoryKeyValueStore:
    """Dict-backed KeyValueStore.

    Optional ``capacity`` limits the total number of characters in keys and
    values, modelling a quota-limited browser store. ``disabled`` makes every
    operation fail, modelling storage turned off by the host.

    Attributes:
        capacity: Character budget, or None for unlimited
        disabled: When True every operation raises
    """

    __slots__ = ("_data", "capacity", "disabled")

    def __init__(self, *, capacity: int | None = None, disabled: bool = False) -> None:
        """Initialize memory store.

        Args:
            capacity: Maximum total characters of keys plus values
            disabled: Start in the disabled state

        Raises:
            ValueError: If capacity is negative
        """
        if capacity is not None and capacity < 0:
            msg = "capacity must be non-negative"
            raise ValueError(msg)
        self._data: dict[str, str] = {}
        self.capacity = capacity
        self.disabled = disabled

    def __repr__(self) -> str:
        return (
            f"MemoryKeyValueStore(keys={len(self._data)}, "
            f"used={self.used}, "
            f"capacity={self.capacity})"
        )

    @property
    def used(self) -> int:
        """Characters currently stored (keys plus values)."""
        return sum(len(k) + len(v) for k, v in self._data.items())

    def _check_enabled(self) -> None:
        if self.disabled:
            raise _unavailable(DiagnosticCode.STORE_DISABLED, "Durable storage is disabled")

    def get(self, key: str) -> str | None:
        self._check_enabled()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_enabled()
        if self.capacity is not None:
            current = self._data.get(key)
            freed = len(key) + len(current) if current is not None else 0
            if self.used - freed + len(key) + len(value) > self.capacity:
                raise _unavailable(
                    DiagnosticCode.STORE_QUOTA_EXCEEDED,
                    f"Quota exceeded writing '{key}' "
                    f"({len(value)} chars, capacity {self.capacity})",
                    location=key,
                )
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._check_enabled()
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        self._check_enabled()
        # Snapshot so callers may delete while iterating
        return iter(list(self._data))


@dataclass(frozen=True, slots=True)
class FileKeyValueStore:
    """File system KeyValueStore: one UTF-8 file per key under ``root``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so a concurrent reader sees either the old or
    the new value, never a truncated one.

    Security:
        Keys containing path separators, "..", NUL bytes or surrounding
        whitespace are rejected, and every resolved path is verified to stay
        inside the root directory.

    Example:
        >>> store = FileKeyValueStore("/var/cache/elearn")
        >>> store.set("i18n_version_PL", "9f2c1e0b7a41")
        # Writes: /var/cache/elearn/i18n_version_PL.txt

    Attributes:
        root: Directory holding the slot files (created on first write)
    """

    root: str | os.PathLike[str]
    _resolved_root: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Cache the resolved root directory."""
        object.__setattr__(self, "_resolved_root", Path(self.root).resolve())

    @staticmethod
    def _validate_key(key: str) -> None:
        """Validate a slot key for path traversal attacks.

        Raises:
            DurableStoreUnavailableError: If the key is unusable as a file name
        """
        problem: str | None = None
        if not key:
            problem = "Storage key cannot be empty"
        elif key != key.strip():
            problem = f"Storage key contains leading/trailing whitespace: {key!r}"
        elif "/" in key or "\\" in key or "\x00" in key:
            problem = f"Path separators not allowed in storage key: {key!r}"
        elif ".." in key:
            problem = f"Path traversal sequences not allowed in storage key: {key!r}"
        if problem is not None:
            raise _unavailable(DiagnosticCode.STORE_KEY_INVALID, problem, location=key)

    def _path_for(self, key: str) -> Path:
        self._validate_key(key)
        path = (self._resolved_root / f"{key}{_FILE_SUFFIX}").resolve()
        try:
            path.relative_to(self._resolved_root)
        except ValueError:
            raise _unavailable(
                DiagnosticCode.STORE_KEY_INVALID,
                f"Path traversal detected: storage key escapes root directory: {key!r}",
                location=key,
            ) from None
        return path

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise _unavailable(
                DiagnosticCode.STORE_READ_FAILED, f"Cannot read '{key}': {e}", location=str(path)
            ) from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self._resolved_root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._resolved_root, prefix=".tmp-", suffix=_FILE_SUFFIX
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise _unavailable(
                DiagnosticCode.STORE_WRITE_FAILED, f"Cannot write '{key}': {e}", location=str(path)
            ) from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise _unavailable(
                DiagnosticCode.STORE_DELETE_FAILED,
                f"Cannot delete '{key}': {e}",
                location=str(path),
            ) from e

    def keys(self) -> Iterator[str]:
        if not self._resolved_root.exists():
            return iter(())
        try:
            names = [
                entry.name[: -len(_FILE_SUFFIX)]
                for entry in self._resolved_root.iterdir()
                if entry.is_file()
                and entry.name.endswith(_FILE_SUFFIX)
                and not entry.name.startswith(".tmp-")
            ]
        except OSError as e:
            raise _unavailable(
                DiagnosticCode.STORE_READ_FAILED,
                f"Cannot list storage directory: {e}",
                location=str(self._resolved_root),
            ) from e
        return iter(sorted(names))
