"""Durable key-value backends.

Python 3.13+.
"""

from langbundle.storage.backends import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
]
