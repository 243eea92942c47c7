"""Persistent key/value storage."""

from vopex.storage.store import KeyValueStore, StorageChange, format_key

__all__ = ["KeyValueStore", "StorageChange", "format_key"]
