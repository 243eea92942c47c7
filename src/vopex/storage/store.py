"""Namespaced key/value store with optional encryption and expiry.

:class:`KeyValueStore` is the persistent "local storage" of the client. It
is backed by a :class:`diskcache.Cache` directory and stores each value as
the JSON of a :class:`~vopex.models.StoredItem` envelope under
``<namespace>:<key>``.

Reads are best-effort: the store tries to decrypt first and falls back to
plain JSON, and anything it cannot parse is logged and reported as missing.
Writes never raise; failures are logged.

A second, in-memory *session* area mirrors browser session storage: it lives
only as long as the process and its items never expire.
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import diskcache

from vopex.exceptions import DecryptionError
from vopex.models import StorageOptions, StoredItem
from vopex.security import Cipher

logger = logging.getLogger(__name__)

_WRITE_ERRORS = (TypeError, ValueError, OSError, sqlite3.Error, diskcache.Timeout)


@dataclass
class StorageChange:
    """Passed to :meth:`KeyValueStore.observe` callbacks on every write or removal.

    Attributes:
        key: The full ``namespace:key`` that changed.
        old_value: The previous value, or ``None``.
        new_value: The new value, or ``None`` when the item was removed.
    """

    key: str
    old_value: Any = None
    new_value: Any = None


def format_key(key: str, namespace: str = "default") -> str:
    return f"{namespace}:{key}"


class KeyValueStore:
    """Persistent, namespaced key/value storage.

    Args:
        directory: Directory for the underlying :class:`diskcache.Cache`.
        cipher: Used for ``encrypted=True`` writes and for the decrypt-first
            read path. Without one, encrypted writes are refused.
        clock: Returns the current epoch time in seconds.

    Example::

        store = KeyValueStore(tmp_dir, cipher=Cipher(Cipher.generate_key()))
        store.set_item("user", {"name": "Ada"}, StorageOptions(
            encrypted=True, expires=24 * 3600, namespace="auth"))
        store.get_item("user", "auth")   # {"name": "Ada"}
    """

    def __init__(
        self,
        directory: str | Path,
        cipher: Optional[Cipher] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = Path(directory)
        self._cache = diskcache.Cache(str(self._directory))
        self._cipher = cipher
        self._clock = clock
        self._session: dict[str, str] = {}
        self._observers: list[Callable[[StorageChange], None]] = []
        self._lock = threading.RLock()

    @property
    def directory(self) -> Path:
        return self._directory

    # ------------------------------------------------------------------ #
    # Persistent area
    # ------------------------------------------------------------------ #

    def set_item(self, key: str, value: Any, options: Optional[StorageOptions] = None) -> None:
        """Write *value* under ``options.namespace:key``.

        ``options.expires`` is a lifetime in seconds (``0`` never expires).
        Errors are logged, never raised.
        """
        options = options or StorageOptions()
        full_key = format_key(key, options.namespace)
        try:
            now = self._clock()
            item = StoredItem(
                value=value,
                timestamp=now,
                expires=now + options.expires if options.expires > 0 else 0,
                namespace=options.namespace,
            )
            raw = item.model_dump_json()
            if options.encrypted:
                if self._cipher is None:
                    logger.error("Refusing encrypted write of %s: no cipher configured", full_key)
                    return
                raw = self._cipher.encrypt(raw)
            with self._lock:
                old_value = self._peek(full_key)
                self._cache.set(full_key, raw)
        except _WRITE_ERRORS as exc:
            logger.error("Storage set error for %s: %s", full_key, exc)
            return
        self._notify(StorageChange(full_key, old_value, value))

    def get_item(self, key: str, namespace: str = "default") -> Any:
        """Return the stored value, or ``None`` when missing, expired, or unreadable.

        Expired items are removed as a side effect.
        """
        full_key = format_key(key, namespace)
        try:
            raw = self._cache.get(full_key)
        except (sqlite3.Error, diskcache.Timeout) as exc:
            logger.error("Storage get error for %s: %s", full_key, exc)
            return None
        if raw is None:
            return None
        item = self._decode(full_key, raw)
        if item is None:
            return None
        if item.is_expired(self._clock()):
            self.remove_item(key, namespace)
            return None
        return item.value

    def remove_item(self, key: str, namespace: str = "default") -> None:
        full_key = format_key(key, namespace)
        with self._lock:
            old_value = self._peek(full_key)
            removed = self._cache.delete(full_key)
        if removed:
            self._notify(StorageChange(full_key, old_value, None))

    def clear(self, namespace: Optional[str] = "default") -> None:
        """Remove every item in *namespace*; ``None`` removes everything."""
        for full_key in self.keys(namespace):
            ns, _, key = full_key.partition(":")
            self.remove_item(key, ns)

    def keys(self, namespace: Optional[str] = None) -> list[str]:
        """Return stored ``namespace:key`` strings, optionally filtered by namespace."""
        prefix = f"{namespace}:" if namespace is not None else ""
        return sorted(k for k in self._cache.iterkeys() if isinstance(k, str) and k.startswith(prefix))

    # ------------------------------------------------------------------ #
    # Session area
    # ------------------------------------------------------------------ #

    def set_session_item(self, key: str, value: Any, options: Optional[StorageOptions] = None) -> None:
        """Keep *value* for the lifetime of this process. ``expires`` is ignored."""
        options = options or StorageOptions()
        full_key = format_key(key, options.namespace)
        try:
            raw = json.dumps(value)
            if options.encrypted:
                if self._cipher is None:
                    logger.error("Refusing encrypted session write of %s: no cipher configured", full_key)
                    return
                raw = self._cipher.encrypt(raw)
        except (TypeError, ValueError) as exc:
            logger.error("Session storage set error for %s: %s", full_key, exc)
            return
        self._session[full_key] = raw

    def get_session_item(self, key: str, namespace: str = "default") -> Any:
        raw = self._session.get(format_key(key, namespace))
        if raw is None:
            return None
        text = self._try_decrypt(raw)
        try:
            return json.loads(text)
        except ValueError as exc:
            logger.error("Session storage get error for %s: %s", key, exc)
            return None

    def remove_session_item(self, key: str, namespace: str = "default") -> None:
        self._session.pop(format_key(key, namespace), None)

    # ------------------------------------------------------------------ #
    # Observation and quota
    # ------------------------------------------------------------------ #

    def observe(self, callback: Callable[[StorageChange], None]) -> Callable[[], None]:
        """Call *callback* on every write or removal in the persistent area.

        Returns:
            A function that unsubscribes *callback*.
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def usage(self) -> dict[str, int]:
        """Return ``used``, ``total`` and ``remaining`` bytes; zeros if unknown."""
        try:
            used = int(self._cache.volume())
            total = shutil.disk_usage(self._directory).total
        except (OSError, sqlite3.Error) as exc:
            logger.warning("Storage quota check failed: %s", exc)
            return {"used": 0, "total": 0, "remaining": 0}
        return {"used": used, "total": total, "remaining": total - used}

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> KeyValueStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _try_decrypt(self, raw: str) -> str:
        if self._cipher is None:
            return raw
        try:
            return self._cipher.decrypt(raw)
        except DecryptionError:
            return raw

    def _decode(self, full_key: str, raw: Any) -> Optional[StoredItem]:
        if not isinstance(raw, str):
            logger.error("Storage get error for %s: unexpected %s", full_key, type(raw).__name__)
            return None
        try:
            return StoredItem.model_validate_json(self._try_decrypt(raw))
        except ValueError as exc:
            logger.error("Storage get error for %s: %s", full_key, exc)
            return None

    def _peek(self, full_key: str) -> Any:
        raw = self._cache.get(full_key)
        if raw is None:
            return None
        item = self._decode(full_key, raw)
        return item.value if item is not None else None

    def _notify(self, change: StorageChange) -> None:
        for callback in list(self._observers):
            try:
                callback(change)
            except Exception:
                logger.exception("Storage observer failed for %s", change.key)
