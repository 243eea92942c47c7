"""In-memory TTL cache with an optional encrypted mirror in the key/value store.

Entries live in a process-local dict keyed by ``namespace:key`` (or the bare
key when no namespace is given). When the cache is *persistent*, every write
is also mirrored, encrypted, into :class:`~vopex.storage.KeyValueStore`
namespace ``cache`` so that a fresh process can pick up where the last one
left off.

Size management is deliberately simple: once the entry count exceeds
``max_entries`` the entries with the oldest *write* timestamps are dropped.
Reads do not refresh timestamps, so this is not LRU.

See Also:
    :class:`~vopex.models.CacheConfig` -- ``default_ttl``, ``max_entries``
    and ``persistent``.
"""

from __future__ import annotations

import functools
import json
import logging
import threading
import time
from typing import Any, Callable, Optional

from vopex.models import CacheConfig, CacheEntry, StorageOptions
from vopex.storage import KeyValueStore

logger = logging.getLogger(__name__)

MIRROR_NAMESPACE = "cache"

_MISSING = object()


class Cache:
    """Process-local TTL cache.

    Args:
        store: Where persistent entries are mirrored. Without a store the
            cache is memory-only regardless of ``config.persistent``.
        config: TTL, size and persistence settings.
        clock: Returns the current epoch time in seconds.

    Example::

        cache = Cache(store, CacheConfig(default_ttl=60))
        cache.set("profile", {"name": "Ada"}, namespace="users")
        cache.get("profile", namespace="users")           # {"name": "Ada"}
        cache.get("missing", fallback=lambda: "computed")  # "computed"
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = (config or CacheConfig()).model_copy()
        self._store = store
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def persistent(self) -> bool:
        return self._config.persistent and self._store is not None

    def configure(
        self,
        default_ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        persistent: Optional[bool] = None,
    ) -> None:
        """Merge the given settings into the current configuration."""
        updates = {
            name: value
            for name, value in (
                ("default_ttl", default_ttl),
                ("max_entries", max_entries),
                ("persistent", persistent),
            )
            if value is not None
        }
        self._config = self._config.model_copy(update=updates)
        with self._lock:
            self._evict()

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: Optional[str] = None,
    ) -> None:
        """Cache *value*. A *ttl* of ``None`` or ``0`` uses ``default_ttl``."""
        full_key = _full_key(key, namespace)
        entry = CacheEntry(
            value=value,
            timestamp=self._clock(),
            ttl=ttl or self._config.default_ttl,
        )
        with self._lock:
            self._entries[full_key] = entry
            self._evict()

        if not self.persistent:
            return
        try:
            mirrored = entry.model_dump(mode="json")
        except (TypeError, ValueError) as exc:
            logger.warning("Not mirroring %s: value is not JSON-serialisable (%s)", full_key, exc)
            return
        self._store.set_item(
            full_key,
            mirrored,
            StorageOptions(encrypted=True, expires=entry.ttl, namespace=MIRROR_NAMESPACE),
        )

    def get(
        self,
        key: str,
        namespace: Optional[str] = None,
        fallback: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """Return the cached value, else ``fallback()``, else ``None``.

        A stale memory entry is dropped. A fresh mirrored entry is restored
        into memory. Corrupt or undecryptable mirror entries count as misses.
        """
        hit, value = self._lookup(_full_key(key, namespace))
        if hit:
            return value
        if fallback is not None:
            return fallback()
        return None

    def delete(self, key: str, namespace: Optional[str] = None) -> None:
        full_key = _full_key(key, namespace)
        with self._lock:
            self._entries.pop(full_key, None)
        if self.persistent:
            self._store.remove_item(full_key, MIRROR_NAMESPACE)

    def clear(self, namespace: Optional[str] = None) -> None:
        """Remove every entry in *namespace*, or everything when ``None``.

        The mirror is cleared with the same scope.
        """
        with self._lock:
            if namespace is None:
                self._entries.clear()
            else:
                prefix = f"{namespace}:"
                for full_key in [k for k in self._entries if k.startswith(prefix)]:
                    del self._entries[full_key]

        if self._store is None:
            return
        if namespace is None:
            self._store.clear(MIRROR_NAMESPACE)
            return
        mirror_prefix = f"{MIRROR_NAMESPACE}:{namespace}:"
        for stored_key in self._store.keys(MIRROR_NAMESPACE):
            if stored_key.startswith(mirror_prefix):
                self._store.remove_item(stored_key[len(MIRROR_NAMESPACE) + 1 :], MIRROR_NAMESPACE)

    def keys(self, namespace: Optional[str] = None) -> list[str]:
        """Return the in-memory keys, optionally limited to *namespace*."""
        prefix = f"{namespace}:" if namespace is not None else ""
        with self._lock:
            return sorted(k for k in self._entries if k.startswith(prefix))

    def memoize(
        self,
        fn: Optional[Callable[..., Any]] = None,
        *,
        ttl: Optional[float] = None,
        resolver: Optional[Callable[..., str]] = None,
    ) -> Any:
        """Cache the results of *fn*.

        Usable as ``cache.memoize(fn)``, ``@cache.memoize`` or
        ``@cache.memoize(ttl=30)``. The key is ``resolver(*args, **kwargs)``
        when given, otherwise the JSON of the arguments. A cached ``None``
        is still a hit.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                if resolver is not None:
                    key = resolver(*args, **kwargs)
                elif kwargs:
                    key = json.dumps([list(args), kwargs], sort_keys=True, default=str)
                else:
                    key = json.dumps(list(args), default=str)
                hit, value = self._lookup(key)
                if hit:
                    return value
                result = func(*args, **kwargs)
                self.set(key, result, ttl=ttl)
                return result

            return wrapper

        if fn is not None:
            return decorator(fn)
        return decorator

    def stats(self) -> dict[str, int]:
        """Return ``total_entries`` and the summed JSON size of all entries."""
        with self._lock:
            entries = list(self._entries.values())
        memory_usage = sum(
            len(json.dumps(entry.model_dump(), default=str)) for entry in entries
        )
        return {"total_entries": len(entries), "memory_usage": memory_usage}

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _lookup(self, full_key: str) -> tuple[bool, Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(full_key)
            if entry is not None:
                if entry.is_fresh(now):
                    return True, entry.value
                del self._entries[full_key]

        if not self.persistent:
            return False, None

        raw = self._store.get_item(full_key, MIRROR_NAMESPACE)
        if raw is None:
            return False, None
        try:
            entry = CacheEntry.model_validate(raw)
        except ValueError as exc:
            logger.warning("Discarding corrupt cache mirror entry %s: %s", full_key, exc)
            return False, None
        if not entry.is_fresh(now):
            return False, None

        with self._lock:
            self._entries[full_key] = entry
            self._evict()
        return True, entry.value

    def _evict(self) -> None:
        # Caller holds the lock.
        overflow = len(self._entries) - self._config.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)
        for full_key, _ in oldest[:overflow]:
            del self._entries[full_key]
        logger.debug("Evicted %d cache entries", overflow)


def _full_key(key: str, namespace: Optional[str]) -> str:
    return f"{namespace}:{key}" if namespace else key
