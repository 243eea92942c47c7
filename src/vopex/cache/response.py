"""Response caching for GET requests.

:class:`ResponseCache` sits on top of :class:`~vopex.cache.cache.Cache` in
namespace ``responses``. Only successful (2xx) GET responses are cached;
everything else passes straight through.

Cache keys are SHA-256 hashes of ``METHOD|URL|sorted_params`` so that
identical requests resolve to the same entry regardless of parameter
ordering.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional

from vopex.cache.cache import Cache
from vopex.models import CacheConfig

NAMESPACE = "responses"


class ResponseCache:
    """Cache for serialised HTTP GET responses.

    Stored values are dicts with ``status_code``, ``headers`` and ``body``.

    Args:
        cache: The backing :class:`Cache`.
        config: ``responses`` switches the cache on; ``response_ttl`` sets
            the entry lifetime.

    Example::

        responses = ResponseCache(cache, CacheConfig(responses=True))
        responses.set("GET", "https://crm.example.com/api/leads", None, {
            "status_code": 200, "headers": {}, "body": [{"id": 1}]
        })
        hit = responses.get("GET", "https://crm.example.com/api/leads")
    """

    def __init__(self, cache: Cache, config: CacheConfig) -> None:
        self._cache = cache
        self._config = config

    @property
    def enabled(self) -> bool:
        return self._config.responses

    def get(self, method: str, url: str, params: Optional[dict] = None) -> Optional[dict]:
        """Return the cached response dict, or ``None`` on a miss, a non-GET
        method, or when caching is disabled."""
        if not self.enabled or method.upper() != "GET":
            return None
        return self._cache.get(self._make_key(method, url, params), namespace=NAMESPACE)

    def set(
        self,
        method: str,
        url: str,
        params: Optional[dict],
        response_data: dict,
    ) -> None:
        """Store *response_data* if it is a 2xx GET response."""
        if not self.enabled or method.upper() != "GET":
            return
        status = response_data.get("status_code", 0)
        if not (200 <= status < 300):
            return
        self._cache.set(
            self._make_key(method, url, params),
            response_data,
            ttl=self._config.response_ttl,
            namespace=NAMESPACE,
        )

    def invalidate(self, method: str, url: str, params: Optional[dict] = None) -> None:
        self._cache.delete(self._make_key(method, url, params), namespace=NAMESPACE)

    def clear(self) -> None:
        self._cache.clear(NAMESPACE)

    def stats(self) -> dict[str, Any]:
        if not self.enabled:
            return {"enabled": False}
        return {
            "enabled": True,
            "size": len(self._cache.keys(NAMESPACE)),
            "ttl_seconds": self._config.response_ttl,
        }

    def _make_key(self, method: str, url: str, params: Optional[dict]) -> str:
        parts = [method.upper(), url]
        if params:
            parts.append(json.dumps(params, sort_keys=True, default=str))
        return hashlib.sha256("|".join(parts).encode()).hexdigest()
