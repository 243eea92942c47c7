"""Client-side caching for vopex.

:class:`Cache` is the general-purpose TTL cache used by services and the
prediction engine. :class:`ResponseCache` builds on it to cache successful
GET responses for :class:`~vopex.client.ApiClient`.
"""

from vopex.cache.cache import MIRROR_NAMESPACE, Cache
from vopex.cache.response import ResponseCache

__all__ = ["Cache", "MIRROR_NAMESPACE", "ResponseCache"]
