"""Request/response interceptors.

Interceptors see every request the :class:`~vopex.client.ApiClient` makes:
they can rewrite headers and params on the way out, transform the body on
the way back, and observe errors. Third-party interceptors are discovered
through the ``vopex.interceptors`` entry-point group.
"""

from vopex.interceptors.base import Interceptor
from vopex.interceptors.builtin import (
    ErrorSignatureInterceptor,
    RequestIdInterceptor,
    TimingInterceptor,
    generate_request_id,
)
from vopex.interceptors.chain import InterceptorChain, RequestContext
from vopex.interceptors.manager import ENTRY_POINT_GROUP, InterceptorManager

__all__ = [
    "ENTRY_POINT_GROUP",
    "ErrorSignatureInterceptor",
    "Interceptor",
    "InterceptorChain",
    "InterceptorManager",
    "RequestContext",
    "RequestIdInterceptor",
    "TimingInterceptor",
    "generate_request_id",
]
