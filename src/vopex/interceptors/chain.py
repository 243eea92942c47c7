"""Request context and the interceptor chain.

* :class:`RequestContext` carries request and response state through the
  chain. Fields fill in as the request progresses.
* :class:`InterceptorChain` runs the hooks of every registered interceptor
  in registration order. Each request hook sees the headers and params the
  previous one produced; each response hook sees the previous body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from vopex.interceptors.base import Interceptor

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """Mutable state threaded through :class:`InterceptorChain`.

    Attributes:
        method: HTTP method, e.g. ``"GET"``.
        url: The fully resolved request URL.
        headers: Request headers.
        params: Query parameters.
        body: JSON request body, if any.
        status_code: Response status, ``0`` until a response arrives.
        response_headers: Response headers.
        response_body: Parsed response body.
        error: The exception being reported, if any.
        extras: Scratch space interceptors can use to share per-request data.
    """

    method: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    status_code: int = 0
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: Any = None
    error: Optional[Exception] = None
    extras: dict[str, Any] = field(default_factory=dict)


class InterceptorChain:
    """Runs interceptor hooks in order.

    The chain holds its own list; :meth:`add` appends to it. Errors raised
    by request and response hooks propagate to the caller, errors raised by
    error hooks do not.
    """

    def __init__(self, interceptors: Iterable[Interceptor] = ()) -> None:
        self._interceptors = list(interceptors)

    def __len__(self) -> int:
        return len(self._interceptors)

    def __iter__(self):
        return iter(self._interceptors)

    def add(self, interceptor: Interceptor) -> None:
        self._interceptors.append(interceptor)

    def get(self, name: str) -> Optional[Interceptor]:
        for interceptor in self._interceptors:
            if interceptor.name == name:
                return interceptor
        return None

    def run_request(self, ctx: RequestContext) -> RequestContext:
        for interceptor in self._interceptors:
            result = interceptor.on_request(ctx)
            if isinstance(result, dict):
                ctx.headers = result.get("headers", ctx.headers)
                ctx.params = result.get("params", ctx.params)
        return ctx

    def run_response(self, ctx: RequestContext) -> RequestContext:
        for interceptor in self._interceptors:
            ctx.response_body = interceptor.on_response(ctx)
        return ctx

    def run_error(self, error: Exception, ctx: RequestContext) -> None:
        ctx.error = error
        for interceptor in self._interceptors:
            try:
                interceptor.on_error(error, ctx)
            except Exception as exc:
                logger.warning("Interceptor '%s' failed in on_error: %s", interceptor.name, exc)
