"""Abstract base class for request/response interceptors.

Every interceptor subclasses :class:`Interceptor` and implements
:attr:`name`. The hooks (``on_init``, ``on_request``, ``on_response``,
``on_error``, ``cleanup``) default to no-ops, so an interceptor only
overrides what it needs.

Interceptors are registered as entry points in the ``vopex.interceptors``
group and discovered by
:class:`~vopex.interceptors.manager.InterceptorManager`, or added to a chain
directly.

Example::

    class TenantHeader(Interceptor):
        @property
        def name(self) -> str:
            return "tenant"

        def on_request(self, ctx):
            ctx.headers["X-Tenant"] = "acme"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from vopex.models import GlobalConfig

if TYPE_CHECKING:
    from vopex.interceptors.chain import RequestContext


class Interceptor(ABC):
    """Base class for all interceptors.

    Lifecycle:

    1. Instantiation. Entry-point interceptors need a no-arg constructor.
    2. :meth:`on_init`, once, with the global configuration.
    3. The request hooks, zero or more times per request.
    4. :meth:`cleanup`, once, at shutdown.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique short name, e.g. ``"request-id"``."""
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: GlobalConfig) -> None:
        """Called once when the interceptor joins a chain via the manager."""

    def on_request(self, ctx: RequestContext) -> Optional[dict[str, Any]]:
        """Called before the request is sent.

        Mutate ``ctx.headers`` / ``ctx.params`` in place, or return a dict
        with ``"headers"`` and/or ``"params"`` to replace them for the rest
        of the chain.
        """
        return None

    def on_response(self, ctx: RequestContext) -> Any:
        """Called after a response arrives, before status classification.

        Returns:
            The (possibly transformed) response body. It replaces
            ``ctx.response_body`` for the next interceptor.
        """
        return ctx.response_body

    def on_error(self, error: Exception, ctx: RequestContext) -> None:
        """Called when the request fails or the status is an error.

        Exceptions raised here are logged and swallowed so they never mask
        *error*.
        """

    def cleanup(self) -> None:
        """Release resources acquired in :meth:`on_init`."""
