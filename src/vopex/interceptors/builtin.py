"""Interceptors shipped with vopex and registered as entry points.

* :class:`RequestIdInterceptor` tags each request with ``X-Request-Id``.
* :class:`TimingInterceptor` logs how long each request took.
* :class:`ErrorSignatureInterceptor` logs a compact ``<code>-<message>``
  line for every failed request.

The session-aware bearer token interceptor lives in
:mod:`vopex.auth.interceptor` because it needs a session store.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from typing import Callable

from vopex.interceptors.base import Interceptor
from vopex.interceptors.chain import RequestContext

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_request_id(now_ms: int | None = None) -> str:
    """Return ``req-<epoch ms>-<9 random base36 chars>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"req-{now_ms}-{suffix}"


class RequestIdInterceptor(Interceptor):
    """Adds a unique ``X-Request-Id`` header unless one is already set."""

    header = "X-Request-Id"

    @property
    def name(self) -> str:
        return "request-id"

    @property
    def description(self) -> str:
        return "Adds an X-Request-Id header to every request"

    def on_request(self, ctx: RequestContext) -> None:
        ctx.headers.setdefault(self.header, generate_request_id())


class TimingInterceptor(Interceptor):
    """Records request start times per URL and logs durations in ms.

    The most recent duration for each URL is kept in :attr:`durations`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started: dict[str, float] = {}
        self.durations: dict[str, float] = {}

    @property
    def name(self) -> str:
        return "timing"

    @property
    def description(self) -> str:
        return "Logs request durations"

    def on_request(self, ctx: RequestContext) -> None:
        self._started[ctx.url] = self._clock()

    def on_response(self, ctx: RequestContext):
        self._finish(ctx.url)
        return ctx.response_body

    def on_error(self, error: Exception, ctx: RequestContext) -> None:
        self._finish(ctx.url)

    def cleanup(self) -> None:
        self._started.clear()

    def _finish(self, url: str) -> None:
        started = self._started.pop(url, None)
        if started is None:
            return
        duration_ms = (self._clock() - started) * 1000
        self.durations[url] = duration_ms
        logger.info("Request to %s took %.0fms", url, duration_ms)


class ErrorSignatureInterceptor(Interceptor):
    """Logs ``<code>-<message>`` for every failed request.

    The code is the HTTP status when there is one, otherwise the exception
    class name.
    """

    @property
    def name(self) -> str:
        return "error-signature"

    @property
    def description(self) -> str:
        return "Logs a compact signature for failed requests"

    @staticmethod
    def signature(error: Exception) -> str:
        code = getattr(error, "status_code", None) or type(error).__name__
        return f"{code}-{error}"

    def on_error(self, error: Exception, ctx: RequestContext) -> None:
        logger.error("Request error %s %s: %s", ctx.method, ctx.url, self.signature(error))
