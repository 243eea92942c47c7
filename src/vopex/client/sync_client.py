"""Synchronous HTTP client with interceptors, response caching and typed errors.

:class:`ApiClient` wraps :class:`httpx.Client` and layers on:

- **Default headers** -- ``Content-Type`` and ``Accept`` are
  ``application/json`` unless the profile or caller overrides them.
- **Interceptors** -- request, response and error hooks via
  :class:`~vopex.interceptors.InterceptorChain`.
- **Response caching** -- optional cache for successful GET requests via
  :class:`~vopex.cache.ResponseCache`.
- **Status classification** -- 400, 401, 403, 404 and 500 map to their own
  exception types, every other error status to
  :class:`~vopex.exceptions.ApiError`, and transport failures to
  :class:`~vopex.exceptions.ConnectionError_`.

Each request is attempted exactly once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from vopex.client.response import error_message, extract_response_data
from vopex.exceptions import (
    ApiError,
    BadRequestError,
    ConnectionError_,
    ForbiddenError,
    HTTPError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from vopex.interceptors.chain import InterceptorChain, RequestContext
from vopex.models import Profile

if TYPE_CHECKING:
    from vopex.cache import ResponseCache

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_STATUS_ERRORS: dict[int, tuple[type[HTTPError], str]] = {
    400: (BadRequestError, "Bad request"),
    401: (UnauthorizedError, "Unauthorized"),
    403: (ForbiddenError, "Forbidden: insufficient permissions"),
    404: (NotFoundError, "Not found: the requested resource does not exist"),
    500: (ServerError, "Server error: internal server problem"),
}


class ApiClient:
    """Blocking client for the CRM REST API.

    Args:
        profile: Supplies ``base_url`` and the request settings (timeout,
            SSL verification, extra default headers).
        chain: Interceptors to run around every request.
        cache: Optional response cache. Only 2xx GET responses are stored.
        transport: Custom :mod:`httpx` transport, mainly for tests.

    Example::

        with ApiClient(profile, chain=manager.get_chain()) as client:
            leads = client.get("/leads", params={"page": 1})
    """

    def __init__(
        self,
        profile: Profile,
        chain: Optional[InterceptorChain] = None,
        cache: Optional[ResponseCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._profile = profile
        self._chain = chain if chain is not None else InterceptorChain()
        self._cache = cache
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def chain(self) -> InterceptorChain:
        return self._chain

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def open(self) -> None:
        if self._client is not None:
            return
        config = self._profile.request
        self._client = httpx.Client(
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> ApiClient:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Run the full pipeline and return the raw :class:`httpx.Response`.

        Raises:
            BadRequestError: On 400.
            UnauthorizedError: On 401.
            ForbiddenError: On 403.
            NotFoundError: On 404.
            ServerError: On 500.
            ApiError: On any other status >= 400.
            ConnectionError_: When no response was received.
        """
        response, _ = self._perform(method, path, params, headers, json_body)
        return response

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Like :meth:`send` but return the body as transformed by interceptors."""
        _, ctx = self._perform(method, path, params, headers, json_body)
        return ctx.response_body

    def get(self, path: str, params: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json_body: Optional[Any] = None, **kwargs: Any) -> Any:
        return self.request("POST", path, json_body=json_body, **kwargs)

    def put(self, path: str, json_body: Optional[Any] = None, **kwargs: Any) -> Any:
        return self.request("PUT", path, json_body=json_body, **kwargs)

    def patch(self, path: str, json_body: Optional[Any] = None, **kwargs: Any) -> Any:
        return self.request("PATCH", path, json_body=json_body, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Pipeline
    # ------------------------------------------------------------------ #

    def _perform(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        headers: Optional[dict[str, str]],
        json_body: Optional[Any],
    ) -> tuple[httpx.Response, RequestContext]:
        method = method.upper()

        # 1. Merge headers and params
        merged_headers: dict[str, str] = dict(DEFAULT_HEADERS)
        merged_headers.update(self._profile.request.headers)
        merged_headers.update(headers or {})
        ctx = RequestContext(
            method=method,
            url=self._build_url(path),
            headers=merged_headers,
            params=dict(params or {}),
            body=json_body,
        )

        # 2. Request interceptors
        self._chain.run_request(ctx)

        # 3. Cache lookup (GET only)
        cached = self._cache.get(method, ctx.url, ctx.params) if self._cache else None
        if cached is not None:
            logger.debug("Cache hit: %s %s", method, ctx.url)
            response = httpx.Response(
                status_code=cached["status_code"],
                headers=cached.get("headers", {}),
                request=httpx.Request(method=method, url=ctx.url),
                **_replay_body(cached.get("body")),
            )
            self._fill_response(ctx, response, cached.get("body"))
            self._chain.run_response(ctx)
            return response, ctx

        # 4. Single attempt
        response = self._execute(ctx)

        # 5. Response interceptors
        raw_body = extract_response_data(response)
        self._fill_response(ctx, response, raw_body)
        self._chain.run_response(ctx)

        # 6. Cache store (GET 2xx only)
        if self._cache is not None:
            self._cache.set(
                method,
                ctx.url,
                ctx.params,
                {
                    "status_code": response.status_code,
                    "headers": _cacheable_headers(response.headers),
                    "body": raw_body,
                },
            )

        # 7. Status classification (raises on >= 400)
        self._map_response_error(ctx)
        return response, ctx

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        base = self._profile.base_url.rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _execute(self, ctx: RequestContext) -> httpx.Response:
        self.open()
        assert self._client is not None
        kwargs: dict[str, Any] = {
            "method": ctx.method,
            "url": ctx.url,
            "headers": ctx.headers,
            "params": ctx.params,
        }
        if ctx.body is not None:
            kwargs["json"] = ctx.body
        try:
            return self._client.request(**kwargs)
        except httpx.TransportError as exc:
            logger.error("Network error: unable to connect to the server (%s %s): %s",
                         ctx.method, ctx.url, exc)
            error = ConnectionError_(f"No response from {ctx.url}: {exc}")
            self._chain.run_error(error, ctx)
            raise error from exc

    @staticmethod
    def _fill_response(ctx: RequestContext, response: httpx.Response, body: Any) -> None:
        ctx.status_code = response.status_code
        ctx.response_headers = dict(response.headers)
        ctx.response_body = body

    def _map_response_error(self, ctx: RequestContext) -> None:
        """Raise the typed exception for an error status, after notifying interceptors."""
        status = ctx.status_code
        if status < 400:
            return

        msg = error_message(ctx.response_body)
        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        exc_cls, log_msg = _STATUS_ERRORS.get(status, (ApiError, "Unexpected error"))
        logger.error("%s (%s %s): %s", log_msg, ctx.method, ctx.url, ctx.response_body)
        error = exc_cls(full_msg, status_code=status, detail=ctx.response_body)

        self._chain.run_error(error, ctx)
        raise error


_TRANSPORT_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def _replay_body(body: Any) -> dict[str, Any]:
    # Non-JSON bodies are cached as their decoded text.
    if body is None:
        return {}
    if isinstance(body, str):
        return {"text": body}
    return {"json": body}


def _cacheable_headers(headers: httpx.Headers) -> dict[str, str]:
    # The body is replayed decoded, so the original framing headers no longer apply.
    return {k: v for k, v in headers.items() if k.lower() not in _TRANSPORT_HEADERS}
