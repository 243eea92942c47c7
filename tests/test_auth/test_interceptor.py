"""Tests for the bearer token interceptor, alone and inside the client."""

from __future__ import annotations

import pytest

from vopex.auth import BearerTokenInterceptor, SessionStore
from vopex.client import ApiClient
from vopex.exceptions import ForbiddenError, UnauthorizedError
from vopex.interceptors import InterceptorChain, RequestContext
from vopex.models import Profile, Session
from vopex.storage import KeyValueStore


@pytest.fixture
def sessions(store: KeyValueStore) -> SessionStore:
    s = SessionStore(store)
    s.save(Session(token="tok-123", user={"id": "u1"}))
    return s


class TestBearerToken:
    def test_adds_header(self, sessions: SessionStore) -> None:
        ctx = RequestContext(headers={})
        BearerTokenInterceptor(sessions).on_request(ctx)
        assert ctx.headers["Authorization"] == "Bearer tok-123"

    def test_no_header_without_session(self, store: KeyValueStore) -> None:
        ctx = RequestContext(headers={})
        BearerTokenInterceptor(SessionStore(store)).on_request(ctx)
        assert "Authorization" not in ctx.headers

    def test_401_clears_and_redirects(self, sessions: SessionStore) -> None:
        routes: list[str] = []
        interceptor = BearerTokenInterceptor(sessions, routes.append, "/signin")
        interceptor.on_error(UnauthorizedError("HTTP 401", status_code=401), RequestContext())
        assert sessions.token is None
        assert sessions.user is None
        assert routes == ["/signin"]

    def test_403_keeps_session(self, sessions: SessionStore) -> None:
        routes: list[str] = []
        interceptor = BearerTokenInterceptor(sessions, routes.append)
        interceptor.on_error(ForbiddenError("HTTP 403", status_code=403), RequestContext())
        assert sessions.token == "tok-123"
        assert routes == []


class TestWithClient:
    def test_token_sent_and_401_handled(
        self, profile: Profile, api, sessions: SessionStore
    ) -> None:
        routes: list[str] = []
        chain = InterceptorChain([BearerTokenInterceptor(sessions, routes.append)])
        api.add("GET", "/leads", [])
        api.add("GET", "/secret", {"message": "expired"}, status=401)

        with ApiClient(profile, chain=chain, transport=api.transport) as client:
            client.get("/leads")
            assert api.last.headers["authorization"] == "Bearer tok-123"
            with pytest.raises(UnauthorizedError):
                client.get("/secret")

        assert sessions.token is None
        assert routes == ["/login"]
