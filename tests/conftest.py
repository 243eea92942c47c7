"""Shared test fixtures for vopex.

Provides isolated config directories, an encrypted key/value store, a
controllable clock, a mock HTTP API and a CLI runner. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import jwt
import pytest

from vopex.models import GlobalConfig, Profile, RequestConfig
from vopex.output import OutputFormat, OutputManager, reset_output, set_output
from vopex.security import Cipher
from vopex.storage import KeyValueStore


BASE_URL = "https://crm.example.com/api"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_token(exp: float, **claims: Any) -> str:
    """Build a JWT whose payload carries *exp*, signed with a throwaway key."""
    return jwt.encode({"exp": exp, **claims}, "vopex-test-signing-key-0123456789abcdef", algorithm="HS256")


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockApi:
    """Routes ``(METHOD, path)`` pairs to canned responses and records requests.

    Paths are relative to :data:`BASE_URL`. A route is either a
    ``(status, body)`` pair or a callable taking the :class:`httpx.Request`.
    Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.base_url = BASE_URL
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[(method.upper(), path)] = (status, body)

    def add_handler(
        self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self.routes[(method.upper(), path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        prefix = httpx.URL(BASE_URL).path
        if path.startswith(prefix):
            path = path[len(prefix):] or "/"
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)

    def count(self, method: str, path: str) -> int:
        full = httpx.URL(BASE_URL).path + path
        return sum(1 for r in self.requests if r.method == method and r.url.path == full)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams the
    cached references go stale, so a fresh manager is created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME into tmp_path, clears the
    VOPEX_* environment variables and changes into tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("vopex.config._is_xdg_platform", lambda: True)

    for var in ["VOPEX_PROFILE", "VOPEX_BASE_URL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def profile() -> Profile:
    return Profile(
        name="acme",
        base_url=BASE_URL,
        login_route="/login",
        request=RequestConfig(timeout=5),
    )


@pytest.fixture
def global_config() -> GlobalConfig:
    return GlobalConfig()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> Cipher:
    return Cipher(Cipher.generate_key())


@pytest.fixture
def store(tmp_path: Path, cipher: Cipher, clock: FakeClock) -> KeyValueStore:
    kv = KeyValueStore(tmp_path / "store", cipher=cipher, clock=clock)
    yield kv
    kv.close()


@pytest.fixture
def api() -> MockApi:
    return MockApi()


@pytest.fixture
def client(profile: Profile, api: MockApi):
    from vopex.client import ApiClient

    with ApiClient(profile, transport=api.transport) as c:
        yield c


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture(name="make_token")
def make_token_fixture():
    """The :func:`make_token` helper, for tests that need JWT-shaped tokens."""
    return make_token
