"""Tests for token decoding and the persistent session store."""

from __future__ import annotations

import jwt
import pytest

from vopex.auth import SessionStore, decode_token_expiry, is_token_expired
from vopex.auth.session import NAMESPACE, TOKEN_KEY, USER_KEY
from vopex.models import Session
from vopex.storage import KeyValueStore


class TestTokenExpiry:
    def test_decodes_exp(self, make_token) -> None:
        assert decode_token_expiry(make_token(1_700_000_123)) == 1_700_000_123

    @pytest.mark.parametrize("token", ["opaque", "a.!!!.c", "a.e30.c"])
    def test_unreadable_tokens(self, token: str) -> None:
        with pytest.raises(ValueError):
            decode_token_expiry(token)

    def test_expired(self, make_token) -> None:
        token = make_token(100)
        assert is_token_expired(token, 101)
        assert not is_token_expired(token, 99)

    def test_unreadable_counts_as_expired(self) -> None:
        assert is_token_expired("opaque", 0)

    def test_signature_key_not_needed(self) -> None:
        token = jwt.encode({"exp": 42}, "server-only-secret-0123456789abcdefgh", algorithm="HS256")
        assert decode_token_expiry(token) == 42

    def test_long_expired_token_still_decodes(self, make_token) -> None:
        assert decode_token_expiry(make_token(1)) == 1

    @pytest.mark.parametrize("exp", ["tomorrow", True, None])
    def test_non_numeric_exp(self, exp) -> None:
        token = jwt.encode({"exp": exp, "sub": "u1"}, "vopex-test-signing-key-0123456789abcdef", algorithm="HS256")
        with pytest.raises(ValueError):
            decode_token_expiry(token)


class TestSessionStore:
    def test_save_and_load(self, store: KeyValueStore) -> None:
        sessions = SessionStore(store)
        sessions.save(Session(token="t1", user={"id": "u1"}))
        assert sessions.token == "t1"
        assert sessions.user == {"id": "u1"}
        assert sessions.load() == Session(token="t1", user={"id": "u1"})

    def test_encrypted_at_rest(self, store: KeyValueStore) -> None:
        SessionStore(store).set_token("very-secret-token")
        raw = store._cache.get(f"{NAMESPACE}:{TOKEN_KEY}")
        assert "very-secret-token" not in raw

    def test_plain_when_disabled(self, store: KeyValueStore) -> None:
        SessionStore(store, encrypted=False).set_token("visible")
        assert "visible" in store._cache.get(f"{NAMESPACE}:{TOKEN_KEY}")

    def test_empty_session(self, store: KeyValueStore) -> None:
        sessions = SessionStore(store)
        assert sessions.token is None
        assert sessions.user is None
        assert sessions.load() is None

    def test_clear(self, store: KeyValueStore) -> None:
        sessions = SessionStore(store)
        sessions.save(Session(token="t", user={"id": 1}))
        sessions.clear()
        assert store.keys(NAMESPACE) == []

    def test_ignores_wrong_types(self, store: KeyValueStore) -> None:
        from vopex.models import StorageOptions

        store.set_item(USER_KEY, "not a dict", StorageOptions(namespace=NAMESPACE))
        assert SessionStore(store).user is None
