"""Persistent auth session on top of the key/value store.

The token and the user record are stored as two items in namespace ``auth``
of a :class:`~vopex.storage.KeyValueStore`, encrypted by default. Each CRM
profile has its own store directory, so sessions never leak between
deployments.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import jwt

from vopex.models import Session, StorageOptions
from vopex.storage import KeyValueStore

logger = logging.getLogger(__name__)

NAMESPACE = "auth"
TOKEN_KEY = "vopex_auth_token"
USER_KEY = "vopex_user_data"


def decode_token_expiry(token: str) -> float:
    """Return the ``exp`` claim of a JWT without verifying its signature.

    The server signs tokens with a key the client never sees, so only the
    payload is read.

    Raises:
        ValueError: If the token is not a well-formed JWT or carries no
            numeric ``exp``.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError as exc:
        raise ValueError(f"Unreadable token: {exc}") from exc
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise ValueError("Token payload has no numeric 'exp' claim")
    return float(exp)


def is_token_expired(token: str, now: float) -> bool:
    """True when the token's ``exp`` has passed or cannot be read."""
    try:
        return decode_token_expiry(token) < now
    except ValueError:
        return True


class SessionStore:
    """Read/write the current session.

    Args:
        store: Backing key/value store.
        encrypted: Encrypt the token and user record at rest.

    Example::

        sessions = SessionStore(store)
        sessions.save(Session(token="eyJ...", user={"id": "u1"}))
        sessions.token   # "eyJ..."
        sessions.clear()
    """

    def __init__(self, store: KeyValueStore, encrypted: bool = True) -> None:
        self._store = store
        self._encrypted = encrypted

    def _options(self) -> StorageOptions:
        return StorageOptions(encrypted=self._encrypted, namespace=NAMESPACE)

    def save(self, session: Session) -> None:
        self.set_token(session.token)
        if session.user is not None:
            self.set_user(session.user)

    def set_token(self, token: str) -> None:
        self._store.set_item(TOKEN_KEY, token, self._options())

    def set_user(self, user: dict[str, Any]) -> None:
        self._store.set_item(USER_KEY, user, self._options())

    @property
    def token(self) -> Optional[str]:
        value = self._store.get_item(TOKEN_KEY, NAMESPACE)
        return value if isinstance(value, str) and value else None

    @property
    def user(self) -> Optional[dict[str, Any]]:
        value = self._store.get_item(USER_KEY, NAMESPACE)
        return value if isinstance(value, dict) else None

    def load(self) -> Optional[Session]:
        token = self.token
        if token is None:
            return None
        return Session(token=token, user=self.user)

    def clear(self) -> None:
        self._store.remove_item(TOKEN_KEY, NAMESPACE)
        self._store.remove_item(USER_KEY, NAMESPACE)
        logger.debug("Cleared stored session")
