"""Login, registration and session lifecycle against the ``/auth`` endpoints."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from vopex.auth.interceptor import RedirectHandler
from vopex.auth.session import SessionStore, is_token_expired
from vopex.client import ApiClient
from vopex.exceptions import HTTPError, VopexError
from vopex.models import Session

logger = logging.getLogger(__name__)


class AuthService:
    """Authenticate against the CRM and keep the session in a :class:`SessionStore`.

    Args:
        client: API client used for the ``/auth`` calls.
        sessions: Session persistence.
        redirect: Called with *login_route* on :meth:`logout`.
        login_route: Where the user is sent after logout.
        clock: Returns the current epoch time in seconds.
    """

    def __init__(
        self,
        client: ApiClient,
        sessions: SessionStore,
        redirect: Optional[RedirectHandler] = None,
        login_route: str = "/login",
        clock: Callable[[], float] = time.time,
        on_user_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._client = client
        self._sessions = sessions
        self._redirect = redirect
        self._login_route = login_route
        self._clock = clock
        self._on_user_change = on_user_change

    def login(self, email: str, password: str) -> dict[str, Any]:
        """POST ``/auth/login`` and store the returned token and user.

        Raises:
            VopexError: Whatever the client raised. A 401 also logs out.
        """
        return self._authenticate("/auth/login", {"email": email, "password": password})

    def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"email": email, "password": password}
        if first_name is not None:
            payload["firstName"] = first_name
        if last_name is not None:
            payload["lastName"] = last_name
        return self._authenticate("/auth/register", payload)

    def logout(self) -> None:
        self._sessions.clear()
        if self._redirect is not None:
            self._redirect(self._login_route)

    def is_authenticated(self) -> bool:
        token = self._sessions.token
        return token is not None and not is_token_expired(token, self._clock())

    def get_current_user(self) -> Optional[dict[str, Any]]:
        return self._sessions.user

    def get_token(self) -> Optional[str]:
        return self._sessions.token

    def refresh_token(self) -> Optional[str]:
        """POST ``/auth/refresh-token``; return the new token or ``None`` on failure."""
        try:
            response = self._client.post("/auth/refresh-token", json_body={})
        except VopexError as exc:
            self._handle_auth_error(exc)
            return None
        token = response.get("token") if isinstance(response, dict) else None
        if not token:
            return None
        self._sessions.set_token(token)
        return token

    def request_password_reset(self, email: str) -> Any:
        return self._client.post("/auth/password-reset-request", json_body={"email": email})

    def reset_password(self, token: str, new_password: str) -> Any:
        return self._client.post(
            "/auth/password-reset", json_body={"token": token, "newPassword": new_password}
        )

    def verify_mfa(self, code: str) -> Any:
        """POST ``/auth/verify-mfa``. A response carrying a token replaces the session."""
        try:
            response = self._client.post("/auth/verify-mfa", json_body={"code": code})
        except VopexError as exc:
            self._handle_auth_error(exc)
            raise
        if isinstance(response, dict) and response.get("token"):
            self._store_session(response)
        return response

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _authenticate(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(path, json_body=payload)
        except VopexError as exc:
            self._handle_auth_error(exc)
            raise
        if not isinstance(response, dict) or not response.get("token"):
            raise VopexError(f"Unexpected response from {path}: no token returned")
        self._store_session(response)
        return response

    def _store_session(self, response: dict[str, Any]) -> None:
        user = response.get("user")
        user = user if isinstance(user, dict) else None
        previous = self._sessions.load()
        self._sessions.save(Session(token=response["token"], user=user))
        if self._on_user_change is None:
            return
        if _user_id(previous.user if previous else None) != _user_id(user):
            logger.debug("Signed-in user changed")
            self._on_user_change()

    def _handle_auth_error(self, error: VopexError) -> None:
        logger.error("Authentication error: %s", error)
        if isinstance(error, HTTPError) and error.status_code == 401:
            self.logout()


def _user_id(user: Optional[dict[str, Any]]) -> Optional[str]:
    if not user or user.get("id") is None:
        return None
    return str(user["id"])
