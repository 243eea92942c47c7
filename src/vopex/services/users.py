"""Endpoints scoped to the signed-in user (``/users/{id}``)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from vopex.auth import SessionStore
from vopex.client import ApiClient
from vopex.events import EventBus
from vopex.exceptions import AuthError
from vopex.services.base import Service


class UserService(Service):
    """Profile, preferences, heartbeat and sync for the current user.

    The user id comes from the stored session; every call raises
    :class:`~vopex.exceptions.AuthError` when nobody is signed in.
    """

    def __init__(
        self,
        client: ApiClient,
        sessions: SessionStore,
        events: Optional[EventBus] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        super().__init__(client, events)
        self._sessions = sessions
        self._now = now

    def _user_path(self, suffix: str = "") -> str:
        user = self._sessions.user
        if not user or user.get("id") is None:
            raise AuthError("No authenticated user")
        return f"/users/{user['id']}{suffix}"

    def profile(self) -> Any:
        return self._client.get(self._user_path())

    def update_profile(self, changes: dict[str, Any]) -> Any:
        return self._client.put(self._user_path(), json_body=changes)

    def update_preferences(self, preferences: dict[str, Any]) -> Any:
        return self._client.patch(self._user_path("/preferences"), json_body=preferences)

    def heartbeat(self) -> Any:
        body = {"timestamp": self._now().isoformat(), "action": "heartbeat"}
        return self._client.post(self._user_path("/activity"), json_body=body)

    def sync(self) -> Any:
        """Fetch the server's copy of the user; publish ``user:synced`` if it changed."""
        latest = self._client.get(self._user_path("/sync"))
        if latest != self._sessions.user:
            self._events.publish("user:synced", latest)
        return latest
