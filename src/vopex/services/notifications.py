"""Notification endpoints (``/notifications``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service


class NotificationService(Service):
    def list(self) -> Any:
        return self._client.get("/notifications")

    def push(self) -> Any:
        """Pending push notifications for the current user."""
        return self._client.get("/notifications/push")
