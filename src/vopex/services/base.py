"""Shared plumbing for the REST service wrappers."""

from __future__ import annotations

from typing import Any, Optional

from vopex.client import ApiClient
from vopex.events import EventBus, event_bus


def compact(params: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so they are not sent as empty query parameters."""
    return {key: value for key, value in params.items() if value is not None}


class Service:
    """Base for the endpoint wrappers.

    Args:
        client: The API client every call goes through.
        events: Bus for domain events; defaults to the shared
            :data:`~vopex.events.event_bus`.
    """

    def __init__(self, client: ApiClient, events: Optional[EventBus] = None) -> None:
        self._client = client
        self._events = events if events is not None else event_bus
