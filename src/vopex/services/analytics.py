"""Analytics endpoints (``/analytics``)."""

from __future__ import annotations

from typing import Any, Optional

from vopex.services.base import Service, compact


class AnalyticsService(Service):
    def real_time(self) -> Any:
        return self._client.get("/analytics/real-time")

    def track_batch(self, events: list[dict[str, Any]], session_id: Optional[str] = None) -> Any:
        """Send queued usage events in one request."""
        body = compact({"sessionId": session_id, "events": events})
        return self._client.post("/analytics/batch", json_body=body)
