"""Social media integration endpoints (``/social-media``)."""

from __future__ import annotations

from typing import Any, Optional

from vopex.services.base import Service, compact


class SocialMediaService(Service):
    def connect_platform(self, platform: str, credentials: Optional[dict[str, Any]] = None) -> Any:
        """Link a platform (``"twitter"``, ``"linkedin"``, ...) to the account."""
        body = compact({"platform": platform, "credentials": credentials})
        return self._client.post("/social-media/connect", json_body=body)

    def analytics(self, platform: Optional[str] = None) -> Any:
        return self._client.get("/social-media/analytics", params=compact({"platform": platform}))

    def save_settings(self, settings: dict[str, Any]) -> Any:
        return self._client.post("/social-media/settings", json_body=settings)
