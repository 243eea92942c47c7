"""Campaign endpoints (``/campaigns``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service


class CampaignService(Service):
    def create(self, campaign: dict[str, Any]) -> Any:
        return self._client.post("/campaigns", json_body=campaign)

    def list(self) -> Any:
        return self._client.get("/campaigns")

    def report(self, campaign_id: str) -> Any:
        return self._client.get(f"/campaigns/{campaign_id}/report")

    def analytics(self, campaign_id: str) -> Any:
        return self._client.get(f"/campaigns/{campaign_id}/analytics")

    def save_automation_rules(self, campaign_id: str, rules: list[dict[str, Any]]) -> Any:
        return self._client.post(f"/campaigns/{campaign_id}/automation", json_body={"rules": rules})
