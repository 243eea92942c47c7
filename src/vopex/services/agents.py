"""Sales agent endpoints (``/agents``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service


class AgentService(Service):
    def data(self) -> Any:
        return self._client.get("/agents/data")

    def save_settings(self, settings: dict[str, Any]) -> Any:
        return self._client.post("/agents/settings", json_body=settings)

    def performance(self, agent_id: str) -> Any:
        return self._client.get(f"/agents/{agent_id}/performance")

    def send_message(self, agent_id: str, message: str) -> Any:
        return self._client.post(f"/agents/{agent_id}/chat", json_body={"message": message})
