"""Opportunity endpoints (``/opportunities``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service, compact


class OpportunityService(Service):
    def list(self, page: int = 1, page_size: int = 10, **filters: Any) -> Any:
        params = compact({"page": page, "pageSize": page_size, **filters})
        return self._client.get("/opportunities", params=params)

    def get(self, opportunity_id: str) -> Any:
        return self._client.get(f"/opportunities/{opportunity_id}")

    def create(self, opportunity: dict[str, Any]) -> Any:
        return self._client.post("/opportunities", json_body=opportunity)

    def update(self, opportunity_id: str, changes: dict[str, Any]) -> Any:
        return self._client.put(f"/opportunities/{opportunity_id}", json_body=changes)

    def interactions(self, opportunity_id: str) -> Any:
        return self._client.get(f"/opportunities/{opportunity_id}/interactions")

    def communications(self, opportunity_id: str) -> Any:
        return self._client.get(f"/opportunities/{opportunity_id}/communications")
