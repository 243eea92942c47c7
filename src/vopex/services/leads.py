"""Lead endpoints (``/leads``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service, compact


class LeadService(Service):
    """CRUD, enrichment and scoring for leads.

    :meth:`create` and :meth:`update` publish ``lead:created`` and
    ``lead:updated`` with the server's copy of the lead.
    """

    def list(self, page: int = 1, page_size: int = 10, **filters: Any) -> Any:
        params = compact({"page": page, "pageSize": page_size, **filters})
        return self._client.get("/leads", params=params)

    def get(self, lead_id: str) -> Any:
        return self._client.get(f"/leads/{lead_id}")

    def create(self, lead: dict[str, Any]) -> Any:
        created = self._client.post("/leads", json_body=lead)
        self._events.publish("lead:created", created)
        return created

    def update(self, lead_id: str, changes: dict[str, Any]) -> Any:
        updated = self._client.put(f"/leads/{lead_id}", json_body=changes)
        self._events.publish("lead:updated", updated)
        return updated

    def delete(self, lead_id: str) -> Any:
        return self._client.delete(f"/leads/{lead_id}")

    def enrich(self, lead_id: str, additional_info: Any) -> Any:
        return self._client.post(
            f"/leads/{lead_id}/enrich", json_body={"additionalInfo": additional_info}
        )

    def score(self, lead_id: str) -> Any:
        return self._client.get(f"/leads/{lead_id}/score")

    def prediction(self, lead_id: str) -> Any:
        return self._client.get(f"/leads/{lead_id}/prediction")
