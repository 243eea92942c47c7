"""AI prediction endpoints (``/predictions``) with short-lived result caching.

Predictions are expensive on the server side and change slowly, so results
are kept in the :class:`~vopex.cache.Cache` namespace ``predictions`` for
five minutes by default. Failures never raise: they are logged and reported
as ``None`` (or ``[]`` for the batch call).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from vopex.auth import SessionStore
from vopex.cache import Cache
from vopex.client import ApiClient
from vopex.events import EventBus
from vopex.exceptions import VopexError
from vopex.services.base import Service

logger = logging.getLogger(__name__)

NAMESPACE = "predictions"
DEFAULT_EXPIRATION_MINUTES = 5


class PredictionEngine(Service):
    """Lead, opportunity and forecast predictions.

    Args:
        client: API client.
        cache: Where results are cached.
        sessions: Supplies the user id for sales forecasts.
        events: Domain event bus.

    Example::

        engine = PredictionEngine(client, cache, sessions)
        engine.predict_lead_score("L-1", {"timeframe": "short"})
        engine.set_cache_expiration(15)
    """

    def __init__(
        self,
        client: ApiClient,
        cache: Cache,
        sessions: SessionStore,
        events: Optional[EventBus] = None,
    ) -> None:
        super().__init__(client, events)
        self._cache = cache
        self._sessions = sessions
        self._ttl = DEFAULT_EXPIRATION_MINUTES * 60

    @property
    def cache_ttl(self) -> float:
        return self._ttl

    def predict_lead_score(
        self, lead_id: str, options: Optional[dict[str, Any]] = None
    ) -> Optional[dict[str, Any]]:
        return self._cached_post(
            f"lead_score_{lead_id}",
            f"/predictions/lead-score/{lead_id}",
            dict(options or {}),
            "Lead scoring prediction failed",
        )

    def predict_opportunity(
        self, opportunity_id: str, options: Optional[dict[str, Any]] = None
    ) -> Optional[dict[str, Any]]:
        return self._cached_post(
            f"opportunity_prediction_{opportunity_id}",
            f"/predictions/opportunity/{opportunity_id}",
            dict(options or {}),
            "Opportunity prediction failed",
        )

    def predict_sales_forecast(
        self, options: Optional[dict[str, Any]] = None
    ) -> Optional[dict[str, Any]]:
        """Forecast for the signed-in user; ``None`` when nobody is signed in."""
        user = self._sessions.user
        if not user or user.get("id") is None:
            return None
        return self._cached_post(
            f"sales_forecast_{user['id']}",
            "/predictions/sales-forecast",
            {**(options or {}), "userId": user["id"]},
            "Sales forecast prediction failed",
        )

    def batch_lead_scores(
        self, lead_ids: list[str], options: Optional[dict[str, Any]] = None
    ) -> list[dict[str, Any]]:
        """Score several leads in one call and cache each result individually."""
        try:
            predictions = self._client.post(
                "/predictions/lead-scores",
                json_body={"leadIds": lead_ids, "options": options or {}},
            )
        except VopexError as exc:
            logger.error("Batch lead scoring prediction failed: %s", exc)
            return []
        if not isinstance(predictions, list):
            logger.error("Batch lead scoring returned %s, expected a list", type(predictions).__name__)
            return []
        for prediction in predictions:
            if isinstance(prediction, dict) and prediction.get("leadId") is not None:
                self._cache.set(
                    f"lead_score_{prediction['leadId']}", prediction, ttl=self._ttl, namespace=NAMESPACE
                )
        return predictions

    def set_cache_expiration(self, minutes: float) -> None:
        self._ttl = minutes * 60

    def clear_cache(self) -> None:
        self._cache.clear(NAMESPACE)

    def _cached_post(
        self, key: str, path: str, body: dict[str, Any], failure: str
    ) -> Optional[dict[str, Any]]:
        cached = self._cache.get(key, namespace=NAMESPACE)
        if cached is not None:
            return cached
        try:
            prediction = self._client.post(path, json_body=body)
        except VopexError as exc:
            logger.error("%s: %s", failure, exc)
            return None
        self._cache.set(key, prediction, ttl=self._ttl, namespace=NAMESPACE)
        return prediction
