"""Generative and assistant endpoints (``/ai``)."""

from __future__ import annotations

from typing import Any

from vopex.services.base import Service


class AIService(Service):
    def query_bot(self, query: str) -> Any:
        return self._client.post("/ai/bot", json_body={"query": query})

    def predictions(self) -> Any:
        return self._client.get("/ai/predictions")

    def generate_content(self, prompt: str) -> Any:
        return self._client.post("/ai/generate-content", json_body={"prompt": prompt})

    def start_learning(self) -> Any:
        return self._client.post("/ai/start-learning")
