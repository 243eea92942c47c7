"""Helpers for pulling data out of :class:`httpx.Response` objects."""

from __future__ import annotations

from typing import Any

import httpx


def extract_response_data(response: httpx.Response) -> Any:
    """Return the JSON body, the raw text if it is not JSON, or ``None`` if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def error_message(body: Any, limit: int = 200) -> str:
    """Pick a human-readable message out of an error response body.

    Looks at ``message``, ``error`` and ``detail`` for dict bodies and falls
    back to the (truncated) string form of anything else.
    """
    if body is None:
        return ""
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error") or body.get("detail") or ""
        return str(msg)
    return str(body)[:limit]
