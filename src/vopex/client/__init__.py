"""HTTP client for the CRM REST API.

:class:`ApiClient` wraps :mod:`httpx` with default JSON headers,
interceptors, optional GET response caching, and typed status errors.

Example::

    from vopex.client import ApiClient

    with ApiClient(profile) as client:
        lead = client.get("/leads/42")
"""

from vopex.client.sync_client import ApiClient

__all__ = ["ApiClient"]
