"""vopex -- client SDK and command line for the Vopex CRM API.

The package wraps the CRM's REST endpoints (auth, leads, opportunities,
campaigns, social media, agents, notifications, analytics and AI
predictions) behind thin service classes that share one request pipeline:

* :class:`~vopex.client.ApiClient` -- an :mod:`httpx` client whose requests
  and responses flow through an :class:`~vopex.interceptors.InterceptorChain`.
* :class:`~vopex.cache.Cache` -- an in-memory TTL cache with oldest-first
  eviction, mirrored into the persistent store.
* :class:`~vopex.storage.KeyValueStore` -- a namespaced key/value store with
  optional Fernet encryption, backed by :mod:`diskcache`.

Typical usage::

    from vopex.runtime import Runtime

    with Runtime.from_config() as crm:
        crm.auth.login("ada@example.com", "hunter2")
        leads = crm.leads.list(page=1, status="new")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.3.0"
