"""Cache commands -- inspect and clear the client-side cache."""

from __future__ import annotations

from typing import Optional

import typer

from vopex.commands._common import open_runtime
from vopex.output import format_response, success


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show entry counts and storage usage."""
    with open_runtime(ctx) as rt:
        format_response(
            {
                "cache": rt.cache.stats(),
                "responses": rt.response_cache.stats(),
                "storage": rt.store.usage(),
            }
        )


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Only clear this namespace (e.g. predictions)."
    ),
) -> None:
    """Clear cached entries, in memory and on disk."""
    with open_runtime(ctx) as rt:
        rt.cache.clear(namespace)
    success(f"Cleared namespace '{namespace}'." if namespace else "Cache cleared.")
