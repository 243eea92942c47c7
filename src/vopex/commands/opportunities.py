"""Opportunity commands."""

from __future__ import annotations

from typing import Optional

import typer

from vopex.commands._common import open_runtime, parse_filters, show_listing
from vopex.output import format_response


opportunities_app = typer.Typer(no_args_is_help=True)

OPPORTUNITY_COLUMNS = ["id", "name", "stage", "value", "probability"]


@opportunities_app.command("list")
def opportunities_list(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p", min=1),
    page_size: int = typer.Option(10, "--page-size", min=1),
    filters: Optional[list[str]] = typer.Option(None, "--filter", "-f"),
) -> None:
    """List opportunities."""
    parsed = parse_filters(filters)
    with open_runtime(ctx) as rt:
        payload = rt.opportunities.list(page=page, page_size=page_size, **parsed)
    show_listing(payload, OPPORTUNITY_COLUMNS, title=f"Opportunities (page {page})")


@opportunities_app.command("get")
def opportunities_get(
    ctx: typer.Context,
    opportunity_id: str = typer.Argument(help="Opportunity id."),
    interactions: bool = typer.Option(False, "--interactions", help="Show interactions instead."),
) -> None:
    """Show one opportunity."""
    with open_runtime(ctx) as rt:
        if interactions:
            format_response(rt.opportunities.interactions(opportunity_id))
        else:
            format_response(rt.opportunities.get(opportunity_id))
