"""Lead commands.

Example::

    vopex leads list --page 2 --filter status=new
    vopex leads create --data '{"name": "Ada", "email": "ada@example.com"}'
    vopex leads enrich L-1 --info '{"company": "Analytical Engines"}'
"""

from __future__ import annotations

from typing import Optional

import typer

from vopex.commands._common import open_runtime, parse_filters, parse_json_option, show_listing
from vopex.output import error, format_response, success


leads_app = typer.Typer(no_args_is_help=True)

LEAD_COLUMNS = ["id", "name", "email", "status", "score"]


@leads_app.command("list")
def leads_list(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p", min=1),
    page_size: int = typer.Option(10, "--page-size", min=1),
    filters: Optional[list[str]] = typer.Option(
        None, "--filter", "-f", help="key=value filter, repeatable."
    ),
) -> None:
    """List leads, one page at a time."""
    parsed = parse_filters(filters)
    with open_runtime(ctx) as rt:
        payload = rt.leads.list(page=page, page_size=page_size, **parsed)
    show_listing(payload, LEAD_COLUMNS, title=f"Leads (page {page})")


@leads_app.command("get")
def leads_get(ctx: typer.Context, lead_id: str = typer.Argument(help="Lead id.")) -> None:
    """Show one lead."""
    with open_runtime(ctx) as rt:
        format_response(rt.leads.get(lead_id))


@leads_app.command("create")
def leads_create(
    ctx: typer.Context,
    data: str = typer.Option(..., "--data", "-d", help="Lead as a JSON object."),
) -> None:
    """Create a lead."""
    lead = parse_json_option(data, "--data")
    if not isinstance(lead, dict):
        error("--data must be a JSON object")
        raise typer.Exit(code=2)
    with open_runtime(ctx) as rt:
        created = rt.leads.create(lead)
    success("Lead created.")
    format_response(created)


@leads_app.command("enrich")
def leads_enrich(
    ctx: typer.Context,
    lead_id: str = typer.Argument(help="Lead id."),
    info: str = typer.Option(..., "--info", "-i", help="Additional info as JSON."),
) -> None:
    """Attach additional information to a lead."""
    additional = parse_json_option(info, "--info")
    with open_runtime(ctx) as rt:
        format_response(rt.leads.enrich(lead_id, additional))


@leads_app.command("score")
def leads_score(
    ctx: typer.Context,
    lead_id: str = typer.Argument(help="Lead id."),
    predict: bool = typer.Option(
        False, "--predict", help="Ask the prediction engine instead of the stored score."
    ),
) -> None:
    """Show a lead's score."""
    with open_runtime(ctx) as rt:
        if predict:
            result = rt.predictions.predict_lead_score(lead_id)
            if result is None:
                error(f"No prediction available for lead {lead_id}")
                raise typer.Exit(code=1)
        else:
            result = rt.leads.score(lead_id)
        format_response(result)
