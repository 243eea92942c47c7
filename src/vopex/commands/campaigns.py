"""Campaign commands."""

from __future__ import annotations

import typer

from vopex.commands._common import open_runtime, show_listing
from vopex.output import format_response


campaigns_app = typer.Typer(no_args_is_help=True)


@campaigns_app.command("list")
def campaigns_list(ctx: typer.Context) -> None:
    """List marketing campaigns."""
    with open_runtime(ctx) as rt:
        payload = rt.campaigns.list()
    show_listing(payload, ["id", "name", "status"], title="Campaigns")


@campaigns_app.command("report")
def campaigns_report(
    ctx: typer.Context,
    campaign_id: str = typer.Argument(help="Campaign id."),
    analytics: bool = typer.Option(False, "--analytics", help="Show analytics instead."),
) -> None:
    """Show a campaign's report."""
    with open_runtime(ctx) as rt:
        if analytics:
            format_response(rt.campaigns.analytics(campaign_id))
        else:
            format_response(rt.campaigns.report(campaign_id))
