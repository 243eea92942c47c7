"""Feature-flag commands."""

from __future__ import annotations

import typer

from vopex.commands._common import open_runtime
from vopex.output import error, format_response, info, print_records, warning


flags_app = typer.Typer(no_args_is_help=True)


@flags_app.command("sync")
def flags_sync(ctx: typer.Context) -> None:
    """Fetch flags from the server and list them."""
    with open_runtime(ctx) as rt:
        count = rt.flags.sync()
        flags = rt.flags.flags
    if not count:
        warning("No feature flags available.")
        return
    info(f"{count} feature flag(s) known.")
    print_records(
        [
            {
                "key": flag.key,
                "status": flag.status.value,
                "rollout": flag.rollout_percentage,
                "roles": ",".join(flag.enabled_for_roles or []),
            }
            for flag in flags.values()
        ],
        ["key", "status", "rollout", "roles"],
        title="Feature flags",
    )


@flags_app.command("check")
def flags_check(ctx: typer.Context, key: str = typer.Argument(help="Flag key.")) -> None:
    """Evaluate one flag for the signed-in user.

    Exits 0 when the flag is enabled and 1 when it is not, so it can gate
    shell scripts::

        vopex flags check new_dashboard && ./deploy-dashboard.sh
    """
    with open_runtime(ctx) as rt:
        rt.flags.sync()
        flag = rt.flags.details(key)
        if flag is None:
            error(f"Unknown feature flag: {key}")
            raise typer.Exit(code=1)
        enabled = rt.flags.is_enabled(key)
    format_response({"key": key, "status": flag.status.value, "enabled": enabled})
    if not enabled:
        raise typer.Exit(code=1)
