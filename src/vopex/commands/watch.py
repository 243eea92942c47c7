"""Watch command -- run the background jobs in the foreground.

``vopex watch`` keeps predictions, heartbeat, user data and feature flags
fresh until interrupted. ``--once`` runs every job a single time and exits
non-zero if any of them failed, which suits cron.
"""

from __future__ import annotations

import typer

from vopex.commands._common import open_runtime
from vopex.output import info, success, warning


def watch_command(
    ctx: typer.Context,
    once: bool = typer.Option(False, "--once", help="Run every job once and exit."),
) -> None:
    """Run the periodic jobs until Ctrl-C."""
    from vopex.tasks import TaskRunner, default_tasks

    with open_runtime(ctx) as rt:
        tasks = default_tasks(rt)
        if once:
            failed = [task.name for task in tasks if not task.run_once()]
            if failed:
                warning(f"Failed: {', '.join(failed)}")
                raise typer.Exit(code=1)
            success(f"Ran {len(tasks)} job(s).")
            return

        # Ctrl-C exits through SystemExit; both context managers still close.
        info(f"Running {len(tasks)} job(s). Press Ctrl-C to stop.")
        with TaskRunner(tasks) as runner:
            runner.wait()
