"""Auth commands -- sign in and manage the stored session.

Typical workflow::

    vopex auth login --email ada@example.com   # prompts for the password
    vopex auth status
    vopex auth refresh
    vopex auth logout
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from vopex.commands._common import open_runtime
from vopex.output import format_response, info, success, warning


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", help="Account email."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        "-s",
        help="Where to read the password: env:VAR, file:/path, or prompt.",
    ),
) -> None:
    """Sign in and store the session for the active profile."""
    from vopex.config import resolve_credential

    with open_runtime(ctx) as rt:
        password = resolve_credential(password_source)
        response = rt.auth.login(email, password)
        user = response.get("user") or {}
        success(f"Signed in as {user.get('email', email)}.")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Forget the stored session."""
    with open_runtime(ctx) as rt:
        rt.auth.logout()
        success("Signed out.")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show whether the stored session is still valid."""
    from vopex.auth import decode_token_expiry

    with open_runtime(ctx) as rt:
        token = rt.auth.get_token()
        if token is None:
            info("Not signed in.")
            raise typer.Exit(code=3)

        status: dict[str, object] = {
            "profile": rt.profile.name,
            "authenticated": rt.auth.is_authenticated(),
            "user": rt.auth.get_current_user(),
        }
        try:
            expiry = decode_token_expiry(token)
            status["expires_at"] = datetime.fromtimestamp(expiry, tz=timezone.utc).isoformat()
        except ValueError:
            status["expires_at"] = None
        format_response(status)
        if not status["authenticated"]:
            warning("Session has expired. Run: vopex auth login")


@auth_app.command("refresh")
def auth_refresh(ctx: typer.Context) -> None:
    """Exchange the current token for a fresh one."""
    with open_runtime(ctx) as rt:
        if rt.auth.refresh_token() is None:
            warning("Token refresh failed.")
            raise typer.Exit(code=3)
        success("Token refreshed.")
