"""Init command -- create a profile for a CRM deployment.

Implements ``vopex init``: validates the API root, writes a
:class:`~vopex.models.Profile` to the profiles directory, and writes a
project-local ``vopex.json`` that makes it the default.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import typer

from vopex.output import error, info, success, suggest


def init_command(
    base_url: str = typer.Option(
        ..., "--base-url", "-u", help="API root, e.g. https://crm.example.com/api."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Profile name (derived from the host if omitted)."
    ),
    login_route: str = typer.Option(
        "/login", "--login-route", help="Where users sign in when their session expires."
    ),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout in seconds."),
    no_verify_ssl: bool = typer.Option(
        False, "--no-verify-ssl", help="Skip TLS certificate verification."
    ),
) -> None:
    """Create a profile and make it the project default.

    Example::

        vopex init --base-url https://crm.example.com/api
        vopex init -u http://localhost:8000/api --name local
    """
    from vopex.config import profile_exists, save_profile
    from vopex.models import Profile, RequestConfig

    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        error(f"Base URL must be an absolute http(s) URL, got: {base_url}")
        raise typer.Exit(code=2)

    profile_name = name or _slugify(parsed.netloc)
    if profile_exists(profile_name):
        info(f'Profile "{profile_name}" already exists and will be overwritten.')

    profile = Profile(
        name=profile_name,
        base_url=base_url.rstrip("/"),
        login_route=login_route,
        request=RequestConfig(timeout=timeout, verify_ssl=not no_verify_ssl),
    )
    save_profile(profile)

    Path("vopex.json").write_text(json.dumps({"default_profile": profile_name}, indent=2) + "\n")

    success(f'Profile "{profile_name}" created.')
    suggest("Sign in: vopex auth login --email you@example.com")


def _slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower().strip()).strip("-")
    return slug or "default"
