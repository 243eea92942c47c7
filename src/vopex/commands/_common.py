"""Helpers shared by the command modules."""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from vopex.exceptions import ConfigError, VopexError
from vopex.output import OutputFormat, error, format_response, get_output, print_records, suggest
from vopex.runtime import Runtime


@contextmanager
def open_runtime(ctx: typer.Context) -> Iterator[Runtime]:
    """Build a :class:`Runtime` from the global CLI options.

    :class:`~vopex.exceptions.VopexError` raised inside the block is printed
    and turned into ``typer.Exit`` with the error's exit code.
    """
    obj = ctx.obj or {}
    try:
        runtime = Runtime.from_config(
            profile_name=obj.get("profile"), base_url=obj.get("base_url")
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    with runtime:
        try:
            yield runtime
        except VopexError as exc:
            error(str(exc))
            if runtime.redirect_target is not None:
                suggest("Session expired. Sign in again: vopex auth login")
            raise typer.Exit(code=exc.exit_code) from None


def parse_json_option(value: Optional[str], option: str) -> Any:
    """Parse a ``--data``-style JSON option, exiting with code 2 when invalid."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        error(f"{option} is not valid JSON: {exc}")
        raise typer.Exit(code=2) from None


def parse_filters(pairs: Optional[list[str]]) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a dict."""
    filters: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            error(f"Filters must look like key=value, got: {pair}")
            raise typer.Exit(code=2)
        filters[key] = value
    return filters


def show_listing(payload: Any, columns: list[str], title: str) -> None:
    """Print a list endpoint's response: verbatim in JSON mode, as a table otherwise."""
    from vopex.tasks import records

    if get_output().format == OutputFormat.JSON:
        format_response(payload)
    else:
        print_records(records(payload), columns, title=title)
