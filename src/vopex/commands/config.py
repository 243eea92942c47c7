"""Config commands -- read and change ``config.json``.

Keys use dot notation over :class:`~vopex.models.GlobalConfig`::

    vopex config get cache.default_ttl
    vopex config set cache.responses true
    vopex config set interceptors.disabled timing,request-id
"""

from __future__ import annotations

from typing import Any

import typer

from vopex.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


@config_app.command("show")
def config_show() -> None:
    """Print the whole configuration."""
    from vopex.config import get_config_dir, load_global_config

    info(f"Config directory: {get_config_dir()}")
    format_response(load_global_config().model_dump(mode="json"))


@config_app.command("get")
def config_get(key: str = typer.Argument(help="Dotted key, e.g. 'cache.default_ttl'.")) -> None:
    """Print one setting."""
    from vopex.config import load_global_config

    data = load_global_config().model_dump(mode="json")
    section, name = _locate(data, key)
    format_response(section[name])


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'cache.default_ttl'."),
    value: str = typer.Argument(help="New value; lists are comma-separated."),
) -> None:
    """Change one setting, converting *value* to the setting's type."""
    from vopex.config import load_global_config, save_global_config
    from vopex.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    section, name = _locate(data, key)
    section[name] = _coerce(key, section[name], value)

    try:
        updated = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Rejected {key}={value}: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(updated)
    success(f"{key} = {section[name]}")


def _locate(data: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Return the dict holding *key*'s last segment, exiting 2 on a bad key."""
    *parents, name = key.split(".")
    section: Any = data
    for part in parents:
        section = section.get(part) if isinstance(section, dict) else None
    if not isinstance(section, dict) or name not in section or isinstance(section[name], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)
    return section, name


def _coerce(key: str, current: Any, raw: str) -> Any:
    if isinstance(current, bool):
        lowered = raw.lower()
        if lowered not in _TRUE + _FALSE:
            error(f"{key} takes true or false, got: {raw}")
            raise typer.Exit(code=2)
        return lowered in _TRUE
    if isinstance(current, (int, float)):
        for convert in (int, float):
            try:
                return convert(raw)
            except ValueError:
                continue
        error(f"{key} takes a number, got: {raw}")
        raise typer.Exit(code=2)
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw
