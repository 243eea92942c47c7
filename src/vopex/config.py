"""Configuration management with XDG paths, atomic writes, and precedence resolution.

Everything vopex keeps on disk lives in two places:

* the **config directory**, holding ``config.json`` (a
  :class:`~vopex.models.GlobalConfig`) and ``profiles/<name>.json`` (one
  :class:`~vopex.models.Profile` per CRM deployment);
* the **data directory**, holding the per-profile key/value stores, the
  encryption key, and crash logs.

On Linux and the BSDs these follow the XDG Base Directory layout
(``$XDG_CONFIG_HOME/vopex``, ``$XDG_DATA_HOME/vopex``). Elsewhere both sit
under ``~/.vopex``.

:func:`resolve_config` picks the active profile from CLI flags, environment
variables, ``./vopex.json`` and the global config, in that order.
:func:`resolve_credential` reads a password from ``env:``, ``file:`` or an
interactive prompt.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from vopex.exceptions import ConfigError
from vopex.models import GlobalConfig, Profile

_APP_NAME = "vopex"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "vopex.json"

ENV_PROFILE = "VOPEX_PROFILE"
ENV_BASE_URL = "VOPEX_BASE_URL"

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.vopex)
_DIRS: dict[str, tuple[str, tuple[str, ...], str]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ""),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback = _DIRS[kind]
    if _is_xdg_platform():
        base = Path(os.environ.get(env_var) or Path.home().joinpath(*home_segments))
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Return the data directory (stores, encryption key, crash logs)."""
    return _app_dir("data")


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(exist_ok=True)
    return path


def get_store_dir(profile_name: str) -> Path:
    """Return the key/value store directory for *profile_name*.

    Each profile gets its own store so sessions never leak between
    deployments.
    """
    path = get_data_dir() / "store" / profile_name
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- File I/O ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* through a temp file in the same directory.

    ``os.replace`` makes the final rename atomic on POSIX, so readers see
    either the old file or the new one. When *mode* is given it is applied
    before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.chmod(tmp_name, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def _write_json(path: Path, data: Any) -> None:
    atomic_write(path, json.dumps(data, indent=2) + "\n")


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load ``config.json``, or return defaults when it does not exist.

    Raises:
        ConfigError: If the file exists but is not a valid config.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_json(_global_config_path(), config.model_dump(mode="json"))


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load and validate the profile called *name*.

    Raises:
        ConfigError: If the profile does not exist or is invalid.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    _write_json(_profile_path(profile.name), profile.model_dump(mode="json"))


def delete_profile(name: str) -> None:
    """Remove a profile. Its key/value store is left in place.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./vopex.json``, or ``None`` when the current directory has none.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def _first(*candidates: Optional[str]) -> Optional[str]:
    return next((c for c in candidates if c), None)


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Work out the global config and the active profile.

    The profile name is the first one set among: *cli_profile*,
    ``$VOPEX_PROFILE``, ``default_profile`` in ``./vopex.json``, and
    ``default_profile`` in the global config. With none of those set and
    ``auto_select_single_profile`` on, a lone saved profile is used.

    The profile's base URL can be overridden by *cli_base_url* and then by
    ``$VOPEX_BASE_URL``.

    Returns:
        ``(global_config, profile)``; ``profile`` is ``None`` when no
        profile could be chosen.
    """
    global_cfg = load_global_config()
    project = load_project_config() or {}

    name = _first(
        cli_profile,
        os.environ.get(ENV_PROFILE),
        project.get("default_profile"),
        global_cfg.default_profile,
    )
    if name is None and global_cfg.auto_select_single_profile:
        saved = list_profiles()
        if len(saved) == 1:
            name = saved[0]

    if cli_format is not None:
        global_cfg.output.format = cli_format
    if name is None:
        return global_cfg, None

    profile = load_profile(name)
    base_url = _first(cli_base_url, os.environ.get(ENV_BASE_URL))
    if base_url:
        profile.base_url = base_url.rstrip("/")
    return global_cfg, profile


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a secret (usually a password) from its source descriptor.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped) and ``prompt`` asks on the terminal.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    kind, _, target = source.partition(":")

    if kind == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value

    if kind == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for a password: stdin is not a TTY")
        return getpass.getpass("Password: ")

    raise ConfigError(f"Unknown credential source: {source}")
