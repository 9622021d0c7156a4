"""Configuration for medialib.

Settings resolve with the precedence CLI > environment > config file > default.
- Environment variables are the dotted key upper-cased with a ``MEDIALIB_``
  prefix: ``scan.include_hidden`` -> ``MEDIALIB_SCAN_INCLUDE_HIDDEN``.
- The config file is ``$XDG_CONFIG_HOME/medialib/config.toml`` (default
  ``~/.config/medialib/config.toml``), read with tomli and written with tomli-w.
"""

import contextlib
import os
from pathlib import Path
from typing import Any, Optional, TypeVar, cast

import tomli
import tomli_w
from pydantic import BaseModel, Field

_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
CONFIG_DIR = _xdg_config_home / "medialib"
CONFIG_FILE = CONFIG_DIR / "config.toml"
ENV_PREFIX = "MEDIALIB_"

T = TypeVar("T")

_TRUTHY = {"1", "true", "yes", "on"}


def _read_config_file() -> dict[str, Any]:
    """Read the TOML config file if it exists, returning a (nested) dict."""
    if not CONFIG_FILE.exists():
        return {}
    with CONFIG_FILE.open("rb") as f:
        return tomli.load(f)


def _lookup_nested(data: dict[str, Any], dotted_key: str) -> Any | None:
    """Retrieve ``data["a"]["b"]`` for ``"a.b"``, or None if any level is missing."""
    current: Any = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def env_var_name(dotted_key: str) -> str:
    """Convert a dotted key to its environment variable name."""
    return ENV_PREFIX + dotted_key.replace(".", "_").upper()


def _coerce(raw: Any, default: T) -> T:
    """Coerce *raw* to the type of *default*, returning *default* on failure."""
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return cast(T, raw)
        if isinstance(raw, str):
            return cast(T, raw.strip().lower() in _TRUTHY)
        return default
    if isinstance(default, int):
        if isinstance(raw, int) and not isinstance(raw, bool):
            return cast(T, raw)
        with contextlib.suppress(TypeError, ValueError):
            return cast(T, int(raw))
        return default
    if isinstance(default, float):
        with contextlib.suppress(TypeError, ValueError):
            return cast(T, float(raw))
        return default
    if isinstance(default, Path):
        return cast(T, Path(str(raw)).expanduser())
    return cast(T, raw)


def resolve_setting(
    key: str,
    *,
    default: T,
    cli_value: T | None = None,
) -> T:
    """Resolve a configuration *key* using precedence CLI > env > config > default.

    Args:
        key: Dotted key path, e.g. ``"scan.include_hidden"``.
        default: Value to fall back to; also decides the coercion type.
        cli_value: Value passed from a CLI option (``None`` when not provided).

    Returns:
        The resolved value.
    """
    if cli_value is not None:
        return cli_value

    env_var = env_var_name(key)
    if env_var in os.environ:
        return _coerce(os.environ[env_var], default)

    file_val = _lookup_nested(_read_config_file(), key)
    if file_val is not None:
        return _coerce(file_val, default)

    return default


def set_setting(key: str, value: Any) -> None:
    """Persist a dotted *key* to the config file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    data = _read_config_file()
    *parents, leaf = key.split(".")
    node = data
    for part in parents:
        node = node.setdefault(part, {})
    node[leaf] = str(value) if isinstance(value, Path) else value
    with CONFIG_FILE.open("wb") as f:
        tomli_w.dump(data, f)


def default_db_path() -> Path:
    return Path.home() / ".medialib" / "index.db"


class LibrarySettings(BaseModel):
    """Resolved settings used to construct a library from the CLI."""

    db_path: Path = Field(default_factory=default_db_path)
    include_hidden: bool = False
    recursive: bool = True
    event_buffer_size: int = Field(0, ge=0)


def load_settings(
    *,
    db_path: Optional[Path] = None,
    include_hidden: Optional[bool] = None,
    recursive: Optional[bool] = None,
) -> LibrarySettings:
    """Resolve every library setting, letting explicit arguments win."""
    return LibrarySettings(
        db_path=resolve_setting(
            "library.db_path", default=default_db_path(), cli_value=db_path
        ),
        include_hidden=resolve_setting(
            "scan.include_hidden", default=False, cli_value=include_hidden
        ),
        recursive=resolve_setting("scan.recursive", default=True, cli_value=recursive),
        event_buffer_size=resolve_setting("events.buffer_size", default=0),
    )
