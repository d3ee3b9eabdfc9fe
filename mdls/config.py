"""
Preview configuration.

Values are layered, lowest precedence first:
defaults -> TOML file -> MDLS_* environment -> CLI options -> client
initializationOptions.
"""

from __future__ import annotations

import os
import shlex
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

CONFIG_FILE_NAME = ".mdls.toml"
DEFAULT_THEME = "github"

ENV_THEME = "MDLS_PREVIEW_THEME"
ENV_RENDERER = "MDLS_PREVIEW_RENDERER"
ENV_OPEN_BROWSER = "MDLS_PREVIEW_OPEN_BROWSER"
ENV_PORT = "MDLS_PREVIEW_PORT"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class PreviewConfig:
    """How the live preview is served and rendered."""

    theme: str = DEFAULT_THEME
    renderer: tuple[str, ...] | None = None  # external command + fixed arguments
    open_browser: bool = True
    host: str = "127.0.0.1"
    port: int = 0  # 0 = ephemeral

    def merged(self, overrides: Mapping[str, Any]) -> "PreviewConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "renderer" in changes:
            changes["renderer"] = parse_renderer(changes["renderer"])
        return replace(self, **changes)


def parse_renderer(value: Any) -> tuple[str, ...] | None:
    """Accept a renderer as a shell string or a list of arguments."""
    if value is None:
        return None
    if isinstance(value, str):
        parts = shlex.split(value)
    elif isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        raise ValueError(f"renderer must be a string or a list, got {type(value).__name__}")
    return tuple(parts) or None


def parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def find_config_file(start: Path) -> Path | None:
    """Find a .mdls.toml by walking up from `start`, then the user config dir."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    candidate = base / "mdls" / "config.toml"
    if candidate.is_file():
        return candidate
    return None


def _from_table(table: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if "theme" in table:
        values["theme"] = str(table["theme"])
    if "renderer" in table:
        values["renderer"] = parse_renderer(table["renderer"])
    if "open_browser" in table:
        values["open_browser"] = parse_bool(table["open_browser"], "preview.open_browser")
    if "host" in table:
        values["host"] = str(table["host"])
    if "port" in table:
        values["port"] = int(table["port"])
    return values


def load_file_config(path: Path) -> dict[str, Any]:
    """
    Read the [preview] table of a TOML config file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the TOML is malformed or a value has the wrong type
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Failed to parse config TOML {path}: {e}") from e

    table = data.get("preview", {})
    if not isinstance(table, dict):
        raise ValueError(f"[preview] in {path} must be a table")
    return _from_table(table)


def load_env_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    if env.get(ENV_THEME):
        values["theme"] = env[ENV_THEME]
    if env.get(ENV_RENDERER):
        values["renderer"] = parse_renderer(env[ENV_RENDERER])
    if env.get(ENV_OPEN_BROWSER):
        values["open_browser"] = parse_bool(env[ENV_OPEN_BROWSER], ENV_OPEN_BROWSER)
    if env.get(ENV_PORT):
        try:
            values["port"] = int(env[ENV_PORT])
        except ValueError as e:
            raise ValueError(f"{ENV_PORT} must be an integer, got {env[ENV_PORT]!r}") from e
    return values


def load_config(
    config_path: Path | None = None,
    *,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PreviewConfig:
    """Resolve the preview configuration from every layer."""
    config = PreviewConfig()

    path = config_path or find_config_file(cwd or Path.cwd())
    if path is not None:
        config = config.merged(load_file_config(path))

    config = config.merged(load_env_config(environ))
    if overrides:
        config = config.merged(overrides)
    return config


def client_overrides(initialization_options: Any) -> dict[str, Any]:
    """Extract preview settings from LSP initializationOptions.

    Expected shape: {"preview": {"theme": ..., "renderer": ..., "openBrowser": ...}}
    Anything else is ignored.
    """
    if not isinstance(initialization_options, dict):
        return {}
    preview = initialization_options.get("preview")
    if not isinstance(preview, dict):
        return {}

    values: dict[str, Any] = {}
    if isinstance(preview.get("theme"), str):
        values["theme"] = preview["theme"]
    if "renderer" in preview:
        values["renderer"] = parse_renderer(preview["renderer"])
    if "openBrowser" in preview:
        values["open_browser"] = parse_bool(preview["openBrowser"], "preview.openBrowser")
    return values
