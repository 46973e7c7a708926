from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import yaml

from .errors import ConfigError, WorkspaceError
from .utils import parse_int

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

DEFAULT_PORT = 8000
DEFAULT_HIGHLIGHT_STYLE = "friendly"
CONFIG_ENV = "QUIVER_CONFIG"


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA") or str(Path.home())
        return Path(appdata) / "quiver" / "quiver.conf"
    return Path.home() / ".config" / "quiver" / "quiver.conf"


def load_config(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return data


def workspace_paths(config: dict) -> dict[str, Path]:
    workspaces = config.get("workspaces") or {}
    if not isinstance(workspaces, dict):
        raise ConfigError("'workspaces' must be a mapping of keys to {path: ...}")
    paths = {}
    for key, value in workspaces.items():
        raw = value.get("path") if isinstance(value, dict) else value
        if not raw:
            raise ConfigError(f"workspace '{key}' has no path")
        paths[str(key)] = Path(str(raw)).expanduser()
    return paths


def resolve_workspace(config: dict, key: str = "") -> Path:
    """Return the root directory of the workspace named ``key``.

    An empty key selects the first workspace listed in the config file. With
    more than one workspace configured that choice is arbitrary, so callers
    that care should always pass an explicit key.
    """
    paths = workspace_paths(config)
    if not key:
        if not paths:
            raise WorkspaceError("no workspaces defined in config")
        key = next(iter(paths))
    if key not in paths:
        raise WorkspaceError(f"workspace '{key}' not found in config")
    path = paths[key]
    if not path.exists():
        raise WorkspaceError(f"workspace '{key}' does not exist: {path}")
    return path


def resolve_entry(entry: str, config_path: Path | None = None) -> tuple[Path, dict]:
    """Resolve ``entry`` to a workspace root.

    A directory path is accepted as-is and needs no config file; anything else
    is treated as a workspace key.
    """
    entry = (entry or "").strip()
    if entry:
        candidate = Path(entry).expanduser()
        if candidate.is_dir():
            config = {}
            path = config_path or default_config_path()
            if path.exists():
                config = load_config(path)
            return candidate, config
    config = load_config(config_path or default_config_path())
    return resolve_workspace(config, entry), config


def server_port(config: dict) -> int:
    server = config.get("server") or {}
    port = parse_int(server.get("port") if isinstance(server, dict) else None, DEFAULT_PORT)
    return port if port > 0 else DEFAULT_PORT


def build_settings(config: dict) -> dict:
    build = config.get("build") or {}
    if not isinstance(build, dict):
        build = {}
    style = str(build.get("highlight_style") or DEFAULT_HIGHLIGHT_STYLE).strip()
    return {
        "highlight_style": style or DEFAULT_HIGHLIGHT_STYLE,
        "workers": parse_int(build.get("workers"), 0),
    }
