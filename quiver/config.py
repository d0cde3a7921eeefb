#!/usr/bin/env python3
# quiver/config.py
from __future__ import annotations

"""
Configuration loader (stdlib-only).

Precedence (low → high):
  1) Built-in defaults
  2) Files in CWD: .env, config.ini, config.json, config.toml
  3) Environment variables

Validation:
  - WORKSPACE_PATH: normalized path (no creation here)
  - LIBRARY_PATH: local library root, resolved inside the workspace
  - LOG_FILE_PATH: None or path resolved inside the workspace
  - ENABLE_COMPLETION / OBJECT_METHODS: bool
  - PROMPT: None or str
  - LOG_LEVEL: one of {'DEBUG','INFO','WARNING','ERROR','CRITICAL'}
  - PIPE_DELIMITER: a single non-blank token
  - LIBRARIES: comma separated library names

Library descriptors live in a nested 'libraries' table of config.json or
config.toml and are passed through unflattened:

    [libraries.text]
    kind = "local_file"
    aliases = { up = "upper" }
"""

import configparser
import json
import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from quiver.ui import colorize, print_line

logger = logging.getLogger(__name__)

# ---------- defaults ----------


def _default_workspace_path() -> str:
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or str(
            Path.home() / "AppData" / "Local")
        return str(Path(base) / "Quiver")
    return str(Path.home() / ".local" / "share" / "quiver")


DEFAULTS: dict[str, Any] = {
    "WORKSPACE_PATH": _default_workspace_path(),
    "LIBRARY_PATH": "plugins",
    "LOG_FILE_PATH": None,
    "LOG_LEVEL": "WARNING",
    "PROMPT": None,
    "ENABLE_COMPLETION": True,
    "PIPE_DELIMITER": "+",
    "OBJECT_METHODS": True,
    "LIBRARIES": "",
}

# Nested tables that are kept as-is instead of being flattened.
_NESTED_KEYS = {"libraries"}


def _resolve_under(base: Path, value: str | None, *, default_rel: str | None = None) -> Path | None:
    """Resolve a config path relative to `base` (workspace) when not absolute."""
    if value is None or str(value).strip() == "":
        if default_rel is None:
            return None
        return (base / default_rel).resolve()
    p = Path(os.path.expandvars(os.path.expanduser(str(value))))
    return p if p.is_absolute() else (base / p).resolve()


# ---------- data model ----------

@dataclass(frozen=True)
class AppConfig:
    workspace_path: Path
    library_path: Path
    log_file_path: Path | None

    log_level: str
    prompt: str | None
    enable_completion: bool
    pipe_delimiter: str
    object_methods: bool

    library_names: tuple[str, ...] = ()
    library_descriptors: tuple[dict[str, Any], ...] = ()

    # Unrecognized keys preserved for debugging/forward-compat
    extra: dict[str, Any] = field(default_factory=dict)

    def libraries(self) -> list[Any]:
        """Library references to load at boot: descriptors first, then bare names."""
        described = {d["name"] for d in self.library_descriptors}
        refs: list[Any] = []
        for descriptor in self.library_descriptors:
            merged = dict(descriptor)
            merged.setdefault("object_methods", self.object_methods)
            refs.append(merged)
        refs.extend(name for name in self.library_names if name not in described)
        return refs


# ---------- file loaders (stdlib) ----------

def _load_env_file(path: Path) -> dict[str, str]:
    """Very small .env parser: KEY=VALUE, supports quotes; ignores comments/blank lines."""
    out: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return out

    line_re = re.compile(r"""^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$""")
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = line_re.match(line)
        if not m:
            continue
        k, v = m.group(1), m.group(2)
        if (v.startswith("'") and v.endswith("'")) or (v.startswith('"') and v.endswith('"')):
            v = v[1:-1]
        out[k] = v
    return out


def _load_ini_file(path: Path) -> dict[str, str]:
    cfg = configparser.ConfigParser()
    try:
        cfg.read(path, encoding="utf-8")
    except configparser.Error as exc:
        logger.warning("Ignoring unreadable %s: %s", path.name, exc)
        return {}
    flat: dict[str, str] = {}
    for sec in cfg.sections():
        for k, v in cfg.items(sec):
            flat[k.upper()] = v
    return flat


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed %s: %s", path.name, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _load_toml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Ignoring malformed %s: %s", path.name, exc)
        return {}


def _flatten_mapping(obj: Any, prefix: str = "") -> dict[str, Any]:
    """
    Flatten nested dicts to UPPER_SNAKE keys.
    Example: {'log': {'level': 'debug'}} -> {'LOG_LEVEL': 'debug'}
    Top-level tables named in _NESTED_KEYS are kept whole under their upper-cased name.
    """
    flat: dict[str, Any] = {}
    if isinstance(obj, Mapping):
        for k, v in obj.items():
            key = f"{prefix}_{k}" if prefix else str(k)
            if not prefix and str(k).lower() in _NESTED_KEYS and not isinstance(v, str):
                flat[str(k).upper() + "_TABLE"] = v
            elif isinstance(v, Mapping):
                flat.update(_flatten_mapping(v, key))
            else:
                flat[str(key).upper()] = v
    return flat


def _find_config_files() -> list[Path]:
    cwd = Path.cwd()
    return [
        cwd / ".env",
        cwd / "config.ini",
        cwd / "config.json",
        cwd / "config.toml",
    ]


# ---------- normalization & coercion ----------

_BOOL_TRUE = {"1", "true", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "no", "n", "off"}


def _as_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _BOOL_TRUE:
        return True
    if s in _BOOL_FALSE:
        return False
    raise ValueError(f"Expected boolean, got: {val!r}")


def _as_opt_str(val: Any) -> str | None:
    return None if val is None or str(val).strip().lower() in {"", "none"} else str(val)


def _as_log_level(val: Any) -> str:
    lv = _as_opt_str(val) or DEFAULTS["LOG_LEVEL"]
    up = lv.upper()
    allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if up not in allowed:
        raise ValueError(
            f"LOG_LEVEL must be one of {sorted(allowed)}, got {lv!r}")
    return up


def _as_delimiter(val: Any) -> str:
    s = str(val).strip()
    if not s or any(ch.isspace() for ch in s):
        raise ValueError(f"PIPE_DELIMITER must be a single non-blank token, got {val!r}")
    return s


def _as_name_list(val: Any) -> tuple[str, ...]:
    if isinstance(val, (list, tuple)):
        items = [str(v) for v in val]
    else:
        items = str(val or "").split(",")
    return tuple(name.strip() for name in items if name.strip())


def _as_descriptors(table: Any) -> tuple[dict[str, Any], ...]:
    """
    Accept either {'name': {...}} or [{'name': ..., ...}] and return descriptor dicts.
    """
    if table is None:
        return ()
    if isinstance(table, Mapping):
        entries = []
        for name, body in table.items():
            if not isinstance(body, Mapping):
                raise ValueError(f"Library entry {name!r} must be a table")
            entries.append({"name": str(name), **body})
    elif isinstance(table, list):
        entries = [dict(entry) for entry in table if isinstance(entry, Mapping)]
        if len(entries) != len(table):
            raise ValueError("Every 'libraries' entry must be a table")
    else:
        raise ValueError(f"'libraries' must be a table or a list of tables, got {type(table).__name__}")
    for entry in entries:
        if not entry.get("name"):
            raise ValueError("Library entries require a 'name'")
    return tuple(entries)


# ---------- merge & load ----------

def _normalize_keys(d: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).upper(): v for k, v in d.items()}


def _merge_sources() -> dict[str, Any]:
    merged: dict[str, Any] = dict(DEFAULTS)

    for file in _find_config_files():
        if file.suffix == ".env" or file.name == ".env":
            merged.update(_normalize_keys(_load_env_file(file)))
        elif file.suffix == ".ini":
            merged.update(_normalize_keys(_load_ini_file(file)))
        elif file.suffix == ".json":
            merged.update(_flatten_mapping(_load_json_file(file)))
        elif file.suffix == ".toml":
            merged.update(_flatten_mapping(_load_toml_file(file)))

    # Environment variables override all; only take recognized keys
    env_overrides = {k: v for k, v in os.environ.items()
                     if k.startswith("QUIVER_") and k[len("QUIVER_"):] in DEFAULTS}
    merged.update({k[len("QUIVER_"):]: v for k, v in env_overrides.items()})
    return merged


# ---------- validation ----------

def _validate_and_build(config: dict[str, Any]) -> AppConfig:
    workspace_raw = config.get("WORKSPACE_PATH", DEFAULTS["WORKSPACE_PATH"])
    library_raw = config.get("LIBRARY_PATH", DEFAULTS["LIBRARY_PATH"])
    log_raw = config.get("LOG_FILE_PATH", DEFAULTS["LOG_FILE_PATH"])

    # workspace base: if relative, it's relative to CWD; then used as base
    ws_base = Path(os.path.expandvars(os.path.expanduser(str(workspace_raw))))
    if not ws_base.is_absolute():
        ws_base = (Path.cwd() / ws_base).resolve()
    workspace_path = ws_base.resolve()

    library_path = _resolve_under(workspace_path, library_raw, default_rel="plugins")
    log_file_path = _resolve_under(workspace_path, log_raw)

    recognized = set(DEFAULTS) | {"LIBRARIES_TABLE"}
    extra = {k: v for k, v in config.items() if k not in recognized}

    return AppConfig(
        workspace_path=workspace_path,
        library_path=library_path,  # type: ignore[arg-type]
        log_file_path=log_file_path,
        log_level=_as_log_level(config.get("LOG_LEVEL", DEFAULTS["LOG_LEVEL"])),
        prompt=_as_opt_str(config.get("PROMPT", DEFAULTS["PROMPT"])),
        enable_completion=_as_bool(config.get("ENABLE_COMPLETION", DEFAULTS["ENABLE_COMPLETION"])),
        pipe_delimiter=_as_delimiter(config.get("PIPE_DELIMITER", DEFAULTS["PIPE_DELIMITER"])),
        object_methods=_as_bool(config.get("OBJECT_METHODS", DEFAULTS["OBJECT_METHODS"])),
        library_names=_as_name_list(config.get("LIBRARIES", DEFAULTS["LIBRARIES"])),
        library_descriptors=_as_descriptors(config.get("LIBRARIES_TABLE")),
        extra=extra,
    )


# ---------- public API ----------

def load_config() -> AppConfig:
    """
    Load, merge, normalize, and validate configuration.
    No filesystem side-effects (no directory creation).
    """
    return _validate_and_build(_merge_sources())


def validate_or_default() -> AppConfig:
    """load_config(), falling back to the built-in defaults on invalid settings."""
    try:
        return load_config()
    except ValueError as exc:
        print_line(colorize(f"[ WARN ] Invalid configuration: {exc}", "yellow"))
        logger.warning("Invalid configuration, using defaults: %s", exc)
        return _validate_and_build(dict(DEFAULTS))
