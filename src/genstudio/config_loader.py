# src/genstudio/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml


class ConfigError(ValueError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    _check_type(dotted, cur, typ)
    return cur


def _check_type(dotted: str, val: Any, typ: type) -> None:
    if typ is bool and not isinstance(val, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(val, str):
        raise ConfigError(f"'{dotted}' must be a string")
    if typ is float and (isinstance(val, bool) or not isinstance(val, (int, float))):
        raise ConfigError(f"'{dotted}' must be a number")
    if typ is int and (isinstance(val, bool) or not isinstance(val, int)):
        raise ConfigError(f"'{dotted}' must be an integer")


def _optional(raw: Dict[str, Any], section: str, key: str, typ: type, *, nullable: bool = False) -> None:
    sec = raw.get(section)
    if sec is None:
        return
    if not isinstance(sec, dict):
        raise ConfigError(f"'{section}' must be a mapping")
    if key not in sec or (nullable and sec[key] is None):
        return
    _check_type(f"{section}.{key}", sec[key], typ)


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Required keys (no defaults here)
    _require(raw, "model.provider", str)
    _require(raw, "model.image", str)
    _require(raw, "model.text", str)

    # Optional sections are type-checked when present; bootstrap fills defaults
    _optional(raw, "retry", "max_retries", int)
    _optional(raw, "retry", "base_delay", float)
    _optional(raw, "retry", "request_timeout", float, nullable=True)
    _optional(raw, "batch", "pacing", float)
    _optional(raw, "logging", "level", str)

    if raw.get("retry", {}) and raw["retry"].get("max_retries", 0) < 0:
        raise ConfigError("'retry.max_retries' must be >= 0")

    raw["model"]["provider"] = str(raw["model"]["provider"]).lower()
    return raw
