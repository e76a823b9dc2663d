"""
Bridge settings: YAML defaults with environment overrides.

The YAML file defaults to src/kobo_bridge/config/bridge.yaml; point
KOBO_BRIDGE_CONFIG at another file to replace it. Individual knobs are then
overridden by KOBO_* / RUNLOG_* variables (a .env file is honoured).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from kobo_bridge.tools.dependents import get_encoding
from kobo_bridge.tools.marshal import SchemaVersion

_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent / "config" / "bridge.yaml"

# setting name -> environment variable
_ENV_OVERRIDES: Dict[str, str] = {
    "schema_version": "KOBO_SCHEMA_VERSION",
    "dependent_encoding": "KOBO_DEPENDENT_ENCODING",
    "outbox_dir": "KOBO_OUTBOX_DIR",
    "cache_dir": "KOBO_CACHE_DIR",
    "runlog_enabled": "KOBO_RUNLOG_ENABLED",
    "runlog_dir": "RUNLOG_DIR",
    "runlog_file": "RUNLOG_FILE",
    "log_level": "KOBO_LOG_LEVEL",
}


@dataclass(frozen=True)
class BridgeSettings:
    schema_version: SchemaVersion
    dependent_encoding: Optional[str]
    outbox_dir: Path
    cache_dir: Path
    runlog_enabled: bool
    runlog_dir: Path
    runlog_file: str
    log_level: str


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Bridge config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Bridge config must be a mapping: {path}")
    return data


@lru_cache(maxsize=1)
def load_settings() -> BridgeSettings:
    """Merged settings (cached; call reload_settings() after changing the env)."""
    load_dotenv()
    path = Path(os.getenv("KOBO_BRIDGE_CONFIG") or _DEFAULT_CONFIG_PATH)
    raw = _load_yaml(path)

    for name, env_var in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None and value != "":
            raw[name] = value

    encoding = (raw.get("dependent_encoding") or "").strip() or None
    if encoding is not None:
        encoding = get_encoding(encoding).name

    return BridgeSettings(
        schema_version=SchemaVersion.parse(raw.get("schema_version", SchemaVersion.V2.value)),
        dependent_encoding=encoding,
        outbox_dir=Path(raw.get("outbox_dir", "outbox")),
        cache_dir=Path(raw.get("cache_dir", "cache")),
        runlog_enabled=_as_bool(raw.get("runlog_enabled", True)),
        runlog_dir=Path(raw.get("runlog_dir", "runlogs")),
        runlog_file=str(raw.get("runlog_file", "runlog.json")),
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )


def reload_settings() -> BridgeSettings:
    load_settings.cache_clear()
    return load_settings()


__all__ = ["BridgeSettings", "load_settings", "reload_settings"]
