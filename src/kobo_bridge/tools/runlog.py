from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger("kobo_bridge.runlog")

DEFAULT_RUNLOG_DIR = "runlogs"
DEFAULT_RUNLOG_FILE = "runlog.json"


def _iso_utc_seconds() -> str:
    """UTC ISO8601 to seconds with 'Z' suffix (no microseconds)."""
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def redact_bundle(bundle: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Structural view of a bundle: value type and length per key, never the value.

    Scanned bundles hold personal data, so this is the only form that may be
    logged or written to disk.
    """
    summary: Dict[str, Dict[str, Any]] = {}
    for key, value in bundle.items():
        entry: Dict[str, Any] = {"type": type(value).__name__}
        if isinstance(value, str):
            entry["length"] = len(value)
        summary[key] = entry
    return summary


@dataclass
class _ResolvedPaths:
    out_dir_path: Path
    filename: str

    @property
    def dest(self) -> Path:
        return self.out_dir_path / self.filename


def _resolve_paths(out_dir: Optional[str | os.PathLike[str]], filename: Optional[str]) -> _ResolvedPaths:
    """RUNLOG_DIR / RUNLOG_FILE win over arguments, arguments over defaults."""
    out_dir_path = Path(os.getenv("RUNLOG_DIR") or out_dir or DEFAULT_RUNLOG_DIR)
    name = os.getenv("RUNLOG_FILE") or filename or DEFAULT_RUNLOG_FILE
    return _ResolvedPaths(out_dir_path=out_dir_path, filename=name)


def persist_runlog(
    bundle: Mapping[str, Any],
    *,
    event: str = "send",
    location: Optional[str] = None,
    out_dir: Optional[str | os.PathLike[str]] = None,
    filename: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Append one redacted entry to the JSON-lines run log and return it.
    """
    resolved = _resolve_paths(out_dir=out_dir, filename=filename)
    resolved.out_dir_path.mkdir(parents=True, exist_ok=True)

    entry = {
        "event": event,
        "logged_at": _iso_utc_seconds(),
        "key_count": len(bundle),
        "keys": redact_bundle(bundle),
        "location": Path(location).name if location else None,
    }
    with resolved.dest.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    logger.info("Run log entry (%s, %d keys) appended to %s", event, len(bundle), resolved.dest)
    return entry


__all__ = ["redact_bundle", "persist_runlog"]
