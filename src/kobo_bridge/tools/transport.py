# src/kobo_bridge/tools/transport.py
from __future__ import annotations

import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from kobo_bridge.errors import TransportError
from kobo_bridge.models import ResultMessage

logger = logging.getLogger("kobo_bridge.transport")

RESULT_OK = -1


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_result(
    extras: Dict[str, Union[str, int]],
    clip_uris: Sequence[Optional[str]] = (),
    result_code: int = RESULT_OK,
) -> ResultMessage:
    """Result message carrying ``extras``; null image URIs are skipped."""
    return ResultMessage(
        result_code=result_code,
        extras=dict(extras),
        clip_uris=[uri for uri in clip_uris if uri],
    )


class Transport(Protocol):
    def deliver(self, message: ResultMessage) -> str:
        """Hand one result message over; return where it went."""
        ...


class OutboxTransport:
    """
    Writes each result message as one JSON file in ``outbox_dir``.

    Files are written to a temp name and renamed into place, so a reader
    never sees a half-written message.
    """

    prefix = "result"

    def __init__(self, outbox_dir: Union[str, os.PathLike[str]]):
        self.outbox_dir = Path(outbox_dir)

    def deliver(self, message: ResultMessage) -> str:
        dest = self.outbox_dir / f"{self.prefix}_{_utc_stamp()}_{uuid.uuid4().hex[:8]}.json"
        text = message.model_dump_json()
        try:
            self.outbox_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.outbox_dir, prefix=".tmp_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, dest)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise TransportError(f"Could not deliver result message: {exc}") from exc

        logger.info(
            "Delivered result %s with %d extras, %d granted URIs",
            dest.name,
            len(message.extras),
            len(message.clip_uris),
        )
        return str(dest)

    def receive(self, path: Union[str, os.PathLike[str]]) -> ResultMessage:
        try:
            text = Path(path).read_text(encoding="utf-8")
            return ResultMessage.model_validate_json(text)
        except OSError as exc:
            raise TransportError(f"Could not read result message: {exc}") from exc
        except ValidationError as exc:
            raise TransportError(f"Malformed result message {Path(path).name}") from exc

    def pending(self) -> list[Path]:
        """Delivered messages, oldest first."""
        if not self.outbox_dir.exists():
            return []
        return sorted(self.outbox_dir.glob(f"{self.prefix}_*.json"))


__all__ = ["RESULT_OK", "build_result", "Transport", "OutboxTransport"]
