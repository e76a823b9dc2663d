"""
Send boundary between the scanner and the KoboCollect host form.

KoboBridge.send() turns validated command input into a DocumentRecord, encodes
it and hands one result message to the transport. Anything that goes wrong after
validation is logged and reported with GENERIC_FAILURE_MESSAGE; it never
propagates to the caller.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from kobo_bridge.errors import MissingRequiredFieldsError
from kobo_bridge.models import DocumentRecord, SendDataInput, SendOutcome
from kobo_bridge.settings import BridgeSettings, load_settings
from kobo_bridge.tools.dependents import dependents_from_info
from kobo_bridge.tools.images import (
    BACK_IMAGE_FILE,
    FACE_IMAGE_FILE,
    FRONT_IMAGE_FILE,
    image_reference,
)
from kobo_bridge.tools.marshal import encode_record
from kobo_bridge.tools.runlog import persist_runlog
from kobo_bridge.tools.transport import OutboxTransport, Transport, build_result

logger = logging.getLogger("kobo_bridge.bridge")

SUCCESS_MESSAGE = "Data has been sent successfully"
GENERIC_FAILURE_MESSAGE = (
    "Failed to send data to KoboCollect. Please try again. "
    "If the issue persists, contact support."
)


def _dependents_text(data: SendDataInput) -> str:
    raw = data.dependents_info
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)


class KoboBridge:
    def __init__(self, settings: Optional[BridgeSettings] = None, transport: Optional[Transport] = None):
        self.settings = settings or load_settings()
        self.transport = transport or OutboxTransport(self.settings.outbox_dir)

    def build_record(self, data: SendDataInput) -> DocumentRecord:
        """Decode the images into the cache and assemble the record."""
        cache_dir = self.settings.cache_dir
        return DocumentRecord(
            date_of_birth=data.date_of_birth,
            coa_address=data.coa_address,
            province=data.province,
            district=data.district,
            village=data.village,
            document_number=data.document_number,
            full_name=data.full_name,
            fathers_name=data.fathers_name,
            age=data.age,
            gender=data.gender,
            front_image_ref=image_reference(data.front_image, FRONT_IMAGE_FILE, cache_dir),
            back_image_ref=image_reference(data.back_image, BACK_IMAGE_FILE, cache_dir),
            face_image_ref=image_reference(data.face_image, FACE_IMAGE_FILE, cache_dir),
            dependents=dependents_from_info(data.dependents_info),
            dependents_info=_dependents_text(data),
            date_of_issue=data.date_of_issue or "",
            document_additional_number=data.document_additional_number or "",
            date_of_expiry=data.date_of_expiry or "",
        )

    def send(self, data: SendDataInput) -> SendOutcome:
        missing = data.missing_required()
        if missing:
            raise MissingRequiredFieldsError(missing)

        try:
            record = self.build_record(data)
            bundle = encode_record(
                record,
                version=self.settings.schema_version,
                dependent_encoding=self.settings.dependent_encoding,
            )
            clip_uris = [
                str(ref)
                for ref in (record.front_image_ref, record.back_image_ref, record.face_image_ref)
                if ref is not None
            ]
            location = self.transport.deliver(build_result(bundle, clip_uris))
        except Exception:
            logger.exception("Sending scan data to the host app failed")
            return SendOutcome(ok=False, message=GENERIC_FAILURE_MESSAGE)

        if self.settings.runlog_enabled:
            try:
                persist_runlog(
                    bundle,
                    location=location,
                    out_dir=self.settings.runlog_dir,
                    filename=self.settings.runlog_file,
                )
            except OSError as exc:
                logger.warning("Run log not written: %s", exc)

        return SendOutcome(ok=True, message=SUCCESS_MESSAGE, location=location)


__all__ = ["KoboBridge", "SUCCESS_MESSAGE", "GENERIC_FAILURE_MESSAGE"]
