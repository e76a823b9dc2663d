# src/kobo_bridge/tools/send_data.py
import json
import logging
from typing import Any, Dict, Optional, Union

from crewai.tools import tool
from pydantic import ValidationError

from kobo_bridge.bridge import SUCCESS_MESSAGE, KoboBridge
from kobo_bridge.errors import MissingRequiredFieldsError, SendFailedError
from kobo_bridge.models import SendDataInput

logger = logging.getLogger("kobo_bridge.send_data")

PROCESSING_ERROR = "Error processing data"


def _parse_payload(payload: Union[str, bytes, Dict[str, Any], SendDataInput]) -> SendDataInput:
    if isinstance(payload, SendDataInput):
        return payload
    if isinstance(payload, (str, bytes)):
        return SendDataInput.model_validate_json(payload)
    if isinstance(payload, dict):
        return SendDataInput.model_validate(payload)
    raise TypeError("payload must be str|dict|SendDataInput")


def handle_send_data(
    payload: Union[str, bytes, Dict[str, Any], SendDataInput],
    bridge: Optional[KoboBridge] = None,
) -> Dict[str, Any]:
    """
    Validate the send command and hand it to the bridge.

    Raises MissingRequiredFieldsError when documentNumber, fullName, age, gender
    or dateOfBirth is null, and SendFailedError when the bridge could not deliver.
    """
    data = _parse_payload(payload)
    missing = data.missing_required()
    if missing:
        raise MissingRequiredFieldsError(missing)

    outcome = (bridge or KoboBridge()).send(data)
    if not outcome.ok:
        raise SendFailedError(outcome.message)
    return {"response": SUCCESS_MESSAGE}


@tool("send_data")
def send_data(payload_json: str) -> str:
    """
    Send one scanned document to the KoboCollect host form.

    payload_json is a JSON object with dateOfBirth, CoAAddress, province, district,
    village, documentNumber, fullName, fathersName, age, gender, frontImage,
    backImage, faceImage, dependentsInfo, dateOfIssue, documentAdditionalNumber and
    dateOfExpiry. Returns a JSON object with "response" on success or "error".
    """
    try:
        result = handle_send_data(payload_json)
    except MissingRequiredFieldsError as exc:
        logger.info("Send rejected, missing: %s", ", ".join(exc.fields))
        result = {"error": MissingRequiredFieldsError.message, "missing": exc.fields}
    except (ValidationError, SendFailedError, TypeError) as exc:
        logger.warning("Send failed: %s", type(exc).__name__)
        result = {"error": PROCESSING_ERROR, "detail": str(exc)}
    except Exception as exc:
        logger.exception("Unexpected error while sending scan data")
        result = {"error": PROCESSING_ERROR, "detail": str(exc)}
    return json.dumps(result, ensure_ascii=False)


__all__ = ["handle_send_data", "send_data", "PROCESSING_ERROR"]
