from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import logging
from dotenv import load_dotenv

from .errors import MissingRequiredFieldsError, SendFailedError
from .models import SendDataInput
from .settings import load_settings
from .tools.decode_bundle import decode_bundle_record
from .tools.send_data import handle_send_data

# Load environment variables
load_dotenv()
logging.basicConfig(
    level=load_settings().log_level,
    format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
)

app = FastAPI(title="KoboCollect Scan Bridge API")


class DecodeInput(BaseModel):
    bundle: Dict[str, Any]
    version: str = "v2"
    dependent_encoding: Optional[str] = Field(None, description="positional | joined; omit to skip dependents")


@app.post("/send_data")
def send_data(payload: SendDataInput):
    try:
        return handle_send_data(payload)
    except MissingRequiredFieldsError as e:
        raise HTTPException(status_code=400, detail={"error": e.message, "missing": e.fields})
    except SendFailedError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/decode")
def decode(payload: DecodeInput):
    """
    Rebuild a scanned document from a result bundle.

    Body:
        - bundle: the flat key/value extras as delivered
        - version: schema version the sender wrote (v1/v2)
        - dependent_encoding: strategy to decode dependents with, if any
    """
    try:
        record = decode_bundle_record(payload.bundle, payload.version, payload.dependent_encoding)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return record.model_dump(mode="json", by_alias=True)


@app.get("/ping")
def ping():
    return {"pong": True}
