import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from kobo_bridge.errors import ImagePayloadError

logger = logging.getLogger("kobo_bridge.images")

FRONT_IMAGE_FILE = "frontImage.jpg"
BACK_IMAGE_FILE = "backImage.jpg"
FACE_IMAGE_FILE = "faceImage.jpg"


def _strip_data_url(payload: str) -> str:
    """'data:image/jpg;base64,AAAA' -> 'AAAA'; bare base64 passes through."""
    if payload.startswith("data:"):
        if "," not in payload:
            raise ImagePayloadError("Data URL has no payload")
        return payload.split(",", 1)[1]
    return payload


def decode_image_payload(payload: str) -> bytes:
    """Decode a base64 image (optionally a data URL) and check it is an image."""
    encoded = "".join(_strip_data_url(payload.strip()).split())
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImagePayloadError(f"Invalid base64 image payload: {exc}") from exc
    if not raw:
        raise ImagePayloadError("Image payload is empty")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ImagePayloadError(f"Payload is not a readable image: {exc}") from exc
    return raw


def base64_to_file(payload: str, file_name: str, cache_dir: Union[str, Path]) -> Path:
    """Decode ``payload`` into ``<cache_dir>/<file_name>`` (overwriting) and return the path."""
    raw = decode_image_payload(payload)
    cache_path = Path(cache_dir)
    cache_path.mkdir(parents=True, exist_ok=True)
    dest = cache_path / file_name
    dest.write_bytes(raw)
    logger.debug("Cached %s (%d bytes)", dest.name, len(raw))
    return dest


def uri_for_file(path: Union[str, Path]) -> str:
    return Path(path).resolve().as_uri()


def image_reference(payload: Optional[str], file_name: str, cache_dir: Union[str, Path]) -> Optional[str]:
    """Cached-file URI for ``payload``, or None when no image was captured."""
    if not payload:
        return None
    return uri_for_file(base64_to_file(payload, file_name, cache_dir))


__all__ = [
    "FRONT_IMAGE_FILE",
    "BACK_IMAGE_FILE",
    "FACE_IMAGE_FILE",
    "decode_image_payload",
    "base64_to_file",
    "uri_for_file",
    "image_reference",
]
