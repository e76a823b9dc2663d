import json
from typing import Any, Dict, Mapping, Optional

from crewai.tools import BaseTool

from kobo_bridge.models import DocumentRecord
from kobo_bridge.tools.marshal import SchemaVersion, attach_dependents, decode_record


def decode_bundle_record(
    bundle: Mapping[str, Any],
    version: str = SchemaVersion.V2.value,
    dependent_encoding: Optional[str] = None,
) -> DocumentRecord:
    """Decode scalars, then the dependents too when an encoding is named."""
    record = decode_record(bundle, version=version)
    if dependent_encoding:
        record = attach_dependents(record, bundle, dependent_encoding)
    return record


def _ensure_mapping(bundle_json: Any) -> Dict[str, Any]:
    if isinstance(bundle_json, dict):
        return bundle_json
    if not isinstance(bundle_json, str):
        raise TypeError("bundle_json must be str|dict")
    try:
        obj = json.loads(bundle_json)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid bundle JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ValueError("Bundle must be a JSON object")
    return obj


class DecodeBundleTool(BaseTool):
    """
    CrewAI tool wrapper around the receiving-side decoder.

    Kwargs:
      - bundle_json: flat bundle as JSON text (or a dict)
      - version: schema version the sender wrote ("v1" | "v2")
      - dependent_encoding: "positional" | "joined"; empty skips dependents
    """

    name: str = "decode_bundle"
    description: str = "Rebuild a scanned document record from a KoboCollect result bundle"

    def _run(self, bundle_json: Any, version: str = "v2", dependent_encoding: str = "") -> str:  # type: ignore[override]
        bundle = _ensure_mapping(bundle_json)
        record = decode_bundle_record(bundle, version=version, dependent_encoding=dependent_encoding or None)
        return record.model_dump_json(by_alias=True)


decode_bundle = DecodeBundleTool()

__all__ = ["decode_bundle", "decode_bundle_record", "DecodeBundleTool"]
