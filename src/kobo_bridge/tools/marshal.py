# -*- coding: utf-8 -*-
"""
Record marshaller: DocumentRecord <-> flat result bundle.

Every schema generation is an explicit SchemaVersion. The caller names the
version it writes or reads. Field presence is never used to guess it.

    v1  identity + address fields, front/back images, positional dependents
    v2  v1 + dateOfIssue, documentAdditionalNumber, dateOfExpiry, face image,
        joined dependents

Encoding also writes "<field>_dep" copies of a fixed subset of fields for host
forms that read them from a repeat group. Image references and other null
fields are left out of the bundle entirely.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import AnyUrl, TypeAdapter, ValidationError

from kobo_bridge.errors import MissingRequiredFieldsError
from kobo_bridge.models import AGE_ABSENT, INT32_MAX, DocumentRecord
from kobo_bridge.tools.dependents import DependentEncoding, get_encoding

logger = logging.getLogger("kobo_bridge.marshal")

Bundle = Dict[str, Union[str, int]]

DEP_SUFFIX = "_dep"
DEPENDENTS_INFO_KEY = "dependentsInfo"
AGE_KEY = "age"

_URI = TypeAdapter(AnyUrl)


class SchemaVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"

    @classmethod
    def parse(cls, value: Union[str, "SchemaVersion"]) -> "SchemaVersion":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown schema version {value!r}; expected one of {[v.value for v in cls]}"
            ) from None


@dataclass(frozen=True)
class _Layout:
    text_fields: Tuple[Tuple[str, str], ...]   # (wire key, record attribute)
    image_fields: Tuple[Tuple[str, str], ...]
    dep_copies: Tuple[str, ...]                # wire keys duplicated with _dep
    default_encoding: str


_V1_TEXT = (
    ("dateOfBirth", "date_of_birth"),
    ("CoAAddress", "coa_address"),
    ("province", "province"),
    ("district", "district"),
    ("village", "village"),
    ("documentNumber", "document_number"),
    ("fullName", "full_name"),
    ("fathersName", "fathers_name"),
    ("gender", "gender"),
)
_V1_IMAGES = (
    ("frontImageUri", "front_image_ref"),
    ("backImageUri", "back_image_ref"),
)
_DEP_COPIES = ("dateOfBirth", "documentNumber", "fullName", "fathersName", "gender", AGE_KEY)

_LAYOUTS: Dict[SchemaVersion, _Layout] = {
    SchemaVersion.V1: _Layout(
        text_fields=_V1_TEXT,
        image_fields=_V1_IMAGES,
        dep_copies=_DEP_COPIES,
        default_encoding="positional",
    ),
    SchemaVersion.V2: _Layout(
        text_fields=_V1_TEXT + (
            ("dateOfIssue", "date_of_issue"),
            ("documentAdditionalNumber", "document_additional_number"),
            ("dateOfExpiry", "date_of_expiry"),
        ),
        image_fields=_V1_IMAGES + (("DocumentFaceUri", "face_image_ref"),),
        dep_copies=_DEP_COPIES,
        default_encoding="joined",
    ),
}


def layout_for(version: Union[str, SchemaVersion]) -> _Layout:
    return _LAYOUTS[SchemaVersion.parse(version)]


# ------------------------------ Encode ---------------------------------------

def encode_record(
    record: DocumentRecord,
    version: Union[str, SchemaVersion] = SchemaVersion.V2,
    dependent_encoding: Optional[Union[str, DependentEncoding]] = None,
) -> Bundle:
    """
    Flatten ``record`` into a result bundle.

    Raises MissingRequiredFieldsError before writing anything when a required
    field is absent. ``dependent_encoding`` defaults to the version's own.
    """
    missing = record.missing_required()
    if missing:
        raise MissingRequiredFieldsError(missing)

    layout = layout_for(version)
    encoding = get_encoding(dependent_encoding or layout.default_encoding)

    bundle: Bundle = {}
    for key, attr in layout.text_fields:
        value = getattr(record, attr)
        if value is not None:
            bundle[key] = value
    bundle[AGE_KEY] = record.age

    for key, attr in layout.image_fields:
        ref = getattr(record, attr)
        if ref is not None:
            bundle[key] = str(ref)

    for key in layout.dep_copies:
        if key in bundle:
            bundle[key + DEP_SUFFIX] = bundle[key]
    for key, _ in layout.image_fields:
        if key in bundle:
            bundle[key + DEP_SUFFIX] = bundle[key]

    if record.dependents_info is not None:
        bundle[DEPENDENTS_INFO_KEY] = record.dependents_info

    if record.dependents is not None:
        bundle.update(encoding.encode_dependents(record.dependents))

    logger.debug(
        "Encoded %s record: %d keys, %s dependents (%s)",
        SchemaVersion.parse(version).value,
        len(bundle),
        "no" if record.dependents is None else len(record.dependents),
        encoding.name,
    )
    return bundle


# ------------------------------ Decode ---------------------------------------

def _read_text(bundle: Mapping[str, Any], key: str) -> Optional[str]:
    value = bundle.get(key)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _read_age(bundle: Mapping[str, Any]) -> int:
    value = bundle.get(AGE_KEY)
    if isinstance(value, bool):
        return AGE_ABSENT
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return AGE_ABSENT
    if not isinstance(value, int) or not AGE_ABSENT <= value <= INT32_MAX:
        return AGE_ABSENT
    return value


def parse_uri(value: Any) -> Optional[AnyUrl]:
    """Parse a resource reference; None when absent or not a well-formed URI."""
    if value is None or value == "":
        return None
    try:
        return _URI.validate_python(value if isinstance(value, str) else str(value))
    except ValidationError:
        return None


def decode_record(
    bundle: Mapping[str, Any],
    version: Union[str, SchemaVersion] = SchemaVersion.V2,
) -> DocumentRecord:
    """
    Rebuild a DocumentRecord from ``bundle``.

    Dependents are left as None; decode them separately with the strategy the
    sender used (see attach_dependents).
    """
    layout = layout_for(version)
    values: Dict[str, Any] = {attr: _read_text(bundle, key) for key, attr in layout.text_fields}
    values["age"] = _read_age(bundle)

    for key, attr in layout.image_fields:
        ref = parse_uri(bundle.get(key))
        if ref is None and bundle.get(key) not in (None, ""):
            logger.warning("Ignoring malformed resource reference under %s", key)
        values[attr] = ref

    values["dependents"] = None
    values["dependents_info"] = _read_text(bundle, DEPENDENTS_INFO_KEY)
    return DocumentRecord(**values)


def attach_dependents(
    record: DocumentRecord,
    bundle: Mapping[str, Any],
    dependent_encoding: Union[str, DependentEncoding],
) -> DocumentRecord:
    """Return a copy of ``record`` with dependents decoded from ``bundle``."""
    dependents = get_encoding(dependent_encoding).decode_dependents(bundle)
    return record.model_copy(update={"dependents": dependents})


__all__ = [
    "Bundle",
    "SchemaVersion",
    "layout_for",
    "encode_record",
    "decode_record",
    "attach_dependents",
    "parse_uri",
]
