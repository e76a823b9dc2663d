# -*- coding: utf-8 -*-
"""
Dependent encoders/decoders for the flat result bundle.

Two protocol generations flatten the dependents list differently:

- positional: dependent01_fullName, dependent02_fullName, ... + dependentCount
- joined:     dependent_fullName = "A; B; C;" (one key per field)

Both strategies share one interface (encode_dependents / decode_dependents) and
are picked by name through get_encoding(); nothing here guesses the generation
from the data.

parse_dependents_info() turns the scanner's nested dependents JSON into
DependentRecord values. Each sub-field is looked up with a safe path walk, so a
missing or half-present branch becomes "" instead of failing the record.
"""
from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from jsonschema import ValidationError as SchemaError
from jsonschema import validate as json_validate

from kobo_bridge.errors import DependentsFormatError
from kobo_bridge.models import DependentRecord
from kobo_bridge.tools.lookup import first_present

logger = logging.getLogger("kobo_bridge.dependents")

# ------------------------------ Constants ------------------------------------

# (wire suffix, DependentRecord attribute)
DEPENDENT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("dateOfBirth", "date_of_birth"),
    ("sex", "sex"),
    ("documentNumber", "document_number"),
    ("fullName", "full_name"),
)

DEPENDENT_COUNT_KEY = "dependentCount"
JOIN_SEPARATOR = "; "
JOIN_TERMINATOR = ";"

# Source lookups per field; the second path is the older scanner result shape.
_SOURCE_PATHS: Dict[str, Tuple[str, ...]] = {
    "date_of_birth": (
        "dateOfBirth.originalString.latin.value",
        "dateOfBirth.originalDateStringResult.description",
    ),
    "sex": ("sex.latin.value", "sex.description"),
    "document_number": ("documentNumber.latin.value", "documentNumber.description"),
    "full_name": ("fullName.latin.value", "fullName.description"),
}


# ------------------------------ Source parsing -------------------------------

@lru_cache(maxsize=1)
def _json_schema() -> Dict[str, Any]:
    """Top-level shape only; everything inside a dependent is optional."""
    return {"type": "array", "items": {"type": "object"}}


def extract_dependent(source: Mapping[str, Any]) -> DependentRecord:
    """Build one DependentRecord from a nested scanner object."""
    values = {attr: first_present(source, *paths) for attr, paths in _SOURCE_PATHS.items()}
    return DependentRecord(**values)


def parse_dependents_info(raw: Union[str, Sequence[Any]]) -> List[DependentRecord]:
    """
    Parse the scanner's dependents payload (JSON text or an already-parsed list).

    Raises DependentsFormatError unless the payload is an array of objects.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise DependentsFormatError(f"Invalid dependents JSON: {exc}") from exc
    else:
        data = list(raw) if isinstance(raw, tuple) else raw

    try:
        json_validate(instance=data, schema=_json_schema())
    except SchemaError as exc:
        raise DependentsFormatError(str(exc).splitlines()[0]) from exc

    return [extract_dependent(item) for item in data]


def dependents_from_info(raw: Optional[Union[str, Sequence[Any]]]) -> Optional[List[DependentRecord]]:
    """
    Tolerant variant of parse_dependents_info.

    Returns None (omit every dependent key) when the payload is empty or
    malformed; the rest of the record is unaffected.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return parse_dependents_info(raw)
    except DependentsFormatError as exc:
        logger.warning("Dropping dependents: %s", exc)
        return None


# ------------------------------ Strategies -----------------------------------

class DependentEncoding:
    """Interface shared by the dependent flattening strategies."""

    name: str = ""

    def encode_dependents(self, dependents: Sequence[DependentRecord]) -> Dict[str, Union[str, int]]:
        raise NotImplementedError

    def decode_dependents(self, bundle: Mapping[str, Any]) -> List[DependentRecord]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


_LABEL_RE = re.compile(
    r"^dependent(\d{1,9})_(?:%s)$" % "|".join(re.escape(field) for field, _ in DEPENDENT_FIELDS),
    re.ASCII,
)


def _highest_label(bundle: Mapping[str, Any]) -> int:
    """Largest 1-based positional label present in the bundle, 0 if none."""
    highest = 0
    for key in bundle:
        match = _LABEL_RE.match(key) if isinstance(key, str) else None
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


class PositionalEncoding(DependentEncoding):
    """dependentNN_<field> keys plus dependentCount."""

    name = "positional"

    @staticmethod
    def label(index: int) -> str:
        """1-based, zero-padded to two digits; wider labels past 99."""
        return f"{index + 1:02d}"

    @classmethod
    def key(cls, index: int, field: str) -> str:
        return f"dependent{cls.label(index)}_{field}"

    def encode_dependents(self, dependents: Sequence[DependentRecord]) -> Dict[str, Union[str, int]]:
        out: Dict[str, Union[str, int]] = {DEPENDENT_COUNT_KEY: len(dependents)}
        for i, dep in enumerate(dependents):
            for field, attr in DEPENDENT_FIELDS:
                out[self.key(i, field)] = getattr(dep, attr) or ""
        return out

    def _count(self, bundle: Mapping[str, Any]) -> int:
        count = _as_count(bundle.get(DEPENDENT_COUNT_KEY))
        if count is not None:
            # Bounded by the labels actually carried, and by the bundle size.
            return min(count, _highest_label(bundle), len(bundle))
        # No usable count: take the contiguous run of labels from 01.
        count = 0
        while any(self.key(count, field) in bundle for field, _ in DEPENDENT_FIELDS):
            count += 1
        return count

    def decode_dependents(self, bundle: Mapping[str, Any]) -> List[DependentRecord]:
        return [
            DependentRecord(**{attr: _text(bundle.get(self.key(i, field))) for field, attr in DEPENDENT_FIELDS})
            for i in range(self._count(bundle))
        ]


class JoinedEncoding(DependentEncoding):
    """One dependent_<field> key per field, values joined with "; "."""

    name = "joined"

    @staticmethod
    def key(field: str) -> str:
        return f"dependent_{field}"

    def encode_dependents(self, dependents: Sequence[DependentRecord]) -> Dict[str, Union[str, int]]:
        if not dependents:
            return {}
        return {
            self.key(field): JOIN_SEPARATOR.join(getattr(dep, attr) or "" for dep in dependents) + JOIN_TERMINATOR
            for field, attr in DEPENDENT_FIELDS
        }

    @staticmethod
    def _split(value: Any) -> List[str]:
        if not isinstance(value, str) or not value:
            return []
        if value.endswith(JOIN_TERMINATOR):
            value = value[: -len(JOIN_TERMINATOR)]
        return value.split(JOIN_SEPARATOR)

    def decode_dependents(self, bundle: Mapping[str, Any]) -> List[DependentRecord]:
        columns = {attr: self._split(bundle.get(self.key(field))) for field, attr in DEPENDENT_FIELDS}
        size = max((len(col) for col in columns.values()), default=0)
        return [
            DependentRecord(**{attr: (col[i] if i < len(col) else "") for attr, col in columns.items()})
            for i in range(size)
        ]


POSITIONAL = PositionalEncoding()
JOINED = JoinedEncoding()

_ENCODINGS: Dict[str, DependentEncoding] = {POSITIONAL.name: POSITIONAL, JOINED.name: JOINED}


def get_encoding(name: Union[str, DependentEncoding]) -> DependentEncoding:
    """Look up a strategy by name; instances pass through unchanged."""
    if isinstance(name, DependentEncoding):
        return name
    try:
        return _ENCODINGS[(name or "").strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown dependent encoding {name!r}; expected one of {sorted(_ENCODINGS)}"
        ) from None


__all__ = [
    "DEPENDENT_FIELDS",
    "DEPENDENT_COUNT_KEY",
    "DependentEncoding",
    "PositionalEncoding",
    "JoinedEncoding",
    "POSITIONAL",
    "JOINED",
    "get_encoding",
    "extract_dependent",
    "parse_dependents_info",
    "dependents_from_info",
]
