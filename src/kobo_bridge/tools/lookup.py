"""Safe dotted-path lookups over nested scan JSON."""
from __future__ import annotations

from typing import Any, Mapping


def safe_path(data: Any, path: str, default: str = "") -> str:
    """
    Walk ``path`` ("a.b.c") through nested mappings and return the leaf as text.

    Any missing key, non-mapping hop or non-scalar leaf yields ``default``.
    """
    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]

    if current is None or isinstance(current, (Mapping, list, tuple)):
        return default
    if isinstance(current, str):
        return current
    return str(current)


def first_present(data: Any, *paths: str, default: str = "") -> str:
    """Return the first non-empty value among ``paths``, else ``default``."""
    for path in paths:
        value = safe_path(data, path)
        if value:
            return value
    return default


__all__ = ["safe_path", "first_present"]
