"""
Deterministic JSON serialization for reports.

Ensures that identical data produces identical JSON regardless of
dict ordering or platform differences.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Any

import orjson


def _default_serializer(obj: Any) -> Any:
    """
    Custom serializer for types not natively supported by orjson.

    Args:
        obj: Object to serialize.

    Returns:
        JSON-serializable representation.

    Raises:
        TypeError: If object cannot be serialized.
    """
    if isinstance(obj, datetime):
        return obj.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, PurePath):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        # Sorted for determinism
        return sorted(obj, key=str)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json_dumps(obj: Any, *, indent: bool = False) -> str:
    """
    Serialize object to canonical JSON string.

    Args:
        obj: Object to serialize.
        indent: If True, pretty-print with 2-space indentation.

    Returns:
        Canonical JSON string with sorted keys.

    Examples:
        >>> canonical_json_dumps({"b": 2, "a": 1})
        '{"a":1,"b":2}'
    """
    options = orjson.OPT_SORT_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=_default_serializer, option=options).decode("utf-8")


def canonical_json_loads(json_str: str | bytes) -> Any:
    """Parse JSON string."""
    return orjson.loads(json_str)
