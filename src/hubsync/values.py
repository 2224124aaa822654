"""Normalized string form of field values for draft comparison."""

from __future__ import annotations

import json
import math
from typing import Any

from .records import Attachment, encode_value


class ValueTypeError(TypeError):
    """Raised when a value cannot be reduced to a comparable form."""


def _check(obj: Any, path: str = "$") -> None:
    if isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise ValueTypeError(f"Unsupported key type at {path}: {type(key).__name__}")
            _check(value, f"{path}.{key}")
        return
    if isinstance(obj, list):
        for idx, item in enumerate(obj):
            _check(item, f"{path}[{idx}]")
        return
    if obj is None or isinstance(obj, (str, int, bool)):
        return
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueTypeError(f"Non-finite float at {path}: {obj!r}")
        return
    raise ValueTypeError(f"Unsupported type at {path}: {type(obj).__name__}")


def canonical_dumps(obj: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, non-ASCII preserved."""
    _check(obj)
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def normalize_value(value: Any) -> str:
    """Reduce a field value to the string used for dirty checks.

    ``None``, ``""`` and empty containers are all "absent". Booleans render
    as ``true``/``false`` and integral floats as integers, so ``1``,
    ``1.0`` and ``"1"`` compare equal.
    """
    if is_empty(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Attachment):
        return canonical_dumps([value.to_api()])
    if isinstance(value, (list, dict)):
        return canonical_dumps(encode_value(value))
    return str(value)


def values_equal(left: Any, right: Any) -> bool:
    return normalize_value(left) == normalize_value(right)
