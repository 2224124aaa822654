"""Case-tolerant field key resolution against records from the store."""

from __future__ import annotations

from typing import Any, Dict

from .records import Record


def resolve_field_key(record: Record | None, logical_key: str) -> str | None:
    """Return the record's actual key for ``logical_key``.

    Exact match wins. Otherwise the first key (in field order) that equals
    ``logical_key`` ignoring case is returned. Two stored keys that differ
    only by case resolve to whichever comes first.
    """
    if record is None or not record.fields:
        return None
    if logical_key in record.fields:
        return logical_key
    lowered = logical_key.lower()
    for key in record.fields:
        if key.lower() == lowered:
            return key
    return None


def field_value(record: Record | None, logical_key: str) -> Any:
    actual = resolve_field_key(record, logical_key)
    if actual is None:
        return None
    return record.fields.get(actual)


def actual_field_map(record: Record | None, values: Dict[str, Any]) -> Dict[str, Any]:
    """Re-key a logical payload to the record's stored keys.

    Unresolved keys are sent as-is so the store can create the field.
    """
    out: Dict[str, Any] = {}
    for logical_key, value in values.items():
        out[resolve_field_key(record, logical_key) or logical_key] = value
    return out
