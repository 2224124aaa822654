"""Record sync kernel: value types, field resolution and value normalization."""

from .errors import (
    EditStateError,
    FillError,
    HubError,
    RemoteError,
    ValidationFailure,
    WriteFailure,
)
from .fields import actual_field_map, field_value, resolve_field_key
from .records import Attachment, Record, decode_value, encode_fields
from .values import canonical_dumps, normalize_value, values_equal

__all__ = [
    "Attachment",
    "EditStateError",
    "FillError",
    "HubError",
    "Record",
    "RemoteError",
    "ValidationFailure",
    "WriteFailure",
    "actual_field_map",
    "canonical_dumps",
    "decode_value",
    "encode_fields",
    "field_value",
    "normalize_value",
    "resolve_field_key",
    "values_equal",
]
