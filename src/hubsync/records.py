"""Record and attachment value types for the tabular store."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass
class Attachment:
    url: str
    filename: str | None = None
    id: str | None = None

    def to_api(self) -> dict:
        out: Dict[str, Any] = {"url": self.url}
        if self.filename is not None:
            out["filename"] = self.filename
        if self.id is not None:
            out["id"] = self.id
        return out


FieldValue = Union[str, int, float, bool, List[Attachment]]
Fields = Dict[str, Any]


def _is_attachment_dict(item: Any) -> bool:
    return isinstance(item, dict) and isinstance(item.get("url"), str)


def decode_value(value: Any) -> Any:
    """Turn a wire value into a field value; attachment lists become Attachment objects."""
    if isinstance(value, list) and value and all(_is_attachment_dict(item) for item in value):
        return [
            Attachment(url=item["url"], filename=item.get("filename"), id=item.get("id"))
            for item in value
        ]
    return copy.deepcopy(value)


def encode_value(value: Any) -> Any:
    if isinstance(value, Attachment):
        return value.to_api()
    if isinstance(value, list):
        return [encode_value(item) for item in value]
    return copy.deepcopy(value)


def encode_fields(fields: Fields) -> dict:
    return {key: encode_value(value) for key, value in fields.items()}


@dataclass
class Record:
    id: str
    created_time: str
    fields: Fields = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "Record":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise ValueError("record must be an object with a string id")
        raw_fields = data.get("fields") or {}
        if not isinstance(raw_fields, dict):
            raise ValueError("record fields must be an object")
        return cls(
            id=data["id"],
            created_time=str(data.get("createdTime") or ""),
            fields={key: decode_value(value) for key, value in raw_fields.items()},
        )

    def to_api(self) -> dict:
        return {"id": self.id, "createdTime": self.created_time, "fields": encode_fields(self.fields)}
