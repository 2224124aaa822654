"""In-memory record client with the same async contract as AirtableClient."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from hubsync.errors import RemoteError
from hubsync.records import Record, decode_value


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def _schema_type(value: Any) -> str:
    if isinstance(value, bool):
        return "checkbox"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "multipleAttachments"
    return "singleLineText"


class MemoryRecordClient:
    """Tables of records kept in insertion order; every read returns copies."""

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Record]] = {}
        self.calls: List[tuple] = []

    def _table(self, table: str) -> Dict[str, Record]:
        return self._tables.setdefault(table, {})

    def seed(self, table: str, records: List[Record | dict]) -> None:
        bucket = self._table(table)
        for item in records:
            record = item if isinstance(item, Record) else Record.from_api(item)
            bucket[record.id] = copy.deepcopy(record)

    def snapshot(self, table: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._table(table).values()]

    async def fetch_records(self, table: str) -> List[Record]:
        self.calls.append(("fetch", table))
        return self.snapshot(table)

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Record:
        self.calls.append(("create", table, copy.deepcopy(fields)))
        record = Record(
            id="rec" + uuid.uuid4().hex[:14],
            created_time=_now(),
            fields={k: decode_value(v) for k, v in fields.items() if v is not None},
        )
        self._table(table)[record.id] = record
        return copy.deepcopy(record)

    async def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> None:
        self.calls.append(("update", table, record_id, copy.deepcopy(fields)))
        record = self._table(table).get(record_id)
        if record is None:
            raise RemoteError("Could not find record", status=404)
        for key, value in fields.items():
            if value is None:
                record.fields.pop(key, None)
            else:
                record.fields[key] = decode_value(value)

    async def get_schema(self, table: str) -> List[dict]:
        seen: Dict[str, dict] = {}
        for record in self._table(table).values():
            for key, value in record.fields.items():
                seen.setdefault(key, {"name": key, "type": _schema_type(value)})
        return list(seen.values())

    async def aclose(self) -> None:
        return None
