"""Snapshot cache of the active tool's records, newest first."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Iterable, List

from hubsync.records import Record


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _created_at(record: Record) -> datetime:
    value = record.created_time
    if not value:
        return _OLDEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_newest_first(records: Iterable[Record]) -> List[Record]:
    # sorted() is stable with reverse=True, so equal timestamps keep arrival order
    return sorted(records, key=_created_at, reverse=True)


class RecordStore:
    def __init__(self) -> None:
        self._records: List[Record] = []
        self._selected_id: str | None = None
        self.version = 0

    def replace(self, new_records: Iterable[Record]) -> None:
        self._records = sort_newest_first(copy.deepcopy(list(new_records)))
        self.version += 1
        if self._selected_id is not None and self.find_by_id(self._selected_id) is None:
            self._selected_id = None

    def all(self) -> list[Record]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def find_by_id(self, record_id: str) -> Record | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def index_of(self, record_id: str) -> int | None:
        for idx, record in enumerate(self._records):
            if record.id == record_id:
                return idx
        return None

    def at(self, index: int) -> Record:
        return self._records[index]

    def select(self, record_id: str) -> Record | None:
        record = self.find_by_id(record_id)
        self._selected_id = record.id if record else None
        return record

    def clear_selection(self) -> None:
        self._selected_id = None

    @property
    def selected(self) -> Record | None:
        if self._selected_id is None:
            return None
        return self.find_by_id(self._selected_id)
