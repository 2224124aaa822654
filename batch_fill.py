"""Drag-fill: copy one cell's value down (or up) a range of records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Tuple

from hubsync.errors import FillError, RemoteError
from hubsync.fields import resolve_field_key
from hubsync.records import Attachment
from record_store import RecordStore

logger = logging.getLogger("hub.fill")


@dataclass
class FillOperation:
    source_record_id: str
    column_key: str
    value: Any
    start_index: int
    current_index: int
    target_record_id: str
    anchor_record_id: str

    @property
    def range(self) -> Tuple[int, int]:
        return (self.start_index, self.current_index)


@dataclass
class FillResult:
    succeeded: int = 0
    failed: List[Tuple[str, RemoteError]] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": len(self.failed),
            "failed_ids": [record_id for record_id, _ in self.failed],
        }


class BatchFillEngine:
    def __init__(self, store: RecordStore, client: Any, table: str, attachment_keys: Iterable[str] = ()) -> None:
        self._store = store
        self._client = client
        self._table = table
        self._attachment_keys = {k.lower() for k in attachment_keys}
        self._op: FillOperation | None = None

    @property
    def operation(self) -> FillOperation | None:
        return self._op

    @property
    def active(self) -> bool:
        return self._op is not None

    def begin_fill(
        self, source_record_id: str, column_key: str, value: Any, anchor_record_id: str | None = None
    ) -> FillOperation:
        """Start a gesture. The range is anchored at the source row unless
        ``anchor_record_id`` names another row (a pre-selected range start).
        """
        if self._op is not None:
            raise FillError("a fill is already in progress")
        if self._store.index_of(source_record_id) is None:
            raise FillError(f"unknown source record: {source_record_id}")
        anchor_record_id = anchor_record_id or source_record_id
        index = self._store.index_of(anchor_record_id)
        if index is None:
            raise FillError(f"unknown anchor record: {anchor_record_id}")
        self._op = FillOperation(
            source_record_id=source_record_id,
            column_key=column_key,
            value=value,
            start_index=index,
            current_index=index,
            target_record_id=anchor_record_id,
            anchor_record_id=anchor_record_id,
        )
        return self._op

    def update_target(self, pointer_record_id: str) -> Tuple[int, int] | None:
        if self._op is None:
            return None
        index = self._store.index_of(pointer_record_id)
        if index is not None:
            self._op.current_index = index
            self._op.target_record_id = pointer_record_id
        return self._op.range

    def cancel(self) -> None:
        self._op = None

    def _resolve_index(self, record_id: str, fallback: int) -> int:
        index = self._store.index_of(record_id)
        if index is not None:
            return index
        return max(0, min(fallback, len(self._store) - 1))

    def _wire_value(self, op: FillOperation) -> Any:
        value = op.value
        if op.column_key.lower() in self._attachment_keys and isinstance(value, str):
            return [Attachment(url=value)] if value else []
        return value

    async def commit_fill(self) -> FillResult:
        if self._op is None:
            raise FillError("no fill in progress")
        op = self._op
        self._op = None
        result = FillResult()
        if not len(self._store):
            return result

        # the snapshot may have been refreshed mid-gesture; re-resolve both ends by id
        start = self._resolve_index(op.anchor_record_id, op.start_index)
        end = self._resolve_index(op.target_record_id, op.current_index)
        low, high = min(start, end), max(start, end)
        value = self._wire_value(op)
        targets = [r for r in self._store.all()[low : high + 1] if r.id != op.source_record_id]
        logger.info(
            "fill_started table=%s column=%s range=%s..%s targets=%s",
            self._table,
            op.column_key,
            low,
            high,
            len(targets),
        )
        for record in targets:
            result.targets.append(record.id)
            key = resolve_field_key(record, op.column_key) or op.column_key
            try:
                await self._client.update_record(self._table, record.id, {key: value})
            except RemoteError as exc:
                logger.warning("fill_target_failed table=%s record_id=%s error=%s", self._table, record.id, exc)
                result.failed.append((record.id, exc))
                continue
            result.succeeded += 1
        logger.info(
            "fill_finished table=%s column=%s succeeded=%s failed=%s",
            self._table,
            op.column_key,
            result.succeeded,
            len(result.failed),
        )
        return result
