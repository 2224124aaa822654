"""Engine state for the active tool: snapshot, drafts, fill and polling."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from app.tools import STATUS_FIELD_NAME, STATUS_TODO, ToolDefinition
from batch_fill import BatchFillEngine, FillOperation, FillResult
from edit_drafts import EditDraftTracker
from edit_state import CellRef, EditStateMachine
from event_bus import (
    FETCH_FAILED,
    FETCH_RECOVERED,
    FILL_COMPLETED,
    RECORD_CREATED,
    RECORD_SAVED,
    WRITE_FAILED,
    EventBus,
)
from hubsync.errors import EditStateError, RemoteError, ValidationFailure, WriteFailure
from hubsync.fields import actual_field_map, field_value, resolve_field_key
from hubsync.records import Attachment, Record
from hubsync.values import is_empty
from record_store import RecordStore
from refresh_scheduler import DEFAULT_INTERVAL_MS, RefreshScheduler

logger = logging.getLogger("hub.session")


class ToolSession:
    """Single-writer owner of one tool view's engine state.

    Every coroutine re-checks ``closed`` after its remote call returns so a
    response that lands after the view was left has no effect.
    """

    def __init__(
        self,
        tool: ToolDefinition,
        client: Any,
        bus: EventBus | None = None,
        poll_interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self.tool = tool
        self.client = client
        self.bus = bus or EventBus()
        self.poll_interval_ms = poll_interval_ms
        self.store = RecordStore()
        self.cell_draft = EditDraftTracker()
        self.record_draft = EditDraftTracker()
        self.edit_state = EditStateMachine()
        self.fill = BatchFillEngine(self.store, client, tool.table, tool.attachment_keys)
        self.scheduler = RefreshScheduler(self.refresh, poll_interval_ms)
        self.fetch_error: str | None = None
        self.closed = False

    # lifecycle

    def start(self) -> None:
        if self.closed:
            raise RuntimeError("session is closed")
        self.scheduler.start(self.poll_interval_ms, self.refresh)
        logger.info("session_started tool=%s interval_ms=%s", self.tool.id, self.poll_interval_ms)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.scheduler.stop()
        self.fill.cancel()
        self.cell_draft.close()
        self.record_draft.close()
        logger.info("session_closed tool=%s", self.tool.id)

    def _emit(self, name: str, payload: dict) -> None:
        self.bus.emit(name, payload, tool_id=self.tool.id)

    # refresh

    async def refresh(self) -> bool:
        if self.closed:
            return False
        try:
            records = await self.client.fetch_records(self.tool.table)
        except RemoteError as exc:
            if self.closed:
                return False
            logger.warning("records_fetch_failed tool=%s error=%s", self.tool.id, exc)
            self.fetch_error = exc.message
            self._emit(FETCH_FAILED, {"message": exc.message, "status": exc.status})
            return False
        if self.closed:
            logger.info("records_fetch_discarded tool=%s reason=closed", self.tool.id)
            return False
        self.store.replace(records)
        if self.fetch_error is not None:
            self.fetch_error = None
            self._emit(FETCH_RECOVERED, {"count": len(self.store)})
        logger.debug("records_refreshed tool=%s count=%s", self.tool.id, len(self.store))
        return True

    async def request_refresh(self) -> bool:
        return await self.scheduler.trigger_now()

    def records(self) -> List[Record]:
        return self.store.all()

    def select(self, record_id: str) -> Record | None:
        return self.store.select(record_id)

    def _record_or_raise(self, record_id: str) -> Record:
        record = self.store.find_by_id(record_id)
        if record is None:
            raise KeyError(record_id)
        return record

    def _wire_value(self, key: str, value: Any) -> Any:
        spec = self.tool.field(key)
        if spec is not None and spec.kind == "attachment" and isinstance(value, str):
            return [Attachment(url=value)] if value else []
        return value

    # single cell

    def open_cell(self, record_id: str, column_key: str) -> Any:
        record = self._record_or_raise(record_id)
        previous = self.edit_state.cell
        if self.edit_state.begin_cell(record_id, column_key) and previous is not None:
            self.cell_draft.close()
        self.cell_draft.open(record_id, {column_key: field_value(record, column_key)})
        return self.cell_draft.value(column_key)

    def set_cell_value(self, value: Any) -> None:
        cell = self.edit_state.cell
        if cell is None:
            raise EditStateError("no cell is being edited")
        self.cell_draft.set_field(cell.column_key, value)

    def cancel_cell(self) -> None:
        self.edit_state.end_cell()
        self.cell_draft.close()

    def displayed_value(self, record_id: str, column_key: str) -> Any:
        cell = self.edit_state.cell
        if cell == CellRef(record_id, column_key) and self.cell_draft.record_id == record_id:
            return self.cell_draft.value(column_key)
        return field_value(self.store.find_by_id(record_id), column_key)

    async def commit_cell(self) -> bool:
        """Save the open cell. Returns False when nothing changed."""
        cell = self.edit_state.cell
        if cell is None:
            raise EditStateError("no cell is being edited")
        changes = self.cell_draft.changes()
        if not changes:
            self.cancel_cell()
            return False
        record = self.store.find_by_id(cell.record_id)
        value = changes.get(cell.column_key)
        key = resolve_field_key(record, cell.column_key) or cell.column_key
        await self._write(cell.record_id, {key: self._wire_value(cell.column_key, value)})
        if self.closed:
            return True
        if self.edit_state.cell == cell:
            self.edit_state.end_cell(cell)
            self.cell_draft.close()
        await self.request_refresh()
        return True

    # record form

    def open_record(self, record_id: str) -> Dict[str, Any]:
        record = self._record_or_raise(record_id)
        switched = self.edit_state.open_modal(record_id)
        if self.edit_state.cell is None and self.cell_draft.is_open:
            self.cell_draft.close()
        if switched and self.record_draft.is_open:
            self.record_draft.close()
        initial = {}
        for spec in self.tool.fields_for("edit"):
            value = field_value(record, spec.key)
            if value is not None:
                initial[spec.key] = value
        self.record_draft.open(record_id, initial)
        return self.record_draft.draft

    def set_record_field(self, key: str, value: Any) -> None:
        if self.edit_state.modal_record_id is None:
            raise EditStateError("no record form is open")
        self.record_draft.set_field(key, value)

    def reset_record(self) -> None:
        self.record_draft.reset()

    def close_record(self) -> None:
        self.edit_state.close_modal()
        self.record_draft.close()

    async def save_record(self) -> bool:
        record_id = self.edit_state.modal_record_id
        if record_id is None:
            raise EditStateError("no record form is open")
        changes = self.record_draft.changes()
        if not changes:
            return False
        record = self.store.find_by_id(record_id)
        payload = {key: self._wire_value(key, value) for key, value in changes.items()}
        await self._write(record_id, actual_field_map(record, payload))
        if self.closed:
            return True
        if self.record_draft.record_id == record_id:
            self.record_draft.mark_saved(changes)
        await self.request_refresh()
        return True

    async def _write(self, record_id: str, fields: Dict[str, Any]) -> None:
        try:
            await self.client.update_record(self.tool.table, record_id, fields)
        except RemoteError as exc:
            logger.warning("record_write_failed tool=%s record_id=%s error=%s", self.tool.id, record_id, exc)
            if not self.closed:
                self._emit(WRITE_FAILED, {"record_id": record_id, "message": exc.message})
            raise WriteFailure(exc.message, record_id=record_id) from exc
        logger.info("record_saved tool=%s record_id=%s fields=%s", self.tool.id, record_id, sorted(fields))
        if not self.closed:
            self._emit(RECORD_SAVED, {"record_id": record_id, "fields": sorted(fields)})

    # create

    def validate_new_record(self, values: Dict[str, Any]) -> List[str]:
        return [
            spec.key
            for spec in self.tool.fields_for("create")
            if spec.required and is_empty(values.get(spec.key))
        ]

    async def create_record(self, values: Dict[str, Any]) -> Record:
        missing = self.validate_new_record(values)
        if missing:
            raise ValidationFailure("Missing required fields", missing=missing)
        fields = {k: self._wire_value(k, v) for k, v in values.items() if not is_empty(v)}
        fields.setdefault(STATUS_FIELD_NAME, STATUS_TODO)
        try:
            record = await self.client.create_record(self.tool.table, fields)
        except RemoteError as exc:
            logger.warning("record_create_failed tool=%s error=%s", self.tool.id, exc)
            if not self.closed:
                self._emit(WRITE_FAILED, {"record_id": None, "message": exc.message})
            raise WriteFailure(exc.message) from exc
        logger.info("record_created tool=%s record_id=%s", self.tool.id, record.id)
        if not self.closed:
            self._emit(RECORD_CREATED, {"record_id": record.id})
            await self.request_refresh()
        return record

    # drag fill

    def begin_fill(
        self, source_record_id: str, column_key: str, value: Any = None, anchor_record_id: str | None = None
    ) -> FillOperation:
        if value is None:
            value = field_value(self._record_or_raise(source_record_id), column_key)
        self.edit_state.begin_fill()
        try:
            return self.fill.begin_fill(source_record_id, column_key, value, anchor_record_id)
        except Exception:
            self.edit_state.end_fill()
            raise

    def update_fill(self, pointer_record_id: str) -> tuple | None:
        return self.fill.update_target(pointer_record_id)

    def cancel_fill(self) -> None:
        self.fill.cancel()
        self.edit_state.end_fill()

    async def commit_fill(self) -> FillResult:
        try:
            result = await self.fill.commit_fill()
        finally:
            self.edit_state.end_fill()
        if self.closed:
            return result
        self._emit(FILL_COMPLETED, result.summary())
        await self.request_refresh()
        return result

    # schema

    async def extra_fields(self) -> List[dict]:
        try:
            schema = await self.client.get_schema(self.tool.table)
        except RemoteError as exc:
            logger.warning("schema_fetch_failed tool=%s error=%s", self.tool.id, exc)
            return []
        configured = {key.lower() for key in self.tool.configured_keys()}
        return [f for f in schema if f.get("name", "").lower() not in configured]

    # views

    def snapshot(self) -> dict:
        cell = self.edit_state.cell
        selected = self.store.selected
        return {
            "tool_id": self.tool.id,
            "fetch_error": self.fetch_error,
            "selected_id": selected.id if selected else None,
            "cell": {"record_id": cell.record_id, "column_key": cell.column_key, "draft": self.cell_draft.draft} if cell else None,
            "record_form": {
                "record_id": self.edit_state.modal_record_id,
                "draft": self.record_draft.draft,
                "dirty": sorted(self.record_draft.dirty_keys()),
            }
            if self.edit_state.modal_record_id
            else None,
            "fill_active": self.edit_state.fill_active,
            "refreshing": self.scheduler.in_flight,
        }
