"""Which cell or record form is open for editing."""

from __future__ import annotations

from dataclasses import dataclass

from hubsync.errors import EditStateError


IDLE = "idle"
CELL_EDITING = "cell_editing"
RECORD_EDITING = "record_editing"


@dataclass(frozen=True)
class CellRef:
    record_id: str
    column_key: str


class EditStateMachine:
    def __init__(self) -> None:
        self.cell: CellRef | None = None
        self.modal_record_id: str | None = None
        self.fill_active = False

    @property
    def cell_state(self) -> str:
        return CELL_EDITING if self.cell is not None else IDLE

    @property
    def modal_state(self) -> str:
        return RECORD_EDITING if self.modal_record_id is not None else IDLE

    def begin_cell(self, record_id: str, column_key: str) -> bool:
        """Enter cell editing. Returns False if that cell was already open."""
        if self.fill_active:
            raise EditStateError("cannot edit a cell while a fill is in progress")
        ref = CellRef(record_id, column_key)
        if self.cell == ref:
            return False
        self.cell = ref
        return True

    def end_cell(self, expected: CellRef | None = None) -> bool:
        if expected is not None and self.cell != expected:
            return False
        self.cell = None
        return True

    def open_modal(self, record_id: str) -> bool:
        if self.modal_record_id == record_id:
            return False
        if self.cell is not None and self.cell.record_id != record_id:
            self.cell = None
        self.modal_record_id = record_id
        return True

    def close_modal(self) -> None:
        self.modal_record_id = None

    def begin_fill(self) -> None:
        if self.cell is not None:
            raise EditStateError("finish the open cell edit before filling")
        if self.fill_active:
            raise EditStateError("a fill is already in progress")
        self.fill_active = True

    def end_fill(self) -> None:
        self.fill_active = False
