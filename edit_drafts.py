"""Baseline/draft tracking for one open editing surface."""

from __future__ import annotations

import copy
from typing import Any, Dict

from hubsync.values import values_equal


class EditDraftTracker:
    """Keeps a draft of field values against the values it was opened with.

    ``open`` for the record that is already open is a no-op so a background
    refresh that re-initializes the surface cannot clobber user input.
    """

    def __init__(self) -> None:
        self._record_id: str | None = None
        self._baseline: Dict[str, Any] = {}
        self._draft: Dict[str, Any] = {}

    @property
    def record_id(self) -> str | None:
        return self._record_id

    @property
    def is_open(self) -> bool:
        return self._record_id is not None

    @property
    def baseline(self) -> Dict[str, Any]:
        return copy.deepcopy(self._baseline)

    @property
    def draft(self) -> Dict[str, Any]:
        return copy.deepcopy(self._draft)

    def open(self, record_id: str, initial_values: Dict[str, Any]) -> bool:
        if self._record_id == record_id:
            return False
        self._record_id = record_id
        self._baseline = copy.deepcopy(dict(initial_values))
        self._draft = copy.deepcopy(dict(initial_values))
        return True

    def set_field(self, key: str, value: Any) -> None:
        if self._record_id is None:
            raise RuntimeError("no draft is open")
        self._draft[key] = copy.deepcopy(value)

    def value(self, key: str) -> Any:
        return copy.deepcopy(self._draft.get(key))

    def dirty_keys(self) -> set[str]:
        keys = set(self._baseline) | set(self._draft)
        return {k for k in keys if not values_equal(self._draft.get(k), self._baseline.get(k))}

    def is_dirty(self) -> bool:
        return bool(self.dirty_keys())

    def changes(self) -> Dict[str, Any]:
        return {k: copy.deepcopy(self._draft.get(k)) for k in sorted(self.dirty_keys())}

    def reset(self) -> None:
        self._draft = copy.deepcopy(self._baseline)

    def mark_saved(self, values: Dict[str, Any] | None = None) -> None:
        if values is None:
            self._baseline = copy.deepcopy(self._draft)
            return
        for key, value in values.items():
            self._baseline[key] = copy.deepcopy(value)

    def close(self) -> None:
        self._record_id = None
        self._baseline = {}
        self._draft = {}
