"""Bounded queue of user-facing notices awaiting acknowledgement."""

from __future__ import annotations

import copy
from typing import List

from event_bus import Event, validate_event

DEFAULT_MAX_PENDING = 100


class Outbox:
    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        self._events: List[Event] = []
        self._max_pending = max_pending

    def enqueue(self, event: dict) -> None:
        validate_event(event)
        self._events.append(copy.deepcopy(event))
        if len(self._events) > self._max_pending:
            del self._events[: len(self._events) - self._max_pending]

    def pending(self, tool_id: str | None = None) -> list[dict]:
        if tool_id is None:
            return [copy.deepcopy(e) for e in self._events]
        return [copy.deepcopy(e) for e in self._events if e.get("meta", {}).get("tool_id") == tool_id]

    def ack(self, event_id: str) -> bool:
        for idx, event in enumerate(self._events):
            if event.get("meta", {}).get("event_id") == event_id:
                del self._events[idx]
                return True
        return False

    def clear(self) -> None:
        self._events.clear()
