"""Switches the engine between tool views; only the open tool polls."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from app.tools import AUTOMATION_TOOLS, ToolDefinition
from event_bus import EventBus
from outbox import Outbox
from refresh_scheduler import DEFAULT_INTERVAL_MS
from tool_session import ToolSession

logger = logging.getLogger("hub.dashboard")


class Dashboard:
    def __init__(
        self,
        client: Any,
        tools: Iterable[ToolDefinition] = AUTOMATION_TOOLS,
        bus: EventBus | None = None,
        poll_interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self.client = client
        self._tools: Dict[str, ToolDefinition] = {tool.id: tool for tool in tools}
        self.bus = bus or EventBus(Outbox())
        self.poll_interval_ms = poll_interval_ms
        self._active: ToolSession | None = None

    @property
    def active(self) -> ToolSession | None:
        return self._active

    def tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def tool(self, tool_id: str) -> ToolDefinition:
        return self._tools[tool_id]

    def open_tool(self, tool_id: str, start: bool = True) -> ToolSession:
        """Leave the current view and open ``tool_id``; raises KeyError for unknown ids."""
        tool = self._tools[tool_id]
        self.leave_tool()
        session = ToolSession(tool, self.client, bus=self.bus, poll_interval_ms=self.poll_interval_ms)
        self._active = session
        if start:
            session.start()
        logger.info("tool_opened tool=%s", tool_id)
        return session

    def leave_tool(self) -> None:
        session = self._active
        if session is None:
            return
        self._active = None
        session.close()
        logger.info("tool_left tool=%s", session.tool.id)
