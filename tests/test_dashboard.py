import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.stores import MemoryRecordClient
from dashboard import Dashboard


class TestDashboard(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.dashboard = Dashboard(MemoryRecordClient(), poll_interval_ms=60000)

    async def asyncTearDown(self) -> None:
        self.dashboard.leave_tool()

    async def test_open_tool_starts_polling(self) -> None:
        session = self.dashboard.open_tool("product-desc")
        self.assertIs(self.dashboard.active, session)
        self.assertTrue(session.scheduler.running)

    async def test_switching_tools_closes_previous(self) -> None:
        first = self.dashboard.open_tool("product-desc")
        second = self.dashboard.open_tool("general-article")
        self.assertTrue(first.closed)
        self.assertFalse(first.scheduler.running)
        self.assertIs(self.dashboard.active, second)

    async def test_leave_tool(self) -> None:
        session = self.dashboard.open_tool("product-desc", start=False)
        self.dashboard.leave_tool()
        self.assertIsNone(self.dashboard.active)
        self.assertTrue(session.closed)
        self.dashboard.leave_tool()

    async def test_unknown_tool(self) -> None:
        active = self.dashboard.open_tool("product-desc", start=False)
        with self.assertRaises(KeyError):
            self.dashboard.open_tool("missing")
        self.assertIs(self.dashboard.active, active)

    async def test_sessions_share_bus(self) -> None:
        session = self.dashboard.open_tool("product-desc", start=False)
        self.assertIs(session.bus, self.dashboard.bus)
        self.assertIsNotNone(self.dashboard.bus.outbox)


if __name__ == "__main__":
    unittest.main()
