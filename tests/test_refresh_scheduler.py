import asyncio
import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from refresh_scheduler import RefreshScheduler


class BlockingFetch:
    def __init__(self) -> None:
        self.calls = 0
        self.release = asyncio.Event()
        self.entered = asyncio.Event()

    async def __call__(self) -> None:
        self.calls += 1
        self.entered.set()
        await self.release.wait()


class TestRefreshScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_trigger_while_in_flight_is_dropped(self) -> None:
        fetch = BlockingFetch()
        scheduler = RefreshScheduler(fetch)
        first = asyncio.create_task(scheduler.trigger_now())
        await fetch.entered.wait()
        self.assertTrue(scheduler.in_flight)
        self.assertFalse(await scheduler.trigger_now())
        self.assertEqual(fetch.calls, 1)
        fetch.release.set()
        self.assertTrue(await first)
        self.assertFalse(scheduler.in_flight)

    async def test_trigger_after_completion_runs_again(self) -> None:
        calls = []

        async def fetch() -> None:
            calls.append(1)

        scheduler = RefreshScheduler(fetch)
        self.assertTrue(await scheduler.trigger_now())
        self.assertTrue(await scheduler.trigger_now())
        self.assertEqual(len(calls), 2)

    async def test_periodic_tick_and_manual_trigger_are_exclusive(self) -> None:
        fetch = BlockingFetch()
        scheduler = RefreshScheduler()
        scheduler.start(60000, fetch)
        await fetch.entered.wait()
        self.assertFalse(await scheduler.trigger_now())
        self.assertEqual(fetch.calls, 1)
        scheduler.stop()
        self.assertFalse(scheduler.running)

    async def test_runs_periodically_until_stopped(self) -> None:
        calls = []

        async def fetch() -> None:
            calls.append(1)

        scheduler = RefreshScheduler()
        scheduler.start(10, fetch)
        await asyncio.sleep(0.1)
        scheduler.stop()
        seen = len(calls)
        self.assertGreaterEqual(seen, 2)
        await asyncio.sleep(0.05)
        self.assertEqual(len(calls), seen)

    async def test_tick_failure_keeps_loop_alive(self) -> None:
        calls = []

        async def fetch() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        scheduler = RefreshScheduler()
        with self.assertLogs("hub.scheduler", level="ERROR"):
            scheduler.start(10, fetch)
            await asyncio.sleep(0.08)
        self.assertTrue(scheduler.running)
        scheduler.stop()
        self.assertGreaterEqual(len(calls), 2)

    async def test_stop_cancels_in_flight_fetch(self) -> None:
        fetch = BlockingFetch()
        scheduler = RefreshScheduler()
        scheduler.start(60000, fetch)
        await fetch.entered.wait()
        scheduler.stop()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.assertFalse(scheduler.in_flight)

    async def test_invalid_arguments(self) -> None:
        scheduler = RefreshScheduler()
        with self.assertRaises(ValueError):
            scheduler.start(1000)
        with self.assertRaises(ValueError):
            await scheduler.trigger_now()

        async def fetch() -> None:
            return None

        with self.assertRaises(ValueError):
            scheduler.start(0, fetch)


if __name__ == "__main__":
    unittest.main()
