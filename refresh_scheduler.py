"""Periodic and on-demand record refreshes with a single in-flight slot."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("hub.scheduler")

DEFAULT_INTERVAL_MS = 10000

FetchFn = Callable[[], Awaitable[object]]


class RefreshScheduler:
    def __init__(self, fetch_fn: FetchFn | None = None, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        self._fetch_fn = fetch_fn
        self._interval_ms = interval_ms
        self._task: asyncio.Task | None = None
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def start(self, interval_ms: int | None = None, fetch_fn: FetchFn | None = None) -> None:
        """Fetch now, then once per interval. Must be called from a running loop."""
        if fetch_fn is not None:
            self._fetch_fn = fetch_fn
        if interval_ms is not None:
            self._interval_ms = interval_ms
        if self._fetch_fn is None:
            raise ValueError("fetch_fn is required")
        if self._interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.debug("scheduler_started interval_ms=%s", self._interval_ms)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("scheduler_stopped")

    async def trigger_now(self) -> bool:
        """Run one fetch unless one is already in flight; dropped triggers return False."""
        if self._fetch_fn is None:
            raise ValueError("fetch_fn is required")
        if self._in_flight:
            logger.info("refresh_trigger_dropped reason=in_flight")
            return False
        self._in_flight = True
        try:
            await self._fetch_fn()
        finally:
            self._in_flight = False
        return True

    async def _tick(self) -> None:
        if self._in_flight:
            logger.debug("refresh_tick_skipped reason=in_flight")
            return
        self._in_flight = True
        try:
            await self._fetch_fn()
        except Exception:
            logger.exception("refresh_tick_failed")
        finally:
            self._in_flight = False

    async def _loop(self) -> None:
        while True:
            await self._tick()
            await asyncio.sleep(self._interval_ms / 1000)
