"""Recurring batch-flush timer.

Pure asyncio, no framework dependencies.
"""

import asyncio
import sys
from typing import Awaitable, Callable, Optional


def _log(msg: str):
    print(msg, file=sys.stderr)


class BatchScheduler:
    """Runs ``tick`` once every ``interval_seconds`` until stopped.

    The scheduler owns its task handle; stop() is the only teardown. A failing
    tick is logged and the loop keeps going.
    """

    def __init__(self, tick: Callable[[], Awaitable[object]], interval_seconds: float):
        self._tick = tick
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start the loop on the running event loop. Returns False if already running."""
        if self.running:
            return False
        self._task = asyncio.create_task(self._loop())
        return True

    async def stop(self):
        if not self._task:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _loop(self):
        _log(f"[scheduler] batch loop started (every {self.interval_seconds / 60:g} min)")
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self._tick()
            except Exception as e:
                _log(f"[scheduler] batch tick error: {e}")
