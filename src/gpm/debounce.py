# debounce.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Set

DEFAULT_DELAY = 1.0


class Debouncer:
    """
    Collapse a burst of `trigger()` calls into one callback run.

    Each trigger restarts the delay timer; the callback fires once the burst
    has been quiet for `delay` seconds. Callback runs are serialized through
    `lock`, and a run that already started is never cancelled by a later
    trigger. Anything else that touches the callback's state should hold
    `lock` too.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], delay: float = DEFAULT_DELAY):
        self.delay = delay
        self.lock = asyncio.Lock()
        self.fired = 0
        self._callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = asyncio.ensure_future(self._wait_then_fire())

    def cancel(self) -> None:
        """Drop a pending (not yet started) callback run."""
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay)
        self.fired += 1
        # separate task: a trigger arriving mid-run must not cancel it
        task = asyncio.ensure_future(self._invoke())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _invoke(self) -> None:
        async with self.lock:
            await self._callback()

    async def drain(self) -> None:
        """Wait for the pending timer (if any) and every started run."""
        while True:
            tasks = [t for t in (self._timer, *self._running) if t is not None and not t.done()]
            if not tasks:
                return
            await asyncio.wait(tasks)
