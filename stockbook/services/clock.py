"""Time sources and the debounced scheduling used for automatic backups.

The coordinator never talks to timers directly: it asks a scheduler for a cancellable
callback. ``LoopScheduler`` uses the running asyncio loop; ``ManualScheduler`` is a
virtual clock that only moves when ``advance`` is called.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass(order=True)
class _ScheduledCall:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._calls: list[_ScheduledCall] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        call = _ScheduledCall(due=self.now + max(0.0, delay), seq=next(self._seq), callback=callback)
        heapq.heappush(self._calls, call)
        return call

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._calls and self._calls[0].due <= target:
            call = heapq.heappop(self._calls)
            self.now = call.due
            if not call.cancelled:
                call.callback()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for call in self._calls if not call.cancelled)


class Debouncer:
    """Run ``action`` once ``delay`` seconds pass without another ``trigger``."""

    def __init__(self, scheduler: Scheduler, delay: float, action: Callable[[], Awaitable[None]]) -> None:
        self.scheduler = scheduler
        self.delay = delay
        self.action = action
        self._handle: TimerHandle | None = None
        self._task: asyncio.Future | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self.action()
        except Exception:
            logger.exception('Debounced action failed')

    async def wait_idle(self) -> None:
        if self._task is not None:
            await asyncio.wait({self._task})
