"""
Clocks and schedulers.

The engine reads time through a Clock (milliseconds) and schedules
deferred callbacks (cooldown expiry) through a Scheduler. Real sessions
use wall time and the running asyncio loop; tests use ManualClock, which
also acts as a scheduler that fires callbacks as time is advanced.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Protocol
import asyncio
import heapq
import itertools
import time


class Clock(Protocol):
    def now(self) -> float:
        """Current time in milliseconds."""
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle | None:
        """Run `callback` after `delay_ms`. May return None if nothing could be scheduled."""
        ...


class WallClock:
    """Milliseconds since the epoch."""

    def now(self) -> float:
        return time.time() * 1000


class LoopScheduler:
    """
    Schedules callbacks on the running asyncio loop.

    Outside a running loop nothing is scheduled; cooldown expiry is still
    enforced by comparing timestamps, the callback only tidies state.
    """

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return loop.call_later(max(0.0, delay_ms) / 1000, callback)


@dataclass(order=True)
class _Pending:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """
    A clock that only moves when told to.

    Doubles as a Scheduler: callbacks registered with call_later fire in
    due order during advance().
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[_Pending] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _Pending:
        pending = _Pending(self._now + max(0.0, delay_ms), next(self._seq), callback)
        heapq.heappush(self._queue, pending)
        return pending

    def advance(self, ms: float) -> None:
        """Move time forward, firing every callback that falls due."""
        target = self._now + ms
        while self._queue and self._queue[0].due <= target:
            pending = heapq.heappop(self._queue)
            self._now = max(self._now, pending.due)
            if not pending.cancelled:
                pending.callback()
        self._now = target

    @property
    def pending_count(self) -> int:
        return sum(1 for p in self._queue if not p.cancelled)
