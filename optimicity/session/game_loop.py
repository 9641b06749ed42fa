"""
Game Loop - Drives a session's autonomous activity on the event loop.

Three periodic tasks share the single asyncio timeline with player
actions:
1. Tick: neighborhood timers, the Mayor's move, the community's move
2. Mining: one passive income cycle
3. Timeout: ends the session when its clock runs out

A terminal condition (from any source) stops all three.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING
import asyncio
import logging

from ..engine_core.state import SessionOutcome

if TYPE_CHECKING:
    from ..engine_core.engine import ResistanceEngine

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of the driving loop."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class GameLoop:
    """
    The periodic driver for one engine.

    Usage:
        loop = GameLoop(engine)
        loop.start()        # inside a running event loop
        ...
        loop.stop()
    """

    def __init__(self, engine: ResistanceEngine):
        self.engine = engine
        self.state = LoopState.IDLE
        self._tasks: list[asyncio.Task] = []
        self.ticks = 0
        self.mining_cycles = 0

    @property
    def running(self) -> bool:
        """Running and at least one task still alive (its event loop may have closed)."""
        return self.state is LoopState.RUNNING and any(not t.done() for t in self._tasks)

    def start(self) -> bool:
        """
        Schedule the periodic tasks on the running event loop.

        Returns False when there is no running loop or the session is over.
        """
        if self.running:
            return True
        if not self.engine.active:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        self.engine.remove_terminal_listener(self._on_terminal)
        self.engine.add_terminal_listener(self._on_terminal)
        self._tasks = [
            loop.create_task(self._tick_loop()),
            loop.create_task(self._mining_loop()),
            loop.create_task(self._timeout_watch()),
        ]
        self.state = LoopState.RUNNING
        logger.debug("game loop started")
        return True

    def stop(self) -> None:
        """Cancel every periodic task. Safe to call more than once."""
        self.engine.remove_terminal_listener(self._on_terminal)
        current = _current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._tasks = []
        if self.state is LoopState.RUNNING:
            logger.debug("game loop stopped")
        self.state = LoopState.STOPPED

    async def aclose(self) -> None:
        """Stop and wait for the tasks to unwind."""
        tasks = list(self._tasks)
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_terminal(self, outcome: SessionOutcome) -> None:
        logger.debug("terminal condition (%s); stopping loop", outcome.kind.value)
        self.stop()

    async def _tick_loop(self) -> None:
        interval = self.engine.config.tick_interval_seconds
        while self.engine.active:
            await asyncio.sleep(interval)
            if not self.engine.active:
                break
            self.engine.tick()
            self.ticks += 1

    async def _mining_loop(self) -> None:
        interval = self.engine.config.mining_interval_seconds
        while self.engine.active:
            await asyncio.sleep(interval)
            if not self.engine.active:
                break
            self.engine.mining_cycle()
            self.mining_cycles += 1

    async def _timeout_watch(self) -> None:
        while self.engine.active:
            remaining = self.engine.remaining_ms()
            if remaining <= 0:
                self.engine.check_timeout()
                break
            await asyncio.sleep(remaining / 1000)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
