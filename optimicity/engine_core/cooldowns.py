"""
Cooldowns - Per-key cooldown tables and the global anti-spam gate.

Per-(action, target) cooldowns scale with how intense the action was:
base 500ms, up to +150s from heat, up to +30s from power, capped at
three minutes. Earning kinds use the same mechanism with fixed durations.
The global cooldown is a single timestamp: a fixed window after the last
successful player action, whatever it was.
"""

from __future__ import annotations
from typing import Callable
import logging

from .state import StateStore, CooldownTable
from .timers import Clock, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

BASE_COOLDOWN_MS = 500
HEAT_COOLDOWN_MS = 150_000
POWER_COOLDOWN_MS = 30_000
MAX_COOLDOWN_MS = 180_000
GLOBAL_COOLDOWN_MS = 3000


def action_cooldown_duration(heat_gain: float, power_gain: float) -> float:
    """Cooldown in ms for an action that rolled these gains."""
    raw = (
        BASE_COOLDOWN_MS
        + heat_gain / 25 * HEAT_COOLDOWN_MS
        + power_gain / 12 * POWER_COOLDOWN_MS
    )
    return max(BASE_COOLDOWN_MS, min(MAX_COOLDOWN_MS, raw))


class CooldownManager:
    """
    Cooldowns for one table (actions or earnings) of a session.

    Expiry timestamps live in WorldState; an expiry timer is scheduled to
    clear each key when its duration elapses. Queries also compare against
    the clock, so an expired key never blocks even if its timer has not
    fired yet.
    """

    def __init__(
        self,
        store: StateStore,
        table: CooldownTable,
        clock: Clock,
        scheduler: Scheduler,
        on_expire: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.table = table
        self.clock = clock
        self.scheduler = scheduler
        self.on_expire = on_expire
        self._timers: dict[str, TimerHandle] = {}

    def is_on_cooldown(self, key: str) -> bool:
        return self.remaining(key) > 0

    def remaining(self, key: str) -> float:
        expiry = self.store.get_cooldown(self.table, key)
        if expiry is None:
            return 0.0
        return max(0.0, expiry - self.clock.now())

    def set(self, key: str, duration_ms: float) -> None:
        """Start (or restart) a cooldown and schedule its automatic clear."""
        self._cancel_timer(key)
        self.store.set_cooldown(self.table, key, self.clock.now() + duration_ms)
        handle = self.scheduler.call_later(duration_ms, lambda: self._expire(key))
        if handle is not None:
            self._timers[key] = handle
        logger.debug("%s cooldown set: %s for %.0fms", self.table.value, key, duration_ms)

    def clear(self, key: str) -> None:
        self._cancel_timer(key)
        self.store.clear_cooldown(self.table, key)

    def cancel_all(self) -> None:
        """Stop every pending expiry timer (session over)."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def active_keys(self) -> dict[str, float]:
        """Keys still cooling down, with remaining ms."""
        table = (
            self.store.state.action_cooldowns
            if self.table is CooldownTable.ACTION
            else self.store.state.earning_cooldowns
        )
        result = {}
        for key in list(table):
            left = self.remaining(key)
            if left > 0:
                result[key] = left
        return result

    def _expire(self, key: str) -> None:
        self._timers.pop(key, None)
        self.store.clear_cooldown(self.table, key)
        if self.on_expire:
            self.on_expire(key)

    def _cancel_timer(self, key: str) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()


class GlobalCooldown:
    """Fixed window measured from WorldState.last_action_time."""

    def __init__(self, store: StateStore, clock: Clock, duration_ms: float = GLOBAL_COOLDOWN_MS):
        self.store = store
        self.clock = clock
        self.duration_ms = duration_ms

    def is_on_cooldown(self) -> bool:
        return self.remaining() > 0

    def remaining(self) -> float:
        last = self.store.state.last_action_time
        if last is None:
            return 0.0
        return max(0.0, last + self.duration_ms - self.clock.now())

    def set(self) -> None:
        self.store.mark_action_time(self.clock.now())
