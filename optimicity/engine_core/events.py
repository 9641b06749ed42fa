"""
Event Log - The player-facing stream of short, tagged messages.

This is what the presentation layer shows as the game log. It is not
diagnostic logging (that goes through the logging module).
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class LogCategory(str, Enum):
    PLAYER = "player"
    SYSTEM = "system"
    AI = "ai"
    CITIZEN = "citizen"


@dataclass(frozen=True)
class LogEntry:
    seq: int
    category: LogCategory
    text: str
    timestamp: float


Listener = Callable[[LogEntry], None]


class EventLog:
    """Bounded log with optional listeners (e.g. a WebSocket broadcaster)."""

    def __init__(self, capacity: int = 200, clock: Callable[[], float] | None = None):
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._listeners: list[Listener] = []
        self._clock = clock or (lambda: 0.0)
        self._seq = 0

    def add(self, text: str, category: LogCategory = LogCategory.SYSTEM) -> LogEntry:
        self._seq += 1
        entry = LogEntry(self._seq, category, text, self._clock())
        self._entries.append(entry)
        logger.debug("[%s] %s", category.value, text)
        for listener in list(self._listeners):
            listener(entry)
        return entry

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def entries(self, since: int = 0, category: LogCategory | None = None) -> list[LogEntry]:
        """Entries with seq greater than `since`, optionally of one category."""
        return [
            e for e in self._entries
            if e.seq > since and (category is None or e.category == category)
        ]

    def texts(self, category: LogCategory | None = None) -> list[str]:
        return [e.text for e in self.entries(category=category)]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
