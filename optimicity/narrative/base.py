"""
Narrator interface - the engine's view of the narrative collaborator.

A narrator turns (action description, target name, action kind) into a
short display string, or NO_RESPONSE. It may be slow (an LLM call), so
it is awaited; the engine treats any failure as "use the local fallback".
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

NO_RESPONSE = None


class Voice(str, Enum):
    """Who is speaking."""
    MAYOR = "mayor"
    CITIZENS = "citizens"


@dataclass(frozen=True)
class NarrativeContext:
    """Read-only slice of the world a narrator may use for flavor."""
    heat: float
    power: float
    active_participants: int
    liberated_count: int


class Narrator(ABC):
    """Base class for narrative collaborators."""

    @abstractmethod
    async def respond(
        self,
        action_description: str,
        target_name: str,
        action_kind: str,
        context: NarrativeContext,
    ) -> str | None:
        """Return a display string, or NO_RESPONSE."""
        pass


class SilentNarrator(Narrator):
    """Default collaborator: never says anything."""

    async def respond(
        self,
        action_description: str,
        target_name: str,
        action_kind: str,
        context: NarrativeContext,
    ) -> str | None:
        return NO_RESPONSE
