"""
Session Module - Manages in-memory simulation sessions.

A session represents one play-through:
- Created when a client starts a game
- Owns one ResistanceEngine and its world
- Driven by a GameLoop while an event loop is running
- Removed when the client is done with it

Sessions are EPHEMERAL: nothing is persisted.
"""

from .manager import SessionManager, Session, SessionState, build_narrators
from .game_loop import GameLoop, LoopState

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "build_narrators",
    "GameLoop",
    "LoopState",
]
