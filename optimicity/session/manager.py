"""
Session Manager - Creates and tracks simulation sessions.

LIFECYCLE:
1. Client creates a session -> fresh world, engine started
2. A GameLoop drives ticks and mining while an event loop is running
3. Player actions arrive through the API service
4. The session ends on victory, defeat or timeout (state kept for display)
5. Client deletes it, or it is reaped as stale

PERSISTENCE RULES:
- Sessions live in memory only
- Restart rebuilds the world in place; nothing survives it
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
import time
import uuid

from ..config import EngineConfig, NarrativeConfig
from ..engine_core.engine import ResistanceEngine
from ..engine_core.timers import Clock, Scheduler
from ..narrative import Narrator, OllamaNarrator, Voice
from .game_loop import GameLoop

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a session as seen by the manager."""
    ACTIVE = "active"  # Simulation running
    GAME_OVER = "game_over"  # Terminal condition reached
    ABANDONED = "abandoned"  # Removed before finishing


@dataclass
class Session:
    """
    One play-through.

    Holds the engine (and through it the world) plus the loop that drives
    it. Ended sessions stay readable until they are removed.
    """
    session_id: str
    engine: ResistanceEngine
    created_at: float
    seed: int | None = None
    loop: GameLoop | None = None
    closed: bool = False

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.ABANDONED
        if self.engine.active:
            return SessionState.ACTIVE
        return SessionState.GAME_OVER

    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def ensure_loop(self) -> GameLoop | None:
        """
        Start the driving loop if an event loop is running.

        Headless callers (CLI simulate, plain unit tests) have no running
        loop and drive the engine by hand instead.
        """
        if self.loop is not None and self.loop.running:
            return self.loop
        if not self.engine.active:
            return None
        loop = self.loop or GameLoop(self.engine)
        if loop.start():
            self.loop = loop
            return loop
        return None

    def stop_loop(self) -> None:
        if self.loop is not None:
            self.loop.stop()

    def restart(self) -> None:
        """Rebuild the world from scratch and resume driving it."""
        self.stop_loop()
        self.engine.restart()
        self.ensure_loop()


def build_narrators(config: NarrativeConfig | None) -> tuple[Narrator | None, Narrator | None]:
    """(mayor, citizens) narrators; both None when narration is disabled."""
    if config is None or not config.enabled:
        return None, None
    return OllamaNarrator(Voice.MAYOR, config), OllamaNarrator(Voice.CITIZENS, config)


class SessionManager:
    """
    Manages sessions.

    Responsibilities:
    - Create sessions with their own engine and random source
    - Track sessions by ID
    - Clean up finished sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        narrative: NarrativeConfig | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ):
        self.config = config or EngineConfig()
        self.narrative = narrative
        self.clock = clock
        self.scheduler = scheduler
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        seed: int | None = None,
        mayor: Narrator | None = None,
        citizens: Narrator | None = None,
    ) -> Session:
        """
        Create and start a new session.

        Args:
            seed: Optional seed for a reproducible random source
            mayor: Narrator for the AI Mayor (default from narrative config)
            citizens: Narrator for the citizens (default from narrative config)

        Returns:
            The new Session, already running
        """
        default_mayor, default_citizens = build_narrators(self.narrative)
        engine = ResistanceEngine(
            self.config,
            seed=seed,
            clock=self.clock,
            scheduler=self.scheduler,
            mayor=mayor or default_mayor,
            citizens=citizens or default_citizens,
        )
        engine.start()

        session = Session(
            session_id=str(uuid.uuid4()),
            engine=engine,
            created_at=time.time(),
            seed=seed,
        )
        session.ensure_loop()
        self._sessions[session.session_id] = session
        logger.info("created session %s (seed=%s)", session.session_id, seed)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """
        Remove a session, stopping its loop.

        Returns False if there was no such session.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop_loop()
        session.engine.action_cooldowns.cancel_all()
        session.engine.earning_cooldowns.cancel_all()
        session.closed = True
        logger.info("ended session %s", session_id)
        return True

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def list_active_sessions(self) -> list[str]:
        """List IDs of sessions still running."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Remove finished sessions older than max_age.

        Returns the number removed.
        """
        current_time = time.time()
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds and not session.is_active()
        ]
        for session_id in to_remove:
            self.end_session(session_id)
        return len(to_remove)
