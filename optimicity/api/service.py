"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine calls
2. Manages sessions
3. Formats engine results as response schemas

This layer is framework-agnostic (can be used with FastAPI, a CLI, tests).
Unknown sessions come back as ErrorResponse; game rejections come back
as normal responses with success=false.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..engine_core.action import ACTION_CATALOG, ActionResult, EarningResult
from ..engine_core.events import EventLog
from ..session import SessionManager, Session
from .schemas import (
    # Requests
    CreateSessionRequest,
    SelectTargetRequest,
    ActionRequest,
    # Responses
    SessionResponse,
    GameStateResponse,
    TargetResponse,
    ActionResponse,
    EarningResponse,
    CooldownsResponse,
    LogResponse,
    ActionCatalogResponse,
    ErrorResponse,
    # Shared
    TargetInfo,
    OutcomeInfo,
    CasualtiesInfo,
    LogEntryInfo,
    ActionInfo,
    # Enums
    ErrorCode,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def _not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Session not found: {session_id}",
        error_code=ErrorCode.SESSION_NOT_FOUND,
        details={"session_id": session_id},
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        session = service.create_session(CreateSessionRequest(seed=7))
        service.select_target(session.session_id, SelectTargetRequest(target_id="market"))
        result = await service.perform_action(session.session_id, ActionRequest(action="meeting"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest | None = None) -> SessionResponse:
        request = request or CreateSessionRequest()
        session = self.session_manager.create_session(seed=request.seed)
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        return self._session_to_response(session)

    def end_session(self, session_id: str) -> bool:
        return self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        return [s.session_id for s in self.session_manager.list_sessions()]

    def restart_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        session.restart()
        logger.info("restarted session %s", session_id)
        return self._session_to_response(session)

    def get_event_log(self, session_id: str) -> EventLog | None:
        session = self.session_manager.get_session(session_id)
        return session.engine.log if session else None

    # =========================================================================
    # Game state
    # =========================================================================

    def get_game_state(self, session_id: str) -> GameStateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        return self._state_to_response(session)

    def get_cooldowns(self, session_id: str) -> CooldownsResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        engine = session.engine
        return CooldownsResponse(
            session_id=session_id,
            global_remaining_ms=engine.global_cooldown_remaining(),
            actions=engine.action_cooldowns.active_keys(),
            earnings=engine.earning_cooldowns.active_keys(),
        )

    def get_log(self, session_id: str, since: int = 0) -> LogResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        return LogResponse(
            session_id=session_id,
            entries=[
                LogEntryInfo(seq=e.seq, category=e.category.value, text=e.text,
                             timestamp=e.timestamp)
                for e in session.engine.log.entries(since=since)
            ],
        )

    def list_actions(self, session_id: str | None = None) -> ActionCatalogResponse | ErrorResponse:
        """The action catalog, priced for a session when one is given."""
        session = None
        if session_id is not None:
            session = self.session_manager.get_session(session_id)
            if not session:
                return _not_found(session_id)
        return ActionCatalogResponse(actions=[
            ActionInfo(
                kind=d.kind,
                description=d.description,
                power_range=d.power,
                heat_range=d.heat,
                base_cost=d.base_cost,
                price=session.engine.action_price(d.kind) if session else None,
                classes=sorted(c.value for c in d.classes),
                requires_threatened_target=d.requires_threatened_target,
                min_power=d.min_power,
            )
            for d in ACTION_CATALOG.values()
        ])

    # =========================================================================
    # Player input
    # =========================================================================

    def select_target(
        self,
        session_id: str,
        request: SelectTargetRequest,
    ) -> TargetResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        result = session.engine.select_target(request.target_id)
        return TargetResponse(
            session_id=session_id,
            success=result.success,
            selected_target=session.engine.state.selected_target,
            error_code=result.reason.value if result.reason else None,
            message=result.message,
        )

    async def perform_action(
        self,
        session_id: str,
        request: ActionRequest,
    ) -> ActionResponse | ErrorResponse:
        """
        Run a player action through both of its phases.

        The response is sent after the Mayor's notice resolution, so it
        reports whether heat was applied.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        session.ensure_loop()
        result = await session.engine.perform_action(request.action, request.target_id)
        return self._action_to_response(session, result)

    def sell_collectible(self, session_id: str) -> EarningResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        return self._earning_to_response(session, session.engine.sell_collectible())

    def crowdfund(self, session_id: str) -> EarningResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return _not_found(session_id)
        return self._earning_to_response(session, session.engine.crowdfund())

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def _session_to_response(self, session: Session) -> SessionResponse:
        return SessionResponse(
            session_id=session.session_id,
            status=SessionStatus(session.state.value),
            seed=session.seed,
            created_at=session.created_at,
            state=self._state_to_response(session),
        )

    def _state_to_response(self, session: Session) -> GameStateResponse:
        engine = session.engine
        state = engine.snapshot()
        outcome = None
        if state.outcome is not None:
            outcome = OutcomeInfo(kind=state.outcome.kind.value, message=state.outcome.message)
        return GameStateResponse(
            session_id=session.session_id,
            status=SessionStatus(session.state.value),
            phase=state.phase.value,
            remaining_ms=engine.remaining_ms(),
            power=state.power,
            heat=state.heat,
            min_heat=state.min_heat,
            active_participants=state.active_participants,
            total_population=state.total_population,
            imprisoned=state.imprisoned,
            killed=state.killed,
            participation_ratio=state.participation_ratio,
            currency=state.currency,
            infrastructure_bonus=state.infrastructure_bonus,
            actions_completed=state.actions_completed,
            mining_threshold=engine.economy.movement_threshold(),
            mining_active=engine.economy.movement_established(),
            selected_target=state.selected_target,
            targets=[TargetInfo.model_validate(t) for t in state.targets],
            outcome=outcome,
        )

    def _action_to_response(self, session: Session, result: ActionResult) -> ActionResponse:
        return ActionResponse(
            session_id=session.session_id,
            success=result.success,
            action=result.action_kind,
            target_id=result.target_id,
            error_code=result.reason.value if result.reason else None,
            message=result.message,
            cost=result.cost,
            power_gain=result.power_gain,
            heat_gain=result.heat_gain,
            cooldown_ms=result.cooldown_ms,
            risk_tier=result.risk_tier,
            casualties=CasualtiesInfo.model_validate(result.casualties),
            recruited=result.recruited,
            liberated=result.liberated,
            noticed=result.noticed,
            heat_applied=result.heat_applied,
            mayor_response=result.mayor_response,
            citizen_response=result.citizen_response,
            state=self._state_to_response(session),
        )

    def _earning_to_response(self, session: Session, result: EarningResult) -> EarningResponse:
        return EarningResponse(
            session_id=session.session_id,
            success=result.success,
            kind=result.kind.value,
            error_code=result.reason.value if result.reason else None,
            message=result.message,
            cost=result.cost,
            reward=result.reward,
            heat_applied=result.heat_applied,
            cooldown_ms=result.cooldown_ms,
            state=self._state_to_response(session),
        )
