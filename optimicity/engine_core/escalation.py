"""
Escalation Controller - How the AI Mayor notices and pushes back.

Detection: every player action gets a notice roll. The base probability
rises with heat; stealth actions are harder to spot (x0.7, capped at
0.50) and loud ones easier (x1.5, capped at 1.0). An action's heat is
applied only if it is noticed.

Notice resolution is a genuine suspension point: it awaits the Mayor's
narrator, and other events may run before it completes.

Autonomous aggression: on each tick the Mayor may act on its own,
either escalating (heat, arrests, deaths, faster gentrification) or
running routine optimization.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import asyncio
import logging
import math

from ..narrative.base import Narrator, NarrativeContext, SilentNarrator
from ..narrative.fallback import mayor_fallback, ESCALATION_LINES, ROUTINE_LINES
from .action import ActionDefinition, ActionClass
from .rng import RandomSource, chance
from .state import StateStore

logger = logging.getLogger(__name__)

STEALTH_MULTIPLIER = 0.7
STEALTH_CAP = 0.50
LOUD_MULTIPLIER = 1.5
LOUD_CAP = 1.0

ESCALATION_HEAT = 3
BASE_AGGRESSION = 0.30
MAX_AGGRESSION = 0.80


def base_notice_probability(heat: float) -> float:
    if heat < 20:
        return 0.10
    if heat < 40:
        return 0.30
    if heat < 70:
        return 0.60
    return 0.90


def notice_probability(action: ActionDefinition, heat: float) -> float:
    probability = base_notice_probability(heat)
    if action.has(ActionClass.STEALTH):
        return min(STEALTH_CAP, probability * STEALTH_MULTIPLIER)
    if action.has(ActionClass.LOUD):
        return min(LOUD_CAP, probability * LOUD_MULTIPLIER)
    return probability


def aggression_probability(power: float, liberated_count: int, heat: float) -> float:
    probability = BASE_AGGRESSION + 0.005 * power + 0.10 * liberated_count
    if heat > 50:
        probability += 0.01 * (heat - 50)
    return max(0.0, min(MAX_AGGRESSION, probability))


@dataclass
class NoticeOutcome:
    noticed: bool
    probability: float
    response: str | None = None


class MayorMoveKind(Enum):
    NONE = "none"
    ESCALATION = "escalation"
    ROUTINE = "routine"


@dataclass
class MayorMove:
    """What the Mayor did on an autonomous tick."""
    kind: MayorMoveKind
    probability: float
    line: str | None = None
    heat_applied: float = 0.0
    arrests: int = 0
    deaths: int = 0
    timers_shortened: int = 0


class EscalationController:
    def __init__(
        self,
        store: StateStore,
        rng: RandomSource,
        narrator: Narrator | None = None,
        narrator_timeout: float = 10.0,
        timer_cut: float = 8.0,
        timer_floor: float = 1.0,
    ):
        self.store = store
        self.rng = rng
        self.narrator = narrator or SilentNarrator()
        self.narrator_timeout = narrator_timeout
        self.timer_cut = timer_cut
        self.timer_floor = timer_floor

    # =========================================================================
    # Detection
    # =========================================================================

    def roll_notice(self, action: ActionDefinition) -> NoticeOutcome:
        probability = notice_probability(action, self.store.state.heat)
        return NoticeOutcome(noticed=chance(self.rng, probability), probability=probability)

    async def resolve_notice(
        self,
        action: ActionDefinition,
        target_name: str,
        context: NarrativeContext,
    ) -> NoticeOutcome:
        """
        Decide whether the Mayor noticed `action` and, if so, what it said.

        The narrator is only consulted for noticed actions. Whatever goes
        wrong with it, a deterministic fallback line is used instead.
        """
        outcome = self.roll_notice(action)
        if not outcome.noticed:
            logger.debug("%s went unnoticed (p=%.2f)", action.kind, outcome.probability)
            return outcome

        response = None
        try:
            response = await asyncio.wait_for(
                self.narrator.respond(action.description, target_name, action.kind, context),
                timeout=self.narrator_timeout,
            )
        except Exception:
            logger.warning("Mayor narrator failed; using fallback", exc_info=True)

        if not response:
            response = mayor_fallback(action.description, target_name, self.store.state.heat)
        outcome.response = response
        return outcome

    # =========================================================================
    # Autonomous aggression
    # =========================================================================

    def current_aggression(self) -> float:
        state = self.store.state
        return aggression_probability(state.power, state.liberated_count, state.heat)

    def autonomous_step(self) -> MayorMove:
        """One autonomous tick of the Mayor."""
        probability = self.current_aggression()
        if not chance(self.rng, probability):
            return MayorMove(kind=MayorMoveKind.NONE, probability=probability)

        if chance(self.rng, self.store.state.heat / 100):
            return self._escalate(probability)
        return self._routine(probability)

    def _escalate(self, probability: float) -> MayorMove:
        store = self.store
        state = store.state
        line = self.rng.choice(ESCALATION_LINES)
        heat = store.update_heat(ESCALATION_HEAT)

        participant_scale = max(0.1, state.active_participants / 1000)
        heat_scale = max(1.0, state.heat / 40)
        arrests = math.floor(self.rng.uniform(1, 5) * participant_scale * heat_scale)
        deaths = math.floor(self.rng.uniform(0, 2) * participant_scale * heat_scale)
        arrests = store.record_arrests(arrests)
        deaths = store.record_deaths(deaths)

        shortened = 0
        for target in state.targets:
            if target.threatened:
                store.shorten_timer(target.id, self.timer_cut, self.timer_floor)
                shortened += 1

        logger.info(
            "Mayor escalation: heat %+.1f, %d arrests, %d deaths, %d timers cut",
            heat, arrests, deaths, shortened,
        )
        return MayorMove(
            kind=MayorMoveKind.ESCALATION, probability=probability, line=line,
            heat_applied=heat, arrests=arrests, deaths=deaths, timers_shortened=shortened,
        )

    def _routine(self, probability: float) -> MayorMove:
        state = self.store.state
        line = self.rng.choice(ROUTINE_LINES)
        arrests = 0
        if state.heat > 50:
            population_scale = max(1.0, state.total_population / 8_000_000)
            arrests = self.store.record_arrests(
                math.floor(self.rng.uniform(0, 3) * population_scale)
            )
        return MayorMove(
            kind=MayorMoveKind.ROUTINE, probability=probability, line=line, arrests=arrests,
        )
