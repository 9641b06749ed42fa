"""
Victory Evaluator - Terminal conditions.

Checked after every state-affecting event:
- Victory: power reaches 80, or every target is liberated (>= 60)
- Defeat: heat reaches 95
When the session clock runs out the ending is neutral, and its tone
depends on whether the movement held at least 50 power.
"""

from __future__ import annotations

from .state import WorldState, SessionOutcome, OutcomeKind, LIBERATION_THRESHOLD

POWER_VICTORY = 80
HEAT_DEFEAT = 95
TIMEOUT_POWER_LINE = 50


class VictoryEvaluator:
    """Stateless checks over a WorldState."""

    def evaluate(self, state: WorldState) -> SessionOutcome | None:
        if state.power >= POWER_VICTORY:
            return SessionOutcome(
                OutcomeKind.VICTORY,
                "Community power reached critical mass! Participatory democracy established.",
            )
        if state.targets and all(t.resistance >= LIBERATION_THRESHOLD for t in state.targets):
            return SessionOutcome(
                OutcomeKind.VICTORY,
                "All neighborhoods liberated! The AI Mayor has been overthrown.",
            )
        if state.heat >= HEAT_DEFEAT:
            return SessionOutcome(
                OutcomeKind.DEFEAT,
                "Surveillance state fully implemented. The resistance has been crushed.",
            )
        return None

    def timeout(self, state: WorldState) -> SessionOutcome:
        if state.power >= TIMEOUT_POWER_LINE:
            message = "Time's up! The resistance continues, but the struggle is far from over."
        else:
            message = "Time's up! The AI Mayor's optimization proceeded unchallenged."
        return SessionOutcome(OutcomeKind.TIMEOUT, message)
