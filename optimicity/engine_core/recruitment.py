"""
Recruitment Engine - Organic growth of the active movement.

Growth is network-driven (existing participants recruit their contacts)
and slows as the movement approaches a realistic ceiling of a quarter of
the population. Safety, morale and the kind of action all shape it.
"""

from __future__ import annotations
import math

from .action import ActionDefinition, ActionClass
from .rng import RandomSource

REALISTIC_CEILING = 0.25
CRITICAL_MASS_RATIO = 0.001
MIN_GAIN = 50
MAX_GAIN_SHARE = 0.05

ACTION_MULTIPLIERS = (
    (ActionClass.MOBILIZING, 1.5),
    (ActionClass.ORGANIZING, 1.2),
    (ActionClass.CULTURAL, 0.8),
)


def action_multiplier(action: ActionDefinition) -> float | None:
    """Strongest recruiting class of the action, or None if it doesn't recruit."""
    for action_class, multiplier in ACTION_MULTIPLIERS:
        if action.has(action_class):
            return multiplier
    return None


def safety_bonus(heat: float) -> float:
    if heat < 40:
        return 1.5
    if heat < 70:
        return 1.0
    return 0.5


class RecruitmentEngine:
    def __init__(self, rng: RandomSource):
        self.rng = rng

    def growth(
        self,
        action: ActionDefinition,
        active_participants: int,
        total_population: int,
        heat: float,
        power: float,
    ) -> int:
        """
        New participants gained from `action`.

        Clamped to [50, 5% of the not-yet-active population]; when that
        share is below 50 the share wins. Zero for non-recruiting actions.
        """
        multiplier = action_multiplier(action)
        if multiplier is None or total_population <= 0:
            return 0

        ratio = active_participants / total_population
        base = self.rng.uniform(100, 200)
        network = max(0, active_participants) ** 0.85
        saturation = max(0.0, 1 - ratio / REALISTIC_CEILING)
        critical_mass = 5 if ratio > CRITICAL_MASS_RATIO else 1
        morale = 1 + power / 50

        gain = math.floor(
            base + network * saturation * critical_mass
            * safety_bonus(heat) * morale * multiplier
        )

        cap = math.floor(MAX_GAIN_SHARE * (total_population - active_participants))
        return max(0, min(cap, max(MIN_GAIN, gain)))
