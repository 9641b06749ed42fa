"""
Community - Autonomous organizing by the neighborhoods themselves.

On each tick the community may act without the player: organized
communities do more, threatened ones rally, heavy surveillance
suppresses them. A successful step logs a morale-tiered line and nudges
power up by one (not above 90).
"""

from __future__ import annotations
from dataclasses import dataclass

from ..narrative.fallback import COMMUNITY_LINES, morale_tier
from .rng import RandomSource, chance
from .state import StateStore

MAX_ACTIVITY = 0.20
POWER_BOOST_CEILING = 90


def activity_probability(power: float, threatened_count: int, heat: float) -> float:
    activity = 0.05 + 0.001 * power + 0.02 * threatened_count
    if heat > 70:
        activity *= 0.7
    return min(MAX_ACTIVITY, activity)


@dataclass
class CommunityMove:
    acted: bool
    line: str | None = None
    power_applied: float = 0.0


class CommunityEngine:
    def __init__(self, store: StateStore, rng: RandomSource):
        self.store = store
        self.rng = rng

    def autonomous_step(self) -> CommunityMove:
        state = self.store.state
        probability = activity_probability(state.power, state.threatened_count, state.heat)
        if not chance(self.rng, probability):
            return CommunityMove(acted=False)

        line = self.rng.choice(COMMUNITY_LINES[morale_tier(state.power)])
        power = 0.0
        if state.power < POWER_BOOST_CEILING:
            power = self.store.update_power(1)
        return CommunityMove(acted=True, line=line, power_applied=power)
