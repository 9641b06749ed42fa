"""
Risk Engine - Risk tiers and casualty rolls.

The tier comes from projected heat (current heat plus what the action
would add). Each tier has a trigger probability; when the trigger draw
hits, a casualty roll decides how many participants are arrested or
killed. Larger movements, hotter cities and direct confrontation all
make the roll worse; low-exposure actions soften it.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
import math

from .action import ActionDefinition, ActionClass, Casualties
from .rng import RandomSource, chance

logger = logging.getLogger(__name__)


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


TRIGGER_PROBABILITY = {
    RiskTier.LOW: 0.05,
    RiskTier.MEDIUM: 0.25,
    RiskTier.HIGH: 0.55,
    RiskTier.EXTREME: 0.75,
}

LOW_RISK_MULTIPLIER = 0.1


def classify(projected_heat: float) -> RiskTier:
    """Right-open tiers: exactly 25 is medium, exactly 75 is extreme."""
    if projected_heat < 25:
        return RiskTier.LOW
    if projected_heat < 50:
        return RiskTier.MEDIUM
    if projected_heat < 75:
        return RiskTier.HIGH
    return RiskTier.EXTREME


def projected_heat(heat: float, heat_gain: float) -> float:
    return min(100.0, heat + heat_gain)


def size_factor(active_participants: int) -> float:
    if active_participants < 100:
        return 0.1
    if active_participants < 1000:
        return 0.3
    return 0.5


def heat_factor(heat: float) -> float:
    return max(0.5, heat / 100)


@dataclass
class RiskAssessment:
    tier: RiskTier
    triggered: bool
    casualties: Casualties


class RiskEngine:
    """
    Computes risk and rolls casualties for a single action.

    Stateless apart from the injected random source.
    """

    def __init__(self, rng: RandomSource):
        self.rng = rng

    def assess(
        self,
        action: ActionDefinition,
        heat: float,
        heat_gain: float,
        active_participants: int,
    ) -> RiskAssessment:
        """Classify the action's risk and, if the trigger draw hits, roll casualties."""
        tier = classify(projected_heat(heat, heat_gain))
        triggered = chance(self.rng, TRIGGER_PROBABILITY[tier])
        casualties = Casualties()
        if triggered:
            casualties = self.roll_casualties(tier, action, heat, active_participants)
        logger.debug(
            "risk %s for %s (triggered=%s, casualties=%s)",
            tier.value, action.kind, triggered, casualties,
        )
        return RiskAssessment(tier=tier, triggered=triggered, casualties=casualties)

    def roll_casualties(
        self,
        tier: RiskTier,
        action: ActionDefinition,
        heat: float,
        active_participants: int,
    ) -> Casualties:
        rng = self.rng
        direct = action.has(ActionClass.DIRECT)
        size = size_factor(active_participants)
        low_risk = LOW_RISK_MULTIPLIER if action.has(ActionClass.LOW_RISK) else 1.0
        hf = heat_factor(heat)

        def scaled(low: float, high: float, *factors: float) -> int:
            value = rng.uniform(low, high)
            for factor in factors:
                value *= factor
            return math.floor(value)

        imprisoned = 0
        killed = 0

        if tier is RiskTier.LOW:
            imprisoned = scaled(1, 2, size, low_risk)
            if direct and chance(rng, 0.05):
                killed = 1
        elif tier is RiskTier.MEDIUM:
            imprisoned = scaled(2, 6, size, low_risk)
            if direct and chance(rng, 0.15):
                killed = rng.randint(1, 2)
        elif tier is RiskTier.HIGH:
            imprisoned = scaled(3, 10, size, hf, low_risk)
            killed = scaled(1, 3, size, hf, low_risk)
            if direct:
                killed += rng.randint(1, 2)
        else:
            imprisoned = scaled(5, 16, size, hf, low_risk)
            killed = scaled(2, 6, size, hf, low_risk)
            if direct:
                killed += scaled(1, 3, hf)

        return Casualties(imprisoned=max(0, imprisoned), killed=max(0, killed))
