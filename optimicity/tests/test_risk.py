"""
Tests for the risk engine.

Tests:
- Tier boundaries
- Trigger probabilities
- Casualty scaling by size, heat, exposure
"""

import pytest

from ..engine_core.action import get_action
from ..engine_core.risk import (
    RiskEngine, RiskTier, classify, size_factor, heat_factor, projected_heat,
)
from .conftest import FixedRandom


class TestClassify:
    """Tiers are right-open at 25, 50 and 75."""

    @pytest.mark.parametrize("heat,tier", [
        (0, RiskTier.LOW),
        (24, RiskTier.LOW),
        (25, RiskTier.MEDIUM),
        (49, RiskTier.MEDIUM),
        (50, RiskTier.HIGH),
        (74, RiskTier.HIGH),
        (75, RiskTier.EXTREME),
        (100, RiskTier.EXTREME),
    ])
    def test_boundaries(self, heat, tier):
        assert classify(heat) is tier

    def test_projection_includes_gain(self):
        assert classify(projected_heat(20, 6)) is RiskTier.MEDIUM
        assert projected_heat(90, 25) == 100


class TestFactors:

    @pytest.mark.parametrize("participants,factor", [
        (0, 0.1), (99, 0.1), (100, 0.3), (999, 0.3), (1000, 0.5), (5_000_000, 0.5),
    ])
    def test_size_factor(self, participants, factor):
        assert size_factor(participants) == factor

    def test_heat_factor_floor(self):
        assert heat_factor(10) == 0.5
        assert heat_factor(80) == 0.8


class TestAssess:
    """Tests for RiskEngine.assess."""

    def test_low_tier_rarely_triggers(self):
        engine = RiskEngine(FixedRandom(0.06))
        result = engine.assess(get_action("meeting"), heat=0, heat_gain=3, active_participants=500)
        assert result.tier is RiskTier.LOW
        assert not result.triggered
        assert result.casualties.total == 0

    def test_high_triggers_where_medium_does_not(self):
        engine = RiskEngine(FixedRandom(0.5))
        medium = engine.assess(get_action("streetArt"), heat=30, heat_gain=4, active_participants=500)
        high = engine.assess(get_action("streetArt"), heat=55, heat_gain=4, active_participants=500)
        assert medium.tier is RiskTier.MEDIUM and not medium.triggered
        assert high.tier is RiskTier.HIGH and high.triggered

    def test_extreme_direct_action(self):
        """Heat 80, 500 participants, direct action: arrests and a death."""
        engine = RiskEngine(FixedRandom(0.5))
        result = engine.assess(get_action("occupy"), heat=80, heat_gain=15, active_participants=500)
        assert result.tier is RiskTier.EXTREME
        assert result.triggered
        # imprisoned: floor(10.5 * 0.3 * 0.8) = 2
        # killed: floor(4 * 0.3 * 0.8) + floor(2 * 0.8) = 0 + 1
        assert result.casualties.imprisoned == 2
        assert result.casualties.killed == 1

    def test_low_risk_actions_are_softened(self):
        engine = RiskEngine(FixedRandom(0.5))
        garden = engine.roll_casualties(RiskTier.EXTREME, get_action("garden"), 80, 5000)
        street_art = engine.roll_casualties(RiskTier.EXTREME, get_action("streetArt"), 80, 5000)
        assert garden.total == 0
        assert street_art.imprisoned == 4
        assert street_art.killed == 1

    def test_direct_action_adds_deaths_at_high(self):
        engine = RiskEngine(FixedRandom(0.5))
        protest = engine.roll_casualties(RiskTier.HIGH, get_action("protest"), 60, 50)
        street_art = engine.roll_casualties(RiskTier.HIGH, get_action("streetArt"), 60, 50)
        assert protest.killed == street_art.killed + 2

    def test_bigger_movement_rolls_worse(self):
        engine = RiskEngine(FixedRandom(0.5))
        small = engine.roll_casualties(RiskTier.EXTREME, get_action("occupy"), 90, 50)
        large = engine.roll_casualties(RiskTier.EXTREME, get_action("occupy"), 90, 50_000)
        assert large.imprisoned > small.imprisoned
