"""
Tests for the economy.

Tests:
- Action pricing
- Mining gate and payout
- Collectible sales and crowdfunding
"""

import pytest

from ..engine_core.action import get_action, RejectionReason
from ..engine_core.economy import (
    EconomyEngine, collectible_tier, MIN_ACTION_PRICE,
    COLLECTIBLE_COOLDOWN_MS, CROWDFUNDING_COST,
)
from ..engine_core.state import StateStore
from .conftest import FixedRandom, POPULATION


@pytest.fixture
def economy(store, earning_cooldowns):
    return EconomyEngine(store, FixedRandom(0.5), earning_cooldowns)


class TestPricing:
    """Tests for EconomyEngine.price."""

    def test_floor_price(self, economy):
        assert economy.price(get_action("meeting")) == MIN_ACTION_PRICE
        assert economy.price(get_action("garden")) == MIN_ACTION_PRICE

    def test_emergency_discount(self, economy, store):
        assert economy.price(get_action("occupy")) == 3500
        store.select_target("market")
        assert economy.price(get_action("occupy")) == 1750
        store.select_target("oldtown")
        assert economy.price(get_action("occupy")) == 3500

    def test_heat_and_power(self, economy, store):
        store.select_target("market")
        store.update_heat(50)
        assert economy.price(get_action("occupy")) == 2187
        store.update_power(60)
        assert economy.price(get_action("occupy")) == 1968

    def test_monotonic_in_heat(self, economy, store):
        prices = []
        for _ in range(10):
            prices.append(economy.price(get_action("protest")))
            store.update_heat(10)
        assert prices == sorted(prices)
        assert all(p >= MIN_ACTION_PRICE for p in prices)

    def test_purchase(self, economy, store):
        cost = economy.purchase(get_action("meshNet"))
        assert cost == 700
        assert store.state.currency == 300
        assert store.state.actions_completed == 1
        assert store.state.infrastructure_bonus == 1

    def test_purchase_rejected_without_funds(self, economy, store):
        assert economy.purchase(get_action("occupy")) is None
        assert store.state.currency == 1000
        assert store.state.actions_completed == 0


class TestMining:
    """The mining gate is 0.01% of the population."""

    def make(self, participants):
        store = StateStore.create(
            FixedRandom(),
            participant_range=(participants, participants),
            population_range=(POPULATION, POPULATION),
        )
        return store, EconomyEngine(store, FixedRandom(0.99), None)

    def test_inactive_below_threshold(self):
        store, economy = self.make(50)
        report = economy.run_mining_cycle()
        assert not report.active
        assert report.threshold == 1000
        assert store.state.currency == 1000
        assert store.state.heat == 0

    def test_active_at_threshold(self):
        store, economy = self.make(1001)
        report = economy.run_mining_cycle()
        assert report.active
        # floor(1001^1.5 / 1000 + 149) = 180
        assert report.amount == 180
        assert store.state.currency == 1180
        assert store.state.heat == 1

    def test_infrastructure_and_heat(self):
        store, economy = self.make(1001)
        base = economy.mining_rate()
        store.add_infrastructure_bonus(2)
        assert economy.mining_rate() == 289
        store.update_heat(100)
        assert economy.mining_rate() < base

    def test_rate_is_capped(self):
        store, economy = self.make(5_000_000)
        assert economy.mining_rate() == 5000


class TestCollectibles:

    def test_tiers(self):
        assert collectible_tier(0) == (1000, (2000, 4000))
        assert collectible_tier(25) == (1000, (2000, 4000))
        assert collectible_tier(26) == (2500, (6000, 10000))
        assert collectible_tier(51) == (5000, (15000, 25000))

    def test_sale(self, economy, store):
        result = economy.sell_collectible()
        assert result.success
        assert result.cost == 1000
        assert result.reward == 3000
        assert store.state.currency == 3000
        assert store.state.heat == 8
        assert result.cooldown_ms == COLLECTIBLE_COOLDOWN_MS

    def test_sale_cooldown(self, economy, clock):
        economy.sell_collectible()
        again = economy.sell_collectible()
        assert not again.success
        assert again.reason is RejectionReason.EARNING_COOLDOWN
        clock.advance(COLLECTIBLE_COOLDOWN_MS)
        assert economy.sell_collectible().success

    def test_sale_needs_funds(self, economy, store):
        store.update_power(60)
        result = economy.sell_collectible()
        assert result.reason is RejectionReason.INSUFFICIENT_FUNDS
        assert store.state.currency == 1000
        assert store.state.heat == 0


class TestCrowdfunding:

    def test_requires_movement(self, earning_cooldowns):
        store = StateStore.create(
            FixedRandom(), participant_range=(10, 10), population_range=(POPULATION, POPULATION)
        )
        economy = EconomyEngine(store, FixedRandom(), earning_cooldowns)
        result = economy.crowdfund()
        assert result.reason is RejectionReason.MOVEMENT_TOO_SMALL

    def test_payout(self, economy, store):
        result = economy.crowdfund()
        assert result.success
        assert result.reward == 20_000
        assert store.state.currency == 1000 - CROWDFUNDING_COST + 20_000
        assert store.state.heat == 3

    def test_payout_bounds(self, economy, store):
        store.update_power(100)
        store.add_participants(1_000_000)
        assert economy.crowdfund().reward == 30_000

    def test_cooldown(self, economy):
        economy.crowdfund()
        assert economy.crowdfund().reason is RejectionReason.EARNING_COOLDOWN
