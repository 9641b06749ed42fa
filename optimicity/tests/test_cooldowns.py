"""
Tests for cooldowns.

Tests:
- Duration formula and cap
- Per-key expiry on the clock
- Global anti-spam window
"""

import pytest

from ..engine_core.cooldowns import (
    CooldownManager, GlobalCooldown, action_cooldown_duration,
    BASE_COOLDOWN_MS, MAX_COOLDOWN_MS,
)
from ..engine_core.state import CooldownTable


class TestDuration:
    """Tests for action_cooldown_duration."""

    def test_floor(self):
        assert action_cooldown_duration(0, 0) == BASE_COOLDOWN_MS

    def test_scales_with_gains(self):
        assert action_cooldown_duration(3, 5) == pytest.approx(31_000)

    def test_capped_at_three_minutes(self):
        assert action_cooldown_duration(25, 12) == MAX_COOLDOWN_MS

    def test_heat_weighs_more_than_power(self):
        assert action_cooldown_duration(10, 0) > action_cooldown_duration(0, 10)


# Catalog gains run to 25 heat and 12 power; the sweep goes past both.
HEAT_GAINS = range(0, 41)
POWER_GAINS = range(0, 21)


class TestDurationSweep:
    """Bounds and ordering over the whole range of rolled gains."""

    @pytest.mark.parametrize("power_gain", POWER_GAINS)
    def test_non_decreasing_in_heat(self, power_gain):
        durations = [action_cooldown_duration(h, power_gain) for h in HEAT_GAINS]
        assert all(BASE_COOLDOWN_MS <= d <= MAX_COOLDOWN_MS for d in durations)
        assert durations == sorted(durations)

    @pytest.mark.parametrize("heat_gain", HEAT_GAINS)
    def test_non_decreasing_in_power(self, heat_gain):
        durations = [action_cooldown_duration(heat_gain, p) for p in POWER_GAINS]
        assert all(BASE_COOLDOWN_MS <= d <= MAX_COOLDOWN_MS for d in durations)
        assert durations == sorted(durations)

    def test_cap_reached_and_held(self):
        assert action_cooldown_duration(40, 0) == MAX_COOLDOWN_MS
        assert action_cooldown_duration(40, 20) == MAX_COOLDOWN_MS


class TestCooldownManager:
    """Tests for per-key cooldowns."""

    @pytest.fixture
    def manager(self, store, clock):
        return CooldownManager(store, CooldownTable.ACTION, clock, clock)

    def test_blocks_until_expiry(self, manager, clock):
        manager.set("meeting_market", 1000)
        assert manager.is_on_cooldown("meeting_market")

        clock.advance(999)
        assert manager.remaining("meeting_market") == pytest.approx(1)

        clock.advance(1)
        assert not manager.is_on_cooldown("meeting_market")

    def test_expiry_clears_state_and_notifies(self, store, clock):
        expired = []
        manager = CooldownManager(store, CooldownTable.ACTION, clock, clock, on_expire=expired.append)
        manager.set("garden_market", 500)
        assert "garden_market" in store.state.action_cooldowns

        clock.advance(500)
        assert "garden_market" not in store.state.action_cooldowns
        assert expired == ["garden_market"]

    def test_keys_are_independent(self, manager):
        manager.set("meeting_market", 1000)
        assert not manager.is_on_cooldown("meeting_riverside")
        assert manager.remaining("unknown") == 0

    def test_reset_replaces_timer(self, manager, clock):
        manager.set("meeting_market", 1000)
        manager.set("meeting_market", 5000)
        assert clock.pending_count == 1
        clock.advance(1000)
        assert manager.is_on_cooldown("meeting_market")

    def test_cancel_all_stops_timers(self, manager, clock):
        manager.set("a", 1000)
        manager.set("b", 2000)
        manager.cancel_all()
        assert clock.pending_count == 0

    def test_active_keys(self, manager, clock):
        manager.set("a", 1000)
        manager.set("b", 3000)
        clock.advance(1500)
        assert manager.active_keys() == {"b": pytest.approx(1500)}

    def test_tables_are_separate(self, store, clock):
        actions = CooldownManager(store, CooldownTable.ACTION, clock, clock)
        earnings = CooldownManager(store, CooldownTable.EARNING, clock, clock)
        earnings.set("collectible", 45_000)
        assert not actions.is_on_cooldown("collectible")
        assert "collectible" in store.state.earning_cooldowns


class TestGlobalCooldown:
    """Tests for the global window."""

    def test_window(self, store, clock):
        gate = GlobalCooldown(store, clock, 3000)
        assert not gate.is_on_cooldown()

        gate.set()
        assert gate.remaining() == 3000

        clock.advance(2999)
        assert gate.is_on_cooldown()
        clock.advance(1)
        assert not gate.is_on_cooldown()
