"""
Tests for the engine orchestrator.

Tests:
- Request gating and rejections
- The synchronous action phase
- Deferred heat from notice resolution, and interleaving with ticks
- Autonomous ticks, mining, terminal conditions, restart
"""

import asyncio

import pytest

from ..engine_core.action import RejectionReason, cooldown_key
from ..engine_core.engine import ResistanceEngine
from ..engine_core.events import LogCategory
from ..engine_core.state import OutcomeKind, GentrificationResult
from ..narrative.base import Narrator
from ..narrative.fallback import CITIZEN_RESPONSES
from .conftest import FixedRandom


def make_engine(config, clock, rng, **kwargs) -> ResistanceEngine:
    engine = ResistanceEngine(config, rng=rng, clock=clock, scheduler=clock, **kwargs)
    engine.start()
    return engine


class GatedNarrator(Narrator):
    """Holds its reply until the test opens the gate."""

    def __init__(self, reply):
        self.reply = reply
        self.gate = None

    async def respond(self, action_description, target_name, action_kind, context):
        self.gate = asyncio.Event()
        await self.gate.wait()
        return self.reply


class TestRejections:
    """Every rejection leaves the world untouched and logs one line."""

    def assert_rejected(self, engine, kind, reason, target_id=None):
        before = engine.snapshot()
        log_size = len(engine.log)
        result = engine.begin_action(kind, target_id)
        assert not result.success
        assert result.reason is reason
        assert engine.state.currency == before.currency
        assert engine.state.power == before.power
        assert engine.state.actions_completed == before.actions_completed
        assert engine.state.selected_target == before.selected_target
        assert len(engine.log) == log_size + 1
        return result

    def test_no_target(self, engine):
        self.assert_rejected(engine, "meeting", RejectionReason.NO_TARGET_SELECTED)

    def test_unknown_action(self, engine):
        engine.select_target("market")
        self.assert_rejected(engine, "bribe", RejectionReason.UNKNOWN_ACTION)

    def test_unknown_target(self, engine):
        result = engine.select_target("suburbia")
        assert result.reason is RejectionReason.UNKNOWN_TARGET
        assert engine.state.selected_target is None

    def test_insufficient_funds(self, engine):
        engine.select_target("market")
        self.assert_rejected(engine, "occupy", RejectionReason.INSUFFICIENT_FUNDS)
        assert engine.state.action_cooldowns == {}
        assert engine.state.last_action_time is None

    def test_demolition_needs_threat(self, engine):
        engine.select_target("oldtown")
        self.assert_rejected(engine, "blockDemo", RejectionReason.REQUIREMENT_NOT_MET)

    def test_broadcast_needs_power(self, engine):
        engine.select_target("market")
        engine.store.update_currency(10_000)
        self.assert_rejected(engine, "pirateBroad", RejectionReason.REQUIREMENT_NOT_MET)

    def test_global_cooldown(self, engine, clock):
        engine.select_target("market")
        assert engine.begin_action("meeting").success
        self.assert_rejected(engine, "garden", RejectionReason.GLOBAL_COOLDOWN)
        clock.advance(3000)
        assert engine.begin_action("garden").success

    def test_action_cooldown_is_per_target(self, engine, clock):
        engine.select_target("market")
        engine.begin_action("meeting")
        clock.advance(3000)
        self.assert_rejected(engine, "meeting", RejectionReason.ACTION_COOLDOWN)
        engine.select_target("riverside")
        assert engine.begin_action("meeting").success

    def test_inactive_session(self, engine):
        engine.select_target("market")
        engine.end(engine.victory.timeout(engine.state))
        result = engine.begin_action("meeting")
        assert result.reason is RejectionReason.SESSION_INACTIVE

    def test_rejected_action_keeps_selection(self, engine):
        engine.select_target("market")
        result = self.assert_rejected(
            engine, "occupy", RejectionReason.INSUFFICIENT_FUNDS, target_id="riverside"
        )
        assert result.target_id == "riverside"
        assert engine.state.selected_target == "market"

    def test_cooldown_rejection_keeps_selection(self, engine):
        engine.select_target("market")
        assert engine.begin_action("meeting").success
        self.assert_rejected(engine, "garden", RejectionReason.GLOBAL_COOLDOWN, target_id="oldtown")
        assert engine.state.selected_target == "market"

    def test_unknown_action_target(self, engine):
        self.assert_rejected(engine, "meeting", RejectionReason.UNKNOWN_TARGET, target_id="suburbia")
        assert engine.state.selected_target is None


class TestActionPhase:
    """The synchronous phase of a successful action."""

    def test_meeting_in_market(self, engine, clock):
        engine.select_target("market")
        result = engine.begin_action("meeting")

        assert result.success
        assert result.cost == 100
        assert result.power_gain == 5
        assert result.heat_gain == 3
        assert result.cooldown_ms == pytest.approx(31_000)
        assert result.risk_tier == "low"
        assert result.casualties.total == 0
        assert result.recruited == 214
        assert not result.resolved

        state = engine.state
        assert state.currency == 900
        assert state.power == 5
        assert state.active_participants == 224
        assert state.get_target("market").resistance == 10
        assert state.actions_completed == 1
        assert state.last_action_time == clock.now()
        assert engine.cooldown_remaining(cooldown_key("meeting", "market")) == pytest.approx(31_000)
        # Heat waits for notice resolution
        assert state.heat == 0

    def test_action_target_selected_once_paid(self, engine):
        engine.select_target("oldtown")
        engine.store.update_currency(10_000)
        result = engine.begin_action("occupy", "market")

        assert result.success
        assert result.target_id == "market"
        # priced with the market's emergency discount, not Old Town's full rate
        assert result.cost == 1750
        assert engine.state.selected_target == "market"
        assert "Selected Market District for resistance action." in engine.log.texts()

    def test_cooldown_expires_on_clock(self, engine, clock):
        engine.select_target("market")
        engine.begin_action("meeting")
        clock.advance(31_000)
        assert "meeting_market" not in engine.state.action_cooldowns
        assert engine.begin_action("meeting").success

    def test_casualties_applied(self, config, clock):
        # the risk trigger draw hits
        engine = make_engine(config, clock, FixedRandom(0.99, draws=[0.0]))
        engine.select_target("market")
        engine.store.update_currency(10_000)
        engine.store.add_participants(4990)
        engine.store.update_heat(70)
        result = engine.begin_action("occupy")
        assert result.risk_tier == "extreme"
        assert result.casualties.total > 0
        assert engine.state.imprisoned == result.casualties.imprisoned
        assert engine.state.killed == result.casualties.killed

    def test_liberation_logged_once(self, engine, clock):
        engine.select_target("oldtown")
        engine.store.update_resistance("oldtown", 30)
        result = engine.begin_action("garden")
        assert result.liberated
        assert not engine.state.get_target("oldtown").threatened
        liberations = [t for t in engine.log.texts(LogCategory.CITIZEN) if "LIBERATED" in t]
        assert len(liberations) == 1


class TestNoticeResolution:
    """Heat is applied only if, and when, the Mayor notices."""

    def test_unnoticed_action_adds_no_heat(self, engine):
        engine.select_target("market")
        result = asyncio.run(engine.perform_action("meeting"))
        assert result.resolved
        assert not result.noticed
        assert result.heat_applied == 0
        assert engine.state.heat == 0
        assert result.citizen_response in CITIZEN_RESPONSES["low"]

    def test_noticed_heat_is_deferred(self, config, clock):
        engine = make_engine(config, clock, FixedRandom(0.99, draws=[0.99, 0.0]))
        engine.select_target("market")

        result = engine.begin_action("meeting")
        assert engine.state.heat == 0

        asyncio.run(engine.resolve_action(result))
        assert result.noticed
        assert result.heat_applied == 3
        assert engine.state.heat == 3
        assert result.mayor_response in engine.log.texts(LogCategory.AI)

    def test_tick_between_phases(self, config, clock):
        # risk, tick (Mayor, community), then notice
        engine = make_engine(config, clock, FixedRandom(0.99, draws=[0.99, 0.99, 0.99, 0.0]))
        engine.select_target("market")
        result = engine.begin_action("meeting")

        clock.advance(5000)
        engine.tick()
        assert engine.state.heat == 0

        asyncio.run(engine.resolve_action(result))
        assert engine.state.heat == 3

    def test_tick_while_narrator_is_slow(self, config, clock):
        narrator = GatedNarrator("Surveillance rerouted.")
        engine = make_engine(
            config, clock, FixedRandom(0.99, draws=[0.99, 0.0]), mayor=narrator
        )
        engine.select_target("market")

        async def scenario():
            result = engine.begin_action("meeting")
            pending = asyncio.ensure_future(engine.resolve_action(result))
            while narrator.gate is None:
                await asyncio.sleep(0)
            engine.tick()
            heat_during = engine.state.heat
            narrator.gate.set()
            return heat_during, await pending

        heat_during, result = asyncio.run(scenario())
        assert heat_during == 0
        assert result.mayor_response == "Surveillance rerouted."
        assert engine.state.heat == 3

    def test_restart_drops_pending_heat(self, config, clock):
        narrator = GatedNarrator("Noted.")
        engine = make_engine(
            config, clock, FixedRandom(0.99, draws=[0.99, 0.0]), mayor=narrator
        )
        engine.select_target("market")

        async def scenario():
            result = engine.begin_action("meeting")
            pending = asyncio.ensure_future(engine.resolve_action(result))
            while narrator.gate is None:
                await asyncio.sleep(0)
            engine.restart()
            narrator.gate.set()
            return await pending

        result = asyncio.run(scenario())
        assert result.resolved
        assert engine.state.heat == 0
        assert engine.state.actions_completed == 0

    def test_defeat_from_noticed_heat(self, config, clock):
        engine = make_engine(config, clock, FixedRandom(0.99, draws=[0.99, 0.0]))
        engine.select_target("market")
        engine.store.update_heat(94)
        asyncio.run(engine.perform_action("meeting"))
        assert engine.state.heat == 97
        assert not engine.active
        assert engine.state.outcome.kind is OutcomeKind.DEFEAT
        assert clock.pending_count == 0


class TestTick:
    """Autonomous steps."""

    def test_timers_run_down(self, engine):
        report = engine.tick()
        assert engine.state.get_target("market").timer == pytest.approx(6.42)
        assert engine.state.get_target("oldtown").timer == 18
        assert report.resolved_targets == {}

    def test_gentrification(self, engine):
        engine.store.shorten_timer("industrial", 4.2 - 1 / 60, floor=0)
        report = engine.tick()
        assert report.resolved_targets == {"industrial": GentrificationResult.GENTRIFIED}
        assert engine.state.get_target("industrial").resistance == 0
        assert any("gentrified" in t for t in engine.log.texts(LogCategory.AI))

    def test_inactive_session_does_not_tick(self, engine):
        engine.end(engine.victory.timeout(engine.state))
        engine.tick()
        assert engine.state.get_target("market").timer == 6.5

    def test_mayor_and_community_act(self, config, clock):
        engine = make_engine(config, clock, FixedRandom(0.5, draws=[0.0, 0.99, 0.0]))
        report = engine.tick()
        assert report.mayor.kind.value == "routine"
        assert report.community.acted
        assert engine.state.power == 1


class TestTerminal:

    def test_power_victory(self, engine):
        engine.select_target("market")
        engine.store.update_power(78)
        result = asyncio.run(engine.perform_action("meeting"))
        assert result.success
        assert engine.state.outcome.kind is OutcomeKind.VICTORY
        assert not engine.active

    def test_timeout(self, engine, clock):
        clock.advance(engine.config.session_duration_ms)
        outcome = engine.check_timeout()
        assert outcome.kind is OutcomeKind.TIMEOUT
        assert not engine.active

    def test_terminal_listeners(self, engine):
        seen = []
        engine.add_terminal_listener(seen.append)
        engine.store.update_power(80)
        engine.check_victory()
        engine.check_victory()
        assert [o.kind for o in seen] == [OutcomeKind.VICTORY]

    def test_end_cancels_cooldown_timers(self, engine, clock):
        engine.select_target("market")
        engine.begin_action("meeting")
        assert clock.pending_count == 1
        engine.end(engine.victory.timeout(engine.state))
        assert clock.pending_count == 0


class TestEconomyThroughEngine:

    def test_mining_gate_logged_once(self, engine):
        engine.mining_cycle()
        engine.mining_cycle()
        inactive = [t for t in engine.log.texts() if t.startswith("Mining inactive")]
        assert len(inactive) == 1
        assert engine.state.currency == 1000

    def test_mining_pays_once_established(self, engine):
        engine.store.add_participants(991)
        report = engine.mining_cycle()
        assert report.active
        assert engine.state.currency == 1000 + report.amount
        assert engine.state.heat == 1

    def test_collectible(self, engine):
        result = engine.sell_collectible()
        assert result.success
        assert engine.state.heat == 8

    def test_crowdfunding_requires_movement(self, engine):
        assert engine.crowdfund().reason is RejectionReason.MOVEMENT_TOO_SMALL


class TestRestart:

    def test_restart_rebuilds_world(self, engine, clock):
        engine.select_target("market")
        engine.begin_action("meeting")
        engine.restart()

        state = engine.state
        assert state.active
        assert state.power == 0
        assert state.currency == 1000
        assert state.selected_target is None
        assert state.action_cooldowns == {}
        assert clock.pending_count == 0
        assert engine.log.texts()[0].startswith("Game restarted")

    def test_seeded_sessions_match(self, config, clock):
        first = ResistanceEngine(config, seed=42, clock=clock, scheduler=clock)
        second = ResistanceEngine(config, seed=42, clock=clock, scheduler=clock)
        for engine in (first, second):
            engine.start()
            engine.select_target("market")
            engine.begin_action("recruit")
        assert first.state.active_participants == second.state.active_participants
        assert first.state.power == second.state.power
