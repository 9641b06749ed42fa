"""
Tests for autonomous community activity and the event log.
"""

import pytest

from ..engine_core.community import CommunityEngine, activity_probability
from ..engine_core.events import EventLog, LogCategory
from ..narrative.fallback import COMMUNITY_LINES
from .conftest import FixedRandom


class TestCommunity:

    def test_probability(self):
        assert activity_probability(0, 3, 0) == pytest.approx(0.11)
        assert activity_probability(100, 3, 80) == pytest.approx(0.147)
        assert activity_probability(100, 4, 0) == 0.20

    def test_quiet_tick(self, store):
        move = CommunityEngine(store, FixedRandom(0.99)).autonomous_step()
        assert not move.acted
        assert store.state.power == 0

    def test_activity_boosts_power(self, store):
        move = CommunityEngine(store, FixedRandom(0.0)).autonomous_step()
        assert move.acted
        assert move.line in COMMUNITY_LINES["low"]
        assert store.state.power == 1

    def test_no_boost_near_the_top(self, store):
        store.update_power(95)
        move = CommunityEngine(store, FixedRandom(0.0)).autonomous_step()
        assert move.acted
        assert move.line in COMMUNITY_LINES["high"]
        assert store.state.power == 95


class TestEventLog:

    def test_bounded(self):
        log = EventLog(capacity=3)
        for i in range(5):
            log.add(f"line {i}")
        assert len(log) == 3
        assert log.texts() == ["line 2", "line 3", "line 4"]

    def test_since_and_category(self):
        log = EventLog()
        first = log.add("hello")
        log.add("noticed", LogCategory.AI)
        log.add("joined", LogCategory.CITIZEN)
        assert [e.text for e in log.entries(since=first.seq)] == ["noticed", "joined"]
        assert log.texts(LogCategory.AI) == ["noticed"]

    def test_timestamps_from_clock(self, clock):
        log = EventLog(clock=clock.now)
        clock.advance(250)
        assert log.add("tick").timestamp == clock.now()

    def test_listeners(self):
        log = EventLog()
        seen = []
        log.subscribe(seen.append)
        log.add("one")
        log.unsubscribe(seen.append)
        log.add("two")
        assert [e.text for e in seen] == ["one"]

    def test_clear_keeps_sequence(self):
        log = EventLog()
        log.add("a")
        log.clear()
        entry = log.add("b")
        assert len(log) == 1
        assert entry.seq == 2
