"""
Pytest fixtures for OptimiCity tests.
"""

import pytest

from ..config import EngineConfig
from ..engine_core.cooldowns import CooldownManager
from ..engine_core.engine import ResistanceEngine
from ..engine_core.state import StateStore, CooldownTable
from ..engine_core.timers import ManualClock


class FixedRandom:
    """
    Random source double.

    Every draw uses the same fraction `value` in [0, 1). Values queued in
    `draws` are returned by random() first, in order, which lets a test
    force individual probability checks.
    """

    def __init__(self, value: float = 0.5, draws=None):
        self.value = value
        self.draws = list(draws or [])

    def random(self) -> float:
        if self.draws:
            return self.draws.pop(0)
        return self.value

    def uniform(self, a, b):
        return a + (b - a) * self.value

    def randint(self, a, b):
        return min(b, a + int((b - a + 1) * self.value))

    def choice(self, seq):
        return seq[min(len(seq) - 1, int(len(seq) * self.value))]


POPULATION = 10_000_000
START_TIME = 1_000_000


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock, also used as the scheduler."""
    return ManualClock(start=START_TIME)


@pytest.fixture
def config() -> EngineConfig:
    """Config with fixed starting figures: 10 participants of 10M."""
    return EngineConfig(
        participant_range=(10, 10),
        population_range=(POPULATION, POPULATION),
    )


@pytest.fixture
def store() -> StateStore:
    """Fresh store: 2000 participants of 10M, 1000 currency."""
    return StateStore.create(
        FixedRandom(),
        participant_range=(2000, 2000),
        population_range=(POPULATION, POPULATION),
    )


@pytest.fixture
def earning_cooldowns(store, clock) -> CooldownManager:
    return CooldownManager(store, CooldownTable.EARNING, clock, clock)


@pytest.fixture
def quiet_rng() -> FixedRandom:
    """Draws of 0.99: nothing probabilistic happens, ranges roll high."""
    return FixedRandom(0.99)


@pytest.fixture
def engine(config, clock, quiet_rng) -> ResistanceEngine:
    """A started engine on the manual clock with a quiet random source."""
    engine = ResistanceEngine(config, rng=quiet_rng, clock=clock, scheduler=clock)
    engine.start()
    return engine
