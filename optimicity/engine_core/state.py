"""
World State - The single mutable record of a session and its mutators.

Design principles:
- One WorldState per session, owned by a StateStore
- All mutation goes through StateStore; subsystems never write fields
- Mutators clamp instead of asserting, so no sequence of valid calls
  can produce out-of-range state
- Snapshots are deep copies and safe to hand to presentation code
"""

from __future__ import annotations
from dataclasses import dataclass, field
from copy import deepcopy
from enum import Enum

from .rng import RandomSource


POWER_MIN = 0.0
POWER_MAX = 100.0
HEAT_MAX = 100.0
HEAT_THRESHOLDS = (25, 50, 75)
LIBERATION_THRESHOLD = 60
RESISTANCE_MAX = 100.0


class SessionPhase(Enum):
    """High-level session phases."""
    SETUP = "setup"
    PLAYING = "playing"
    GAME_OVER = "game_over"


class OutcomeKind(Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"
    TIMEOUT = "timeout"


@dataclass
class SessionOutcome:
    """How a session ended."""
    kind: OutcomeKind
    message: str


class CooldownTable(Enum):
    """The two per-key cooldown maps held in WorldState."""
    ACTION = "action"
    EARNING = "earning"


class GentrificationResult(Enum):
    GENTRIFIED = "gentrified"
    DEFENDED = "defended"


@dataclass
class Target:
    """
    A contested neighborhood.

    `timer` is in minutes until gentrification; it only runs while the
    target is threatened.
    """
    id: str
    name: str
    resistance: float
    timer: float
    threatened: bool
    population: int
    liberated: bool = False

    @property
    def is_liberated(self) -> bool:
        return self.resistance >= LIBERATION_THRESHOLD


def default_targets() -> list[Target]:
    """The four starting neighborhoods."""
    return [
        Target(id="market", name="Market District", resistance=5, timer=6.5,
               threatened=True, population=1200),
        Target(id="riverside", name="Riverside", resistance=12, timer=10.5,
               threatened=True, population=850),
        Target(id="oldtown", name="Old Town", resistance=25, timer=18,
               threatened=False, population=950),
        Target(id="industrial", name="Industrial Quarter", resistance=8, timer=4.2,
               threatened=True, population=600),
    ]


@dataclass
class WorldState:
    """
    Complete world state at a point in time.

    Timestamps are milliseconds from the session clock.
    """
    active: bool = False
    phase: SessionPhase = SessionPhase.SETUP
    start_time: float | None = None
    duration: int = 15 * 60 * 1000

    power: float = 0.0
    heat: float = 0.0
    min_heat: float = 0.0

    active_participants: int = 1
    total_population: int = 8_000_000
    imprisoned: int = 0
    killed: int = 0

    currency: int = 0
    infrastructure_bonus: int = 0
    actions_completed: int = 0

    selected_target: str | None = None
    action_cooldowns: dict[str, float] = field(default_factory=dict)
    earning_cooldowns: dict[str, float] = field(default_factory=dict)
    last_action_time: float | None = None

    targets: list[Target] = field(default_factory=default_targets)
    outcome: SessionOutcome | None = None

    def get_target(self, target_id: str | None) -> Target | None:
        if target_id is None:
            return None
        for target in self.targets:
            if target.id == target_id:
                return target
        return None

    @property
    def current_target(self) -> Target | None:
        return self.get_target(self.selected_target)

    @property
    def liberated_count(self) -> int:
        return sum(1 for t in self.targets if t.is_liberated)

    @property
    def threatened_count(self) -> int:
        return sum(1 for t in self.targets if t.threatened)

    @property
    def participation_ratio(self) -> float:
        if self.total_population <= 0:
            return 0.0
        return self.active_participants / self.total_population

    def clone(self) -> WorldState:
        """Deep copy the state."""
        return deepcopy(self)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class StateStore:
    """
    Owns the WorldState and exposes its clamped mutators.

    Every method keeps the invariants:
    - power in [0, 100], heat in [min_heat, 100]
    - min_heat only ever rises (ratchet over HEAT_THRESHOLDS)
    - counters never negative; deaths mirrored in total_population
    - a target at resistance >= 60 is never threatened
    """

    def __init__(self, state: WorldState):
        self._state = state

    @classmethod
    def create(
        cls,
        rng: RandomSource,
        *,
        duration_ms: int = 15 * 60 * 1000,
        starting_currency: int = 1000,
        participant_range: tuple[int, int] = (1, 50),
        population_range: tuple[int, int] = (8_000_000, 12_000_000),
        targets: list[Target] | None = None,
    ) -> StateStore:
        """Build a fresh session state with randomized population figures."""
        total = rng.randint(*population_range)
        active = min(total, rng.randint(*participant_range))
        state = WorldState(
            duration=duration_ms,
            active_participants=active,
            total_population=total,
            currency=max(0, starting_currency),
            targets=targets if targets is not None else default_targets(),
        )
        return cls(state)

    @property
    def state(self) -> WorldState:
        return self._state

    def snapshot(self) -> WorldState:
        """Read-only view for presentation: a deep copy."""
        return self._state.clone()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def begin(self, now: float) -> None:
        self._state.active = True
        self._state.phase = SessionPhase.PLAYING
        self._state.start_time = now

    def finish(self, outcome: SessionOutcome) -> None:
        self._state.active = False
        self._state.phase = SessionPhase.GAME_OVER
        self._state.outcome = outcome

    def remaining_ms(self, now: float) -> float:
        if self._state.start_time is None:
            return float(self._state.duration)
        return max(0.0, self._state.duration - (now - self._state.start_time))

    # =========================================================================
    # Core metrics
    # =========================================================================

    def update_power(self, delta: float) -> float:
        """Apply a power change; returns the change actually applied."""
        before = self._state.power
        self._state.power = _clamp(before + delta, POWER_MIN, POWER_MAX)
        return self._state.power - before

    def update_heat(self, delta: float) -> float:
        """
        Apply a heat change, clamped into [min_heat, 100], then ratchet.

        Negative deltas can never take heat below a threshold it has
        already crossed. Returns the change actually applied.
        """
        state = self._state
        before = state.heat
        state.heat = _clamp(before + delta, state.min_heat, HEAT_MAX)
        for threshold in HEAT_THRESHOLDS:
            if state.heat >= threshold and state.min_heat < threshold:
                state.min_heat = float(threshold)
        return state.heat - before

    def add_participants(self, count: int) -> int:
        """Grow the active movement, never beyond the living population."""
        state = self._state
        room = max(0, state.total_population - state.active_participants)
        added = max(0, min(int(count), room))
        state.active_participants += added
        return added

    def remove_participants(self, count: int) -> int:
        state = self._state
        removed = max(0, min(int(count), state.active_participants))
        state.active_participants -= removed
        return removed

    def record_arrests(self, count: int) -> int:
        """Move active participants into prison. Returns how many were taken."""
        taken = self.remove_participants(count)
        self._state.imprisoned += taken
        return taken

    def record_deaths(self, count: int) -> int:
        """Kill active participants; the population shrinks by the same amount."""
        state = self._state
        taken = self.remove_participants(count)
        state.killed += taken
        state.total_population = max(0, state.total_population - taken)
        return taken

    # =========================================================================
    # Economy
    # =========================================================================

    def can_afford(self, cost: int) -> bool:
        return self._state.currency >= cost

    def update_currency(self, delta: int) -> int:
        before = self._state.currency
        self._state.currency = max(0, before + int(delta))
        return self._state.currency - before

    def spend(self, cost: int) -> bool:
        """Deduct `cost` if affordable. Nothing changes otherwise."""
        if cost < 0 or not self.can_afford(cost):
            return False
        self._state.currency -= cost
        return True

    def increment_actions_completed(self) -> None:
        self._state.actions_completed += 1

    def add_infrastructure_bonus(self, amount: int = 1) -> None:
        self._state.infrastructure_bonus = max(0, self._state.infrastructure_bonus + amount)

    # =========================================================================
    # Targets
    # =========================================================================

    def select_target(self, target_id: str) -> bool:
        if self._state.get_target(target_id) is None:
            return False
        self._state.selected_target = target_id
        return True

    def update_resistance(self, target_id: str, delta: float) -> bool:
        """
        Change a target's resistance.

        Returns True exactly once per target: on the call that liberates it.
        """
        target = self._state.get_target(target_id)
        if target is None:
            return False
        target.resistance = _clamp(target.resistance + delta, 0.0, RESISTANCE_MAX)
        return self._check_liberation(target)

    def _check_liberation(self, target: Target) -> bool:
        if not target.is_liberated:
            return False
        target.threatened = False
        if target.liberated:
            return False
        target.liberated = True
        return True

    def decay_timer(self, target_id: str, minutes: float) -> bool:
        """
        Run a threatened target's gentrification clock down.

        Returns True when the timer has just reached zero.
        """
        target = self._state.get_target(target_id)
        if target is None or not target.threatened or target.timer <= 0:
            return False
        target.timer = max(0.0, round((target.timer - minutes) * 100) / 100)
        return target.timer <= 0

    def shorten_timer(self, target_id: str, minutes: float, floor: float) -> None:
        target = self._state.get_target(target_id)
        if target is None or not target.threatened:
            return
        target.timer = max(floor, target.timer - minutes)

    def resolve_gentrification(self, target_id: str) -> GentrificationResult | None:
        """
        Settle a target whose timer ran out.

        Weak neighborhoods (< 40 resistance) are gentrified; strong ones are
        defended, gaining resistance and feeding collective power.
        """
        target = self._state.get_target(target_id)
        if target is None:
            return None
        target.threatened = False
        if target.resistance < 40:
            target.resistance = 0.0
            return GentrificationResult.GENTRIFIED
        target.resistance = _clamp(target.resistance + 10, 0.0, RESISTANCE_MAX)
        self._check_liberation(target)
        self.update_power(10)
        return GentrificationResult.DEFENDED

    # =========================================================================
    # Cooldown bookkeeping
    # =========================================================================

    def _table(self, table: CooldownTable) -> dict[str, float]:
        if table is CooldownTable.ACTION:
            return self._state.action_cooldowns
        return self._state.earning_cooldowns

    def get_cooldown(self, table: CooldownTable, key: str) -> float | None:
        return self._table(table).get(key)

    def set_cooldown(self, table: CooldownTable, key: str, expiry: float) -> None:
        self._table(table)[key] = expiry

    def clear_cooldown(self, table: CooldownTable, key: str) -> None:
        self._table(table).pop(key, None)

    def clear_all_cooldowns(self) -> None:
        self._state.action_cooldowns.clear()
        self._state.earning_cooldowns.clear()

    def mark_action_time(self, now: float) -> None:
        self._state.last_action_time = now
