"""
Economy Engine - Action pricing, passive mining, and burst income.

Currency is the movement's budget. Every action has a designer-tiered
base cost that rises with heat and falls for emergencies and for a
powerful movement. Income comes from:
- Mining: a passive cycle, gated on the movement reaching 0.01% of the
  population, that always draws a little surveillance heat
- Collectible sales: power-tiered buy-in with a bigger random payout
- Crowdfunding: payout driven by participants and power
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import math

from .action import (
    ActionDefinition, ActionClass, EarningKind, EarningResult, RejectionReason,
)
from .cooldowns import CooldownManager
from .rng import RandomSource
from .state import StateStore, Target

logger = logging.getLogger(__name__)

MIN_ACTION_PRICE = 100
MOVEMENT_THRESHOLD_RATIO = 0.0001

MINING_CAP = 5000
MINING_FLOOR = 10
MINING_HEAT = 1

COLLECTIBLE_TIERS = (
    # (max power, cost, reward range)
    (25, 1000, (2000, 4000)),
    (50, 2500, (6000, 10000)),
    (None, 5000, (15000, 25000)),
)
COLLECTIBLE_HEAT = 8
COLLECTIBLE_COOLDOWN_MS = 45_000

CROWDFUNDING_COST = 500
CROWDFUNDING_MIN = 2000
CROWDFUNDING_MAX = 30000
CROWDFUNDING_HEAT = 3
CROWDFUNDING_COOLDOWN_MS = 60_000


@dataclass
class MiningReport:
    active: bool
    threshold: int
    amount: int = 0
    heat_applied: float = 0.0


def collectible_tier(power: float) -> tuple[int, tuple[int, int]]:
    """(cost, reward range) for the current power level."""
    for max_power, cost, reward in COLLECTIBLE_TIERS:
        if max_power is None or power <= max_power:
            break
    return cost, reward


class EconomyEngine:
    def __init__(
        self,
        store: StateStore,
        rng: RandomSource,
        earning_cooldowns: CooldownManager,
    ):
        self.store = store
        self.rng = rng
        self.earning_cooldowns = earning_cooldowns

    # =========================================================================
    # Action pricing
    # =========================================================================

    def price(self, action: ActionDefinition, target: Target | None = None) -> int:
        """
        Current price of an action.

        base x heat multiplier (1 + heat/200) x emergency discount (0.5 when
        the target, by default the selected one, is threatened) x bulk
        discount (0.9 above 50 power), floored, never below 100.
        """
        state = self.store.state
        heat_multiplier = 1 + state.heat / 200
        target = target or state.current_target
        emergency_discount = 0.5 if target is not None and target.threatened else 1.0
        bulk_discount = 0.9 if state.power > 50 else 1.0
        cost = math.floor(action.base_cost * heat_multiplier * emergency_discount * bulk_discount)
        return max(MIN_ACTION_PRICE, cost)

    def can_afford(self, action: ActionDefinition) -> bool:
        return self.store.can_afford(self.price(action))

    def purchase(self, action: ActionDefinition, target: Target | None = None) -> int | None:
        """Deduct the price and count the action. Returns the cost paid, or None."""
        cost = self.price(action, target)
        if not self.store.spend(cost):
            return None
        self.store.increment_actions_completed()
        if action.has(ActionClass.INFRASTRUCTURE):
            self.store.add_infrastructure_bonus(1)
        return cost

    # =========================================================================
    # Mining
    # =========================================================================

    def movement_threshold(self) -> int:
        return math.floor(self.store.state.total_population * MOVEMENT_THRESHOLD_RATIO)

    def movement_established(self) -> bool:
        return self.store.state.active_participants >= self.movement_threshold()

    def mining_rate(self) -> int:
        state = self.store.state
        citizen_power = max(0, state.active_participants) ** 1.5 / 1000
        random_factor = self.rng.uniform(50, 150)
        infrastructure = 1 + 0.3 * state.infrastructure_bonus
        heat_penalty = max(0.1, 1 - state.heat / 200)
        rate = max(MINING_FLOOR, (citizen_power + random_factor) * infrastructure * heat_penalty)
        return min(MINING_CAP, math.floor(rate))

    def run_mining_cycle(self) -> MiningReport:
        """One mining cycle: pays out and draws heat only once the movement is established."""
        threshold = self.movement_threshold()
        if not self.movement_established():
            return MiningReport(active=False, threshold=threshold)
        amount = self.mining_rate()
        self.store.update_currency(amount)
        heat = self.store.update_heat(MINING_HEAT)
        logger.debug("mining cycle: +%d currency, heat %+.1f", amount, heat)
        return MiningReport(active=True, threshold=threshold, amount=amount, heat_applied=heat)

    # =========================================================================
    # Burst income
    # =========================================================================

    def sell_collectible(self) -> EarningResult:
        kind = EarningKind.COLLECTIBLE
        if self.earning_cooldowns.is_on_cooldown(kind.value):
            remaining = math.ceil(self.earning_cooldowns.remaining(kind.value) / 1000)
            return EarningResult.rejected(
                kind, RejectionReason.EARNING_COOLDOWN,
                f"Collectible sale on cooldown: {remaining}s remaining",
            )

        cost, (low, high) = collectible_tier(self.store.state.power)
        if not self.store.spend(cost):
            return EarningResult.rejected(
                kind, RejectionReason.INSUFFICIENT_FUNDS,
                f"Insufficient currency for collectible sale. Need {cost:,}",
            )

        reward = self.rng.randint(low, high)
        self.store.update_currency(reward)
        heat = self.store.update_heat(COLLECTIBLE_HEAT)
        self.earning_cooldowns.set(kind.value, COLLECTIBLE_COOLDOWN_MS)
        return EarningResult(
            success=True, kind=kind, cost=cost, reward=reward,
            heat_applied=heat, cooldown_ms=COLLECTIBLE_COOLDOWN_MS,
            message=f"Collectible series sold: -{cost:,}, +{reward:,}",
        )

    def crowdfund(self) -> EarningResult:
        kind = EarningKind.CROWDFUNDING
        state = self.store.state
        threshold = self.movement_threshold()
        if state.active_participants < threshold:
            return EarningResult.rejected(
                kind, RejectionReason.MOVEMENT_TOO_SMALL,
                f"Crowdfunding requires {threshold:,}+ active participants "
                f"(have {state.active_participants:,})",
            )

        if self.earning_cooldowns.is_on_cooldown(kind.value):
            remaining = math.ceil(self.earning_cooldowns.remaining(kind.value) / 1000)
            return EarningResult.rejected(
                kind, RejectionReason.EARNING_COOLDOWN,
                f"Crowdfunding on cooldown: {remaining}s remaining",
            )

        if not self.store.spend(CROWDFUNDING_COST):
            return EarningResult.rejected(
                kind, RejectionReason.INSUFFICIENT_FUNDS,
                f"Insufficient currency for crowdfunding. Need {CROWDFUNDING_COST:,}",
            )

        raw = state.active_participants * 10 + state.power * 100
        reward = int(max(CROWDFUNDING_MIN, min(CROWDFUNDING_MAX, raw)))
        self.store.update_currency(reward)
        heat = self.store.update_heat(CROWDFUNDING_HEAT)
        self.earning_cooldowns.set(kind.value, CROWDFUNDING_COOLDOWN_MS)
        return EarningResult(
            success=True, kind=kind, cost=CROWDFUNDING_COST, reward=reward,
            heat_applied=heat, cooldown_ms=CROWDFUNDING_COOLDOWN_MS,
            message=f"Crowdfunding successful: -{CROWDFUNDING_COST:,}, +{reward:,}",
        )
