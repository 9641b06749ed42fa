"""
Resistance Engine - Turns player requests and clock ticks into state changes.

The engine is the single owner of a session's world. It wires the
subsystems together and enforces the order of a player action:

    cooldown gates -> purchase -> risk roll -> recruitment -> mutation
    -> (await) notice resolution -> heat if noticed -> victory check

Everything before the await runs without yielding, so no tick can see a
half-applied action. The notice resolution is a real suspension point:
ticks and other actions may run before it completes, and only the heat
delta (plus the narrative lines) is applied afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import asyncio
import logging

from ..config import EngineConfig
from ..narrative.base import Narrator, NarrativeContext, SilentNarrator
from ..narrative.fallback import citizen_fallback
from .action import (
    ActionResult, EarningKind, EarningResult, RejectionReason, get_action, cooldown_key,
)
from .community import CommunityEngine, CommunityMove
from .cooldowns import CooldownManager, GlobalCooldown, action_cooldown_duration
from .economy import EconomyEngine, MiningReport
from .escalation import EscalationController, MayorMove, MayorMoveKind
from .events import EventLog, LogCategory
from .recruitment import RecruitmentEngine
from .risk import RiskEngine, RiskTier
from .rng import RandomSource, make_rng
from .state import (
    StateStore, WorldState, CooldownTable, SessionOutcome, GentrificationResult,
)
from .timers import Clock, Scheduler, WallClock, LoopScheduler
from .victory import VictoryEvaluator

logger = logging.getLogger(__name__)

TerminalListener = Callable[[SessionOutcome], None]


@dataclass
class TickReport:
    """What happened during one autonomous tick."""
    resolved_targets: dict[str, GentrificationResult] = field(default_factory=dict)
    mayor: MayorMove | None = None
    community: CommunityMove | None = None
    outcome: SessionOutcome | None = None


class ResistanceEngine:
    """
    One session's simulation.

    Usage:
        engine = ResistanceEngine(seed=42)
        engine.start()
        engine.select_target("market")
        result = await engine.perform_action("meeting")
        engine.tick()  # from the game loop, every few seconds
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        rng: RandomSource | None = None,
        seed: int | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        mayor: Narrator | None = None,
        citizens: Narrator | None = None,
    ):
        self.config = config or EngineConfig()
        self.rng = rng or make_rng(seed)
        self.clock = clock or WallClock()
        self.scheduler = scheduler or LoopScheduler()
        self.mayor = mayor or SilentNarrator()
        self.citizens = citizens or SilentNarrator()
        self.log = EventLog(self.config.event_log_capacity, clock=self.clock.now)
        self._terminal_listeners: list[TerminalListener] = []
        self._mining_was_active: bool | None = None
        self._build()

    def _build(self) -> None:
        config = self.config
        self.store = StateStore.create(
            self.rng,
            duration_ms=config.session_duration_ms,
            starting_currency=config.starting_currency,
            participant_range=config.participant_range,
            population_range=config.population_range,
        )
        self.action_cooldowns = CooldownManager(
            self.store, CooldownTable.ACTION, self.clock, self.scheduler
        )
        self.earning_cooldowns = CooldownManager(
            self.store, CooldownTable.EARNING, self.clock, self.scheduler
        )
        self.global_cooldown = GlobalCooldown(self.store, self.clock, config.global_cooldown_ms)
        self.risk = RiskEngine(self.rng)
        self.recruitment = RecruitmentEngine(self.rng)
        self.economy = EconomyEngine(self.store, self.rng, self.earning_cooldowns)
        self.escalation = EscalationController(
            self.store,
            self.rng,
            narrator=self.mayor,
            narrator_timeout=config.narrator_timeout_seconds,
            timer_cut=config.escalation_timer_cut,
            timer_floor=config.escalation_timer_floor,
        )
        self.community = CommunityEngine(self.store, self.rng)
        self.victory = VictoryEvaluator()
        self._mining_was_active = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def state(self) -> WorldState:
        return self.store.state

    @property
    def active(self) -> bool:
        return self.store.state.active

    def snapshot(self) -> WorldState:
        return self.store.snapshot()

    def start(self) -> None:
        self.store.begin(self.clock.now())
        self.log.add("Resistance network activated. Organize, resist, liberate!")
        self.log.add("Select a neighborhood and choose your first action.")
        logger.info(
            "session started: %d active of %d population",
            self.state.active_participants, self.state.total_population,
        )

    def restart(self) -> None:
        """Discard the world and rebuild it from scratch."""
        self.action_cooldowns.cancel_all()
        self.earning_cooldowns.cancel_all()
        self.log.clear()
        self._build()
        self.log.add("Game restarted. The resistance begins anew.")
        self.start()

    def add_terminal_listener(self, listener: TerminalListener) -> None:
        self._terminal_listeners.append(listener)

    def remove_terminal_listener(self, listener: TerminalListener) -> None:
        if listener in self._terminal_listeners:
            self._terminal_listeners.remove(listener)

    def end(self, outcome: SessionOutcome) -> None:
        """Stop the session. Later calls are ignored."""
        if self.state.outcome is not None:
            return
        self.store.finish(outcome)
        self.action_cooldowns.cancel_all()
        self.earning_cooldowns.cancel_all()
        self.log.add(f"{outcome.kind.value.upper()}: {outcome.message}")
        logger.info("session over: %s", outcome.kind.value)
        for listener in list(self._terminal_listeners):
            listener(outcome)

    def check_victory(self) -> SessionOutcome | None:
        if not self.active:
            return self.state.outcome
        outcome = self.victory.evaluate(self.state)
        if outcome is not None:
            self.end(outcome)
        return outcome

    def remaining_ms(self) -> float:
        return self.store.remaining_ms(self.clock.now())

    def check_timeout(self) -> SessionOutcome | None:
        if not self.active or self.remaining_ms() > 0:
            return None
        outcome = self.victory.timeout(self.state)
        self.end(outcome)
        return outcome

    # =========================================================================
    # Presentation queries
    # =========================================================================

    def select_target(self, target_id: str) -> ActionResult:
        if not self.store.select_target(target_id):
            self.log.add(f"Unknown neighborhood: {target_id}")
            return ActionResult.rejected(
                RejectionReason.UNKNOWN_TARGET, f"Unknown neighborhood: {target_id}",
                target_id=target_id,
            )
        target = self.state.current_target
        self.log.add(f"Selected {target.name} for resistance action.")
        return ActionResult(success=True, target_id=target_id, message=target.name)

    def cooldown_remaining(self, key: str) -> float:
        return self.action_cooldowns.remaining(key)

    def earning_cooldown_remaining(self, kind: str) -> float:
        return self.earning_cooldowns.remaining(kind)

    def global_cooldown_remaining(self) -> float:
        return self.global_cooldown.remaining()

    def action_price(self, kind: str) -> int | None:
        definition = get_action(kind)
        if definition is None:
            return None
        return self.economy.price(definition)

    def narrative_context(self) -> NarrativeContext:
        state = self.state
        return NarrativeContext(
            heat=state.heat,
            power=state.power,
            active_participants=state.active_participants,
            liberated_count=state.liberated_count,
        )

    # =========================================================================
    # Player actions
    # =========================================================================

    def _reject(self, reason: RejectionReason, message: str, **kwargs) -> ActionResult:
        self.log.add(message)
        logger.debug("rejected (%s): %s", reason.value, message)
        return ActionResult.rejected(reason, message, **kwargs)

    def begin_action(self, kind: str, target_id: str | None = None) -> ActionResult:
        """
        The synchronous phase of a player action.

        Validates, pays, rolls risk and recruitment and applies everything
        except heat. Never yields. When `target_id` is given the action runs
        there, and that neighborhood becomes the selection only once the
        action has been paid for; a rejection leaves the selection alone.
        """
        state = self.state
        if not state.active:
            return self._reject(RejectionReason.SESSION_INACTIVE, "The session is not running.",
                                action_kind=kind)

        definition = get_action(kind)
        if definition is None:
            return self._reject(RejectionReason.UNKNOWN_ACTION, f"Unknown action: {kind}",
                                action_kind=kind)

        if target_id is not None:
            target = state.get_target(target_id)
            if target is None:
                return self._reject(RejectionReason.UNKNOWN_TARGET,
                                    f"Unknown neighborhood: {target_id}",
                                    action_kind=kind, target_id=target_id)
        else:
            target = state.current_target
        if target is None:
            return self._reject(RejectionReason.NO_TARGET_SELECTED,
                                "Select a neighborhood first to take action.", action_kind=kind)

        if self.global_cooldown.is_on_cooldown():
            seconds = self.global_cooldown.remaining() / 1000
            return self._reject(RejectionReason.GLOBAL_COOLDOWN,
                                f"Regroup first: next action in {seconds:.1f}s.",
                                action_kind=kind, target_id=target.id)

        key = cooldown_key(kind, target.id)
        if self.action_cooldowns.is_on_cooldown(key):
            return self._reject(RejectionReason.ACTION_COOLDOWN,
                                f"{kind} is still on cooldown in {target.name}.",
                                action_kind=kind, target_id=target.id)

        if definition.requires_threatened_target and not target.threatened:
            return self._reject(RejectionReason.REQUIREMENT_NOT_MET,
                                f"{kind} needs a neighborhood under threat.",
                                action_kind=kind, target_id=target.id)
        if state.power < definition.min_power:
            return self._reject(RejectionReason.REQUIREMENT_NOT_MET,
                                f"{kind} needs at least {definition.min_power:g} community power.",
                                action_kind=kind, target_id=target.id)

        cost = self.economy.purchase(definition, target)
        if cost is None:
            price = self.economy.price(definition, target)
            return self._reject(RejectionReason.INSUFFICIENT_FUNDS,
                                f"Insufficient currency for {kind}. Need {price:,}.",
                                action_kind=kind, target_id=target.id)
        if state.selected_target != target.id:
            self.store.select_target(target.id)
            self.log.add(f"Selected {target.name} for resistance action.")

        rng = self.rng
        power_gain = rng.randint(*definition.power)
        heat_gain = rng.randint(*definition.heat)

        cooldown = action_cooldown_duration(heat_gain, power_gain)
        self.action_cooldowns.set(key, cooldown)
        self.global_cooldown.set()

        assessment = self.risk.assess(definition, state.heat, heat_gain, state.active_participants)
        recruited = self.recruitment.growth(
            definition, state.active_participants, state.total_population,
            state.heat, state.power,
        )

        casualties = assessment.casualties
        casualties.imprisoned = self.store.record_arrests(casualties.imprisoned)
        casualties.killed = self.store.record_deaths(casualties.killed)
        recruited = self.store.add_participants(recruited)
        self.store.update_power(power_gain)
        liberated = self.store.update_resistance(target.id, power_gain)

        result = ActionResult(
            success=True,
            action_kind=kind,
            target_id=target.id,
            message=f"{definition.description} in {target.name}",
            cost=cost,
            power_gain=power_gain,
            heat_gain=heat_gain,
            cooldown_ms=cooldown,
            risk_tier=assessment.tier.value,
            casualties=casualties,
            recruited=recruited,
            liberated=liberated,
        )
        self._log_action(result, target.name)
        self.check_victory()
        return result

    def _log_action(self, result: ActionResult, target_name: str) -> None:
        log = self.log
        log.add(result.message, LogCategory.PLAYER)
        log.add(f"-{result.cost:,} currency, +{result.power_gain} community power",
                LogCategory.PLAYER)
        if result.risk_tier != RiskTier.LOW.value:
            log.add(f"{result.risk_tier.upper()} risk operation - surveillance heavy",
                    LogCategory.PLAYER)
        if result.casualties.killed:
            log.add(f"{result.casualties.killed} citizens killed by AI Mayor forces", LogCategory.AI)
        if result.casualties.imprisoned:
            log.add(f"{result.casualties.imprisoned} citizens arrested", LogCategory.AI)
        if result.recruited:
            log.add(f"+{result.recruited:,} new participants joined the movement",
                    LogCategory.CITIZEN)
        if result.liberated:
            log.add(f"{target_name} has been LIBERATED! Community control established.",
                    LogCategory.CITIZEN)
        seconds = round(result.cooldown_ms / 1000)
        if seconds > 2:
            log.add(f"{result.action_kind} cooldown in {target_name}: {seconds}s")

    async def resolve_action(self, result: ActionResult) -> ActionResult:
        """
        The asynchronous phase: notice resolution, then deferred heat.

        If the session was restarted or ended while waiting, the heat is
        dropped; the world it belonged to is gone or frozen.
        """
        if not result.success or result.resolved:
            return result
        definition = get_action(result.action_kind)
        store = self.store
        target = store.state.get_target(result.target_id)
        target_name = target.name if target else result.target_id

        outcome = await self.escalation.resolve_notice(
            definition, target_name, self.narrative_context()
        )
        result.noticed = outcome.noticed
        result.mayor_response = outcome.response

        if self.store is not store or not store.state.active:
            result.resolved = True
            return result

        if outcome.noticed:
            result.heat_applied = store.update_heat(result.heat_gain)
            self.log.add(outcome.response, LogCategory.AI)
            self.log.add(f"AI Mayor noticed: +{result.heat_applied:g} heat", LogCategory.PLAYER)
            self.check_victory()
        else:
            self.log.add(f"{definition.description} went unnoticed by the AI Mayor.",
                         LogCategory.PLAYER)

        result.citizen_response = await self._citizen_response(
            definition.description, target_name, definition.kind
        )
        if self.store is store and store.state.active:
            self.log.add(result.citizen_response, LogCategory.CITIZEN)
            self.check_victory()
        result.resolved = True
        return result

    async def _citizen_response(self, description: str, target_name: str, kind: str) -> str:
        context = self.narrative_context()
        response = None
        try:
            response = await asyncio.wait_for(
                self.citizens.respond(description, target_name, kind, context),
                timeout=self.config.narrator_timeout_seconds,
            )
        except Exception:
            logger.warning("Citizen narrator failed; using fallback", exc_info=True)
        return response or citizen_fallback(description, target_name, context.power)

    async def perform_action(self, kind: str, target_id: str | None = None) -> ActionResult:
        """Run both phases of a player action."""
        result = self.begin_action(kind, target_id)
        return await self.resolve_action(result)

    # =========================================================================
    # Earnings
    # =========================================================================

    def _finish_earning(self, result: EarningResult) -> EarningResult:
        category = LogCategory.PLAYER if result.success else LogCategory.SYSTEM
        self.log.add(result.message, category)
        if result.success:
            self.check_victory()
        return result

    def sell_collectible(self) -> EarningResult:
        if not self.active:
            return EarningResult.rejected(EarningKind.COLLECTIBLE,
                                          RejectionReason.SESSION_INACTIVE,
                                          "The session is not running.")
        return self._finish_earning(self.economy.sell_collectible())

    def crowdfund(self) -> EarningResult:
        if not self.active:
            return EarningResult.rejected(EarningKind.CROWDFUNDING,
                                          RejectionReason.SESSION_INACTIVE,
                                          "The session is not running.")
        return self._finish_earning(self.economy.crowdfund())

    def mining_cycle(self) -> MiningReport | None:
        """One passive income cycle (driven by the game loop)."""
        if not self.active:
            return None
        report = self.economy.run_mining_cycle()
        if report.active:
            self.log.add(
                f"Mining: +{report.amount:,} currency "
                f"({self.state.active_participants:,} participants)"
            )
            self.check_victory()
        elif self._mining_was_active is not False:
            self.log.add(
                f"Mining inactive: need {report.threshold:,}+ participants "
                f"(have {self.state.active_participants:,})"
            )
        self._mining_was_active = report.active
        return report

    # =========================================================================
    # Autonomous tick
    # =========================================================================

    def tick(self) -> TickReport:
        """
        One autonomous step, independent of player input:
        neighborhood timers, the Mayor's move, then the community's.
        """
        report = TickReport()
        if not self.active:
            return report

        for target in self.state.targets:
            if self.store.decay_timer(target.id, self.config.timer_decay_per_tick):
                resolution = self.store.resolve_gentrification(target.id)
                report.resolved_targets[target.id] = resolution
                if resolution is GentrificationResult.GENTRIFIED:
                    self.log.add(f"{target.name} has been gentrified. Residents displaced.",
                                 LogCategory.AI)
                else:
                    self.log.add(f"{target.name} successfully defended against gentrification!",
                                 LogCategory.CITIZEN)
                report.outcome = self.check_victory()
                if report.outcome:
                    return report

        report.mayor = self.escalation.autonomous_step()
        self._log_mayor_move(report.mayor)
        report.outcome = self.check_victory()
        if report.outcome:
            return report

        report.community = self.community.autonomous_step()
        if report.community.acted:
            self.log.add(report.community.line, LogCategory.CITIZEN)
            report.outcome = self.check_victory()
            if report.outcome:
                return report

        report.outcome = self.check_timeout()
        return report

    def _log_mayor_move(self, move: MayorMove) -> None:
        if move.kind is MayorMoveKind.NONE:
            return
        self.log.add(move.line, LogCategory.AI)
        if move.deaths:
            self.log.add(f"{move.deaths} citizens killed in enforcement sweep", LogCategory.AI)
        if move.arrests:
            self.log.add(f"{move.arrests} citizens detained by predictive policing",
                         LogCategory.AI)
