"""
Engine Core - The resistance simulation.

The engine is the runtime that:
1. Holds one session's WorldState behind a StateStore
2. Gates player actions on cooldowns and currency
3. Rolls risk, recruitment and income through an injected random source
4. Lets the AI Mayor notice actions, ratchet heat and act on its own
5. Ends the session on victory, defeat or timeout
"""

from .state import (
    WorldState, StateStore, Target, SessionPhase, SessionOutcome, OutcomeKind,
    GentrificationResult,
)
from .action import (
    ActionClass, ActionDefinition, ActionResult, EarningKind, EarningResult,
    RejectionReason, ACTION_CATALOG, get_action, cooldown_key,
)
from .cooldowns import CooldownManager, GlobalCooldown, action_cooldown_duration
from .risk import RiskEngine, RiskTier
from .recruitment import RecruitmentEngine
from .economy import EconomyEngine, MiningReport
from .escalation import EscalationController, MayorMove, MayorMoveKind
from .community import CommunityEngine
from .victory import VictoryEvaluator
from .events import EventLog, LogCategory, LogEntry
from .timers import WallClock, LoopScheduler, ManualClock
from .rng import RandomSource, make_rng
from .engine import ResistanceEngine, TickReport

__all__ = [
    "WorldState",
    "StateStore",
    "Target",
    "SessionPhase",
    "SessionOutcome",
    "OutcomeKind",
    "GentrificationResult",
    "ActionClass",
    "ActionDefinition",
    "ActionResult",
    "EarningKind",
    "EarningResult",
    "RejectionReason",
    "ACTION_CATALOG",
    "get_action",
    "cooldown_key",
    "CooldownManager",
    "GlobalCooldown",
    "action_cooldown_duration",
    "RiskEngine",
    "RiskTier",
    "RecruitmentEngine",
    "EconomyEngine",
    "MiningReport",
    "EscalationController",
    "MayorMove",
    "MayorMoveKind",
    "CommunityEngine",
    "VictoryEvaluator",
    "EventLog",
    "LogCategory",
    "LogEntry",
    "WallClock",
    "LoopScheduler",
    "ManualClock",
    "RandomSource",
    "make_rng",
    "ResistanceEngine",
    "TickReport",
]
