"""
Action System - The action catalog, rejection codes, and results.

Actions represent:
1. Player resistance actions (occupy, protest, garden, ...)
2. Player earning actions (collectible sale, crowdfunding)

Invalid requests are not exceptions: they come back as results carrying
a RejectionReason, and leave the world untouched.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class ActionClass(Enum):
    """Fixed classes an action kind can belong to."""
    DIRECT = "direct"  # High exposure, extra deaths
    LOW_RISK = "low_risk"  # Casualties scaled down
    STEALTH = "stealth"  # Harder to notice
    LOUD = "loud"  # Easier to notice
    INFRASTRUCTURE = "infrastructure"  # Boosts mining
    MOBILIZING = "mobilizing"
    ORGANIZING = "organizing"
    CULTURAL = "cultural"


class RejectionReason(str, Enum):
    """Why a request was refused."""
    SESSION_INACTIVE = "SESSION_INACTIVE"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    UNKNOWN_TARGET = "UNKNOWN_TARGET"
    NO_TARGET_SELECTED = "NO_TARGET_SELECTED"
    GLOBAL_COOLDOWN = "GLOBAL_COOLDOWN"
    ACTION_COOLDOWN = "ACTION_COOLDOWN"
    REQUIREMENT_NOT_MET = "REQUIREMENT_NOT_MET"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    EARNING_COOLDOWN = "EARNING_COOLDOWN"
    MOVEMENT_TOO_SMALL = "MOVEMENT_TOO_SMALL"


class EarningKind(str, Enum):
    COLLECTIBLE = "collectible"
    CROWDFUNDING = "crowdfunding"


@dataclass(frozen=True)
class ActionDefinition:
    """
    Static definition of a player action.

    Ranges are inclusive integer bounds for the rolled gains.
    """
    kind: str
    description: str
    power: tuple[int, int]
    heat: tuple[int, int]
    base_cost: int
    classes: frozenset[ActionClass] = frozenset()
    requires_threatened_target: bool = False
    min_power: float = 0

    def has(self, action_class: ActionClass) -> bool:
        return action_class in self.classes


def _define(kind, description, power, heat, cost, *classes, **kwargs) -> ActionDefinition:
    return ActionDefinition(
        kind=kind,
        description=description,
        power=power,
        heat=heat,
        base_cost=cost,
        classes=frozenset(classes),
        **kwargs,
    )


C = ActionClass

ACTION_CATALOG: dict[str, ActionDefinition] = {
    d.kind: d for d in (
        # High significance - direct confrontation
        _define("occupy", "Organized building occupation", (6, 10), (12, 18), 3500,
                C.DIRECT, C.LOUD),
        _define("blockDemo", "Blocked demolition crews", (8, 12), (15, 25), 4000,
                C.DIRECT, C.LOUD, requires_threatened_target=True),
        _define("protest", "Led protest march", (5, 8), (10, 15), 2000,
                C.DIRECT, C.LOUD, C.MOBILIZING),
        _define("pirateBroad", "Hijacked city communications", (7, 10), (12, 16), 3000,
                C.INFRASTRUCTURE, C.LOUD, min_power=20),
        # Medium significance - organized resistance
        _define("recruit", "Recruited new allies", (5, 8), (3, 6), 500,
                C.MOBILIZING, C.ORGANIZING),
        _define("festival", "Organized block festival", (6, 9), (6, 10), 600,
                C.LOUD, C.MOBILIZING, C.CULTURAL),
        _define("meshNet", "Installed mesh network nodes", (4, 6), (5, 8), 700,
                C.INFRASTRUCTURE, C.STEALTH),
        _define("hackCams", "Disabled surveillance cameras", (5, 8), (8, 12), 750,
                C.INFRASTRUCTURE, C.STEALTH),
        # Low significance - grassroots building
        _define("meeting", "Held secret organizing meeting", (3, 5), (1, 3), 75,
                C.LOW_RISK, C.STEALTH, C.MOBILIZING, C.ORGANIZING),
        _define("intel", "Gathered intelligence on AI Mayor", (2, 4), (1, 2), 100,
                C.LOW_RISK, C.STEALTH, C.ORGANIZING),
        _define("garden", "Planted community garden", (4, 7), (2, 5), 50,
                C.LOW_RISK, C.STEALTH, C.CULTURAL),
        _define("streetArt", "Created inspiring mural", (3, 6), (4, 8), 125,
                C.CULTURAL),
    )
}

del C


def get_action(kind: str) -> ActionDefinition | None:
    return ACTION_CATALOG.get(kind)


def cooldown_key(kind: str, target_id: str) -> str:
    """Cooldowns are per action, per target."""
    return f"{kind}_{target_id}"


@dataclass
class Casualties:
    imprisoned: int = 0
    killed: int = 0

    @property
    def total(self) -> int:
        return self.imprisoned + self.killed


@dataclass
class ActionResult:
    """
    Result of a player action.

    The synchronous phase fills in everything except the notice fields;
    those are set once the adversary's notice resolution completes.
    """
    success: bool
    action_kind: str | None = None
    target_id: str | None = None
    reason: RejectionReason | None = None
    message: str = ""

    cost: int = 0
    power_gain: int = 0
    heat_gain: int = 0
    cooldown_ms: float = 0.0
    risk_tier: str | None = None
    casualties: Casualties = field(default_factory=Casualties)
    recruited: int = 0
    liberated: bool = False

    # Filled by notice resolution
    resolved: bool = False
    noticed: bool = False
    heat_applied: float = 0.0
    mayor_response: str | None = None
    citizen_response: str | None = None

    @classmethod
    def rejected(
        cls,
        reason: RejectionReason,
        message: str,
        action_kind: str | None = None,
        target_id: str | None = None,
    ) -> ActionResult:
        """Create a rejection result."""
        return cls(
            success=False,
            reason=reason,
            message=message,
            action_kind=action_kind,
            target_id=target_id,
        )


@dataclass
class EarningResult:
    """Result of a burst-income attempt."""
    success: bool
    kind: EarningKind
    reason: RejectionReason | None = None
    message: str = ""
    cost: int = 0
    reward: int = 0
    heat_applied: float = 0.0
    cooldown_ms: float = 0.0

    @classmethod
    def rejected(cls, kind: EarningKind, reason: RejectionReason, message: str) -> EarningResult:
        return cls(success=False, kind=kind, reason=reason, message=message)
