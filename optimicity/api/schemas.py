"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a client (browser UI, bot,
script) and the engine. Engine dataclasses are converted with
model_validate(..., from_attributes=True) where the shapes line up.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or was removed
- VALIDATION_ERROR: Request body failed validation
- INTERNAL_ERROR: Unexpected server error

Game rejections (cooldowns, funds, ...) are not HTTP errors: they come
back as a normal result with success=false and a rejection code.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class TargetInfo(BaseModel):
    """A neighborhood as shown to the player."""
    id: str
    name: str
    resistance: float
    timer: float = Field(description="Minutes until gentrification")
    threatened: bool
    population: int
    liberated: bool = False

    model_config = {"from_attributes": True}


class OutcomeInfo(BaseModel):
    """How a session ended."""
    kind: str = Field(description="victory, defeat or timeout")
    message: str


class CasualtiesInfo(BaseModel):
    imprisoned: int = 0
    killed: int = 0

    model_config = {"from_attributes": True}


class LogEntryInfo(BaseModel):
    """One line of the player-facing game log."""
    seq: int
    category: str = Field(description="player, system, ai or citizen")
    text: str
    timestamp: float

    model_config = {"from_attributes": True}


class ActionInfo(BaseModel):
    """A catalog action with its current price."""
    kind: str
    description: str
    power_range: tuple[int, int]
    heat_range: tuple[int, int]
    base_cost: int
    price: Optional[int] = Field(None, description="Current price in the session, if any")
    classes: list[str] = Field(default_factory=list)
    requires_threatened_target: bool = False
    min_power: float = 0


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a new session."""
    seed: Optional[int] = Field(None, description="Seed for a reproducible session")


class SelectTargetRequest(BaseModel):
    target_id: str = Field(..., description="Neighborhood to act in")


class ActionRequest(BaseModel):
    action: str = Field(..., description="Action kind, e.g. 'meeting'")
    target_id: Optional[str] = Field(
        None, description="Select this neighborhood before acting"
    )


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """Complete world state for display."""
    session_id: str
    status: SessionStatus
    phase: str
    remaining_ms: float

    power: float
    heat: float
    min_heat: float

    active_participants: int
    total_population: int
    imprisoned: int
    killed: int
    participation_ratio: float

    currency: int
    infrastructure_bonus: int
    actions_completed: int
    mining_threshold: int
    mining_active: bool

    selected_target: Optional[str] = None
    targets: list[TargetInfo] = Field(default_factory=list)
    outcome: Optional[OutcomeInfo] = None
    api_version: str = "v1"


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    status: SessionStatus
    seed: Optional[int] = None
    created_at: float = 0.0
    state: Optional[GameStateResponse] = None
    api_version: str = "v1"


class TargetResponse(BaseModel):
    session_id: str
    success: bool
    selected_target: Optional[str] = None
    error_code: Optional[str] = None
    message: str = ""


class ActionResponse(BaseModel):
    """
    Result of a player action, after the Mayor's notice resolution.

    When success is false, error_code says why and nothing changed.
    """
    session_id: str
    success: bool
    action: Optional[str] = None
    target_id: Optional[str] = None
    error_code: Optional[str] = None
    message: str = ""

    cost: int = 0
    power_gain: int = 0
    heat_gain: int = 0
    cooldown_ms: float = 0.0
    risk_tier: Optional[str] = None
    casualties: CasualtiesInfo = Field(default_factory=CasualtiesInfo)
    recruited: int = 0
    liberated: bool = False

    noticed: bool = False
    heat_applied: float = 0.0
    mayor_response: Optional[str] = None
    citizen_response: Optional[str] = None

    state: Optional[GameStateResponse] = None
    api_version: str = "v1"


class EarningResponse(BaseModel):
    """Result of a collectible sale or crowdfunding attempt."""
    session_id: str
    success: bool
    kind: str
    error_code: Optional[str] = None
    message: str = ""
    cost: int = 0
    reward: int = 0
    heat_applied: float = 0.0
    cooldown_ms: float = 0.0
    state: Optional[GameStateResponse] = None
    api_version: str = "v1"


class CooldownsResponse(BaseModel):
    """Remaining cooldowns in milliseconds."""
    session_id: str
    global_remaining_ms: float = 0.0
    actions: dict[str, float] = Field(default_factory=dict)
    earnings: dict[str, float] = Field(default_factory=dict)


class LogResponse(BaseModel):
    session_id: str
    entries: list[LogEntryInfo] = Field(default_factory=list)


class ActionCatalogResponse(BaseModel):
    actions: list[ActionInfo]


class SessionListResponse(BaseModel):
    """Response listing sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
