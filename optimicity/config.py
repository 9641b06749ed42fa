"""
Configuration - Tunable constants for the engine and its collaborators.

Every number the simulation depends on lives here so a session can be
built with different pacing (tests use tiny intervals, the CLI uses the
real ones). Values can be overridden with OPTIMICITY_* environment
variables.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class EngineConfig:
    """
    Simulation pacing and starting conditions.

    Durations are milliseconds unless the name says otherwise.
    """
    session_duration_ms: int = 15 * 60 * 1000
    tick_interval_seconds: float = 5.0
    mining_interval_seconds: float = 15.0
    global_cooldown_ms: int = 3000

    starting_currency: int = 1000
    participant_range: tuple[int, int] = (1, 50)
    population_range: tuple[int, int] = (8_000_000, 12_000_000)

    # Neighborhood timers are measured in minutes
    timer_decay_per_tick: float = 5 / 60
    escalation_timer_cut: float = 8.0
    escalation_timer_floor: float = 1.0

    event_log_capacity: int = 200
    narrator_timeout_seconds: float = 10.0

    def __post_init__(self):
        if self.session_duration_ms <= 0:
            raise ValueError("session_duration_ms must be positive")
        if self.tick_interval_seconds <= 0 or self.mining_interval_seconds <= 0:
            raise ValueError("tick and mining intervals must be positive")
        lo, hi = self.participant_range
        if lo < 0 or hi < lo:
            raise ValueError(f"Invalid participant_range: {self.participant_range}")
        lo, hi = self.population_range
        if lo < 0 or hi < lo:
            raise ValueError(f"Invalid population_range: {self.population_range}")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from OPTIMICITY_* environment variables."""
        defaults = cls()
        return cls(
            session_duration_ms=_env_int(
                "OPTIMICITY_SESSION_DURATION_MS", defaults.session_duration_ms
            ),
            tick_interval_seconds=_env_float(
                "OPTIMICITY_TICK_INTERVAL", defaults.tick_interval_seconds
            ),
            mining_interval_seconds=_env_float(
                "OPTIMICITY_MINING_INTERVAL", defaults.mining_interval_seconds
            ),
            global_cooldown_ms=_env_int(
                "OPTIMICITY_GLOBAL_COOLDOWN_MS", defaults.global_cooldown_ms
            ),
            starting_currency=_env_int(
                "OPTIMICITY_STARTING_CURRENCY", defaults.starting_currency
            ),
            event_log_capacity=_env_int(
                "OPTIMICITY_LOG_CAPACITY", defaults.event_log_capacity
            ),
            narrator_timeout_seconds=_env_float(
                "OPTIMICITY_NARRATOR_TIMEOUT", defaults.narrator_timeout_seconds
            ),
        )


@dataclass
class NarrativeConfig:
    """Settings for the LLM-backed narrators."""
    enabled: bool = False
    endpoint: str = "http://localhost:11434/api/generate"
    model: str = "llama3.2"
    timeout_seconds: float = 10.0
    max_length: int = 1000
    temperatures: dict[str, float] = field(
        default_factory=lambda: {"mayor": 0.3, "citizens": 0.7}
    )

    @classmethod
    def from_env(cls) -> NarrativeConfig:
        defaults = cls()
        return cls(
            enabled=_env_bool("OPTIMICITY_NARRATOR_ENABLED", defaults.enabled),
            endpoint=os.getenv("OPTIMICITY_NARRATOR_ENDPOINT", defaults.endpoint),
            model=os.getenv("OPTIMICITY_NARRATOR_MODEL", defaults.model),
            timeout_seconds=_env_float(
                "OPTIMICITY_NARRATOR_TIMEOUT", defaults.timeout_seconds
            ),
        )
