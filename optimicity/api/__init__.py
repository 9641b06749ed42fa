"""
API Module - HTTP interface.

Exposes the engine via a REST API and a WebSocket log stream.
A client:
1. Creates a session
2. Selects a neighborhood
3. Performs actions and earns currency
4. Watches the world move between requests

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    SelectTargetRequest,
    ActionRequest,
    # Responses
    SessionResponse,
    GameStateResponse,
    TargetResponse,
    ActionResponse,
    EarningResponse,
    CooldownsResponse,
    LogResponse,
    ActionCatalogResponse,
    ErrorResponse,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "SelectTargetRequest",
    "ActionRequest",
    # Responses
    "SessionResponse",
    "GameStateResponse",
    "TargetResponse",
    "ActionResponse",
    "EarningResponse",
    "CooldownsResponse",
    "LogResponse",
    "ActionCatalogResponse",
    "ErrorResponse",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
