"""
FastAPI Application - REST API for the simulation.

Endpoints:
    POST   /api/v1/sessions                           Create session
    GET    /api/v1/sessions                           List sessions
    GET    /api/v1/sessions/{id}                      Get session status
    DELETE /api/v1/sessions/{id}                      End session
    POST   /api/v1/sessions/{id}/restart              Rebuild the world
    GET    /api/v1/sessions/{id}/state                Get world state
    POST   /api/v1/sessions/{id}/target               Select a neighborhood
    POST   /api/v1/sessions/{id}/actions              Perform an action
    POST   /api/v1/sessions/{id}/earnings/collectible Sell a collectible series
    POST   /api/v1/sessions/{id}/earnings/crowdfunding Run a crowdfunding drive
    GET    /api/v1/sessions/{id}/cooldowns            Remaining cooldowns
    GET    /api/v1/sessions/{id}/log                  Game log
    GET    /api/v1/actions                            Action catalog
    WS     /api/v1/sessions/{id}/ws                   Live game log

Action flow:
    1. POST /target picks the neighborhood (or pass target_id with the action)
    2. POST /actions runs the action; the response is sent once the AI
       Mayor has decided whether it noticed, so heat_applied is final
    3. Autonomous ticks keep running between requests; follow them on /ws

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Optional, Union
import asyncio
import json
import logging
import os

from ..config import EngineConfig, NarrativeConfig

logger = logging.getLogger(__name__)

# Environment configuration
OPTIMICITY_ENV = os.getenv("OPTIMICITY_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

API_VERSION = "0.1.0"


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from ..engine_core.events import LogEntry
    from ..session import SessionManager
    from .service import APIService
    from .schemas import (
        # Request models
        CreateSessionRequest,
        SelectTargetRequest,
        ActionRequest,
        # Response models
        SessionResponse,
        GameStateResponse,
        TargetResponse,
        ActionResponse,
        EarningResponse,
        CooldownsResponse,
        LogResponse,
        ActionCatalogResponse,
        ErrorResponse,
        SessionListResponse,
        EndSessionResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="OptimiCity API",
        description="""
Resistance simulation against an optimizing AI Mayor.

## Action flow

1. `POST /target` selects a neighborhood
2. `POST /actions` performs an action there. The response arrives after the
   Mayor's notice resolution: `noticed` and `heat_applied` are final.
3. The world keeps moving between requests (timers, the Mayor, the
   community, mining). Follow it on the WebSocket log stream.

## Rejections

A refused action is not an HTTP error: the body has `success=false` and
`error_code` set to one of `SESSION_INACTIVE`, `UNKNOWN_ACTION`,
`UNKNOWN_TARGET`, `NO_TARGET_SELECTED`, `GLOBAL_COOLDOWN`, `ACTION_COOLDOWN`,
`REQUIREMENT_NOT_MET`, `INSUFFICIENT_FUNDS`, `EARNING_COOLDOWN`,
`MOVEMENT_TOO_SMALL`.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(
        session_manager=SessionManager(EngineConfig.from_env(), NarrativeConfig.from_env())
    )

    # WebSocket connections and their log subscriptions, per session
    ws_connections: dict[str, list[WebSocket]] = {}
    log_listeners: dict[str, object] = {}
    # Log broadcasts in flight; held until done so they are not collected early
    broadcast_tasks: set[asyncio.Task] = set()
    app.state.broadcast_tasks = broadcast_tasks

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def not_found(response: ErrorResponse) -> JSONResponse:
        return make_error_response(
            ErrorCode.SESSION_NOT_FOUND,
            response.error,
            status_code=404,
            details=response.details,
        )

    async def broadcast_to_session(session_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a session."""
        if session_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[session_id]:
                try:
                    await ws.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[session_id].remove(ws)

    def broadcast_done(task: asyncio.Task) -> None:
        broadcast_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("log broadcast failed", exc_info=error)

    def spawn_broadcast(session_id: str, message: dict) -> None:
        task = asyncio.get_running_loop().create_task(broadcast_to_session(session_id, message))
        broadcast_tasks.add(task)
        task.add_done_callback(broadcast_done)

    def watch_log(session_id: str) -> None:
        """Forward every new log entry of a session to its sockets."""
        if session_id in log_listeners:
            return
        event_log = api_service.get_event_log(session_id)
        if event_log is None:
            return
        loop = asyncio.get_running_loop()

        def on_entry(entry: LogEntry) -> None:
            if loop.is_closed():
                return
            message = {
                "type": "log",
                "payload": {
                    "seq": entry.seq,
                    "category": entry.category.value,
                    "text": entry.text,
                    "timestamp": entry.timestamp,
                },
            }
            # Entries may be produced from another thread's loop (test clients)
            loop.call_soon_threadsafe(spawn_broadcast, session_id, message)

        event_log.subscribe(on_entry)
        log_listeners[session_id] = on_entry

    def unwatch_log(session_id: str) -> None:
        listener = log_listeners.pop(session_id, None)
        event_log = api_service.get_event_log(session_id)
        if listener is not None and event_log is not None:
            event_log.unsubscribe(listener)

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        tags=["Sessions"],
        summary="Create a new session",
    )
    async def create_session(request: Optional[CreateSessionRequest] = None) -> SessionResponse:
        """
        Create and start a new session.

        Pass a `seed` for a reproducible run.
        """
        return api_service.create_session(request)

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """End a session and release its resources."""
        unwatch_log(session_id)
        success = api_service.end_session(session_id)
        ws_connections.pop(session_id, None)
        return EndSessionResponse(success=success, session_id=session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/restart",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Restart a session from scratch",
    )
    async def restart_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        response = api_service.restart_session(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        await broadcast_to_session(session_id, {
            "type": "state_update",
            "payload": response.state.model_dump(mode="json"),
        })
        return response

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Get current world state",
    )
    async def get_game_state(session_id: str) -> Union[GameStateResponse, JSONResponse]:
        response = api_service.get_game_state(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/target",
        response_model=TargetResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Select a neighborhood",
    )
    async def select_target(
        session_id: str,
        request: SelectTargetRequest,
    ) -> Union[TargetResponse, JSONResponse]:
        response = api_service.select_target(session_id, request)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/actions",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Perform a resistance action",
    )
    async def perform_action(
        session_id: str,
        request: ActionRequest,
    ) -> Union[ActionResponse, JSONResponse]:
        """
        Perform an action in the selected neighborhood.

        Rejections come back with `success=false` and an `error_code`.
        """
        response = await api_service.perform_action(session_id, request)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        if response.state is not None:
            await broadcast_to_session(session_id, {
                "type": "state_update",
                "payload": response.state.model_dump(mode="json"),
            })
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/earnings/collectible",
        response_model=EarningResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Economy"],
        summary="Sell a collectible series",
    )
    async def sell_collectible(session_id: str) -> Union[EarningResponse, JSONResponse]:
        response = api_service.sell_collectible(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/earnings/crowdfunding",
        response_model=EarningResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Economy"],
        summary="Run a crowdfunding drive",
    )
    async def crowdfund(session_id: str) -> Union[EarningResponse, JSONResponse]:
        response = api_service.crowdfund(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/cooldowns",
        response_model=CooldownsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Remaining cooldowns",
    )
    async def get_cooldowns(session_id: str) -> Union[CooldownsResponse, JSONResponse]:
        response = api_service.get_cooldowns(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/log",
        response_model=LogResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Game log",
    )
    async def get_log(
        session_id: str,
        since: Annotated[int, Query(description="Only entries after this sequence number", ge=0)] = 0,
    ) -> Union[LogResponse, JSONResponse]:
        response = api_service.get_log(session_id, since)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    @app.get(
        "/api/v1/actions",
        response_model=ActionCatalogResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Action catalog",
    )
    async def list_actions(
        session_id: Annotated[Optional[str], Query(description="Price actions for this session")] = None,
    ) -> Union[ActionCatalogResponse, JSONResponse]:
        response = api_service.list_actions(session_id)
        if isinstance(response, ErrorResponse):
            return not_found(response)
        return response

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: World state changed
        - log: New game log entry
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()

        response = api_service.get_game_state(session_id)
        if isinstance(response, ErrorResponse):
            await websocket.send_json({
                "type": "error",
                "payload": {"message": response.error, "error_code": response.error_code.value},
            })
            await websocket.close()
            return

        if session_id not in ws_connections:
            ws_connections[session_id] = []
        ws_connections[session_id].append(websocket)
        watch_log(session_id)

        try:
            await websocket.send_json({
                "type": "state_update",
                "payload": response.model_dump(mode="json"),
            })

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            logger.debug("websocket closed for session %s", session_id)
        finally:
            if session_id in ws_connections:
                if websocket in ws_connections[session_id]:
                    ws_connections[session_id].remove(websocket)
                if not ws_connections[session_id]:
                    del ws_connections[session_id]
                    unwatch_log(session_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="optimicity",
            version=API_VERSION,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "OptimiCity API",
            "version": API_VERSION,
            "environment": OPTIMICITY_ENV,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn optimicity.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
