from __future__ import annotations

import contextlib
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from circle.logic.cards import DeckCardSource
from circle.logic.machine import RoomStateMachine
from circle.logic.membership import RoomMembership
from circle.logic.registry import RoomRegistry
from circle.logic.rng import create_rng
from circle.messaging.router import MessageRouter
from circle.server.settings import CircleServerSettings
from circle.server.websocket import websocket_endpoint
from circle.session.manager import SessionManager
from shared.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from circle.logic.cards import CardSource

logger = structlog.get_logger()


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "status": "ok",
            "rooms": session_manager.room_count,
            "max_rooms": session_manager.max_rooms,
        },
    )


async def categories(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse({"categories": [c.model_dump(mode="json") for c in session_manager.categories()]})


def build_session_manager(
    settings: CircleServerSettings,
    card_source: CardSource | None = None,
    seed: int | None = None,
) -> SessionManager:
    """Wire registry, state machine and membership service around one shared RNG."""
    rng = create_rng(seed)
    registry = RoomRegistry()
    machine = RoomStateMachine(
        registry,
        card_source or DeckCardSource(rng),
        settings=settings.game_settings(),
        rng=rng,
    )
    return SessionManager(
        machine,
        RoomMembership(registry, rng),
        idle_cleanup_seconds=settings.idle_cleanup_seconds,
        max_rooms=settings.max_rooms,
    )


def create_app(
    settings: CircleServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = CircleServerSettings()

    if session_manager is None:
        session_manager = build_session_manager(settings)

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/categories", categories, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        session_manager.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("inner circle server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = CircleServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
