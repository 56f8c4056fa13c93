"""
FastAPI Application - Rate View Host Shell

Hosts one RateViewController for the lifetime of the process and exposes its
derived presentation state to the chart front-end.

Endpoints:
    - GET  /                   Service information
    - GET  /health             Status and current view mode
    - GET  /view               Current ViewSnapshot (mode, loading, error, stats, chart)
    - POST /view/mode/{mode}   Switch data source (history | live)
    - POST /view/refresh       Re-run the current mode's acquisition
    - WS   /ws/view            Push every state snapshot as JSON

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, validate_configuration
from core.logging import logger
from core.schemas import ViewMode, ViewSnapshot
from services.event_bus import VIEW_STATE_TOPIC, bus
from services.view_controller import RateViewController


def build_controller() -> RateViewController:
    """Create the process-wide controller from settings."""
    return RateViewController(
        max_points=settings.chart_max_points,
        tz=settings.display_tz,
        event_bus=bus,
    )


def get_controller(request: Request) -> RateViewController:
    return request.app.state.controller


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    validate_configuration()
    controller = build_controller()
    app.state.controller = controller
    await controller.start()
    logger.info("=== Started Successfully ===")

    yield

    logger.info("=== Shutting Down ===")
    await controller.close()
    logger.info("=== Shutdown Complete ===")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Rate Watch",
    description=(
        "Presentation state for the conversion-rate chart.\n\n"
        "- `GET /view` - current mode, loading flag, advisory error, stats and chart series\n"
        "- `POST /view/mode/{mode}` - switch between `history` and `live`\n"
        "- `POST /view/refresh` - re-fetch history or re-open the live stream\n"
        "- `WS /ws/view` - state snapshots pushed on every change"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """Service information."""
    return {
        "name": "Rate Watch",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "rate_backend": settings.base_url,
    }


@app.get("/health", tags=["System"])
async def health_check(request: Request):
    """Health check: degraded while the view carries an advisory error."""
    controller = get_controller(request)
    return {
        "status": "degraded" if controller.error is not None else "healthy",
        "mode": controller.mode.value,
        "live_open": controller.live_open,
        "history_in_flight": controller.history_in_flight,
    }


# ============================================
# View Endpoints
# ============================================

@app.get("/view", response_model=ViewSnapshot, tags=["View"])
async def get_view(request: Request):
    """Current presentation state."""
    return get_controller(request).snapshot()


@app.post("/view/mode/{mode}", response_model=ViewSnapshot, tags=["View"])
async def set_view_mode(mode: str, request: Request):
    """
    Switch the active data source.

    Examples:
        POST /view/mode/live
        POST /view/mode/history
    """
    try:
        view_mode = ViewMode(mode.lower())
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid mode: {mode}. Must be one of: {', '.join(m.value for m in ViewMode)}"
        )

    controller = get_controller(request)
    await controller.set_mode(view_mode)
    return controller.snapshot()


@app.post("/view/refresh", response_model=ViewSnapshot, tags=["View"])
async def refresh_view(request: Request):
    """Re-fetch history or re-open the live stream, depending on the mode."""
    controller = get_controller(request)
    await controller.refresh()
    return controller.snapshot()


# ============================================
# WebSocket Endpoints
# ============================================

@app.websocket("/ws/view")
async def websocket_view(websocket: WebSocket):
    """
    Push view state snapshots. The current snapshot is sent on connect.

    Example:
        ws://localhost:8000/ws/view
    """
    await websocket.accept()
    logger.info("WS connected: view")
    queue = await bus.subscribe(VIEW_STATE_TOPIC)
    try:
        controller = websocket.app.state.controller
        await websocket.send_json(controller.snapshot().model_dump(mode="json"))
        while True:
            event = await queue.get()
            await websocket.send_json(event)
    except WebSocketDisconnect:
        logger.info("WS disconnected: view")
    finally:
        await bus.unsubscribe(VIEW_STATE_TOPIC, queue)
        logger.info("WS ended: view")
