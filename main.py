"""
Behavior Monitor API

FastAPI application exposing one BehaviorMonitor per session:
- POST /sessions/{id}/start            → MonitorStatus
- POST /sessions/{id}/stream/{channel} → 204 (no body)
- POST /sessions/{id}/render-timing    → 204 (no body)
- GET  /sessions/{id}/status           → MonitorStatus
- GET  /sessions/{id}/results          → OverallResult
- GET  /sessions/{id}/calibration      → CalibrationReport
- GET  /sessions/{id}/ready            → {"ready": bool}
- POST /sessions/{id}/stop             → OverallResult (evicts the session)
- DELETE /sessions/{id}                → 204

Environment (.env supported):
    LOG_LEVEL             Logging level (default: INFO)
    CALIBRATION_FILE      JSON calibration overrides
    PERSISTENCE_BACKEND   none | memory | redis (default: none)
"""

from contextlib import asynccontextmanager
import logging
import os
from typing import Callable, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.config import CalibrationConfig, ConfigurationError, build_config, load_calibration_file
from core.monitor import BehaviorMonitor
from core.options import MonitorOptions
from core.schemas.inputs import (
    DomEventStreamPayload,
    KeyboardStreamPayload,
    MotionStreamPayload,
    MouseStreamPayload,
    RenderTiming,
    ScrollStreamPayload,
    TouchStreamPayload,
)
from core.schemas.outputs import CalibrationReport, MonitorStatus, OverallResult
from persistence.snapshot import DEFAULT_SNAPSHOT_KEY
from persistence.stores import InMemoryStore, KeyValueStore, RedisStore


# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# Application State
# =============================================================================

class AppState:
    """Application state container."""
    calibration: Optional[CalibrationConfig] = None
    store: Optional[KeyValueStore] = None
    sessions: Optional[Dict[str, BehaviorMonitor]] = None


state = AppState()


def build_store(backend: str) -> Optional[KeyValueStore]:
    """Snapshot store for the configured persistence backend."""
    backend = backend.strip().lower()
    if backend in ("", "none"):
        return None
    if backend == "memory":
        return InMemoryStore()
    if backend == "redis":
        return RedisStore()
    raise ConfigurationError(f"Unknown PERSISTENCE_BACKEND: {backend}")


def load_calibration() -> CalibrationConfig:
    path = os.getenv("CALIBRATION_FILE")
    if path:
        return load_calibration_file(path)
    return build_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Behavior Monitor API...")
    state.calibration = load_calibration()
    state.store = build_store(os.getenv("PERSISTENCE_BACKEND", "none"))
    state.sessions = {}
    logger.info("Behavior Monitor API ready")

    yield

    # Shutdown
    logger.info("Shutting down Behavior Monitor API...")
    for session_id, monitor in state.sessions.items():
        if monitor.stop() is not None:
            logger.info(f"Stopped session {session_id} on shutdown")
    state.sessions = {}


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Behavior Monitor",
    description="Behavioral telemetry scoring engine",
    version=API_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def create_session(session_id: str) -> BehaviorMonitor:
    """Build a monitor, restoring the session's snapshot when a store is configured."""
    options = MonitorOptions.from_env(
        store=state.store,
        persist_key=f"{os.getenv('BEHAVIOR_PERSIST_KEY', DEFAULT_SNAPSHOT_KEY)}:{session_id}",
    )
    return BehaviorMonitor(options, state.calibration)


def get_session(session_id: str) -> BehaviorMonitor:
    monitor = state.sessions.get(session_id)
    if monitor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown session: {session_id}"
        )
    return monitor


def ingest(session_id: str, channel: str, record: Callable[[BehaviorMonitor], None]) -> Response:
    """Apply a batch to a session, mapping failures to HTTP errors."""
    monitor = get_session(session_id)
    try:
        record(monitor)
    except Exception as e:
        logger.error(f"{channel} stream error for {session_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error processing {channel} stream"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": API_VERSION, "sessions": len(state.sessions or {})}


# =============================================================================
# Session Lifecycle
# =============================================================================

@app.post("/sessions/{session_id}/start", response_model=MonitorStatus)
async def start_session(session_id: str):
    """Create the session on first use and start collecting."""
    monitor = state.sessions.get(session_id)
    if monitor is None:
        monitor = create_session(session_id)
        state.sessions[session_id] = monitor
        logger.info(f"Created session {session_id}")

    monitor.start()
    return monitor.get_status()


@app.post("/sessions/{session_id}/stop", response_model=OverallResult)
async def stop_session(session_id: str):
    """
    Stop collecting and return the final result.

    The stopped monitor is evicted once its snapshot is flushed; a later
    start rebuilds it from the store.
    """
    monitor = get_session(session_id)
    result = monitor.stop()
    del state.sessions[session_id]
    logger.info(f"Evicted stopped session {session_id}")
    return result


@app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str):
    """Stop the session and discard its samples and snapshot."""
    monitor = state.sessions.pop(session_id, None)
    if monitor is None:
        if state.store is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session: {session_id}"
            )
        # Stopped sessions live on only as snapshots
        monitor = create_session(session_id)
    monitor.stop()
    monitor.clear_stored_state()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Stream Endpoints (HTTP 204)
# =============================================================================

@app.post("/sessions/{session_id}/stream/mouse", status_code=status.HTTP_204_NO_CONTENT)
async def stream_mouse(session_id: str, payload: MouseStreamPayload):
    """Ingest pointer events (MOVE feeds mouse, CLICK feeds events)."""
    def record(monitor: BehaviorMonitor) -> None:
        for event in payload.events:
            monitor.record_mouse_event(event)
    return ingest(session_id, "mouse", record)


@app.post("/sessions/{session_id}/stream/keyboard", status_code=status.HTTP_204_NO_CONTENT)
async def stream_keyboard(session_id: str, payload: KeyboardStreamPayload):
    """Ingest raw key-down / key-up events."""
    def record(monitor: BehaviorMonitor) -> None:
        for event in payload.events:
            monitor.record_keyboard_event(event)
    return ingest(session_id, "keyboard", record)


@app.post("/sessions/{session_id}/stream/scroll", status_code=status.HTTP_204_NO_CONTENT)
async def stream_scroll(session_id: str, payload: ScrollStreamPayload):
    def record(monitor: BehaviorMonitor) -> None:
        for event in payload.events:
            monitor.record_scroll(event)
    return ingest(session_id, "scroll", record)


@app.post("/sessions/{session_id}/stream/touch", status_code=status.HTTP_204_NO_CONTENT)
async def stream_touch(session_id: str, payload: TouchStreamPayload):
    def record(monitor: BehaviorMonitor) -> None:
        for event in payload.events:
            monitor.record_touch_event(event)
    return ingest(session_id, "touch", record)


@app.post("/sessions/{session_id}/stream/events", status_code=status.HTTP_204_NO_CONTENT)
async def stream_events(session_id: str, payload: DomEventStreamPayload):
    def record(monitor: BehaviorMonitor) -> None:
        for event in payload.events:
            monitor.record_dom_event(event)
    return ingest(session_id, "events", record)


@app.post("/sessions/{session_id}/stream/sensors", status_code=status.HTTP_204_NO_CONTENT)
async def stream_sensors(session_id: str, payload: MotionStreamPayload):
    def record(monitor: BehaviorMonitor) -> None:
        for sample in payload.events:
            monitor.record_motion(sample)
    return ingest(session_id, "sensors", record)


@app.post("/sessions/{session_id}/render-timing", status_code=status.HTTP_204_NO_CONTENT)
async def render_timing(session_id: str, payload: RenderTiming):
    """Report the one-shot rendering latency probe result."""
    return ingest(session_id, "render_timing", lambda monitor: monitor.record_render_timing(payload))


# =============================================================================
# Results (JSON Response)
# =============================================================================

@app.get("/sessions/{session_id}/status", response_model=MonitorStatus)
async def session_status(session_id: str):
    return get_session(session_id).get_status()


@app.get("/sessions/{session_id}/results", response_model=OverallResult)
async def session_results(session_id: str):
    """Analyze and fuse the session's current samples."""
    monitor = get_session(session_id)
    try:
        return monitor.get_results()
    except Exception as e:
        logger.error(f"Results error for {session_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error during analysis"
        )


@app.get("/sessions/{session_id}/calibration", response_model=CalibrationReport)
async def session_calibration(session_id: str):
    """Diagnostic export for threshold tuning."""
    return get_session(session_id).get_calibration_data()


@app.get("/sessions/{session_id}/ready")
async def session_ready(session_id: str, timeout_ms: Optional[float] = None):
    """Wait for readiness (bounded by timeout_ms, default the session timeout)."""
    monitor = get_session(session_id)
    ready = await monitor.wait_for_ready(timeout_ms)
    return {"ready": ready}


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
