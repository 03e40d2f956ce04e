"""
Proctor Integrity API

FastAPI application exposing:
- POST /sessions → start a monitored session
- POST /sessions/end → end it and return the final snapshot
- POST /sessions/pause, /sessions/resume → 204 (no body)
- GET /session → live session state
- POST /stream/observations → 204 (no body)
- GET /alerts, DELETE /alerts/{alert_id}

The observation stream is rate limited via Redis.
"""

from contextlib import asynccontextmanager
import logging
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.config import ProctorConfig
from core.orchestrator import ProctorOrchestrator
from core.perception import BufferedPerceptionAdapter
from core.schemas.inputs import ObservationBatchPayload, StartSessionPayload
from core.schemas.outputs import Alert, SessionSnapshot, SessionStateResponse
from core.session import SessionStateError
from persistence.rate_limiter import StreamRateLimiter
from persistence.supabase_gateway import build_gateway


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application State
# =============================================================================

class AppState:
    """Application state container."""
    orchestrator: Optional[ProctorOrchestrator] = None
    adapter: Optional[BufferedPerceptionAdapter] = None
    rate_limiter: Optional[StreamRateLimiter] = None


state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Proctor Integrity API...")
    load_dotenv()
    config = ProctorConfig.from_env()
    state.adapter = BufferedPerceptionAdapter()
    state.rate_limiter = StreamRateLimiter.from_env()
    state.orchestrator = ProctorOrchestrator(
        adapter=state.adapter,
        gateway=build_gateway(),
        config=config,
    )
    logger.info("Proctor Integrity API ready")

    yield

    # Shutdown
    logger.info("Shutting down Proctor Integrity API...")
    state.orchestrator.shutdown()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Proctor Integrity",
    description="Live proctoring signal stabilization and integrity scoring",
    version="1.0.0",
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


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# =============================================================================
# Session Endpoints
# =============================================================================

# Lifecycle calls wait on the tick lock and the polling thread, so these
# handlers are sync and run in the threadpool, off the event loop.

@app.post("/sessions", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED)
def start_session(payload: StartSessionPayload):
    """
    Start a monitored session.

    - Resets events, counters, score (100) and alerts
    - Begins polling the perception stream
    """
    try:
        return state.orchestrator.start_session(payload.candidate_name, payload.session_id)
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@app.post("/sessions/end", response_model=SessionSnapshot)
def end_session():
    """
    End the active session.

    - Stops polling and clears pending alerts
    - Hands the final snapshot to persistence (fire-and-forget)
    """
    try:
        return state.orchestrator.end_session()
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@app.post("/sessions/pause", status_code=status.HTTP_204_NO_CONTENT)
def pause_session():
    """Pause polling without ending the session."""
    try:
        state.orchestrator.pause()
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/sessions/resume", status_code=status.HTTP_204_NO_CONTENT)
def resume_session():
    """Resume polling."""
    try:
        state.orchestrator.resume()
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/session", response_model=SessionStateResponse)
async def get_session():
    """Live session state (events, counters, score, alerts)."""
    return state.orchestrator.get_state()


# =============================================================================
# Stream Endpoint (HTTP 204)
# =============================================================================

@app.post("/stream/observations", status_code=status.HTTP_204_NO_CONTENT)
async def stream_observations(payload: ObservationBatchPayload):
    """
    Ingest one frame of perception output.

    - Buffered until the next pipeline tick
    - Never returns integrity decisions
    """
    current = state.orchestrator.aggregator.session_id
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No active session"
        )
    if payload.session_id != current:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown session {payload.session_id}"
        )

    # Rate limiting
    if not state.rate_limiter.allow(payload.session_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded (max {state.rate_limiter.limit} batches/sec)"
        )

    state.adapter.push(payload.observations)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Alert Endpoints
# =============================================================================

@app.get("/alerts", response_model=List[Alert])
async def list_alerts():
    """Currently visible alerts; each expires on its own."""
    return state.orchestrator.alerts.list()


@app.delete("/alerts/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_alert(alert_id: int):
    """Dismiss an alert. Dismissing a missing alert is a no-op."""
    state.orchestrator.alerts.remove(alert_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
