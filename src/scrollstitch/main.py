"""
scrollstitch Control Service
============================

FastAPI entry point for driving scrolling-capture sessions.

Endpoints:
    GET  /                    - Service information
    GET  /health              - Liveness probe
    GET  /status              - Session statistics
    POST /capture/start       - Start capturing a screen rect
    POST /capture/stop        - Finish the session
    POST /capture/clear       - Reset session state (idle only)
    PUT  /capture/interval    - Change the polling period
    GET  /capture/composite   - Stitched image as PNG
    WS   /ws/events           - Real-time session events
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional, Set, Tuple

from fastapi import FastAPI, Query, WebSocket
from fastapi.responses import JSONResponse, Response

from scrollstitch.capture.image_ops import FrameFormatError, encode_png
from scrollstitch.config import settings
from scrollstitch.models.geometry import Rect
from scrollstitch.models.session import (
    CaptureEvent,
    CaptureRegionRequest,
    EventType,
    IntervalRequest,
)
from scrollstitch.session import CaptureOrchestrator, create_orchestrator


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

# Session controller
_orchestrator: Optional[CaptureOrchestrator] = None
_unsubscribers: List[Callable[[], None]] = []

# WebSocket subscribers: (loop, queue) per connected client
_subscribers: Set[Tuple[asyncio.AbstractEventLoop, "asyncio.Queue[CaptureEvent]"]] = set()

_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_orchestrator() -> Optional[CaptureOrchestrator]:
    return _orchestrator


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Event Forwarding
# =============================================================================

def _broadcast(event: CaptureEvent) -> None:
    """Queue an event for every connected WebSocket client."""
    for loop, queue in list(_subscribers):
        try:
            loop.call_soon_threadsafe(queue.put_nowait, event)
        except RuntimeError:
            # Client loop already closed
            _subscribers.discard((loop, queue))


def _forward(event_type: EventType) -> Callable[..., None]:
    def listener(*args: Any) -> None:
        message: Optional[str] = None
        data: dict = {}

        if event_type is EventType.STATUS_CHANGED:
            message = args[0]
        elif event_type is EventType.SCROLL_OBSERVED:
            direction, offset = args
            data = {"direction": direction.value, "offset": offset}
        else:
            composite = args[0]
            if composite is not None:
                data = {"width": int(composite.shape[1]), "height": int(composite.shape[0])}

        _broadcast(CaptureEvent(
            type=event_type,
            timestamp=time.time(),
            message=message,
            data=data,
        ))

    return listener


def install_orchestrator(orchestrator: Optional[CaptureOrchestrator]) -> None:
    """
    Make `orchestrator` the service's session controller.

    Detaches event forwarding from the previous controller, if any.
    """
    global _orchestrator

    for unsubscribe in _unsubscribers:
        unsubscribe()
    _unsubscribers.clear()

    _orchestrator = orchestrator
    if orchestrator is None:
        return

    for event_type in (
        EventType.STATUS_CHANGED,
        EventType.SCROLL_OBSERVED,
        EventType.FRAGMENT_ACCEPTED,
        EventType.SESSION_FINISHED,
    ):
        _unsubscribers.append(
            orchestrator.events.subscribe(event_type, _forward(event_type))
        )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _startup_time, _shutdown_flag

    signal.signal(signal.SIGTERM, _handle_sigterm)

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    install_orchestrator(create_orchestrator(settings))
    logger.info(
        f"Orchestrator ready: source={settings.capture.source}, "
        f"matcher={settings.matcher.backend}"
    )

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    orchestrator = get_orchestrator()
    if orchestrator is not None and orchestrator.is_capturing:
        orchestrator.stop()
    install_orchestrator(None)

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="scrollstitch",
    description="Scrolling screenshot capture and stitching service",
    version=settings.service.version,
    lifespan=lifespan,
)


def _not_initialized() -> JSONResponse:
    return JSONResponse({"error": "Orchestrator not initialized"}, status_code=503)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "scrollstitch",
        "version": settings.service.version,
        "name": settings.service.name,
        "status": "running",
        "source": settings.capture.source,
        "matcher_backend": settings.matcher.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe. Always 200 while the process is alive."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/status")
async def status() -> JSONResponse:
    """Session statistics plus component metrics."""
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    return JSONResponse({
        **orchestrator.stats().model_dump(mode="json"),
        "session": orchestrator.metrics.to_dict(),
        "detector": orchestrator.detector.get_metrics(),
        "tracker": orchestrator.tracker.metrics(),
    })


@app.post("/capture/start")
async def start_capture(request: CaptureRegionRequest) -> JSONResponse:
    """Start a session over the requested screen rect."""
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    rect = Rect(request.x, request.y, request.width, request.height)
    if not orchestrator.start(rect):
        return JSONResponse(
            {
                "error": "Capture could not be started",
                "state": orchestrator.state.value,
            },
            status_code=409,
        )

    return JSONResponse(orchestrator.stats().model_dump(mode="json"))


@app.post("/capture/stop")
async def stop_capture() -> JSONResponse:
    """Finish the running session (no-op when idle)."""
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    composite = orchestrator.stop()
    return JSONResponse({
        "stopped": composite is not None,
        **orchestrator.stats().model_dump(mode="json"),
    })


@app.post("/capture/clear")
async def clear_capture() -> JSONResponse:
    """Reset session state. Refused while capturing."""
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    if not orchestrator.clear():
        return JSONResponse(
            {"error": "Cannot clear while capturing", "state": orchestrator.state.value},
            status_code=409,
        )

    return JSONResponse(orchestrator.stats().model_dump(mode="json"))


@app.put("/capture/interval")
async def set_interval(request: IntervalRequest) -> JSONResponse:
    """Change the polling period; applies on the next tick."""
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    orchestrator.set_detection_interval(request.interval_ms)
    return JSONResponse({"detection_interval_ms": orchestrator.detection_interval_ms})


@app.get("/capture/composite")
async def composite(live: bool = Query(default=False)) -> Response:
    """
    Stitched image as PNG.

    `live=true` renders the canvas as it stands; otherwise the finalized
    composite is returned when one exists.
    """
    orchestrator = get_orchestrator()
    if orchestrator is None:
        return _not_initialized()

    image = orchestrator.get_live_composite() if live else orchestrator.get_composite()
    if image is None:
        return JSONResponse({"error": "No composite available"}, status_code=404)

    try:
        png = encode_png(image)
    except FrameFormatError as e:
        logger.error(f"Composite encoding failed: {e}")
        return JSONResponse({"error": "Composite encoding failed"}, status_code=500)

    return Response(content=png, media_type="image/png")


# =============================================================================
# WebSocket Endpoints
# =============================================================================

async def _wait_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@app.websocket("/ws/events")
async def event_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for session events."""
    queue: "asyncio.Queue[CaptureEvent]" = asyncio.Queue()
    subscriber = (asyncio.get_running_loop(), queue)
    _subscribers.add(subscriber)

    try:
        await websocket.accept()
    except Exception:
        _subscribers.discard(subscriber)
        raise
    logger.info("Client connected to /ws/events")

    disconnect = asyncio.create_task(_wait_disconnect(websocket))

    try:
        while not _shutdown_flag and not disconnect.done():
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait(
                {getter, disconnect},
                timeout=1.0,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if getter in done:
                await websocket.send_json(getter.result().model_dump(mode="json"))
            else:
                getter.cancel()

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        _subscribers.discard(subscriber)
        disconnect.cancel()
        logger.info("Client disconnected from /ws/events")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "scrollstitch.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
