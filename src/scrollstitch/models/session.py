"""
Session Models
==============

Capture session state, statistics, and control-service schemas.

Output Contract (GET /status):
    {
        "state": "CAPTURING",
        "capture_count": 7,
        "fragment_count": 7,
        "skipped_duplicates": 2,
        "ticks": 41,
        "capture_failures": 0,
        "canvas_width": 400,
        "canvas_height": 2310,
        "scroll_cursor": 2310,
        "covered_regions": 7,
        "detection_interval_ms": 200
    }
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CaptureState(str, Enum):
    """
    Orchestrator states.

    Stopping is transient: `stop()` finalizes the session and returns
    straight to IDLE.

    Attributes:
        IDLE: No session is ticking
        CAPTURING: Timer active, ticks compare and append content
    """

    IDLE = "IDLE"
    CAPTURING = "CAPTURING"


class EventType(str, Enum):
    """Callback surface exposed by the orchestrator."""

    STATUS_CHANGED = "status"
    FRAGMENT_ACCEPTED = "fragment"
    SESSION_FINISHED = "finished"
    SCROLL_OBSERVED = "scroll"


class SessionStats(BaseModel):
    """
    Snapshot of a capture session for observability.

    Attributes:
        state: Current orchestrator state
        capture_count: Fragments accepted, seed included
        fragment_count: Fragments held by the canvas
        skipped_duplicates: Candidates rejected by the tracker
        ticks: Timer ticks handled this session
        capture_failures: Ticks whose capture failed
        canvas_width: Width of the assembled canvas
        canvas_height: Height of the assembled canvas
        scroll_cursor: Logical y where the next Down strip lands
        covered_regions: Records currently held by the tracker
        detection_interval_ms: Current polling period
    """

    state: CaptureState = Field(..., description="Current orchestrator state")
    capture_count: int = Field(default=0, ge=0)
    fragment_count: int = Field(default=0, ge=0)
    skipped_duplicates: int = Field(default=0, ge=0)
    ticks: int = Field(default=0, ge=0)
    capture_failures: int = Field(default=0, ge=0)
    canvas_width: int = Field(default=0, ge=0)
    canvas_height: int = Field(default=0, ge=0)
    scroll_cursor: int = Field(default=0)
    covered_regions: int = Field(default=0, ge=0)
    detection_interval_ms: int = Field(default=200, gt=0)


class CaptureRegionRequest(BaseModel):
    """Screen rectangle to track, in screen coordinates."""

    x: int = Field(..., description="Left edge (pixels)")
    y: int = Field(..., description="Top edge (pixels)")
    width: int = Field(..., description="Width (pixels)")
    height: int = Field(..., description="Height (pixels)")


class IntervalRequest(BaseModel):
    """New polling period for the running or next session."""

    interval_ms: int = Field(..., gt=0, description="Polling period (milliseconds)")


class CaptureEvent(BaseModel):
    """
    Event pushed to WebSocket subscribers.

    Attributes:
        type: Event kind
        timestamp: UNIX time when the event was emitted
        message: Status text, when the event carries one
        data: Event-specific payload (direction, offset, canvas size...)
    """

    type: EventType
    timestamp: float
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
