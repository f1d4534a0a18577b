"""
Data Models
===========

Value types and schemas for scrollstitch.

Models:
    Geometry:
        - Rect: Integer rectangle with exclusive right/bottom edges

    Scroll:
        - ScrollDirection: NONE, UP, DOWN
        - OverlapResult: Output of an overlap search
        - ScrollEvent: Output of scroll detection

    Fragments:
        - Fragment: Accepted canvas content
        - CoveredRegion: Duplicate-detection record

    Session:
        - CaptureState, EventType, SessionStats
        - CaptureRegionRequest, IntervalRequest, CaptureEvent

    Reason codes:
        - TickOutcome, DuplicateReason
"""

from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import OverlapResult, ScrollDirection, ScrollEvent
from scrollstitch.models.fragment import CoveredRegion, Fragment
from scrollstitch.models.reason_codes import DuplicateReason, TickOutcome
from scrollstitch.models.session import (
    CaptureEvent,
    CaptureRegionRequest,
    CaptureState,
    EventType,
    IntervalRequest,
    SessionStats,
)

__all__ = [
    # Geometry
    "Rect",
    # Scroll
    "ScrollDirection",
    "OverlapResult",
    "ScrollEvent",
    # Fragments
    "Fragment",
    "CoveredRegion",
    # Reason codes
    "TickOutcome",
    "DuplicateReason",
    # Session
    "CaptureState",
    "EventType",
    "SessionStats",
    "CaptureRegionRequest",
    "IntervalRequest",
    "CaptureEvent",
]
