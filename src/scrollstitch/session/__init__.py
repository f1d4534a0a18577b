"""
Session Module
==============

Capture state machine, polling timer, and callback registry.

Example:
    from scrollstitch.session import create_orchestrator
    from scrollstitch.models import EventType, Rect

    orchestrator = create_orchestrator()
    orchestrator.events.subscribe(EventType.STATUS_CHANGED, print)
    orchestrator.start(Rect(100, 100, 400, 800))
"""

from scrollstitch.session.events import CaptureEvents
from scrollstitch.session.factory import build_thresholds, create_orchestrator
from scrollstitch.session.orchestrator import CaptureOrchestrator, SessionMetrics
from scrollstitch.session.timer import AsyncioTimer, PollingTimer


__all__ = [
    "CaptureEvents",
    "CaptureOrchestrator",
    "SessionMetrics",
    "AsyncioTimer",
    "PollingTimer",
    "create_orchestrator",
    "build_thresholds",
]
