"""
scrollstitch
============

Scroll detection and canvas assembly engine for scrolling screen captures.

This package incrementally builds one tall image from a sequence of
overlapping captures of a scrolling screen region. Each tick it compares
the newest capture with the last accepted one, infers scroll direction and
distance, extracts only the rows that entered the viewport, rejects content
that is already on the canvas, and places the rest in a logical coordinate
space that grows without bound.

Components:
    - capture: Frame type, image helpers, frame sources
    - detection: Overlap matchers and the scroll detector
    - dedup: Content fingerprints and the covered-region tracker
    - canvas: Logical coordinate space and compositing
    - session: Polling orchestrator, timer, event registry

Example:
    from scrollstitch.capture import ScriptedFrameSource
    from scrollstitch.models import Rect
    from scrollstitch.session import create_orchestrator

    orchestrator = create_orchestrator(source=ScriptedFrameSource(frames))
    orchestrator.start(Rect(0, 0, 400, 800))
"""

__version__ = "0.1.0"
__author__ = "scrollstitch contributors"

__all__ = [
    "__version__",
]
