"""
Capture Module
==============

Frame type, pixel helpers, and screen-capture backends.

Example:
    from scrollstitch.capture import MssFrameSource
    from scrollstitch.models import Rect

    source = MssFrameSource(border_inset=4)
    frame = source.capture(Rect(100, 100, 400, 800))
"""

from scrollstitch.capture.frame import Frame
from scrollstitch.capture.image_ops import FrameFormatError
from scrollstitch.capture.source import (
    CaptureUnavailableError,
    FrameSource,
    MssFrameSource,
    ScriptedFrameSource,
    create_frame_source,
)


__all__ = [
    "Frame",
    "FrameFormatError",
    "FrameSource",
    "CaptureUnavailableError",
    "ScriptedFrameSource",
    "MssFrameSource",
    "create_frame_source",
]
