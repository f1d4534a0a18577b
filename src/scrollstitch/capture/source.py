"""
Frame Sources
=============

Pluggable screen-capture backends.

This module provides the FrameSource protocol and two implementations:
    - ScriptedFrameSource: Deterministic replay of prepared buffers
    - MssFrameSource: Live screen grabs through the `mss` library

Design Rules:
    - capture() is synchronous and blocking; its latency gates the tick rate
    - Failures raise CaptureUnavailableError, never return partial frames
    - Sources do not retry; the orchestrator simply skips the tick
"""

import logging
import time
from typing import Iterable, List, Optional, Protocol

import cv2
import mss
import mss.exception
import numpy as np

from scrollstitch.capture.frame import Frame
from scrollstitch.capture.image_ops import FrameFormatError
from scrollstitch.models.geometry import Rect


logger = logging.getLogger(__name__)


class CaptureUnavailableError(Exception):
    """Raised when a frame source cannot produce a frame (e.g. permission denied)."""
    pass


class FrameSource(Protocol):
    """
    Protocol for screen-capture backends.

    All implementations must provide a synchronous `capture` method that
    returns a Frame for the requested rectangle.
    """

    def capture(self, rect: Rect) -> Frame:
        """
        Capture the pixels inside `rect`.

        Args:
            rect: Screen rectangle to grab

        Returns:
            Frame with the captured pixels

        Raises:
            CaptureUnavailableError: If no frame can be produced
        """
        ...


class ScriptedFrameSource:
    """
    Deterministic frame source for tests and offline replays.

    Returns prepared buffers in order, one per call. Once the script is
    exhausted the last buffer is repeated, which looks like a page that
    stopped scrolling. A `None` entry simulates a failed capture.

    The requested rect is only used to validate that it is not empty;
    scripted buffers are returned as-is.

    Attributes:
        calls: Number of capture calls made
    """

    def __init__(self, frames: Iterable[Optional[np.ndarray]]) -> None:
        """
        Initialize scripted source.

        Args:
            frames: Pixel buffers to replay; None entries fail the capture
        """
        self._frames: List[Optional[np.ndarray]] = list(frames)
        self._index: int = 0
        self.calls: int = 0

        if not self._frames:
            raise ValueError("ScriptedFrameSource needs at least one frame")

    def push(self, pixels: Optional[np.ndarray]) -> None:
        """Append a buffer to the end of the script."""
        self._frames.append(pixels)

    @property
    def remaining(self) -> int:
        return max(0, len(self._frames) - self._index)

    def capture(self, rect: Rect) -> Frame:
        self.calls += 1
        if rect.is_empty():
            raise CaptureUnavailableError(f"Empty capture rect: {rect!r}")

        position = min(self._index, len(self._frames) - 1)
        pixels = self._frames[position]
        if self._index < len(self._frames):
            self._index += 1

        if pixels is None:
            raise CaptureUnavailableError(f"Scripted capture failure at call {self.calls}")

        try:
            return Frame.from_array(pixels)
        except FrameFormatError as e:
            raise CaptureUnavailableError(f"Scripted frame is not an image: {e}") from e


class MssFrameSource:
    """
    Live screen capture via `mss`.

    A fresh `mss` context is opened per grab so the source can be created
    on a thread or process without a display and only fails when used.

    Attributes:
        border_inset: Pixels trimmed from every side of the requested rect
    """

    def __init__(self, border_inset: int = 0) -> None:
        """
        Initialize mss frame source.

        Args:
            border_inset: Shrink the grab rect by this many pixels per side
                (keeps a selection overlay's border out of the frames)
        """
        if border_inset < 0:
            raise ValueError("border_inset must be >= 0")

        self.border_inset = border_inset
        logger.info(f"MssFrameSource initialized: border_inset={border_inset}px")

    def capture(self, rect: Rect) -> Frame:
        grab_rect = rect.shrunk(self.border_inset) if self.border_inset else rect
        if grab_rect.is_empty():
            raise CaptureUnavailableError(f"Capture rect is empty after inset: {grab_rect!r}")

        region = {
            "left": grab_rect.x,
            "top": grab_rect.y,
            "width": grab_rect.width,
            "height": grab_rect.height,
        }

        try:
            with mss.mss() as sct:
                shot = sct.grab(region)
        except mss.exception.ScreenShotError as e:
            raise CaptureUnavailableError(
                f"Screen grab failed for {grab_rect!r}: {e}. "
                f"Check screen recording permission."
            ) from e

        bgra = np.asarray(shot, dtype=np.uint8)
        rgb = cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGB)
        return Frame(pixels=rgb, timestamp=time.time())


def create_frame_source(
    backend: str,
    border_inset: int = 0,
    frames: Optional[Iterable[Optional[np.ndarray]]] = None,
) -> FrameSource:
    """
    Create a frame source by backend name.

    Args:
        backend: 'mss' or 'scripted'
        border_inset: Inset for the mss backend
        frames: Buffers for the scripted backend

    Raises:
        ValueError: For unknown backends or a scripted backend without frames
    """
    if backend == "mss":
        return MssFrameSource(border_inset=border_inset)

    if backend == "scripted":
        if frames is None:
            raise ValueError("Scripted frame source requires frames")
        return ScriptedFrameSource(frames)

    raise ValueError(f"Unknown frame source backend: {backend}")
