"""
Frame Data Model
================

Internal frame representation for the capture pipeline.

Design Rules:
    - This is the ONLY frame format passed between capture and detection
    - Frames are treated as immutable once created
    - Only the last accepted frame and the current frame outlive a tick
"""

import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from scrollstitch.capture.image_ops import crop, ensure_rgb
from scrollstitch.models.geometry import Rect


@dataclass(frozen=True, eq=False)
class Frame:
    """
    One captured snapshot of the tracked rectangle.

    Attributes:
        pixels: RGB buffer, shape (height, width, 3), dtype uint8
        timestamp: UNIX timestamp of the capture
    """

    pixels: np.ndarray
    timestamp: float

    @classmethod
    def from_array(cls, pixels: np.ndarray, timestamp: Optional[float] = None) -> "Frame":
        """
        Build a frame from any supported pixel buffer.

        Raises:
            FrameFormatError: If the buffer is not a valid image
        """
        return cls(
            pixels=ensure_rgb(pixels),
            timestamp=time.time() if timestamp is None else timestamp,
        )

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def rect(self) -> Rect:
        """Frame-local rect covering the whole frame."""
        return Rect(0, 0, self.width, self.height)

    def is_empty(self) -> bool:
        return self.pixels.size == 0

    def same_size(self, other: "Frame") -> bool:
        return self.pixels.shape == other.pixels.shape

    def crop(self, rect: Rect) -> Optional[np.ndarray]:
        """Owned copy of a frame-local region, or None if it falls outside."""
        return crop(self.pixels, rect.x, rect.y, rect.width, rect.height)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return (
            f"Frame({self.width}x{self.height}, "
            f"timestamp={self.timestamp:.3f})"
        )
