"""
Fragment Models
===============

Session-scoped records kept by the canvas and the duplicate tracker.

Design Rules:
    - A Fragment owns its pixels; the canvas never shares them with frames
    - A CoveredRegion keeps only a fingerprint and a thumbnail, so evicting
      old regions never removes canvas content
"""

from dataclasses import dataclass

import numpy as np

from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import ScrollDirection


@dataclass(frozen=True, eq=False)
class Fragment:
    """
    Accepted content placed in logical coordinates.

    Attributes:
        logical_rect: Placement in the logical coordinate space
        pixels: RGB content, shape (height, width, 3)
        order: Insertion order within the session (seed is 0)
        direction: Scroll direction that produced the fragment
    """

    logical_rect: Rect
    pixels: np.ndarray
    order: int
    direction: ScrollDirection

    def __repr__(self) -> str:
        return (
            f"Fragment(#{self.order}, {self.direction.value}, "
            f"rect={self.logical_rect!r})"
        )


@dataclass(frozen=True, eq=False)
class CoveredRegion:
    """
    Duplicate-detection record for previously accepted content.

    Attributes:
        logical_rect: Where the content was placed
        fingerprint: Fixed-length hex signature of the content
        thumbnail: Small aspect-preserving RGB sample of the content
        direction: Scroll direction when recorded
        order: Insertion order of the matching fragment
        timestamp: Clock reading when recorded (seconds)
    """

    logical_rect: Rect
    fingerprint: str
    thumbnail: np.ndarray
    direction: ScrollDirection
    order: int
    timestamp: float

    def __repr__(self) -> str:
        return (
            f"CoveredRegion(#{self.order}, {self.direction.value}, "
            f"rect={self.logical_rect!r}, fp={self.fingerprint[:8]})"
        )
