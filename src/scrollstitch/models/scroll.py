"""
Scroll Models
=============

Tick-scoped values produced by overlap matching and scroll detection.

All rects in this module are in FRAME-LOCAL coordinates of the current
frame (the newer of the two frames being compared).

Offset Semantics:
    `offset` is the scroll distance in pixels between the two frames.
    For a Down scroll of `s` the previous frame's rows [s, H) reappear as
    the current frame's rows [0, H - s); the remaining bottom strip of
    height `s` is new. Up scrolls mirror this with the new strip on top.
"""

from dataclasses import dataclass, field
from enum import Enum

from scrollstitch.models.geometry import Rect


class ScrollDirection(str, Enum):
    """
    Vertical scroll direction.

    Attributes:
        NONE: No scroll, or the seed frame of a session
        UP: Content moved down; new rows entered at the top
        DOWN: Content moved up; new rows entered at the bottom
    """

    NONE = "NONE"
    UP = "UP"
    DOWN = "DOWN"


@dataclass(frozen=True)
class OverlapResult:
    """
    Result of one overlap search.

    Attributes:
        rect: Matched overlap in the current frame; empty when rejected
        similarity: Best similarity observed, reported even when rejected
        offset: Scroll distance of the best candidate (0 if none searched)
    """

    rect: Rect = field(default_factory=Rect.empty)
    similarity: float = 0.0
    offset: int = 0

    @property
    def matched(self) -> bool:
        return not self.rect.is_empty()


@dataclass(frozen=True)
class ScrollEvent:
    """
    Outcome of comparing the last accepted frame with the current one.

    Attributes:
        direction: Detected scroll direction (NONE when no scroll)
        offset: Scroll distance in pixels
        overlap_rect: Rows of the current frame that repeat the previous frame
        new_content_rect: Rows of the current frame that are novel
        similarity: Similarity of the winning overlap candidate
    """

    direction: ScrollDirection = ScrollDirection.NONE
    offset: int = 0
    overlap_rect: Rect = field(default_factory=Rect.empty)
    new_content_rect: Rect = field(default_factory=Rect.empty)
    similarity: float = 0.0

    @property
    def has_scroll(self) -> bool:
        return self.direction is not ScrollDirection.NONE

    @classmethod
    def no_scroll(cls, similarity: float = 0.0) -> "ScrollEvent":
        return cls(similarity=similarity)

    def __repr__(self) -> str:
        if not self.has_scroll:
            return f"ScrollEvent(NONE, sim={self.similarity:.3f})"
        return (
            f"ScrollEvent({self.direction.value}, offset={self.offset}, "
            f"new={self.new_content_rect!r}, sim={self.similarity:.3f})"
        )
