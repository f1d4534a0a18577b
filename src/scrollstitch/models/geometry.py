"""
Geometry Models
===============

Integer rectangles for frame-local and logical coordinates.

Coordinate Conventions:
    - Origin at top-left, X grows rightward, Y grows downward
    - Right and bottom edges are EXCLUSIVE (bottom = y + height)
    - Logical coordinates are unbounded; Y may be negative once content
      is prepended above the seed frame

Example:
    from scrollstitch.models.geometry import Rect

    seed = Rect(0, 0, 400, 800)
    strip = Rect(0, 800, 400, 200)

    assert not seed.intersects(strip)
    assert seed.united(strip) == Rect(0, 0, 400, 1000)
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Rect:
    """
    Axis-aligned integer rectangle.

    A rect with non-positive width or height is empty. Empty rects never
    intersect anything and are ignored by `united`.

    Attributes:
        x: Left edge
        y: Top edge
        width: Horizontal extent
        height: Vertical extent
    """

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def empty(cls) -> "Rect":
        """The canonical empty rect."""
        return cls(0, 0, 0, 0)

    @property
    def left(self) -> int:
        return self.x

    @property
    def top(self) -> int:
        return self.y

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) pair."""
        return (self.width, self.height)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def area(self) -> int:
        return 0 if self.is_empty() else self.width * self.height

    def intersected(self, other: "Rect") -> "Rect":
        """
        Intersection of two rects.

        Returns:
            The overlapping rect, or an empty rect when they do not overlap.
        """
        if self.is_empty() or other.is_empty():
            return Rect.empty()

        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)

        if right <= left or bottom <= top:
            return Rect.empty()
        return Rect(left, top, right - left, bottom - top)

    def intersects(self, other: "Rect") -> bool:
        return not self.intersected(other).is_empty()

    def united(self, other: "Rect") -> "Rect":
        """Bounding rect of both; an empty operand is ignored."""
        if self.is_empty():
            return other
        if other.is_empty():
            return self

        left = min(self.left, other.left)
        top = min(self.top, other.top)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(left, top, right - left, bottom - top)

    def translated(self, dx: int, dy: int) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def shrunk(self, inset: int) -> "Rect":
        """Rect moved inward by `inset` pixels on every side."""
        return Rect(
            self.x + inset,
            self.y + inset,
            self.width - 2 * inset,
            self.height - 2 * inset,
        )

    def overlap_ratio(self, other: "Rect") -> float:
        """
        Intersection area relative to the smaller of the two areas.

        Returns:
            Ratio in [0, 1]; 0.0 when either rect is empty.
        """
        intersection = self.intersected(other).area()
        if intersection == 0:
            return 0.0
        return intersection / min(self.area(), other.area())

    def __repr__(self) -> str:
        return f"Rect({self.x}, {self.y}, {self.width}x{self.height})"
