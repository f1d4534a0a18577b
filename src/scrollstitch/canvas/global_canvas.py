"""
Global Canvas
=============

Owns every accepted fragment and the logical coordinate bookkeeping.

State:
    - fragments: Accepted content in insertion order
    - bounds: Union of all fragment rects
    - scroll_cursor: Logical y where the next DOWN strip lands

Design Rules:
    - `append` is the ONLY mutator of bounds and scroll_cursor
    - Fragments never overlap: a rect that intersects `bounds` is refused
    - DOWN appends advance the cursor; UP appends only grow bounds upward
    - Compositing copies pixels as-is (no blending, no resampling)
"""

import logging
from typing import List, Optional

import numpy as np

from scrollstitch.models.fragment import Fragment
from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import ScrollDirection


logger = logging.getLogger(__name__)


class CanvasPlacementError(Exception):
    """Raised when content cannot be placed at the requested logical rect."""
    pass


class GlobalCanvas:
    """
    Logical-coordinate store and compositor for accepted fragments.

    Example:
        canvas = GlobalCanvas()
        canvas.append(seed, canvas.next_rect(ScrollDirection.NONE, 400, 800), ScrollDirection.NONE)

        rect = canvas.next_rect(ScrollDirection.DOWN, 400, 200)  # Rect(0, 800, 400x200)
        canvas.append(strip, rect, ScrollDirection.DOWN)

        image = canvas.composite()  # (1000, 400, 4) RGBA
    """

    def __init__(self) -> None:
        self._fragments: List[Fragment] = []
        self._bounds: Rect = Rect.empty()
        self._scroll_cursor: int = 0

    @property
    def fragments(self) -> List[Fragment]:
        """Accepted fragments in insertion order (copy of the list)."""
        return list(self._fragments)

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @property
    def scroll_cursor(self) -> int:
        return self._scroll_cursor

    def __len__(self) -> int:
        return len(self._fragments)

    def is_empty(self) -> bool:
        return not self._fragments

    def next_rect(self, direction: ScrollDirection, width: int, height: int) -> Rect:
        """
        Logical rect where content of the given size would be placed.

        Args:
            direction: Scroll direction that produced the content
            width: Content width
            height: Content height
        """
        if direction is ScrollDirection.UP:
            return Rect(0, self._bounds.top - height, width, height)
        if direction is ScrollDirection.NONE and self.is_empty():
            return Rect(0, 0, width, height)
        return Rect(0, self._scroll_cursor, width, height)

    def append(self, content: np.ndarray, rect: Rect, direction: ScrollDirection) -> Fragment:
        """
        Place content on the canvas.

        Args:
            content: RGB pixels, shape (rect.height, rect.width, 3)
            rect: Logical placement
            direction: Scroll direction that produced the content

        Returns:
            The stored Fragment

        Raises:
            CanvasPlacementError: If the shape does not match `rect`, the
                rect is empty, or the rect overlaps existing content
        """
        if rect.is_empty():
            raise CanvasPlacementError(f"Cannot place content at empty rect {rect!r}")

        if content.shape[:2] != (rect.height, rect.width):
            raise CanvasPlacementError(
                f"Content shape {content.shape[:2]} does not match rect {rect!r}"
            )

        if self._bounds.intersects(rect):
            raise CanvasPlacementError(
                f"Rect {rect!r} overlaps existing canvas bounds {self._bounds!r}"
            )

        fragment = Fragment(
            logical_rect=rect,
            pixels=np.ascontiguousarray(content).copy(),
            order=len(self._fragments),
            direction=direction,
        )
        self._fragments.append(fragment)
        self._bounds = self._bounds.united(rect)

        if direction is ScrollDirection.DOWN:
            self._scroll_cursor += rect.height
        elif direction is ScrollDirection.NONE:
            self._scroll_cursor = max(self._scroll_cursor, rect.bottom)

        logger.debug(
            f"Appended {fragment!r}; bounds={self._bounds!r}, "
            f"cursor={self._scroll_cursor}"
        )
        return fragment

    def seam_pixels(self, direction: ScrollDirection, height: int) -> Optional[np.ndarray]:
        """
        Canvas rows that content appended in `direction` would abut.

        DOWN: the `height` rows directly above the scroll cursor.
        UP: the `height` rows starting at the top of the bounds.

        Returns:
            RGB pixels clipped to the canvas, or None on an empty canvas
        """
        if self.is_empty() or height <= 0:
            return None

        bounds = self._bounds
        if direction is ScrollDirection.UP:
            top = bounds.top
            bottom = min(bounds.bottom, top + height)
        else:
            bottom = min(bounds.bottom, self._scroll_cursor)
            top = max(bounds.top, bottom - height)

        region = Rect(bounds.left, top, bounds.width, bottom - top)
        if region.is_empty():
            return None

        rendered = self._render_region(region)
        return np.ascontiguousarray(rendered[:, :, :3])

    def composite(self) -> Optional[np.ndarray]:
        """
        Render all fragments into one RGBA image.

        Fragments are painted in ascending logical y (insertion order for
        ties) onto a transparent canvas the size of `bounds`.

        Returns:
            RGBA image (H, W, 4), or None with no fragments or degenerate bounds
        """
        if self.is_empty() or self._bounds.is_empty():
            return None
        return self._render_region(self._bounds)

    def _render_region(self, region: Rect) -> np.ndarray:
        image = np.zeros((region.height, region.width, 4), dtype=np.uint8)

        for fragment in sorted(self._fragments, key=lambda f: f.logical_rect.y):
            visible = fragment.logical_rect.intersected(region)
            if visible.is_empty():
                continue

            src_x = visible.x - fragment.logical_rect.x
            src_y = visible.y - fragment.logical_rect.y
            dst_x = visible.x - region.x
            dst_y = visible.y - region.y

            image[dst_y:dst_y + visible.height, dst_x:dst_x + visible.width, :3] = (
                fragment.pixels[src_y:src_y + visible.height, src_x:src_x + visible.width]
            )
            image[dst_y:dst_y + visible.height, dst_x:dst_x + visible.width, 3] = 255

        return image

    def clear(self) -> int:
        """
        Drop all fragments and reset bounds and cursor.

        Returns:
            Number of fragments cleared
        """
        cleared = len(self._fragments)
        self._fragments = []
        self._bounds = Rect.empty()
        self._scroll_cursor = 0
        return cleared

    def metrics(self) -> dict:
        """Get canvas metrics for observability."""
        return {
            "fragments": len(self._fragments),
            "width": max(0, self._bounds.width),
            "height": max(0, self._bounds.height),
            "top": self._bounds.top,
            "scroll_cursor": self._scroll_cursor,
        }
