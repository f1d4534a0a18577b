"""
Global Canvas Tests
===================

Tests for placement bookkeeping, seams, and compositing.
"""

import numpy as np
import pytest

from scrollstitch.canvas import CanvasPlacementError, GlobalCanvas
from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import ScrollDirection


def _block(rng, height, width=400):
    return rng.integers(0, 256, (height, width, 3), dtype=np.uint8)


@pytest.fixture
def canvas():
    return GlobalCanvas()


@pytest.fixture
def seeded(canvas, rng):
    seed = _block(rng, 800)
    canvas.append(seed, canvas.next_rect(ScrollDirection.NONE, 400, 800), ScrollDirection.NONE)
    return canvas, seed


class TestPlacement:
    """Tests for next_rect and append bookkeeping."""

    def test_empty_canvas(self, canvas):
        assert canvas.is_empty()
        assert canvas.next_rect(ScrollDirection.NONE, 400, 800) == Rect(0, 0, 400, 800)
        assert canvas.composite() is None
        assert canvas.seam_pixels(ScrollDirection.DOWN, 10) is None

    def test_seed_sets_bounds_and_cursor(self, seeded):
        canvas, _ = seeded
        assert canvas.bounds == Rect(0, 0, 400, 800)
        assert canvas.scroll_cursor == 800

    def test_down_advances_cursor(self, seeded, rng):
        canvas, _ = seeded
        rect = canvas.next_rect(ScrollDirection.DOWN, 400, 200)
        assert rect == Rect(0, 800, 400, 200)

        canvas.append(_block(rng, 200), rect, ScrollDirection.DOWN)
        assert canvas.scroll_cursor == 1000
        assert canvas.bounds == Rect(0, 0, 400, 1000)

    def test_up_extends_top_without_moving_cursor(self, seeded, rng):
        canvas, _ = seeded
        rect = canvas.next_rect(ScrollDirection.UP, 400, 150)
        assert rect == Rect(0, -150, 400, 150)

        canvas.append(_block(rng, 150), rect, ScrollDirection.UP)
        assert canvas.scroll_cursor == 800
        assert canvas.bounds == Rect(0, -150, 400, 950)
        assert canvas.next_rect(ScrollDirection.UP, 400, 50) == Rect(0, -200, 400, 50)

    def test_none_on_populated_canvas_goes_to_cursor(self, seeded):
        canvas, _ = seeded
        assert canvas.next_rect(ScrollDirection.NONE, 400, 10) == Rect(0, 800, 400, 10)

    def test_fragment_order(self, seeded, rng):
        canvas, _ = seeded
        fragment = canvas.append(
            _block(rng, 20), canvas.next_rect(ScrollDirection.DOWN, 400, 20), ScrollDirection.DOWN
        )
        assert fragment.order == 1
        assert [f.order for f in canvas.fragments] == [0, 1]

    def test_fragments_own_their_pixels(self, canvas, rng):
        content = _block(rng, 10)
        fragment = canvas.append(content, Rect(0, 0, 400, 10), ScrollDirection.NONE)
        content[:] = 0
        assert fragment.pixels.any()


class TestPlacementErrors:
    """Tests for refused placements."""

    def test_shape_mismatch(self, canvas, rng):
        with pytest.raises(CanvasPlacementError):
            canvas.append(_block(rng, 10), Rect(0, 0, 400, 20), ScrollDirection.NONE)

    def test_overlap_refused(self, seeded, rng):
        canvas, _ = seeded
        with pytest.raises(CanvasPlacementError):
            canvas.append(_block(rng, 200), Rect(0, 700, 400, 200), ScrollDirection.DOWN)
        assert canvas.scroll_cursor == 800
        assert len(canvas) == 1

    def test_empty_rect_refused(self, canvas):
        with pytest.raises(CanvasPlacementError):
            canvas.append(np.zeros((0, 400, 3), dtype=np.uint8), Rect(0, 0, 400, 0), ScrollDirection.NONE)


class TestComposite:
    """Tests for compositing."""

    def test_round_trip(self, seeded, rng):
        canvas, seed = seeded
        pieces = [(seed, Rect(0, 0, 400, 800))]

        for direction, height in [
            (ScrollDirection.DOWN, 200),
            (ScrollDirection.DOWN, 150),
            (ScrollDirection.UP, 100),
            (ScrollDirection.DOWN, 37),
            (ScrollDirection.UP, 64),
        ]:
            content = _block(rng, height)
            rect = canvas.next_rect(direction, 400, height)
            canvas.append(content, rect, direction)
            pieces.append((content, rect))

        image = canvas.composite()
        bounds = canvas.bounds
        assert image.shape == (800 + 200 + 150 + 100 + 37 + 64, 400, 4)
        assert bounds.top == -164

        for content, rect in pieces:
            y = rect.y - bounds.y
            assert np.array_equal(image[y:y + rect.height, :, :3], content)
        assert (image[:, :, 3] == 255).all()

    def test_gaps_are_transparent(self, seeded, rng):
        canvas, _ = seeded
        canvas.append(_block(rng, 50), Rect(0, 900, 400, 50), ScrollDirection.NONE)

        image = canvas.composite()
        assert image.shape == (950, 400, 4)
        assert (image[800:900, :, 3] == 0).all()
        assert (image[900:950, :, 3] == 255).all()
        assert canvas.scroll_cursor == 950

    def test_narrow_fragment_padded(self, canvas, rng):
        canvas.append(_block(rng, 10, 400), Rect(0, 0, 400, 10), ScrollDirection.NONE)
        canvas.append(_block(rng, 10, 300), Rect(0, 10, 300, 10), ScrollDirection.DOWN)

        image = canvas.composite()
        assert image.shape == (20, 400, 4)
        assert (image[10:20, 300:, 3] == 0).all()

    def test_clear(self, seeded):
        canvas, _ = seeded
        assert canvas.clear() == 1
        assert canvas.is_empty()
        assert canvas.bounds.is_empty()
        assert canvas.scroll_cursor == 0
        assert canvas.composite() is None


class TestSeamPixels:
    """Tests for seam extraction."""

    def test_down_seam_is_rows_above_cursor(self, seeded):
        canvas, seed = seeded
        seam = canvas.seam_pixels(ScrollDirection.DOWN, 200)
        assert seam.shape == (200, 400, 3)
        assert np.array_equal(seam, seed[600:800])

    def test_up_seam_is_top_rows(self, seeded, rng):
        canvas, seed = seeded
        top = _block(rng, 30)
        canvas.append(top, canvas.next_rect(ScrollDirection.UP, 400, 30), ScrollDirection.UP)

        seam = canvas.seam_pixels(ScrollDirection.UP, 50)
        assert np.array_equal(seam[:30], top)
        assert np.array_equal(seam[30:], seed[:20])

    def test_seam_clipped_to_canvas(self, canvas, rng):
        content = _block(rng, 40)
        canvas.append(content, Rect(0, 0, 400, 40), ScrollDirection.NONE)
        assert canvas.seam_pixels(ScrollDirection.DOWN, 100).shape == (40, 400, 3)


class TestMetrics:
    def test_metrics(self, seeded):
        canvas, _ = seeded
        assert canvas.metrics() == {
            "fragments": 1,
            "width": 400,
            "height": 800,
            "top": 0,
            "scroll_cursor": 800,
        }
