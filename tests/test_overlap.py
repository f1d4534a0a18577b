"""
Overlap Matcher Tests
=====================

Tests for the sampled and template overlap backends.
"""

import numpy as np
import pytest

from scrollstitch.capture.frame import Frame
from scrollstitch.detection.overlap import (
    SampledDifferenceMatcher,
    TemplateMatcher,
    create_matcher,
    search_range,
)
from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import ScrollDirection


@pytest.fixture(params=["sampled", "template"])
def matcher(request):
    return create_matcher(request.param)


class TestSearchRange:
    """Tests for the offset range."""

    def test_capped_at_quarter_height(self):
        assert search_range(800, 15, 100) == (15, 100)
        assert search_range(200, 15, 100) == (15, 50)

    def test_short_frames_have_empty_range(self):
        first, last = search_range(40, 15, 100)
        assert first > last


class TestOverlapMatchers:
    """Behaviour shared by both backends."""

    def test_down_scroll_found(self, matcher, scrolled_pair):
        previous, current = scrolled_pair
        result = matcher.find_overlap(
            Frame.from_array(previous), Frame.from_array(current), ScrollDirection.DOWN
        )

        assert result.matched
        assert result.offset == 40
        assert result.rect == Rect(0, 0, 300, 360)
        assert result.similarity > matcher.threshold

    def test_up_scroll_found(self, matcher, scrolled_pair):
        lower, upper = scrolled_pair
        # Viewport moved back up: the later frame shows the earlier content
        result = matcher.find_overlap(
            Frame.from_array(upper), Frame.from_array(lower), ScrollDirection.UP
        )

        assert result.matched
        assert result.offset == 40
        assert result.rect == Rect(0, 40, 300, 360)

    def test_wrong_direction_rejected(self, matcher, scrolled_pair):
        previous, current = scrolled_pair
        result = matcher.find_overlap(
            Frame.from_array(previous), Frame.from_array(current), ScrollDirection.UP
        )

        assert not result.matched
        assert result.similarity < matcher.threshold

    def test_unrelated_frames_rejected(self, matcher, rng):
        a = Frame.from_array(rng.integers(0, 256, (400, 300, 3), dtype=np.uint8))
        b = Frame.from_array(rng.integers(0, 256, (400, 300, 3), dtype=np.uint8))

        result = matcher.find_overlap(a, b, ScrollDirection.DOWN)
        assert not result.matched
        assert result.rect.is_empty()

    def test_size_mismatch_yields_empty_result(self, matcher, rng):
        a = Frame.from_array(rng.integers(0, 256, (400, 300, 3), dtype=np.uint8))
        b = Frame.from_array(rng.integers(0, 256, (300, 300, 3), dtype=np.uint8))

        result = matcher.find_overlap(a, b, ScrollDirection.DOWN)
        assert not result.matched
        assert result.similarity == 0.0

    def test_scroll_below_minimum_distance_not_matched(self, matcher, rng):
        page = rng.integers(0, 256, (405, 300, 3), dtype=np.uint8)
        a, b = Frame.from_array(page[0:400]), Frame.from_array(page[5:405])

        result = matcher.find_overlap(a, b, ScrollDirection.DOWN)
        assert not result.matched


class TestSampledDifferenceMatcher:
    """Tests specific to the sampled backend."""

    def test_defaults(self):
        matcher = SampledDifferenceMatcher()
        assert matcher.threshold == 0.75
        assert matcher.min_scroll_distance == 15
        assert matcher.max_search_offset == 100
        assert matcher.sample_step == 2

    def test_tolerates_small_noise(self, scrolled_pair, rng):
        previous, current = scrolled_pair
        noise = rng.integers(-4, 5, current.shape)
        noisy = np.clip(current.astype(np.int16) + noise, 0, 255).astype(np.uint8)

        result = SampledDifferenceMatcher().find_overlap(
            Frame.from_array(previous), Frame.from_array(noisy), ScrollDirection.DOWN
        )
        assert result.matched
        assert result.offset == 40

    def test_early_exit_keeps_first_passing_offset(self):
        # Flat frames match at every offset; the scan stops at the first one
        flat = np.full((400, 300, 3), 128, dtype=np.uint8)
        result = SampledDifferenceMatcher().find_overlap(
            Frame.from_array(flat), Frame.from_array(flat.copy()), ScrollDirection.DOWN
        )
        assert result.offset == 15
        assert result.similarity == 1.0

    @pytest.mark.parametrize("kwargs", [
        {"threshold": 0.0},
        {"threshold": 1.5},
        {"min_scroll_distance": 0},
        {"sample_step": 0},
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            SampledDifferenceMatcher(**kwargs)


class TestTemplateMatcher:
    """Tests specific to the NCC backend."""

    def test_default_threshold(self):
        assert TemplateMatcher().threshold == 0.80

    def test_insensitive_to_contrast_change(self, scrolled_pair):
        previous, current = scrolled_pair
        dimmed = (current // 2 + 50).astype(np.uint8)

        template = TemplateMatcher().find_overlap(
            Frame.from_array(previous), Frame.from_array(dimmed), ScrollDirection.DOWN
        )
        sampled = SampledDifferenceMatcher().find_overlap(
            Frame.from_array(previous), Frame.from_array(dimmed), ScrollDirection.DOWN
        )

        assert template.matched
        assert template.offset == 40
        assert not sampled.matched


class TestCreateMatcher:
    """Tests for backend selection."""

    def test_backends(self):
        assert isinstance(create_matcher("sampled"), SampledDifferenceMatcher)
        assert isinstance(create_matcher("template"), TemplateMatcher)

    def test_thresholds_are_per_backend(self):
        sampled = create_matcher("sampled", similarity_threshold=0.7, template_threshold=0.9)
        template = create_matcher("template", similarity_threshold=0.7, template_threshold=0.9)
        assert sampled.threshold == 0.7
        assert template.threshold == 0.9

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown overlap matcher"):
            create_matcher("optical-flow")
