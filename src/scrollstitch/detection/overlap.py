"""
Overlap Matching
================

Vertical overlap search between two equally sized frames.

This module provides the OverlapMatcher protocol and two backends:
    - SampledDifferenceMatcher: Sparse pixel-difference scan (always available)
    - TemplateMatcher: Normalized cross-correlation via cv2.matchTemplate

Search Geometry:
    A candidate offset `s` is a scroll distance. For DOWN the previous
    frame's trailing strip A[s:H] is compared with the current frame's
    leading strip B[0:H-s]; for UP the previous frame's leading strip
    A[0:H-s] is compared with the current frame's trailing strip B[s:H].
    Offsets run from `min_scroll_distance` to
    min(`max_search_offset`, H // 4).

Both backends report the best similarity they saw even when the match is
rejected, so "no scroll" ticks still carry a diagnostic score.
"""

import logging
from typing import Protocol, Tuple

import cv2
import numpy as np

from scrollstitch.capture.frame import Frame
from scrollstitch.capture.image_ops import to_grayscale
from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import OverlapResult, ScrollDirection


logger = logging.getLogger(__name__)


class OverlapMatcher(Protocol):
    """
    Protocol for overlap search backends.

    Attributes:
        threshold: Similarity a match must exceed to be accepted
        min_scroll_distance: Smallest offset searched
    """

    threshold: float
    min_scroll_distance: int

    def find_overlap(
        self,
        previous: Frame,
        current: Frame,
        direction: ScrollDirection,
    ) -> OverlapResult:
        """
        Search for the scroll offset under one direction hypothesis.

        Args:
            previous: Last accepted frame
            current: Newly captured frame, same size as `previous`
            direction: UP or DOWN

        Returns:
            OverlapResult; `rect` is empty when no acceptable match exists
        """
        ...


def search_range(
    height: int,
    min_scroll_distance: int,
    max_search_offset: int,
) -> Tuple[int, int]:
    """
    Inclusive offset range to scan for a frame of `height` rows.

    Returns:
        (first, last); first > last when the frame is too short to search
    """
    return min_scroll_distance, min(max_search_offset, height // 4)


def overlap_rect(width: int, height: int, offset: int, direction: ScrollDirection) -> Rect:
    """Rows of the current frame that repeat the previous frame."""
    if direction is ScrollDirection.DOWN:
        return Rect(0, 0, width, height - offset)
    return Rect(0, offset, width, height - offset)


class SampledDifferenceMatcher:
    """
    Sparse pixel-difference overlap search.

    Each candidate offset is scored by the fraction of sampled pixel pairs
    (every `sample_step`-th pixel in both axes) whose summed absolute RGB
    difference is below `pixel_tolerance`. The scan stops at the first
    offset whose score exceeds `threshold`, which keeps the per-tick cost
    bounded under steady scrolling; otherwise the best offset is kept.

    Attributes:
        threshold: Acceptance threshold
        min_scroll_distance: Smallest offset searched
        max_search_offset: Largest offset searched (also capped at H // 4)
        min_overlap_height: Shortest overlap accepted
        pixel_tolerance: Per-pair summed channel tolerance
        sample_step: Sampling stride
    """

    def __init__(
        self,
        threshold: float = 0.75,
        min_scroll_distance: int = 15,
        max_search_offset: int = 100,
        min_overlap_height: int = 10,
        pixel_tolerance: int = 30,
        sample_step: int = 2,
    ) -> None:
        """
        Initialize sampled matcher.

        Args:
            threshold: Similarity required to accept a match, in (0, 1]
            min_scroll_distance: Smallest scroll offset considered
            max_search_offset: Largest scroll offset considered
            min_overlap_height: Minimum overlap height of an accepted match
            pixel_tolerance: Summed RGB difference below which pixels match
            sample_step: Stride of the sampling grid
        """
        if not 0 < threshold <= 1:
            raise ValueError("threshold must be in (0, 1]")
        if min_scroll_distance < 1:
            raise ValueError("min_scroll_distance must be >= 1")
        if sample_step < 1:
            raise ValueError("sample_step must be >= 1")

        self.threshold = threshold
        self.min_scroll_distance = min_scroll_distance
        self.max_search_offset = max_search_offset
        self.min_overlap_height = min_overlap_height
        self.pixel_tolerance = pixel_tolerance
        self.sample_step = sample_step

        logger.info(
            f"SampledDifferenceMatcher initialized: threshold={threshold}, "
            f"offsets={min_scroll_distance}..{max_search_offset}, step={sample_step}"
        )

    def find_overlap(
        self,
        previous: Frame,
        current: Frame,
        direction: ScrollDirection,
    ) -> OverlapResult:
        if previous.is_empty() or current.is_empty() or not previous.same_size(current):
            return OverlapResult()
        if direction is ScrollDirection.NONE:
            return OverlapResult()

        width, height = current.width, current.height
        first, last = search_range(height, self.min_scroll_distance, self.max_search_offset)

        prev_px = previous.pixels.astype(np.int16)
        curr_px = current.pixels.astype(np.int16)
        step = self.sample_step

        best_similarity = 0.0
        best_offset = 0

        for offset in range(first, last + 1):
            if direction is ScrollDirection.DOWN:
                strip_a = prev_px[offset:height:step, ::step]
                strip_b = curr_px[0:height - offset:step, ::step]
            else:
                strip_a = prev_px[0:height - offset:step, ::step]
                strip_b = curr_px[offset:height:step, ::step]

            diff = np.abs(strip_a - strip_b).sum(axis=2)
            similarity = float(np.count_nonzero(diff < self.pixel_tolerance)) / diff.size

            if similarity > self.threshold:
                best_similarity, best_offset = similarity, offset
                logger.debug(
                    f"Overlap match {direction.value}: offset={offset}, "
                    f"similarity={similarity:.3f}"
                )
                break

            if similarity > best_similarity:
                best_similarity, best_offset = similarity, offset

        return _finalize(
            width, height, best_offset, best_similarity, direction,
            self.threshold, self.min_overlap_height,
        )


class TemplateMatcher:
    """
    Normalized cross-correlation overlap search.

    Converts both frames to grayscale and locates a template strip with
    cv2.matchTemplate (TM_CCOEFF_NORMED). The template is the leading
    H - max_offset rows of the frame that contains the repeated content
    at its top (the current frame for DOWN, the previous frame for UP),
    so it lies inside the overlap for every candidate offset. All offsets
    are scored in a single call; there is no early exit.

    Non-finite correlation scores count as 0.

    Attributes:
        threshold: Acceptance threshold (default 0.80)
        min_scroll_distance: Smallest offset searched
        max_search_offset: Largest offset searched (also capped at H // 4)
        min_overlap_height: Shortest overlap accepted
    """

    def __init__(
        self,
        threshold: float = 0.80,
        min_scroll_distance: int = 15,
        max_search_offset: int = 100,
        min_overlap_height: int = 10,
    ) -> None:
        if not 0 < threshold <= 1:
            raise ValueError("threshold must be in (0, 1]")
        if min_scroll_distance < 1:
            raise ValueError("min_scroll_distance must be >= 1")

        self.threshold = threshold
        self.min_scroll_distance = min_scroll_distance
        self.max_search_offset = max_search_offset
        self.min_overlap_height = min_overlap_height

        logger.info(
            f"TemplateMatcher initialized: threshold={threshold}, "
            f"offsets={min_scroll_distance}..{max_search_offset}"
        )

    def find_overlap(
        self,
        previous: Frame,
        current: Frame,
        direction: ScrollDirection,
    ) -> OverlapResult:
        if previous.is_empty() or current.is_empty() or not previous.same_size(current):
            return OverlapResult()
        if direction is ScrollDirection.NONE:
            return OverlapResult()

        width, height = current.width, current.height
        first, last = search_range(height, self.min_scroll_distance, self.max_search_offset)
        template_height = height - last
        if first > last or template_height < self.min_overlap_height:
            return OverlapResult()

        prev_gray = to_grayscale(previous.pixels)
        curr_gray = to_grayscale(current.pixels)

        if direction is ScrollDirection.DOWN:
            template = curr_gray[0:template_height]
            search = prev_gray[first:last + template_height]
        else:
            template = prev_gray[0:template_height]
            search = curr_gray[first:last + template_height]

        scores = cv2.matchTemplate(search, template, cv2.TM_CCOEFF_NORMED)
        scores = np.nan_to_num(scores[:, 0], nan=0.0, posinf=0.0, neginf=0.0)

        index = int(np.argmax(scores))
        similarity = float(scores[index])
        offset = first + index

        logger.debug(
            f"Template search {direction.value}: best offset={offset}, "
            f"score={similarity:.3f}"
        )

        return _finalize(
            width, height, offset, max(similarity, 0.0), direction,
            self.threshold, self.min_overlap_height,
        )


def _finalize(
    width: int,
    height: int,
    offset: int,
    similarity: float,
    direction: ScrollDirection,
    threshold: float,
    min_overlap_height: int,
) -> OverlapResult:
    """Apply the acceptance rules shared by both backends."""
    if offset <= 0:
        return OverlapResult(similarity=similarity)

    rect = overlap_rect(width, height, offset, direction)
    if similarity < threshold or rect.height < min_overlap_height:
        logger.debug(
            f"No valid {direction.value} overlap, best similarity={similarity:.3f}"
        )
        return OverlapResult(similarity=similarity, offset=offset)

    return OverlapResult(rect=rect, similarity=similarity, offset=offset)


def create_matcher(
    backend: str,
    similarity_threshold: float = 0.75,
    template_threshold: float = 0.80,
    min_scroll_distance: int = 15,
    max_search_offset: int = 100,
    min_overlap_height: int = 10,
    pixel_tolerance: int = 30,
    sample_step: int = 2,
) -> OverlapMatcher:
    """
    Create an overlap matcher by backend name.

    Each backend keeps its own acceptance threshold.

    Args:
        backend: 'sampled' or 'template'

    Raises:
        ValueError: For unknown backends
    """
    if backend == "sampled":
        return SampledDifferenceMatcher(
            threshold=similarity_threshold,
            min_scroll_distance=min_scroll_distance,
            max_search_offset=max_search_offset,
            min_overlap_height=min_overlap_height,
            pixel_tolerance=pixel_tolerance,
            sample_step=sample_step,
        )

    if backend == "template":
        return TemplateMatcher(
            threshold=template_threshold,
            min_scroll_distance=min_scroll_distance,
            max_search_offset=max_search_offset,
            min_overlap_height=min_overlap_height,
        )

    raise ValueError(f"Unknown overlap matcher backend: {backend}")
