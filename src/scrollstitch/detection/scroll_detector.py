"""
Scroll Detector
===============

Infers scroll direction and offset between the last accepted frame and
the current one.

This detector:
    - Runs the overlap matcher once per direction hypothesis (DOWN, UP)
    - Keeps the hypotheses that are valid (similarity above the matcher
      threshold and offset at least the minimum scroll distance)
    - Picks the higher-similarity valid hypothesis
    - Outputs a ScrollEvent with the overlap and its complementary
      new-content strip

Fail-Closed Rules:
    - Empty frames or frames of different size => no scroll
    - Bit-identical frames => no scroll (no matcher call)
    - Two valid hypotheses with equal similarity => no scroll
"""

import logging
from typing import Optional

import numpy as np

from scrollstitch.capture.frame import Frame
from scrollstitch.detection.overlap import OverlapMatcher
from scrollstitch.models.geometry import Rect
from scrollstitch.models.scroll import OverlapResult, ScrollDirection, ScrollEvent


logger = logging.getLogger(__name__)


class ScrollDetector:
    """
    Direction/offset inference on top of an OverlapMatcher.

    Attributes:
        matcher: Overlap search backend

    Example:
        detector = ScrollDetector(SampledDifferenceMatcher())

        event = detector.detect(last_frame, current_frame)
        if event.has_scroll:
            strip = current_frame.crop(event.new_content_rect)
    """

    def __init__(self, matcher: OverlapMatcher, log_every_n_checks: int = 50) -> None:
        """
        Initialize scroll detector.

        Args:
            matcher: Overlap matcher used for both hypotheses
            log_every_n_checks: Log a detection summary every N checks
        """
        self.matcher = matcher
        self.log_every_n_checks = log_every_n_checks

        # Internal state
        self._checks: int = 0
        self._scrolls: int = 0
        self._last_event: Optional[ScrollEvent] = None

        logger.info(
            f"ScrollDetector initialized: matcher={type(matcher).__name__}, "
            f"threshold={matcher.threshold}"
        )

    def detect(self, last: Frame, current: Frame) -> ScrollEvent:
        """
        Compare two frames and report the scroll between them.

        Args:
            last: Previously accepted frame
            current: Newly captured frame

        Returns:
            ScrollEvent; `has_scroll` is False when nothing valid was found
        """
        self._checks += 1
        event = self._detect(last, current)
        self._last_event = event

        if event.has_scroll:
            self._scrolls += 1
            logger.debug(f"Scroll detected: {event!r}")

        if self._checks % self.log_every_n_checks == 0:
            logger.info(
                f"ScrollDetector [check {self._checks}]: "
                f"scrolls={self._scrolls}, last={event!r}"
            )

        return event

    def _detect(self, last: Frame, current: Frame) -> ScrollEvent:
        if last.is_empty() or current.is_empty():
            return ScrollEvent.no_scroll()
        if not last.same_size(current):
            logger.debug(f"Frame size changed: {last!r} -> {current!r}")
            return ScrollEvent.no_scroll()
        if np.array_equal(last.pixels, current.pixels):
            return ScrollEvent.no_scroll(similarity=1.0)

        down = self.matcher.find_overlap(last, current, ScrollDirection.DOWN)
        up = self.matcher.find_overlap(last, current, ScrollDirection.UP)

        down_valid = self._is_valid(down)
        up_valid = self._is_valid(up)

        if down_valid and up_valid:
            if down.similarity == up.similarity:
                logger.debug(
                    f"Ambiguous scroll: both directions at {down.similarity:.3f}"
                )
                return ScrollEvent.no_scroll(similarity=down.similarity)
            if down.similarity > up.similarity:
                return self._build_event(current, down, ScrollDirection.DOWN)
            return self._build_event(current, up, ScrollDirection.UP)

        if down_valid:
            return self._build_event(current, down, ScrollDirection.DOWN)
        if up_valid:
            return self._build_event(current, up, ScrollDirection.UP)

        return ScrollEvent.no_scroll(similarity=max(down.similarity, up.similarity))

    def _is_valid(self, result: OverlapResult) -> bool:
        return (
            result.matched
            and result.similarity > self.matcher.threshold
            and result.offset >= self.matcher.min_scroll_distance
        )

    @staticmethod
    def _build_event(
        current: Frame,
        result: OverlapResult,
        direction: ScrollDirection,
    ) -> ScrollEvent:
        width, height = current.width, current.height
        offset = result.offset

        # New rows enter on the side the content scrolled away from
        if direction is ScrollDirection.DOWN:
            new_rect = Rect(0, height - offset, width, offset)
        else:
            new_rect = Rect(0, 0, width, offset)

        return ScrollEvent(
            direction=direction,
            offset=offset,
            overlap_rect=result.rect,
            new_content_rect=new_rect,
            similarity=result.similarity,
        )

    def reset(self) -> None:
        """Reset detector counters."""
        self._checks = 0
        self._scrolls = 0
        self._last_event = None
        logger.debug("ScrollDetector reset")

    @property
    def last_event(self) -> Optional[ScrollEvent]:
        """Most recent detection result."""
        return self._last_event

    def get_metrics(self) -> dict:
        """Get detector metrics for observability."""
        return {
            "checks": self._checks,
            "scrolls": self._scrolls,
            "matcher": type(self.matcher).__name__,
            "threshold": self.matcher.threshold,
        }
