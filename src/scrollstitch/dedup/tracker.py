"""
Covered Region Tracker
======================

Decides whether a candidate strip repeats content that is already on the
canvas.

Decision Policy (per recorded region, oldest first, first hit wins):
    1. Exact fingerprint match                               => FINGERPRINT
    2. Overlap ratio (intersection / smaller area) must exceed
       `overlap_ratio`, otherwise move on to the next record
    3. Similarity > `similarity`                             => SIMILAR_CONTENT
    4. Record lies ahead of the scroll cursor in its own
       direction and similarity > `rollback_similarity`      => ROLLBACK
    5. Candidate within `adjacent_distance` of the record
       and similarity > `adjacent_similarity`                => ADJACENT_SEAM

    After the scan, when seam pixels are supplied:
    6. Candidate repeats the canvas rows it would abut       => SEAM_REPEAT

Anti-Thrash Guard:
    After `max_consecutive_duplicates` duplicates in a row, checks that
    arrive within `cooldown_sec` of the last detected duplicate return
    covered without scanning (THROTTLED). Once the window has elapsed
    the counter resets. Any non-duplicate verdict resets the counter.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from scrollstitch.capture.image_ops import sampled_similarity
from scrollstitch.dedup.fingerprint import ContentFingerprinter
from scrollstitch.dedup.ring import RegionRing
from scrollstitch.models.fragment import CoveredRegion
from scrollstitch.models.geometry import Rect
from scrollstitch.models.reason_codes import DuplicateReason
from scrollstitch.models.scroll import ScrollDirection


logger = logging.getLogger(__name__)


@dataclass
class DuplicateThresholds:
    """
    Thresholds for the duplicate decision policy.

    Loaded from the `tracker` section of the configuration.
    """

    # Geometric gate
    overlap_ratio: float = 0.7

    # Similarity thresholds, strictest first
    similarity: float = 0.85
    rollback_similarity: float = 0.80
    adjacent_similarity: float = 0.75
    adjacent_distance: int = 50

    # Seam repeat check
    seam_check_enabled: bool = True
    seam_similarity: float = 0.90

    # Anti-thrash guard
    max_consecutive_duplicates: int = 3
    cooldown_sec: float = 1.0


class CoveredRegionTracker:
    """
    Bounded history of accepted content used for duplicate suppression.

    The tracker never stores canvas pixels, only a fingerprint and a
    thumbnail per record, so evicting history never removes content from
    the composite.

    Attributes:
        fingerprinter: Signature and similarity provider
        thresholds: Decision policy thresholds

    Example:
        tracker = CoveredRegionTracker(ContentFingerprinter())
        tracker.record(seed, Rect(0, 0, 400, 800), ScrollDirection.NONE, order=0)

        if not tracker.is_already_covered(strip, rect, scroll_cursor=800):
            tracker.record(strip, rect, ScrollDirection.DOWN, order=1)
    """

    def __init__(
        self,
        fingerprinter: ContentFingerprinter,
        thresholds: Optional[DuplicateThresholds] = None,
        max_regions: int = 200,
        cleanup_batch: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize tracker.

        Args:
            fingerprinter: Fingerprint/similarity provider
            thresholds: Policy thresholds (defaults if None)
            max_regions: Records kept after a cleanup pass
            cleanup_batch: Eviction batch size
            clock: Monotonic time source in seconds
        """
        self.fingerprinter = fingerprinter
        self.thresholds = thresholds or DuplicateThresholds()
        self._ring: RegionRing[CoveredRegion] = RegionRing(max_regions, cleanup_batch)
        self._clock = clock

        # Duplicate bookkeeping
        self._consecutive_duplicates: int = 0
        self._last_duplicate_at: Optional[float] = None
        self._skipped_duplicates: int = 0
        self._last_reason: Optional[DuplicateReason] = None

        logger.info(
            f"CoveredRegionTracker initialized: max_regions={max_regions}, "
            f"batch={cleanup_batch}, seam_check={self.thresholds.seam_check_enabled}"
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_already_covered(
        self,
        content: np.ndarray,
        logical_rect: Rect,
        scroll_cursor: int,
        seam: Optional[np.ndarray] = None,
    ) -> bool:
        """
        Check whether `content` placed at `logical_rect` repeats known content.

        Args:
            content: Candidate RGB strip
            logical_rect: Where the candidate would be placed
            scroll_cursor: Current canvas scroll cursor
            seam: Canvas rows the candidate would abut, same shape as
                `content`, or None to skip the seam check

        Returns:
            True if the candidate should be skipped
        """
        th = self.thresholds
        now = self._clock()

        if self._consecutive_duplicates >= th.max_consecutive_duplicates:
            last = self._last_duplicate_at
            if last is not None and now - last < th.cooldown_sec:
                self._skipped_duplicates += 1
                self._last_reason = DuplicateReason.THROTTLED
                logger.debug(
                    f"Duplicate throttle active "
                    f"({self._consecutive_duplicates} in a row)"
                )
                return True
            logger.debug("Duplicate throttle window elapsed, resetting counter")
            self._consecutive_duplicates = 0

        if len(self._ring) == 0:
            self._consecutive_duplicates = 0
            self._last_reason = None
            return False

        reason = self._find_duplicate(content, logical_rect, scroll_cursor)

        if reason is None and seam is not None and th.seam_check_enabled:
            seam_score = sampled_similarity(
                content, seam,
                tolerance=self.fingerprinter.pixel_tolerance,
            )
            if seam_score > th.seam_similarity:
                reason = DuplicateReason.SEAM_REPEAT

        if reason is None:
            self._consecutive_duplicates = 0
            self._last_reason = None
            return False

        self._consecutive_duplicates += 1
        self._last_duplicate_at = now
        self._skipped_duplicates += 1
        self._last_reason = reason

        logger.info(
            f"Duplicate content at {logical_rect!r}: {reason.value} "
            f"(consecutive={self._consecutive_duplicates})"
        )
        return True

    def _find_duplicate(
        self,
        content: np.ndarray,
        logical_rect: Rect,
        scroll_cursor: int,
    ) -> Optional[DuplicateReason]:
        th = self.thresholds
        fingerprint = self.fingerprinter.fingerprint(content)
        candidate_size = (logical_rect.width, logical_rect.height)

        for region in self._ring:
            if fingerprint and fingerprint == region.fingerprint:
                return DuplicateReason.FINGERPRINT

            if logical_rect.overlap_ratio(region.logical_rect) <= th.overlap_ratio:
                continue

            score = self.fingerprinter.similarity(
                content,
                region.thumbnail,
                sizes=(candidate_size, region.logical_rect.size),
            )

            if score > th.similarity:
                return DuplicateReason.SIMILAR_CONTENT

            if self._is_rollback(region, scroll_cursor) and score > th.rollback_similarity:
                return DuplicateReason.ROLLBACK

            if self._is_adjacent(logical_rect, region.logical_rect) and score > th.adjacent_similarity:
                return DuplicateReason.ADJACENT_SEAM

        return None

    @staticmethod
    def _is_rollback(region: CoveredRegion, scroll_cursor: int) -> bool:
        # Region lies ahead of the cursor in its own scroll direction
        rect = region.logical_rect
        if region.direction is ScrollDirection.DOWN:
            return scroll_cursor < rect.bottom
        if region.direction is ScrollDirection.UP:
            return scroll_cursor > rect.top
        return False

    def _is_adjacent(self, candidate: Rect, recorded: Rect) -> bool:
        distance = self.thresholds.adjacent_distance
        return (
            abs(candidate.top - recorded.bottom) < distance
            or abs(candidate.bottom - recorded.top) < distance
        )

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def record(
        self,
        content: np.ndarray,
        logical_rect: Rect,
        direction: ScrollDirection,
        order: int,
    ) -> CoveredRegion:
        """
        Store a record for accepted content.

        Args:
            content: Accepted RGB pixels
            logical_rect: Placement on the canvas
            direction: Scroll direction that produced the content
            order: Fragment insertion order

        Returns:
            The stored record
        """
        region = CoveredRegion(
            logical_rect=logical_rect,
            fingerprint=self.fingerprinter.fingerprint(content),
            thumbnail=self.fingerprinter.thumbnail(content),
            direction=direction,
            order=order,
            timestamp=self._clock(),
        )
        evicted = self._ring.push(region)
        if evicted:
            logger.info(f"Covered regions evicted: {evicted}, holding {len(self._ring)}")

        logger.debug(f"Recorded {region!r}")
        return region

    def cleanup(self) -> int:
        """Run a capacity cleanup pass. Returns records removed."""
        return self._ring.cleanup()

    def clear(self) -> None:
        """Drop all records and reset duplicate bookkeeping."""
        self._ring.clear()
        self._consecutive_duplicates = 0
        self._last_duplicate_at = None
        self._skipped_duplicates = 0
        self._last_reason = None
        logger.debug("CoveredRegionTracker cleared")

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._ring)

    @property
    def regions(self) -> List[CoveredRegion]:
        """Recorded regions, oldest first."""
        return list(self._ring)

    @property
    def skipped_duplicates(self) -> int:
        return self._skipped_duplicates

    @property
    def consecutive_duplicates(self) -> int:
        return self._consecutive_duplicates

    @property
    def last_reason(self) -> Optional[DuplicateReason]:
        """Reason for the most recent duplicate verdict, None after a miss."""
        return self._last_reason

    def metrics(self) -> dict:
        """Get tracker metrics for observability."""
        return {
            "regions": len(self._ring),
            "skipped_duplicates": self._skipped_duplicates,
            "consecutive_duplicates": self._consecutive_duplicates,
            "last_reason": self._last_reason.value if self._last_reason else None,
            "ring": self._ring.metrics(),
        }
