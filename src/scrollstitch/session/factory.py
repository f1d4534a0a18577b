"""
Orchestrator Factory
====================

Builds a fully wired CaptureOrchestrator from Settings.
"""

import logging
import time
from typing import Callable, Optional

from scrollstitch.canvas.global_canvas import GlobalCanvas
from scrollstitch.capture.source import FrameSource, create_frame_source
from scrollstitch.config import Settings
from scrollstitch.dedup.fingerprint import ContentFingerprinter
from scrollstitch.dedup.tracker import CoveredRegionTracker, DuplicateThresholds
from scrollstitch.detection.overlap import create_matcher
from scrollstitch.detection.scroll_detector import ScrollDetector
from scrollstitch.session.orchestrator import CaptureOrchestrator
from scrollstitch.session.timer import AsyncioTimer, PollingTimer


logger = logging.getLogger(__name__)


def build_thresholds(settings: Settings) -> DuplicateThresholds:
    """Map the `tracker` config section onto policy thresholds."""
    tracker = settings.tracker
    return DuplicateThresholds(
        overlap_ratio=tracker.overlap_ratio_threshold,
        similarity=tracker.similarity_threshold,
        rollback_similarity=tracker.rollback_similarity_threshold,
        adjacent_similarity=tracker.adjacent_similarity_threshold,
        adjacent_distance=tracker.adjacent_distance,
        seam_check_enabled=tracker.seam_check_enabled,
        seam_similarity=tracker.seam_similarity_threshold,
        max_consecutive_duplicates=tracker.max_consecutive_duplicates,
        cooldown_sec=tracker.duplicate_cooldown_ms / 1000.0,
    )


def create_orchestrator(
    settings: Optional[Settings] = None,
    source: Optional[FrameSource] = None,
    timer: Optional[PollingTimer] = None,
    clock: Callable[[], float] = time.monotonic,
) -> CaptureOrchestrator:
    """
    Create an orchestrator with all components configured.

    Args:
        settings: Configuration (defaults to the global settings)
        source: Frame source (defaults to the configured backend)
        timer: Tick scheduler (defaults to AsyncioTimer)
        clock: Time source for the duplicate throttle

    Returns:
        Idle CaptureOrchestrator
    """
    if settings is None:
        from scrollstitch.config import settings as global_settings
        settings = global_settings

    if source is None:
        source = create_frame_source(
            settings.capture.source,
            border_inset=settings.capture.border_inset,
        )

    matcher_cfg = settings.matcher
    matcher = create_matcher(
        matcher_cfg.backend,
        similarity_threshold=matcher_cfg.similarity_threshold,
        template_threshold=matcher_cfg.template_threshold,
        min_scroll_distance=matcher_cfg.min_scroll_distance,
        max_search_offset=matcher_cfg.max_search_offset,
        min_overlap_height=matcher_cfg.min_overlap_height,
        pixel_tolerance=matcher_cfg.pixel_tolerance,
        sample_step=matcher_cfg.sample_step,
    )

    fp_cfg = settings.fingerprint
    fingerprinter = ContentFingerprinter(
        hash_size=fp_cfg.hash_size,
        similarity_size=fp_cfg.similarity_size,
        thumbnail_size=fp_cfg.thumbnail_size,
        size_gate=fp_cfg.size_gate,
        pixel_tolerance=fp_cfg.pixel_tolerance,
    )

    tracker = CoveredRegionTracker(
        fingerprinter,
        thresholds=build_thresholds(settings),
        max_regions=settings.tracker.max_covered_regions,
        cleanup_batch=settings.tracker.cleanup_batch,
        clock=clock,
    )

    logger.info(
        f"Creating orchestrator: source={type(source).__name__}, "
        f"matcher={matcher_cfg.backend}"
    )

    return CaptureOrchestrator(
        source=source,
        detector=ScrollDetector(matcher),
        tracker=tracker,
        canvas=GlobalCanvas(),
        timer=timer if timer is not None else AsyncioTimer(),
        detection_interval_ms=settings.capture.detection_interval_ms,
        min_new_content_height=settings.capture.min_new_content_height,
    )
