"""
Capture Orchestrator
====================

Timer-driven state machine that turns a stream of screen grabs into one
stitched image.

States:
    IDLE -> CAPTURING -> IDLE

    stop() finalizes the session and returns straight to IDLE.

Tick Pipeline:
    1. Capture the tracked rect (failure => tick skipped)
    2. Detect scroll against the last ACCEPTED frame
    3. Discard strips under the height floor (frame not advanced)
    4. Place the new strip at the canvas' next logical rect
    5. Ask the tracker whether it is already covered (frame not advanced)
    6. Append, record, and advance the accepted frame

Threading:
    All public methods and tick() must be called from one thread (the
    event loop that drives the timer). No locking is done here.
"""

import logging
import time
from typing import Dict, List, Optional

import numpy as np

from scrollstitch.canvas.global_canvas import CanvasPlacementError, GlobalCanvas
from scrollstitch.capture.frame import Frame
from scrollstitch.capture.source import CaptureUnavailableError, FrameSource
from scrollstitch.dedup.tracker import CoveredRegionTracker
from scrollstitch.detection.scroll_detector import ScrollDetector
from scrollstitch.models.fragment import Fragment
from scrollstitch.models.geometry import Rect
from scrollstitch.models.reason_codes import DuplicateReason, TickOutcome
from scrollstitch.models.scroll import ScrollDirection
from scrollstitch.models.session import CaptureState, EventType, SessionStats
from scrollstitch.session.events import CaptureEvents
from scrollstitch.session.timer import PollingTimer


logger = logging.getLogger(__name__)


STATUS_LISTENING = "Listening for scroll..."
STATUS_CAPTURE_FAILED = "Capture unavailable, retrying..."
STATUS_THROTTLED = "Too many duplicates, pausing capture briefly..."
STATUS_CLEARED = "Cleared"


class SessionMetrics:
    """Per-session counters for observability."""

    __slots__ = (
        "ticks",
        "capture_failures",
        "outcomes",
        "started_at",
        "last_accepted_at",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.capture_failures: int = 0
        self.outcomes: Dict[TickOutcome, int] = {outcome: 0 for outcome in TickOutcome}
        self.started_at: Optional[float] = None
        self.last_accepted_at: Optional[float] = None

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "capture_failures": self.capture_failures,
            "outcomes": {outcome.value: count for outcome, count in self.outcomes.items()},
            "started_at": self.started_at,
            "last_accepted_at": self.last_accepted_at,
        }


class CaptureOrchestrator:
    """
    Scrolling capture session controller.

    Owns the canvas, the covered-region tracker, and the last accepted
    frame. Collaborators observe progress through `events`.

    Attributes:
        source: Frame source for the tracked rect
        detector: Scroll detector
        tracker: Duplicate tracker
        canvas: Global canvas
        timer: Tick scheduler
        events: Callback registry
        metrics: Per-session counters

    Example:
        orchestrator = create_orchestrator()
        orchestrator.events.subscribe(EventType.STATUS_CHANGED, print)

        orchestrator.start(Rect(100, 100, 400, 800))
        ...
        image = orchestrator.stop()
    """

    def __init__(
        self,
        source: FrameSource,
        detector: ScrollDetector,
        tracker: CoveredRegionTracker,
        canvas: GlobalCanvas,
        timer: PollingTimer,
        detection_interval_ms: int = 200,
        min_new_content_height: int = 10,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            source: Frame source
            detector: Scroll detector
            tracker: Covered-region tracker
            canvas: Global canvas
            timer: Polling timer driving tick()
            detection_interval_ms: Polling period in milliseconds
            min_new_content_height: Strips shorter than this are noise
        """
        if detection_interval_ms <= 0:
            raise ValueError("detection_interval_ms must be positive")
        if min_new_content_height < 1:
            raise ValueError("min_new_content_height must be >= 1")

        self.source = source
        self.detector = detector
        self.tracker = tracker
        self.canvas = canvas
        self.timer = timer
        self.events = CaptureEvents()
        self.min_new_content_height = min_new_content_height

        self._detection_interval_ms = detection_interval_ms
        self._state = CaptureState.IDLE
        self._capture_rect: Rect = Rect.empty()
        self._seed_frame: Optional[Frame] = None
        self._last_frame: Optional[Frame] = None
        self._final_composite: Optional[np.ndarray] = None
        self._capture_count: int = 0
        self._throttled: bool = False

        self.metrics = SessionMetrics()

        logger.info(
            f"CaptureOrchestrator initialized: interval={detection_interval_ms}ms, "
            f"floor={min_new_content_height}px"
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state is CaptureState.CAPTURING

    @property
    def capture_count(self) -> int:
        """Fragments accepted this session, seed included."""
        return self._capture_count

    @property
    def fragments(self) -> List[Fragment]:
        return self.canvas.fragments

    @property
    def detection_interval_ms(self) -> int:
        return self._detection_interval_ms

    @property
    def capture_rect(self) -> Rect:
        return self._capture_rect

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, rect: Rect) -> bool:
        """
        Begin a capture session over `rect`.

        The previous session's content is discarded. The first frame
        becomes the seed fragment at logical (0, 0).

        Args:
            rect: Screen rectangle to track

        Returns:
            True if the session started
        """
        if self.is_capturing:
            logger.warning("start() ignored: a capture session is already running")
            return False

        if rect.is_empty():
            logger.warning(f"start() refused: empty capture rect {rect!r}")
            return False

        self._reset_session()

        try:
            seed = self.source.capture(rect)
        except CaptureUnavailableError as e:
            logger.error(f"Cannot start capture: {e}")
            self._emit_status(f"Capture unavailable: {e}")
            return False

        if seed.is_empty():
            logger.error("Cannot start capture: seed frame is empty")
            self._emit_status("Capture unavailable: empty frame")
            return False

        self._capture_rect = rect

        seed_rect = self.canvas.next_rect(ScrollDirection.NONE, seed.width, seed.height)
        fragment = self.canvas.append(seed.pixels, seed_rect, ScrollDirection.NONE)
        self.tracker.record(seed.pixels, seed_rect, ScrollDirection.NONE, fragment.order)

        self._seed_frame = seed
        self._last_frame = seed
        self._capture_count = 1
        self._state = CaptureState.CAPTURING
        self.metrics.started_at = time.time()

        self.timer.start(self._detection_interval_ms, self.tick)

        logger.info(
            f"Capture started: rect={rect!r}, seed={seed.width}x{seed.height}, "
            f"interval={self._detection_interval_ms}ms"
        )
        self._emit_status(STATUS_LISTENING)
        return True

    def stop(self) -> Optional[np.ndarray]:
        """
        Finish the session.

        Halts ticking, runs a tracker cleanup pass, and renders the final
        composite.

        Returns:
            Final RGBA composite, or None if no session was running
        """
        if not self.is_capturing:
            return None

        self.timer.stop()
        self._state = CaptureState.IDLE

        removed = self.tracker.cleanup()
        if removed:
            logger.debug(f"Tracker cleanup removed {removed} regions")

        self._final_composite = self.get_live_composite()

        logger.info(
            f"Capture stopped: fragments={self._capture_count}, "
            f"skipped={self.tracker.skipped_duplicates}, "
            f"ticks={self.metrics.ticks}, canvas={self.canvas.bounds!r}"
        )

        self.events.emit(EventType.SESSION_FINISHED, self._final_composite)
        self._emit_status(
            f"Capture finished: {self._capture_count} fragments, "
            f"skipped {self.tracker.skipped_duplicates} duplicates"
        )
        return self._final_composite

    def clear(self) -> bool:
        """
        Reset all session state.

        Returns:
            False (and does nothing) while a session is running
        """
        if self.is_capturing:
            logger.warning("clear() refused while capturing; stop the session first")
            return False

        self._reset_session()
        self._capture_rect = Rect.empty()
        logger.info("Capture state cleared")
        self._emit_status(STATUS_CLEARED)
        return True

    def set_detection_interval(self, interval_ms: int) -> None:
        """
        Change the polling period.

        Takes effect on the next tick when a session is running.

        Raises:
            ValueError: If `interval_ms` is not positive
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

        self._detection_interval_ms = interval_ms
        if self.is_capturing and self.timer.is_active:
            self.timer.start(interval_ms, self.tick)

        logger.info(f"Detection interval set to {interval_ms}ms")

    def _reset_session(self) -> None:
        self.canvas.clear()
        self.tracker.clear()
        self.detector.reset()
        self._seed_frame = None
        self._last_frame = None
        self._final_composite = None
        self._capture_count = 0
        self._throttled = False
        self.metrics = SessionMetrics()

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(self) -> TickOutcome:
        """
        Run one capture/compare/append iteration.

        Returns:
            What happened on this tick
        """
        outcome = self._tick()
        if outcome is not TickOutcome.IDLE:
            self.metrics.ticks += 1
            self.metrics.outcomes[outcome] += 1
        return outcome

    def _tick(self) -> TickOutcome:
        if not self.is_capturing or self._last_frame is None:
            return TickOutcome.IDLE

        try:
            frame = self.source.capture(self._capture_rect)
        except CaptureUnavailableError as e:
            self.metrics.capture_failures += 1
            logger.warning(f"Capture failed, skipping tick: {e}")
            self._emit_status(STATUS_CAPTURE_FAILED)
            return TickOutcome.CAPTURE_FAILED

        event = self.detector.detect(self._last_frame, frame)
        if not event.has_scroll:
            return TickOutcome.NO_SCROLL

        self.events.emit(EventType.SCROLL_OBSERVED, event.direction, event.offset)

        if event.new_content_rect.height < self.min_new_content_height:
            logger.debug(
                f"New content {event.new_content_rect.height}px under floor "
                f"{self.min_new_content_height}px"
            )
            return TickOutcome.BELOW_FLOOR

        content = frame.crop(event.new_content_rect)
        if content is None:
            return TickOutcome.BELOW_FLOOR

        height, width = content.shape[:2]
        logical_rect = self.canvas.next_rect(event.direction, width, height)

        seam = None
        if self.tracker.thresholds.seam_check_enabled:
            seam = self.canvas.seam_pixels(event.direction, height)

        if self.tracker.is_already_covered(
            content, logical_rect, self.canvas.scroll_cursor, seam=seam
        ):
            self._on_duplicate()
            return TickOutcome.DUPLICATE

        try:
            fragment = self.canvas.append(content, logical_rect, event.direction)
        except CanvasPlacementError as e:
            logger.error(f"Fragment placement failed: {e}")
            return TickOutcome.DUPLICATE

        self.tracker.record(content, logical_rect, event.direction, fragment.order)
        self._last_frame = frame
        self._capture_count += 1
        self._throttled = False
        self.metrics.last_accepted_at = time.time()

        logger.info(
            f"Fragment #{fragment.order} accepted: {event.direction.value} "
            f"{height}px at {logical_rect!r}"
        )
        self._emit_status(
            f"Captured {self._capture_count} fragments "
            f"({event.direction.value.lower()} {event.offset}px)"
        )

        if self.events.has_listeners(EventType.FRAGMENT_ACCEPTED):
            composite = self.canvas.composite()
            if composite is not None:
                self.events.emit(EventType.FRAGMENT_ACCEPTED, composite)

        return TickOutcome.ACCEPTED

    def _on_duplicate(self) -> None:
        if self.tracker.last_reason is DuplicateReason.THROTTLED:
            if not self._throttled:
                self._throttled = True
                self._emit_status(STATUS_THROTTLED)
            return

        if self._throttled:
            self._throttled = False
            self._emit_status(STATUS_LISTENING)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def get_composite(self) -> Optional[np.ndarray]:
        """Finalized composite of the last session, else the live one."""
        if self._final_composite is not None:
            return self._final_composite
        return self.get_live_composite()

    def get_live_composite(self) -> Optional[np.ndarray]:
        """
        Render the canvas as it stands.

        Falls back to the seed frame when the canvas holds nothing.

        Returns:
            RGBA composite, or None before any session
        """
        composite = self.canvas.composite()
        if composite is not None:
            return composite

        if self._seed_frame is None or self._seed_frame.is_empty():
            return None

        seed = self._seed_frame.pixels
        rgba = np.full((seed.shape[0], seed.shape[1], 4), 255, dtype=np.uint8)
        rgba[:, :, :3] = seed
        return rgba

    def stats(self) -> SessionStats:
        """Snapshot of the session for /status."""
        bounds = self.canvas.bounds
        return SessionStats(
            state=self._state,
            capture_count=self._capture_count,
            fragment_count=len(self.canvas),
            skipped_duplicates=self.tracker.skipped_duplicates,
            ticks=self.metrics.ticks,
            capture_failures=self.metrics.capture_failures,
            canvas_width=max(0, bounds.width),
            canvas_height=max(0, bounds.height),
            scroll_cursor=self.canvas.scroll_cursor,
            covered_regions=len(self.tracker),
            detection_interval_ms=self._detection_interval_ms,
        )

    def _emit_status(self, text: str) -> None:
        logger.debug(f"Status: {text}")
        self.events.emit(EventType.STATUS_CHANGED, text)
