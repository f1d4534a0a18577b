"""
Reason Codes
============

Fixed set of machine-readable codes for tick outcomes and duplicate verdicts.

Rules:
    - One code per outcome
    - Codes are stable strings, safe to log and to send over the wire
"""

from enum import Enum


class TickOutcome(str, Enum):
    """
    Result of a single orchestrator tick.

    Attributes:
        IDLE: Tick fired while no session was active
        CAPTURE_FAILED: Frame source could not produce a frame
        NO_SCROLL: Detector found no scroll between frames
        BELOW_FLOOR: Scroll found but the new strip is too short
        DUPLICATE: New strip judged already covered
        ACCEPTED: New strip appended to the canvas
    """

    IDLE = "IDLE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    NO_SCROLL = "NO_SCROLL"
    BELOW_FLOOR = "BELOW_FLOOR"
    DUPLICATE = "DUPLICATE"
    ACCEPTED = "ACCEPTED"


class DuplicateReason(str, Enum):
    """
    Why the covered-region tracker rejected a candidate.

    Attributes:
        FINGERPRINT: Exact fingerprint match with a recorded region
        SIMILAR_CONTENT: High similarity with an overlapping region
        ROLLBACK: Similar content captured while scrolling back
        ADJACENT_SEAM: Similar content right next to a recorded region
        SEAM_REPEAT: Candidate repeats the canvas rows it would abut
        THROTTLED: Too many consecutive duplicates, checks paused
    """

    FINGERPRINT = "FINGERPRINT"
    SIMILAR_CONTENT = "SIMILAR_CONTENT"
    ROLLBACK = "ROLLBACK"
    ADJACENT_SEAM = "ADJACENT_SEAM"
    SEAM_REPEAT = "SEAM_REPEAT"
    THROTTLED = "THROTTLED"
