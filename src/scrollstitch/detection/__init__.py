"""
Detection Module
================

Overlap search and scroll inference between successive frames.

Backends:
    - SampledDifferenceMatcher: sparse pixel-difference scan (default)
    - TemplateMatcher: OpenCV normalized cross-correlation
"""

from scrollstitch.detection.overlap import (
    OverlapMatcher,
    SampledDifferenceMatcher,
    TemplateMatcher,
    create_matcher,
)
from scrollstitch.detection.scroll_detector import ScrollDetector


__all__ = [
    "OverlapMatcher",
    "SampledDifferenceMatcher",
    "TemplateMatcher",
    "create_matcher",
    "ScrollDetector",
]
