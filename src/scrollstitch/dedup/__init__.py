"""
Dedup Module
============

Duplicate suppression for captured strips.

Components:
    - ContentFingerprinter: signatures, thumbnails, tolerant similarity
    - RegionRing: fixed-size history with batch eviction
    - CoveredRegionTracker: duplicate decision policy
"""

from scrollstitch.dedup.fingerprint import ContentFingerprinter
from scrollstitch.dedup.ring import RegionRing
from scrollstitch.dedup.tracker import CoveredRegionTracker, DuplicateThresholds


__all__ = [
    "ContentFingerprinter",
    "RegionRing",
    "CoveredRegionTracker",
    "DuplicateThresholds",
]
