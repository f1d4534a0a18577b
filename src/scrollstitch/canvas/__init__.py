"""
Canvas Module
=============

Logical-coordinate stitching of accepted fragments.
"""

from scrollstitch.canvas.global_canvas import CanvasPlacementError, GlobalCanvas


__all__ = [
    "GlobalCanvas",
    "CanvasPlacementError",
]
