"""
Content Fingerprinter
=====================

Compact signatures and approximate similarity for pixel regions.

Fingerprint Layout:
    MD5 over, in order:
        1. Canvas width and height as ASCII decimal ("96x48")
        2. Raw RGB bytes of the downsampled canvas in raster order
        3. Total summed channel value as ASCII decimal

    The canvas is an aspect-preserving fit inside a `hash_size` square.
    Downsampling is lossy: two inputs that differ in a single pixel may
    share a fingerprint. Fingerprints only prove equality of the
    downsampled canvas, never distinctness of the sources.
"""

import hashlib
import logging
from typing import Optional, Tuple

import numpy as np

from scrollstitch.capture.image_ops import fit_within


logger = logging.getLogger(__name__)


Size = Tuple[int, int]


class ContentFingerprinter:
    """
    Deterministic fingerprints, thumbnails, and tolerant similarity.

    Attributes:
        hash_size: Side of the fingerprint canvas
        similarity_size: Side of the similarity canvas
        thumbnail_size: Side of stored thumbnails
        size_gate: Max width/height difference before similarity is 0
        pixel_tolerance: Summed RGB difference below which pixels match

    Example:
        fingerprinter = ContentFingerprinter()

        if fingerprinter.fingerprint(a) == fingerprinter.fingerprint(b):
            ...
        score = fingerprinter.similarity(a, b)
    """

    def __init__(
        self,
        hash_size: int = 96,
        similarity_size: int = 128,
        thumbnail_size: int = 50,
        size_gate: int = 30,
        pixel_tolerance: int = 30,
    ) -> None:
        if hash_size < 1 or similarity_size < 1 or thumbnail_size < 1:
            raise ValueError("canvas sizes must be >= 1")

        self.hash_size = hash_size
        self.similarity_size = similarity_size
        self.thumbnail_size = thumbnail_size
        self.size_gate = size_gate
        self.pixel_tolerance = pixel_tolerance

    def fingerprint(self, pixels: np.ndarray) -> str:
        """
        Compute the hex signature of a region.

        Args:
            pixels: RGB buffer (H, W, 3)

        Returns:
            32-character hex digest, or "" for an empty buffer
        """
        if pixels.size == 0:
            return ""

        canvas = np.ascontiguousarray(fit_within(pixels, self.hash_size))
        height, width = canvas.shape[:2]

        digest = hashlib.md5()
        digest.update(f"{width}x{height}".encode("ascii"))
        digest.update(canvas.tobytes())
        digest.update(str(int(canvas.sum(dtype=np.uint64))).encode("ascii"))
        return digest.hexdigest()

    def thumbnail(self, pixels: np.ndarray) -> np.ndarray:
        """Aspect-preserving copy that fits inside `thumbnail_size`."""
        if pixels.size == 0:
            return pixels.copy()
        return np.ascontiguousarray(fit_within(pixels, self.thumbnail_size)).copy()

    def similarity(
        self,
        a: np.ndarray,
        b: np.ndarray,
        sizes: Optional[Tuple[Size, Size]] = None,
    ) -> float:
        """
        Tolerant pixel similarity of two regions.

        Args:
            a: RGB buffer
            b: RGB buffer (may be a thumbnail)
            sizes: ((width_a, height_a), (width_b, height_b)) of the source
                regions, used by the size gate when either input is a
                thumbnail. Defaults to the array shapes.

        Returns:
            Similarity in [0, 1]
        """
        if a.size == 0 or b.size == 0:
            return 0.0

        if sizes is None:
            sizes = ((a.shape[1], a.shape[0]), (b.shape[1], b.shape[0]))
        (width_a, height_a), (width_b, height_b) = sizes

        if abs(width_a - width_b) > self.size_gate or abs(height_a - height_b) > self.size_gate:
            return 0.0

        if self.fingerprint(a) == self.fingerprint(b):
            return 1.0

        canvas_a = fit_within(a, self.similarity_size).astype(np.int16)
        canvas_b = fit_within(b, self.similarity_size).astype(np.int16)

        height = min(canvas_a.shape[0], canvas_b.shape[0])
        width = min(canvas_a.shape[1], canvas_b.shape[1])

        diff = np.abs(canvas_a[:height, :width] - canvas_b[:height, :width]).sum(axis=2)
        return float(np.count_nonzero(diff < self.pixel_tolerance)) / diff.size
