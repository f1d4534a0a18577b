"""
Image Operations
================

Pixel-buffer helpers shared by matching, fingerprinting, and compositing.

Design Rules:
    - Buffers are numpy uint8 arrays, RGB channel order, shape (H, W, 3)
    - Composites are RGBA, shape (H, W, 4)
    - This is the ONLY module that converts colour spaces or resamples
"""

import logging
from typing import Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class FrameFormatError(Exception):
    """Raised when a pixel buffer has an unsupported shape or dtype."""
    pass


def ensure_rgb(pixels: np.ndarray) -> np.ndarray:
    """
    Normalize a pixel buffer to contiguous RGB uint8.

    Accepts grayscale (H, W), RGB (H, W, 3) and RGBA (H, W, 4) input.

    Args:
        pixels: Raw pixel buffer

    Returns:
        RGB image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        FrameFormatError: If the buffer cannot be interpreted as an image
    """
    if not isinstance(pixels, np.ndarray):
        raise FrameFormatError(f"Expected numpy array, got {type(pixels).__name__}")

    if pixels.dtype != np.uint8:
        raise FrameFormatError(f"Invalid dtype: {pixels.dtype} (expected uint8)")

    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)

    if pixels.ndim != 3:
        raise FrameFormatError(f"Invalid image shape: {pixels.shape}")

    channels = pixels.shape[2]
    if channels == 3:
        return np.ascontiguousarray(pixels)
    if channels == 4:
        return np.ascontiguousarray(pixels[:, :, :3])

    raise FrameFormatError(f"Unsupported channel count: {channels}")


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """Convert an RGB buffer to single-channel grayscale."""
    return cv2.cvtColor(pixels, cv2.COLOR_RGB2GRAY)


def fit_within(pixels: np.ndarray, max_side: int) -> np.ndarray:
    """
    Resize to fit inside a `max_side` square, keeping aspect ratio.

    Shrinking uses area interpolation; enlarging uses bilinear.
    Each output side is at least one pixel.

    Args:
        pixels: RGB buffer (H, W, 3)
        max_side: Side of the bounding square

    Returns:
        Resized buffer; the input itself when it already fits exactly
    """
    height, width = pixels.shape[:2]
    if height == 0 or width == 0:
        return pixels

    scale = min(max_side / width, max_side / height)
    new_width = max(1, int(round(width * scale)))
    new_height = max(1, int(round(height * scale)))

    if (new_width, new_height) == (width, height):
        return pixels

    interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
    return cv2.resize(pixels, (new_width, new_height), interpolation=interpolation)


def sampled_similarity(
    a: np.ndarray,
    b: np.ndarray,
    step: int = 2,
    tolerance: int = 30,
) -> float:
    """
    Fraction of sampled pixel pairs that match within tolerance.

    Every `step`-th pixel in each axis is compared. A pair matches when
    the summed absolute difference of its RGB channels is below
    `tolerance`.

    Args:
        a: RGB buffer
        b: RGB buffer of the same shape
        step: Sampling stride in each axis
        tolerance: Summed channel difference threshold

    Returns:
        Similarity in [0, 1]; 0.0 for empty or mismatched buffers
    """
    if a.shape != b.shape or a.size == 0:
        return 0.0

    sample_a = a[::step, ::step].astype(np.int16)
    sample_b = b[::step, ::step].astype(np.int16)
    diff = np.abs(sample_a - sample_b).sum(axis=2)
    return float(np.count_nonzero(diff < tolerance)) / diff.size


def encode_png(pixels: np.ndarray) -> bytes:
    """
    Encode an RGB or RGBA buffer as PNG.

    Raises:
        FrameFormatError: If the buffer cannot be encoded
    """
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        bgr = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA)
    elif pixels.ndim == 3 and pixels.shape[2] == 3:
        bgr = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
    else:
        raise FrameFormatError(f"Cannot encode image of shape {pixels.shape}")

    ok, buffer = cv2.imencode(".png", bgr)
    if not ok:
        raise FrameFormatError("cv2.imencode failed to produce PNG data")
    return buffer.tobytes()


def crop(pixels: np.ndarray, x: int, y: int, width: int, height: int) -> Optional[np.ndarray]:
    """
    Copy a rectangular region, clipped to the buffer.

    Returns:
        Owned copy of the region, or None when the clipped region is empty
    """
    h, w = pixels.shape[:2]
    left, top = max(0, x), max(0, y)
    right, bottom = min(w, x + width), min(h, y + height)
    if right <= left or bottom <= top:
        return None
    return pixels[top:bottom, left:right].copy()
