"""
Fingerprint Tests
=================

Tests for ContentFingerprinter.
"""

import numpy as np
import pytest

from scrollstitch.dedup.fingerprint import ContentFingerprinter

from conftest import make_gradient


@pytest.fixture
def fingerprinter():
    return ContentFingerprinter()


class TestFingerprint:
    """Tests for fingerprint()."""

    def test_deterministic(self, fingerprinter, rng):
        pixels = rng.integers(0, 256, (200, 400, 3), dtype=np.uint8)
        assert fingerprinter.fingerprint(pixels) == fingerprinter.fingerprint(pixels.copy())

    def test_fixed_length_hex(self, fingerprinter, rng):
        signature = fingerprinter.fingerprint(rng.integers(0, 256, (10, 700, 3), dtype=np.uint8))
        assert len(signature) == 32
        int(signature, 16)

    def test_different_content_differs(self, fingerprinter, rng):
        a = rng.integers(0, 256, (200, 400, 3), dtype=np.uint8)
        b = rng.integers(0, 256, (200, 400, 3), dtype=np.uint8)
        assert fingerprinter.fingerprint(a) != fingerprinter.fingerprint(b)

    def test_dimensions_are_part_of_signature(self, fingerprinter):
        tall = np.full((200, 100, 3), 40, dtype=np.uint8)
        wide = np.full((100, 200, 3), 40, dtype=np.uint8)
        assert fingerprinter.fingerprint(tall) != fingerprinter.fingerprint(wide)

    def test_empty_input(self, fingerprinter):
        assert fingerprinter.fingerprint(np.zeros((0, 10, 3), dtype=np.uint8)) == ""

    def test_small_inputs_are_enlarged(self, fingerprinter):
        tiny = np.arange(12, dtype=np.uint8).reshape(2, 2, 3)
        assert len(fingerprinter.fingerprint(tiny)) == 32


class TestThumbnail:
    """Tests for thumbnail()."""

    def test_preserves_aspect_ratio(self, fingerprinter, rng):
        thumb = fingerprinter.thumbnail(rng.integers(0, 256, (800, 400, 3), dtype=np.uint8))
        assert thumb.shape == (50, 25, 3)

    def test_thin_strips_keep_one_row(self, fingerprinter, rng):
        thumb = fingerprinter.thumbnail(rng.integers(0, 256, (10, 800, 3), dtype=np.uint8))
        assert thumb.shape == (1, 50, 3)


class TestSimilarity:
    """Tests for similarity()."""

    def test_identical(self, fingerprinter, rng):
        pixels = rng.integers(0, 256, (120, 300, 3), dtype=np.uint8)
        assert fingerprinter.similarity(pixels, pixels.copy()) == 1.0

    def test_unrelated_noise(self, fingerprinter, rng):
        a = rng.integers(0, 256, (120, 300, 3), dtype=np.uint8)
        b = rng.integers(0, 256, (120, 300, 3), dtype=np.uint8)
        assert fingerprinter.similarity(a, b) < 0.5

    def test_size_gate(self, fingerprinter):
        a = make_gradient(100, 300)
        b = make_gradient(160, 300)
        assert fingerprinter.similarity(a, b) == 0.0

    def test_size_gate_tolerates_small_differences(self, fingerprinter):
        a = make_gradient(200, 300)
        b = make_gradient(210, 300)
        assert fingerprinter.similarity(a, b) > 0.85

    def test_tolerates_small_noise(self, fingerprinter, rng):
        a = make_gradient(200, 400)
        noise = rng.integers(-3, 4, a.shape)
        b = np.clip(a.astype(np.int16) + noise, 0, 255).astype(np.uint8)
        assert fingerprinter.similarity(a, b) > 0.95

    def test_against_thumbnail_with_source_sizes(self, fingerprinter):
        content = make_gradient(200, 400)
        thumb = fingerprinter.thumbnail(content)

        # The size gate must look at the recorded source size, not the thumbnail
        assert fingerprinter.similarity(content, thumb) == 0.0
        score = fingerprinter.similarity(content, thumb, sizes=((400, 200), (400, 200)))
        assert score > 0.85

    def test_empty_inputs(self, fingerprinter):
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        assert fingerprinter.similarity(empty, make_gradient(10, 10)) == 0.0
