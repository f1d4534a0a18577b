"""
Test Configuration
==================

Pytest fixtures and test configuration for scrollstitch.
"""

from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest


class FakeTimer:
    """PollingTimer that only fires when a test says so."""

    def __init__(self) -> None:
        self.starts: List[int] = []
        self.stops: int = 0
        self.callback: Optional[Callable[[], object]] = None
        self._active: bool = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def interval_ms(self) -> Optional[int]:
        return self.starts[-1] if self.starts else None

    def start(self, interval_ms: int, callback: Callable[[], object]) -> None:
        self.starts.append(interval_ms)
        self.callback = callback
        self._active = True

    def stop(self) -> None:
        self.stops += 1
        self._active = False

    def fire(self) -> object:
        assert self._active and self.callback is not None
        return self.callback()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_gradient(height: int, width: int, phase: int = 0) -> np.ndarray:
    """Smooth RGB image; small perturbations keep it visually identical."""
    ys = np.linspace(0, 200, height, dtype=np.float64)[:, None]
    xs = np.linspace(0, 50, width, dtype=np.float64)[None, :]
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :, 0] = (ys + xs + phase) % 256
    image[:, :, 1] = (ys * 0.5 + phase) % 256
    image[:, :, 2] = (xs * 2 + phase) % 256
    return image


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def document(rng) -> np.ndarray:
    """A 1000-row, 400-wide noise 'page' that a 400x800 viewport scrolls over."""
    return rng.integers(0, 256, size=(1000, 400, 3), dtype=np.uint8)


@pytest.fixture
def scrolled_pair(rng) -> Tuple[np.ndarray, np.ndarray]:
    """Two 400-row, 300-wide frames; content moved up by 40 rows (a DOWN scroll)."""
    page = rng.integers(0, 256, size=(440, 300, 3), dtype=np.uint8)
    return page[0:400], page[40:440]


@pytest.fixture
def fake_timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings():
    """Default settings with a search range that covers a 200px scroll of an 800px frame."""
    from scrollstitch.config import Settings

    settings = Settings()
    settings.capture.source = "scripted"
    settings.matcher.max_search_offset = 200
    return settings


@pytest.fixture
def make_orchestrator(test_settings, fake_timer, fake_clock):
    """Factory for orchestrators fed by scripted frames."""
    from scrollstitch.capture.source import ScriptedFrameSource
    from scrollstitch.session import create_orchestrator

    def factory(frames, settings=None):
        return create_orchestrator(
            settings or test_settings,
            source=ScriptedFrameSource(frames),
            timer=fake_timer,
            clock=fake_clock,
        )

    return factory
