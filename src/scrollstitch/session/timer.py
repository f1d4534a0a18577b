"""
Polling Timer
=============

Periodic tick scheduling for the capture orchestrator.

Design Rules:
    - One callback at a time; the next tick is armed only after the
      current one returns, so ticks never overlap or re-enter
    - start() while active restarts with the new period
    - stop() cancels the pending tick; a running tick finishes first
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol


logger = logging.getLogger(__name__)


class PollingTimer(Protocol):
    """Protocol for tick schedulers."""

    @property
    def is_active(self) -> bool:
        ...

    def start(self, interval_ms: int, callback: Callable[[], object]) -> None:
        """Begin calling `callback` every `interval_ms` milliseconds."""
        ...

    def stop(self) -> None:
        """Cancel future ticks."""
        ...


class AsyncioTimer:
    """
    Re-arming timer on an asyncio event loop.

    Uses `loop.call_later`; the callback runs on the loop thread, so the
    orchestrator state is only touched from that single thread.

    Example:
        timer = AsyncioTimer()
        timer.start(200, orchestrator.tick)
        ...
        timer.stop()
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Initialize timer.

        Args:
            loop: Event loop to schedule on. Defaults to the running loop
                at start() time.
        """
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[Callable[[], object]] = None
        self._interval_sec: float = 0.0
        self._active: bool = False
        self._ticks: int = 0

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self, interval_ms: int, callback: Callable[[], object]) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

        self.stop()

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._callback = callback
        self._interval_sec = interval_ms / 1000.0
        self._active = True
        self._arm()

        logger.debug(f"AsyncioTimer started: interval={interval_ms}ms")

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._active:
            logger.debug("AsyncioTimer stopped")
        self._active = False

    def _arm(self) -> None:
        if self._loop is None:
            raise RuntimeError("AsyncioTimer has no event loop")
        self._handle = self._loop.call_later(self._interval_sec, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._active or self._callback is None:
            return

        self._ticks += 1
        try:
            self._callback()
        except Exception:
            logger.exception("Timer callback failed")

        # The callback may have stopped or restarted the timer
        if self._active and self._handle is None:
            self._arm()
