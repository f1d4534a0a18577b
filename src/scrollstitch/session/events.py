"""
Capture Events
==============

Owned listener registry for orchestrator callbacks.

Events and payloads:
    STATUS_CHANGED     (text: str)
    SCROLL_OBSERVED    (direction: ScrollDirection, offset: int)
    FRAGMENT_ACCEPTED  (composite: np.ndarray)
    SESSION_FINISHED   (composite: Optional[np.ndarray])

Listeners run synchronously on the tick. A listener that raises is
logged and skipped; it never breaks the tick or the other listeners.
"""

import logging
from typing import Any, Callable, Dict, List

from scrollstitch.models.session import EventType


logger = logging.getLogger(__name__)


Listener = Callable[..., Any]


class CaptureEvents:
    """
    Per-orchestrator callback registry.

    Example:
        events = CaptureEvents()
        unsubscribe = events.subscribe(EventType.STATUS_CHANGED, print)
        events.emit(EventType.STATUS_CHANGED, "Listening for scroll...")
        unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[Listener]] = {event: [] for event in EventType}

    def subscribe(self, event: EventType, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners[event].remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def has_listeners(self, event: EventType) -> bool:
        return bool(self._listeners[event])

    def emit(self, event: EventType, *args: Any) -> int:
        """
        Call every listener of `event` with `args`.

        Returns:
            Number of listeners that completed without raising
        """
        delivered = 0
        for listener in list(self._listeners[event]):
            try:
                listener(*args)
                delivered += 1
            except Exception:
                logger.exception(f"Listener for {event.value} event failed")
        return delivered

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
