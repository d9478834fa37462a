"""
Event bus for gridscan.

The effect publishes frame, resize and scan events that the host window
reads for its debug overlay; the relay publishes moderation and client
events that its activity log counts.
"""

from dataclasses import dataclass, field
from typing import Any, Callable
from enum import Enum, auto
import logging
import time
from collections import defaultdict

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event types published inside the process."""
    # Effect events
    TICK = auto()  # Frame rendered
    RESIZE = auto()
    SCAN_RESET = auto()

    # Relay events
    QUESTIONS_ADDED = auto()
    QUESTION_STATUS = auto()
    QUESTION_PROJECTED = auto()
    CLIENT_CONNECTED = auto()
    CLIENT_DISCONNECTED = auto()
    SHEET_ERROR = auto()

    SHUTDOWN = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: Event type
        data: Event payload
        source: Component that emitted the event
        timestamp: Wall-clock time the event was created
    """
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[Event], None]


class EventBus:
    """
    Synchronous publish/subscribe between components.

    Handlers run in emit order on the caller's thread. A failing handler is
    logged and does not stop the others.
    """

    def __init__(self, history_limit: int = 100) -> None:
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []
        self._history: list[Event] = []
        self._history_limit = history_limit

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """
        Subscribe to one event type.

        Returns:
            Unsubscribe function
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to every event. Returns an unsubscribe function."""
        self._global_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._global_handlers:
                self._global_handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Record the event and call its handlers."""
        self._history.append(event)
        if len(self._history) > self._history_limit:
            del self._history[0]

        for handler in self._handlers.get(event.type, []) + self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.type.name}: {e}")

    def get_history(self, event_type: EventType | None = None, limit: int = 10) -> list[Event]:
        """Get recent events, newest last."""
        history = self._history
        if event_type is not None:
            history = [e for e in history if e.type == event_type]
        return history[-limit:]

    def clear_history(self) -> None:
        self._history.clear()


def tick_event(delta: float, frame: int) -> Event:
    """Create a frame tick event."""
    return Event(EventType.TICK, data={"delta": delta, "frame": frame}, source="effect")


def resize_event(width: int, height: int, pixel_ratio: float, source: str = "effect") -> Event:
    """Create a viewport resize event."""
    return Event(
        EventType.RESIZE,
        data={"width": width, "height": height, "pixel_ratio": pixel_ratio},
        source=source,
    )


def scan_reset_event(start: float, direction: str) -> Event:
    """Create a scan reset event."""
    return Event(
        EventType.SCAN_RESET,
        data={"start": start, "direction": direction},
        source="scheduler",
    )
