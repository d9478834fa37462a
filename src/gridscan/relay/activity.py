"""Running tally of relay activity, fed from the event bus."""

import logging
from collections import Counter
from typing import Any, Optional

from ..core.events import Event, EventBus, EventType

logger = logging.getLogger(__name__)


class RelayActivity:
    """
    Counts what the relay has done since start.

    Subscribes to every event on the bus. The tally is served at
    ``/api/status`` and logged once when the server shuts down.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self.moderation: Counter[str] = Counter()
        self.questions_added = 0
        self.clients = 0
        self.peak_clients = 0
        self.sheet_errors = 0
        self.last_error: Optional[str] = None
        self._unsubscribe = event_bus.subscribe_all(self._on_event)

    def _on_event(self, event: Event) -> None:
        if event.type == EventType.QUESTIONS_ADDED:
            self.questions_added += event.data["count"]
        elif event.type == EventType.QUESTION_STATUS:
            self.moderation[event.data["status"].lower()] += 1
        elif event.type == EventType.QUESTION_PROJECTED:
            self.moderation["projected"] += 1
            logger.debug(f"Projected #{event.data['id']} from {event.data['name'] or 'anonymous'}")
        elif event.type in (EventType.CLIENT_CONNECTED, EventType.CLIENT_DISCONNECTED):
            self.clients = event.data["clients"]
            self.peak_clients = max(self.peak_clients, self.clients)
        elif event.type == EventType.SHEET_ERROR:
            self.sheet_errors += 1
            self.last_error = event.data["error"]
        elif event.type == EventType.SHUTDOWN:
            logger.info(f"Relay activity: {self.summary()}")

    def snapshot(self) -> dict[str, Any]:
        return {
            "questions_added": self.questions_added,
            "approved": self.moderation["approved"],
            "rejected": self.moderation["rejected"],
            "projected": self.moderation["projected"],
            "clients": self.clients,
            "peak_clients": self.peak_clients,
            "sheet_errors": self.sheet_errors,
            "last_error": self.last_error,
        }

    def summary(self) -> str:
        s = self.snapshot()
        return (
            f"{s['questions_added']} questions in, {s['approved']} approved, "
            f"{s['rejected']} rejected, {s['projected']} projected, "
            f"peak {s['peak_clients']} clients, {s['sheet_errors']} sheet errors"
        )

    def detach(self) -> None:
        self._unsubscribe()
