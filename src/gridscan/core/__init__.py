"""Core framework components for gridscan."""

from .events import EventBus, Event, EventType

__all__ = ["EventBus", "Event", "EventType"]
