"""
Event bus and event records for the workflow engine.
"""

from .base_event import BaseEvent
from .event_bus import EventBus, EventBusStats
from .event_types import EventCategory, EventType

__all__ = [
    "BaseEvent",
    "EventBus",
    "EventBusStats",
    "EventCategory",
    "EventType",
]
