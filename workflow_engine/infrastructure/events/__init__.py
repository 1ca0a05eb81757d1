"""
Публикация событий во внешнюю шину.
"""

from .event_bus_publisher import EventBusPublisher

__all__ = ["EventBusPublisher"]
