"""
Адаптер для публикации доменных событий через Event Bus.

Связывает доменные события с инфраструктурой Event Bus.
"""

import logging

from ...core.errors import EventBusError
from ...domain.interfaces.event_publisher import IEventPublisher
from ...domain.shared.domain_event import DomainEvent
from ...events.base_event import BaseEvent
from ...events.event_bus import EventBus
from ...events.event_types import EventType

logger = logging.getLogger("workflow-engine.infrastructure.event_publisher")


class EventBusPublisher(IEventPublisher):
    """
    Адаптер для публикации доменных событий.

    Преобразует доменное событие в BaseEvent шины: тип берется из
    EVENT_TYPE события, категория из префикса типа. Для событий
    запуска ID запуска передается как correlation_id.

    Пример:
        >>> bus = EventBus()
        >>> publisher = EventBusPublisher(bus)
        >>> await publisher.publish(ModelPublished("model-1", "1.0.1", "user-1"))
    """

    def __init__(self, event_bus: EventBus, source: str = "workflow-engine"):
        self._event_bus = event_bus
        self._source = source

    def to_bus_event(self, domain_event: DomainEvent) -> BaseEvent:
        """
        Преобразовать доменное событие в событие шины.

        Raises:
            EventBusError: Тип события неизвестен шине
        """
        raw_type = getattr(domain_event, "EVENT_TYPE", None)
        try:
            event_type = EventType(raw_type)
        except ValueError as e:
            raise EventBusError(
                str(raw_type or domain_event.event_type),
                "unknown event type",
            ) from e

        return BaseEvent(
            event_id=domain_event.event_id,
            event_type=event_type,
            event_category=event_type.category,
            timestamp=domain_event.occurred_at,
            aggregate_id=domain_event.aggregate_id,
            user_id=domain_event.user_id,
            correlation_id=domain_event.aggregate_id if event_type.category.value == "execution" else None,
            data=domain_event.event_data(),
            source=self._source,
        )

    async def publish(self, domain_event: DomainEvent) -> None:
        event = self.to_bus_event(domain_event)
        logger.debug(
            f"Publishing domain event: {event.event_type} "
            f"for aggregate {event.aggregate_id}"
        )
        await self._event_bus.publish(event)
