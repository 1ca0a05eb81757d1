"""
Интерфейс публикации доменных событий.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from ..shared.domain_event import DomainEvent


class IEventPublisher(ABC):
    """
    Интерфейс для публикации доменных событий во внешнюю шину.

    Каждое событие несет event_type, aggregate_id, event_data,
    user_id и время возникновения. Журнал аудита строится
    подписчиками шины, а не движком.

    Пример использования:
        >>> publisher: IEventPublisher = EventBusPublisher(event_bus)
        >>> await publisher.publish_all(model.pull_domain_events())
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """
        Опубликовать событие.

        Raises:
            EventBusError: Если событие не удалось опубликовать
        """
        pass

    async def publish_all(self, events: Iterable[DomainEvent]) -> None:
        """Опубликовать события по порядку."""
        for event in events:
            await self.publish(event)
