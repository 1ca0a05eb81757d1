"""
Base Domain Event class for Domain-Driven Design.

This module provides the foundation for all domain events following DDD principles.
"""

from abc import ABC
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4


class DomainEvent(ABC):
    """
    Base class for all domain events.

    A domain event represents something that happened in the domain that domain
    experts care about. Events are immutable and represent facts that occurred.

    Every event names the aggregate it belongs to and, when known, the user
    that caused it, so the audit trail can be rebuilt from events alone.

    Usage:
        class ModelPublished(DomainEvent):
            def __init__(self, model_id: str, version: str, user_id: str):
                super().__init__(aggregate_id=model_id, user_id=user_id)
                self._version = version

            def event_data(self) -> Dict[str, Any]:
                return {"version": self._version}
    """

    def __init__(
        self,
        aggregate_id: str,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None
    ):
        """
        Initialize domain event.

        Args:
            aggregate_id: ID of the aggregate the event belongs to
            user_id: User that caused the event
            event_id: Optional unique event identifier. If not provided, generates UUID.
            occurred_at: Optional timestamp. If not provided, uses current UTC time.
        """
        self._aggregate_id: str = aggregate_id
        self._user_id: Optional[str] = user_id
        self._event_id: str = event_id or str(uuid4())
        self._occurred_at: datetime = occurred_at or datetime.now(timezone.utc)
        self._event_type: str = self.__class__.__name__

    @property
    def aggregate_id(self) -> str:
        """Get ID of the aggregate that produced the event."""
        return self._aggregate_id

    @property
    def user_id(self) -> Optional[str]:
        """Get ID of the user that caused the event."""
        return self._user_id

    @property
    def event_id(self) -> str:
        """Get event unique identifier."""
        return self._event_id

    @property
    def occurred_at(self) -> datetime:
        """Get event occurrence timestamp."""
        return self._occurred_at

    @property
    def event_type(self) -> str:
        """Get event type (class name)."""
        return self._event_type

    def event_data(self) -> Dict[str, Any]:
        """Event specific payload. Subclasses override this."""
        return {}

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DomainEvent):
            return False
        return self._event_id == other._event_id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self._event_id, type(self)))

    def __repr__(self) -> str:
        return f"{self._event_type}(id={self._event_id}, aggregate_id={self._aggregate_id})"

    def __setattr__(self, name: str, value: Any) -> None:
        """
        Prevent modification after initialization.

        Raises:
            AttributeError: If trying to overwrite an already set attribute
        """
        if name in self.__dict__:
            raise AttributeError(
                f"Cannot modify immutable domain event {self.__class__.__name__}"
            )
        object.__setattr__(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary representation.

        Returns:
            Dictionary with event data
        """
        return {
            "event_id": self._event_id,
            "event_type": self._event_type,
            "aggregate_id": self._aggregate_id,
            "user_id": self._user_id,
            "occurred_at": self._occurred_at.isoformat(),
            "event_data": self.event_data(),
        }
