"""
Base event model for the event bus.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .event_types import EventCategory, EventType


class BaseEvent(BaseModel):
    """
    Event record delivered to event bus subscribers.

    Carries the fields an audit trail needs: type, aggregate, user,
    timestamp and the event payload.
    """

    model_config = ConfigDict(use_enum_values=True)

    # Event metadata
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType
    event_category: EventCategory
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context
    aggregate_id: str
    user_id: Optional[str] = None
    correlation_id: Optional[str] = None  # Run ID for execution events

    # Event data
    data: Dict[str, Any] = Field(default_factory=dict)

    # Source metadata
    source: str
    version: str = "1.0"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with ISO timestamp."""
        return self.model_dump(mode="json")
