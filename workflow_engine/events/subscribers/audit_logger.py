"""
Audit logger subscriber that records model and execution events.
"""

from typing import Any, Dict, List, Optional

import structlog

from ..base_event import BaseEvent
from ..event_bus import EventBus
from ..event_types import EventCategory, EventType

logger = structlog.get_logger(__name__)

_FAILURE_EVENTS = {
    EventType.NODE_FAILED.value,
    EventType.EXECUTION_FAILED.value,
}


class AuditLogger:
    """
    Builds an audit trail from events.

    The engine never writes to the audit log directly: this subscriber
    listens to every model and execution event and keeps an entry per
    event with full context (type, aggregate, user, timestamp, payload).
    """

    def __init__(self, event_bus: EventBus):
        self._event_bus = event_bus
        self._audit_log: List[Dict[str, Any]] = []
        self._unsubscribers = []
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        """Subscribe to model and execution events."""
        for category in (EventCategory.MODEL, EventCategory.EXECUTION):
            self._unsubscribers.append(
                self._event_bus.subscribe(
                    event_category=category,
                    handler=self._log_event,
                    priority=10  # High priority for audit logging
                )
            )
        logger.info("audit_logger_initialized")

    async def _log_event(self, event: BaseEvent):
        log_entry = {
            "timestamp": event.timestamp.isoformat(),
            "event_type": event.event_type,
            "event_id": event.event_id,
            "aggregate_id": event.aggregate_id,
            "user_id": event.user_id,
            "correlation_id": event.correlation_id,
            "data": dict(event.data),
        }
        self._audit_log.append(log_entry)

        log = logger.error if event.event_type in _FAILURE_EVENTS else logger.info
        log(
            event.event_type,
            aggregate_id=event.aggregate_id,
            user_id=event.user_id,
            correlation_id=event.correlation_id,
            event_id=event.event_id,
            **{key: value for key, value in event.data.items() if not isinstance(value, (dict, list))}
        )

    def get_audit_log(
        self,
        aggregate_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get audit log entries, oldest first.

        Args:
            aggregate_id: Filter by aggregate (model or run ID)
            event_type: Filter by event type
            limit: Return only the last N entries
        """
        entries = self._audit_log
        if aggregate_id:
            entries = [e for e in entries if e["aggregate_id"] == aggregate_id]
        if event_type:
            entries = [e for e in entries if e["event_type"] == event_type]
        if limit is not None:
            entries = entries[-limit:]
        return list(entries)

    def clear(self):
        self._audit_log.clear()

    def close(self):
        """Unsubscribe from the event bus."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
