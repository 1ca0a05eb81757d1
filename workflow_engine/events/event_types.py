"""
Event types and categories for the workflow engine event bus.
"""

from enum import Enum


class EventCategory(str, Enum):
    """Categories of events in the system."""

    MODEL = "model"
    EXECUTION = "execution"
    SYSTEM = "system"


class EventType(str, Enum):
    """Specific event types in the system."""

    # Model Events
    MODEL_CREATED = "model.created"
    NODE_ADDED = "model.node.added"
    ACTION_ADDED = "model.action.added"
    NODE_REMOVED = "model.node.removed"
    VERSION_BUMPED = "model.version.bumped"
    MODEL_PUBLISHED = "model.published"
    MODEL_ARCHIVED = "model.archived"
    MODEL_DELETED = "model.deleted"
    MODEL_RESTORED = "model.restored"

    # Execution Events
    EXECUTION_STARTED = "execution.started"
    PHASE_STARTED = "execution.phase.started"
    PHASE_COMPLETED = "execution.phase.completed"
    NODE_STARTED = "execution.node.started"
    NODE_COMPLETED = "execution.node.completed"
    NODE_FAILED = "execution.node.failed"
    EXECUTION_PAUSED = "execution.paused"
    EXECUTION_RESUMED = "execution.resumed"
    EXECUTION_COMPLETED = "execution.completed"
    EXECUTION_FAILED = "execution.failed"
    EXECUTION_CANCELLED = "execution.cancelled"

    @property
    def category(self) -> EventCategory:
        return EventCategory(self.value.split(".", 1)[0])
