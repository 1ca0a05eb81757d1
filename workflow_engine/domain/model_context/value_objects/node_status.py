"""
Value Object для статуса узла графа.
"""

from enum import Enum
from typing import Dict, Set


class NodeStatus(str, Enum):
    """
    Статус узла (контейнера или действия) во время выполнения.

    Переходы:
    - IDLE → READY, ARCHIVED
    - READY → RUNNING, IDLE, ARCHIVED
    - RUNNING → COMPLETED, FAILED
    - COMPLETED → IDLE (повторный запуск), ARCHIVED
    - FAILED → READY (повтор), IDLE, ARCHIVED
    - ARCHIVED → (терминальный)
    """
    IDLE = "idle"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ARCHIVED = "archived"

    def can_transition_to(self, target: "NodeStatus") -> bool:
        """Проверить, допустим ли переход в целевой статус."""
        return target in _VALID_TRANSITIONS[self]

    def is_terminal(self) -> bool:
        return self == NodeStatus.ARCHIVED


_VALID_TRANSITIONS: Dict[NodeStatus, Set[NodeStatus]] = {
    NodeStatus.IDLE: {NodeStatus.READY, NodeStatus.ARCHIVED},
    NodeStatus.READY: {NodeStatus.RUNNING, NodeStatus.IDLE, NodeStatus.ARCHIVED},
    NodeStatus.RUNNING: {NodeStatus.COMPLETED, NodeStatus.FAILED},
    NodeStatus.COMPLETED: {NodeStatus.IDLE, NodeStatus.ARCHIVED},
    NodeStatus.FAILED: {NodeStatus.READY, NodeStatus.IDLE, NodeStatus.ARCHIVED},
    NodeStatus.ARCHIVED: set(),
}
