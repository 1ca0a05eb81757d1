"""
Value Object для состояния запуска.
"""

from enum import Enum
from typing import Dict, Set


class ExecutionState(str, Enum):
    """
    Состояние запуска.

    Переходы:
    - INITIALIZING → RUNNING, FAILED, CANCELLED
    - RUNNING → PAUSED, RECOVERING, COMPLETED, FAILED, CANCELLED
    - PAUSED → RUNNING, FAILED, CANCELLED
    - RECOVERING → RUNNING, FAILED, CANCELLED
    - COMPLETED, FAILED, CANCELLED → (терминальные)
    """
    INITIALIZING = "initializing"
    RUNNING = "running"
    PAUSED = "paused"
    RECOVERING = "recovering"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "ExecutionState") -> bool:
        return target in _VALID_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[self]

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


_VALID_TRANSITIONS: Dict[ExecutionState, Set[ExecutionState]] = {
    ExecutionState.INITIALIZING: {
        ExecutionState.RUNNING,
        ExecutionState.FAILED,
        ExecutionState.CANCELLED,
    },
    ExecutionState.RUNNING: {
        ExecutionState.PAUSED,
        ExecutionState.RECOVERING,
        ExecutionState.COMPLETED,
        ExecutionState.FAILED,
        ExecutionState.CANCELLED,
    },
    ExecutionState.PAUSED: {
        ExecutionState.RUNNING,
        ExecutionState.FAILED,
        ExecutionState.CANCELLED,
    },
    ExecutionState.RECOVERING: {
        ExecutionState.RUNNING,
        ExecutionState.FAILED,
        ExecutionState.CANCELLED,
    },
    ExecutionState.COMPLETED: set(),
    ExecutionState.FAILED: set(),
    ExecutionState.CANCELLED: set(),
}
