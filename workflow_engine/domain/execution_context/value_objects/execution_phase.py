"""
Value Object для фазы запуска.
"""

from enum import Enum
from typing import List


class ExecutionPhase(str, Enum):
    """
    Фазы состояния running в порядке выполнения.

    Ошибка фазы останавливает продвижение: следующие фазы не начинаются.
    """
    DEPENDENCY_ANALYSIS = "dependency-analysis"
    CONTEXT_SETUP = "context-setup"
    ORCHESTRATION = "orchestration"
    NODE_EXECUTION = "node-execution"
    COMPLETION = "completion"

    @classmethod
    def ordered(cls) -> List["ExecutionPhase"]:
        return list(cls)

    @property
    def progress_on_completion(self) -> int:
        """Процент выполнения после завершения фазы."""
        return _PROGRESS[self]


_PROGRESS = {
    ExecutionPhase.DEPENDENCY_ANALYSIS: 20,
    ExecutionPhase.CONTEXT_SETUP: 40,
    ExecutionPhase.ORCHESTRATION: 60,
    ExecutionPhase.NODE_EXECUTION: 90,
    ExecutionPhase.COMPLETION: 100,
}
