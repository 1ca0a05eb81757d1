"""
Value Objects для результатов и плана выполнения действий.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import ConfigDict

from ....core.errors import WorkflowEngineError
from ...model_context.value_objects import ActionExecutionMode
from ...shared.value_object import ValueObject


class ActionResult(ValueObject):
    """
    Результат одного действия.

    Атрибуты:
        action_id: ID действия
        success: Действие выполнено
        skipped: Действие не запускалось
        output: Выход действия
        error: Последняя ошибка (для неуспешных действий)
        attempts: Число выполненных попыток
        duration_ms: Длительность всех попыток
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, protected_namespaces=())

    action_id: str
    success: bool
    skipped: bool = False
    output: Dict[str, Any] = {}
    error: Optional[WorkflowEngineError] = None
    attempts: int = 0
    duration_ms: float = 0.0

    @classmethod
    def skip(cls, action_id: str) -> "ActionResult":
        return cls(action_id=action_id, success=False, skipped=True)

    @property
    def failed(self) -> bool:
        return not self.success and not self.skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_id": self.action_id,
            "success": self.success,
            "skipped": self.skipped,
            "output": self.output,
            "error": self.error.to_dict() if self.error else None,
            "attempts": self.attempts,
            "duration_ms": self.duration_ms,
        }


class ActionOrchestrationResult(ValueObject):
    """
    Итог выполнения действий одного контейнера.

    Example:
        >>> result.total_actions, result.executed_actions, result.skipped_actions
        (3, 1, 1)
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, protected_namespaces=())

    container_id: str
    results: Tuple[ActionResult, ...] = ()
    duration_ms: float = 0.0

    @property
    def total_actions(self) -> int:
        return len(self.results)

    @property
    def executed_actions(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_actions(self) -> int:
        return sum(1 for result in self.results if result.failed)

    @property
    def skipped_actions(self) -> int:
        return sum(1 for result in self.results if result.skipped)

    @property
    def success(self) -> bool:
        return self.failed_actions == 0 and self.skipped_actions == 0

    @property
    def first_error(self) -> Optional[WorkflowEngineError]:
        for result in self.results:
            if result.error is not None:
                return result.error
        return None

    def outputs(self) -> Dict[str, Dict[str, Any]]:
        """Выходы успешных действий по ID."""
        return {result.action_id: result.output for result in self.results if result.success}


class ActionBatch(ValueObject):
    """Группа действий, выполняемых вместе."""

    mode: ActionExecutionMode
    action_ids: Tuple[str, ...]


class ActionExecutionPlan(ValueObject):
    """
    План выполнения действий контейнера.

    Атрибуты:
        container_id: ID контейнера
        batches: Группы в порядке выполнения
        estimated_duration_s: Оценка длительности (параллельная группа
            оценивается по самому долгому действию)
    """

    container_id: str
    batches: Tuple[ActionBatch, ...] = ()
    estimated_duration_s: float = 0.0

    @property
    def action_count(self) -> int:
        return sum(len(batch.action_ids) for batch in self.batches)

    @property
    def parallel_batches(self) -> int:
        return sum(1 for batch in self.batches if batch.mode == ActionExecutionMode.PARALLEL)
