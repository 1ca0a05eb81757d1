"""
Value Object для результата выполнения узла.
"""

from typing import Any, Dict, Optional

from pydantic import ConfigDict

from ....core.errors import WorkflowEngineError
from ...shared.value_object import ValueObject
from .action_result import ActionOrchestrationResult


class NodeExecutionResult(ValueObject):
    """
    Результат выполнения контейнерного узла.

    Атрибуты:
        node_id: ID узла
        success: Узел выполнен
        output: Выход узла (записывается в его контекст)
        actions: Итог выполнения действий узла
        error: Ошибка выполнения
        duration_ms: Длительность
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, protected_namespaces=())

    node_id: str
    success: bool
    output: Dict[str, Any] = {}
    actions: Optional[ActionOrchestrationResult] = None
    error: Optional[WorkflowEngineError] = None
    duration_ms: float = 0.0
