"""
NodeExecutionService - Domain Service для выполнения одного контейнерного узла.

Собирает входные данные узла из его контекста и выходов зависимостей,
запускает действия через ActionOrchestrator и записывает выход узла
обратно в контекст.
"""

import logging
import time
from typing import Any, Dict, Mapping, Tuple

from ....core.errors import NotFoundError, ValidationError
from ...context_access.services import HierarchicalContextService
from ...model_context.entities import ContainerNode, FunctionModel
from ..value_objects import NodeExecutionResult
from .action_orchestrator import ActionOrchestrator

logger = logging.getLogger("workflow-engine.execution_context.node_execution")


class NodeExecutionService:
    """
    Выполнение контейнерного узла.

    Выход узла зависит от его вида:
    - входная граница отдает входные параметры запуска
    - выходная граница собирает выходы своих зависимостей в "results"
    - stage узел отдает выходы своих действий в "actions"

    Example:
        >>> service = NodeExecutionService(action_orchestrator, context_service)
        >>> result = await service.execute_node(model, "stage-1", {"x": 1}, outputs)
        >>> result.success
        True
    """

    def __init__(
        self,
        action_orchestrator: ActionOrchestrator,
        context_service: HierarchicalContextService
    ):
        self.action_orchestrator = action_orchestrator
        self.context_service = context_service

    async def execute_node(
        self,
        model: FunctionModel,
        node_id: str,
        input_parameters: Mapping[str, Any],
        outputs: Mapping[str, Dict[str, Any]],
        visited: Tuple[str, ...] = (),
        depth: int = 0
    ) -> NodeExecutionResult:
        """
        Выполнить узел.

        Args:
            model: Снимок модели запуска
            node_id: ID узла
            input_parameters: Входные параметры запуска
            outputs: Выходы уже выполненных узлов
            visited: Цепочка вложенных моделей
            depth: Уровень вложенности

        Returns:
            NodeExecutionResult

        Raises:
            NotFoundError: Узел или его контекст не найден
        """
        start = time.monotonic()
        node = model.get_node(node_id)
        node_context = self.context_service.get_node_context(node_id)
        if node_context is None:
            raise NotFoundError("HierarchicalContext", node_id)

        dependency_outputs = {
            dependency: outputs.get(dependency, {})
            for dependency in sorted(node.dependencies)
        }
        context = {
            **node_context.effective_data(),
            "input_parameters": dict(input_parameters),
            "dependency_outputs": dependency_outputs,
        }

        output = self._boundary_output(node, input_parameters, dependency_outputs)
        actions = model.actions_of(node_id)
        orchestration = None

        if actions:
            orchestration = await self.action_orchestrator.orchestrate(
                node_id,
                actions,
                context,
                visited=visited,
                context_id=node_context.id,
                depth=depth,
            )
            if not orchestration.success:
                error = orchestration.first_error or ValidationError(
                    f"Node {node.name} did not complete its actions",
                    details={"node_id": node_id},
                )
                return NodeExecutionResult(
                    node_id=node_id,
                    success=False,
                    actions=orchestration,
                    error=error,
                    duration_ms=(time.monotonic() - start) * 1000,
                )
            output["actions"] = orchestration.outputs()

        self.context_service.update_context(node_context.id, {"output": output})
        logger.debug(f"Node {node_id} executed with {len(actions)} actions")

        return NodeExecutionResult(
            node_id=node_id,
            success=True,
            output=output,
            actions=orchestration,
            duration_ms=(time.monotonic() - start) * 1000,
        )

    @staticmethod
    def _boundary_output(
        node: ContainerNode,
        input_parameters: Mapping[str, Any],
        dependency_outputs: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        if not node.is_io:
            return {}
        output: Dict[str, Any] = {}
        if node.boundary_type.is_input:
            output.update(dict(input_parameters))
        if node.boundary_type.is_output:
            output["results"] = dependency_outputs
        return output
