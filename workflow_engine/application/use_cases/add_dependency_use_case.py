"""
Use Case для добавления зависимости между контейнерными узлами.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ...core.errors import WorkflowEngineError
from ...core.result import Result
from ...domain.execution_context.services import CompensationStack
from ...domain.model_context.entities import FunctionModel
from ..dto.model_dto import ModelDTO
from .base_use_case import ModelCommandUseCase

logger = logging.getLogger("workflow-engine.use_cases.add_dependency")


@dataclass
class AddDependencyRequest:
    """
    Запрос на добавление ребра node_id → depends_on.

    Attributes:
        model_id: ID модели
        user_id: Кто изменяет
        node_id: Узел, который будет ждать
        depends_on: Узел, который должен завершиться раньше
        expected_version: Версия модели, которую видел вызывающий
    """
    model_id: str
    user_id: str
    node_id: str
    depends_on: str
    expected_version: Optional[int] = None


class AddDependencyUseCase(ModelCommandUseCase[AddDependencyRequest, Result[ModelDTO]]):
    """
    Use Case для добавления зависимости.

    Ребро, замыкающее цикл, отклоняется с CircularReferenceDetected.
    """

    async def execute(self, request: AddDependencyRequest) -> Result[ModelDTO]:
        def mutation(model: FunctionModel, compensations: CompensationStack) -> None:
            node = model.get_node(request.node_id)
            existed = request.depends_on in node.dependencies
            model.add_dependency(request.node_id, request.depends_on)
            if not existed:
                compensations.push("dependency-added", lambda: node.remove_dependency(request.depends_on))

        try:
            model = await self._mutate(request.model_id, request.user_id, mutation, request.expected_version)
        except WorkflowEngineError as e:
            logger.warning(
                f"Failed to add dependency {request.node_id} → {request.depends_on} "
                f"in model {request.model_id}: {e.message}"
            )
            return Result.fail(e)

        return Result.ok(ModelDTO.from_entity(model))
