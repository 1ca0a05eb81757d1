"""
Use Case для добавления действия в контейнерный узел.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional

from ...core.errors import WorkflowEngineError
from ...core.result import Result
from ...domain.execution_context.services import CompensationStack
from ...domain.model_context.entities import ActionNode, FunctionModel
from ...domain.model_context.value_objects import ActionExecutionMode, ActionType, RetryPolicy
from ..dto.model_dto import ModelDTO, NodeAddedDTO
from .base_use_case import ModelCommandUseCase, invalid_input_as_validation_error

logger = logging.getLogger("workflow-engine.use_cases.add_action_node")


@dataclass
class AddActionNodeRequest:
    """
    Запрос на добавление действия.

    Attributes:
        model_id: ID модели
        user_id: Кто добавляет
        parent_node_id: Контейнерный узел
        name: Название действия
        action_type: tether, kb или function_model_container
        execution_mode: sequential или parallel
        execution_order: Порядок внутри контейнера
        priority: Приоритет 1..10
        retry_policy: Политика повторов
        payload: Данные действия
        dependencies: ID действий того же контейнера
        estimated_duration_s: Оценка длительности
        action_id: ID действия (генерируется, если не указан)
        expected_version: Версия модели, которую видел вызывающий
    """
    model_id: str
    user_id: str
    parent_node_id: str
    name: str
    action_type: ActionType
    execution_mode: ActionExecutionMode = ActionExecutionMode.SEQUENTIAL
    execution_order: int = 1
    priority: int = 5
    retry_policy: Optional[RetryPolicy] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)
    estimated_duration_s: Optional[float] = None
    action_id: Optional[str] = None
    expected_version: Optional[int] = None


class AddActionNodeUseCase(ModelCommandUseCase[AddActionNodeRequest, Result[NodeAddedDTO]]):
    """
    Use Case для добавления действия.

    Действие может ссылаться на вложенную модель
    (function_model_container); ссылка проверяется при публикации
    и перед выполнением.
    """

    async def execute(self, request: AddActionNodeRequest) -> Result[NodeAddedDTO]:
        try:
            with invalid_input_as_validation_error("Invalid action node"):
                action = ActionNode.create(
                    model_id=request.model_id,
                    parent_node_id=request.parent_node_id,
                    name=request.name,
                    action_type=request.action_type,
                    action_id=request.action_id,
                    execution_mode=request.execution_mode,
                    execution_order=request.execution_order,
                    priority=request.priority,
                    retry_policy=request.retry_policy or RetryPolicy(),
                    payload=dict(request.payload),
                    dependencies=set(request.dependencies),
                    estimated_duration_s=request.estimated_duration_s,
                )

            def mutation(model: FunctionModel, compensations: CompensationStack) -> None:
                model.add_action_node(action, user_id=request.user_id)
                compensations.push("action-created", partial(model.remove_action_node, action.id))

            model = await self._mutate(request.model_id, request.user_id, mutation, request.expected_version)
        except WorkflowEngineError as e:
            logger.warning(f"Failed to add action {request.name!r} to model {request.model_id}: {e.message}")
            return Result.fail(e)

        logger.info(f"Added {action.action_type.value} action {action.id} to node {action.parent_node_id}")
        return Result.ok(NodeAddedDTO(model=ModelDTO.from_entity(model), node_id=action.id))
