"""
Use Cases жизненного цикла модели: архивирование, мягкое удаление
и восстановление.
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

logger = logging.getLogger("workflow-engine.use_cases.model_lifecycle")


@dataclass
class ModelLifecycleRequest:
    """
    Запрос на смену состояния модели.

    Attributes:
        model_id: ID модели
        user_id: Кто выполняет операцию
        expected_version: Версия модели, которую видел вызывающий
    """
    model_id: str
    user_id: str
    expected_version: Optional[int] = None


class _LifecycleUseCase(ModelCommandUseCase[ModelLifecycleRequest, Result[ModelDTO]]):
    operation = ""

    def _apply(self, model: FunctionModel, request: ModelLifecycleRequest) -> None:
        raise NotImplementedError

    async def execute(self, request: ModelLifecycleRequest) -> Result[ModelDTO]:
        def mutation(model: FunctionModel, compensations: CompensationStack) -> None:
            self._apply(model, request)

        try:
            model = await self._mutate(request.model_id, request.user_id, mutation, request.expected_version)
        except WorkflowEngineError as e:
            logger.warning(f"Failed to {self.operation} model {request.model_id}: {e.message}")
            return Result.fail(e)

        logger.info(f"Model {model.id}: {self.operation} by {request.user_id}")
        return Result.ok(ModelDTO.from_entity(model))


class ArchiveModelUseCase(_LifecycleUseCase):
    """Перевести модель в архив. Удаленную модель архивировать нельзя."""

    operation = "archive"

    def _apply(self, model: FunctionModel, request: ModelLifecycleRequest) -> None:
        model.archive(user_id=request.user_id)


class SoftDeleteModelUseCase(_LifecycleUseCase):
    """
    Мягко удалить модель.

    Статус модели сохраняется, фиксируются время удаления и автор.
    Удаленная модель не может быть изменена или выполнена
    до восстановления.
    """

    operation = "soft delete"

    def _apply(self, model: FunctionModel, request: ModelLifecycleRequest) -> None:
        model.soft_delete(deleted_by=request.user_id)


class RestoreModelUseCase(_LifecycleUseCase):
    """Восстановить мягко удаленную модель."""

    operation = "restore"

    def _apply(self, model: FunctionModel, request: ModelLifecycleRequest) -> None:
        model.restore(user_id=request.user_id)
