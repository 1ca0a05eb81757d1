"""
Use Case для публикации модели.

Перед публикацией модель проходит структурную, бизнес-, контекстную
и кросс-функциональную проверки. Любая проблема уровня error
блокирует публикацию; предупреждения возвращаются вызывающему.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field

from ...core.errors import ValidationError, WorkflowEngineError
from ...core.result import Result
from ...domain.interfaces.event_publisher import IEventPublisher
from ...domain.model_context.repositories import ModelRepository
from ...domain.model_context.services.workflow_validation_service import WorkflowValidationService
from ...infrastructure.concurrency import ModelLockManager
from ..dto.model_dto import ModelDTO
from .base_use_case import ModelCommandUseCase

logger = logging.getLogger("workflow-engine.use_cases.publish_model")


@dataclass
class PublishModelRequest:
    """
    Запрос на публикацию модели.

    Attributes:
        model_id: ID модели
        user_id: Кто публикует
        expected_version: Версия модели, которую видел вызывающий
    """
    model_id: str
    user_id: str
    expected_version: Optional[int] = None


class PublishedModelDTO(BaseModel):
    """Опубликованная модель и предупреждения валидации."""

    model: ModelDTO
    warnings: List[str] = Field(default_factory=list)


class PublishModelUseCase(ModelCommandUseCase[PublishModelRequest, Result[PublishedModelDTO]]):
    """
    Use Case для публикации модели.

    Координирует:
    1. Проверку модели WorkflowValidationService
    2. Перевод модели в статус published
    3. Сохранение с проверкой версии

    Пример:
        >>> use_case = PublishModelUseCase(repository, publisher, validation_service)
        >>> result = await use_case.execute(PublishModelRequest(model_id="model-1", user_id="alice"))
        >>> result.value.model.status
        'published'
    """

    def __init__(
        self,
        repository: ModelRepository,
        event_publisher: IEventPublisher,
        validation_service: Optional[WorkflowValidationService] = None,
        lock_manager: Optional[ModelLockManager] = None
    ):
        super().__init__(repository, event_publisher, lock_manager)
        self._validation = validation_service or WorkflowValidationService(repository)

    async def execute(self, request: PublishModelRequest) -> Result[PublishedModelDTO]:
        try:
            model = await self._load(request.model_id)
            model.ensure_can_edit(request.user_id)
            report = await self._validation.validate_for_publish(model)
            if not report.is_valid:
                raise ValidationError(
                    "Model failed publish validation",
                    errors=report.error_messages,
                    details={"model_id": model.id, "report": report.to_dict()},
                )

            expected = model.version_count if request.expected_version is None else request.expected_version
            model = await self._mutate(
                request.model_id,
                request.user_id,
                lambda current, compensations: current.publish(user_id=request.user_id),
                expected,
            )
        except WorkflowEngineError as e:
            logger.warning(f"Failed to publish model {request.model_id}: {e.message}")
            return Result.fail(e)

        logger.info(f"Published model {model.id} version {model.version}")
        return Result.ok(PublishedModelDTO(
            model=ModelDTO.from_entity(model),
            warnings=[issue.message for issue in report.warnings],
        ))
