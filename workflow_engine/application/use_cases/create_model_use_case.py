"""
Use Case для создания функциональной модели.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ...core.errors import WorkflowEngineError
from ...core.result import Result
from ...domain.interfaces.event_publisher import IEventPublisher
from ...domain.model_context.entities import FunctionModel
from ...domain.model_context.repositories import ModelRepository
from ..dto.model_dto import ModelDTO
from .base_use_case import UseCase, invalid_input_as_validation_error

logger = logging.getLogger("workflow-engine.use_cases.create_model")


@dataclass
class CreateModelRequest:
    """
    Запрос на создание модели.

    Attributes:
        name: Название модели
        owner_id: Владелец
        description: Описание
        model_id: ID модели (генерируется, если не указан)
        metadata: Произвольные метаданные

    Пример:
        >>> request = CreateModelRequest(name="Onboarding", owner_id="alice")
    """
    name: str
    owner_id: str
    description: str = ""
    model_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class CreateModelUseCase(UseCase[CreateModelRequest, Result[ModelDTO]]):
    """
    Use Case для создания модели в статусе draft.

    Сохранение с expected_version=0 отклоняет повторное создание
    модели с тем же ID (VersionConflictError).

    Пример:
        >>> use_case = CreateModelUseCase(repository, publisher)
        >>> result = await use_case.execute(CreateModelRequest(name="Onboarding", owner_id="alice"))
        >>> result.value.status
        'draft'
    """

    def __init__(self, repository: ModelRepository, event_publisher: IEventPublisher):
        self._repository = repository
        self._publisher = event_publisher

    async def execute(self, request: CreateModelRequest) -> Result[ModelDTO]:
        try:
            model = self._build(request)
            await self._repository.save(model, expected_version=0)
        except WorkflowEngineError as e:
            logger.warning(f"Failed to create model {request.name!r}: {e.message}")
            return Result.fail(e)

        await self._publisher.publish_all(model.pull_domain_events())
        logger.info(f"Created model {model.id} for owner {request.owner_id}")
        return Result.ok(ModelDTO.from_entity(model))

    @staticmethod
    def _build(request: CreateModelRequest) -> FunctionModel:
        with invalid_input_as_validation_error("Invalid model data"):
            return FunctionModel.create(
                name=request.name,
                owner_id=request.owner_id,
                description=request.description,
                model_id=request.model_id,
                metadata=dict(request.metadata),
            )
