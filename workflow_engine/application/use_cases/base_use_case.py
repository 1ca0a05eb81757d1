"""
Базовые классы для Use Cases.

Определяют контракты для всех Use Cases в приложении.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ...core.errors import NotFoundError, ValidationError, WorkflowEngineError
from ...domain.execution_context.services import CompensationStack
from ...domain.interfaces.event_publisher import IEventPublisher
from ...domain.model_context.entities import FunctionModel
from ...domain.model_context.repositories import ModelRepository
from ...infrastructure.concurrency import ModelLockManager

# Type variables для generic типов
TRequest = TypeVar('TRequest')
TResponse = TypeVar('TResponse')

logger = logging.getLogger("workflow-engine.application.use_cases")

Mutation = Callable[[FunctionModel, CompensationStack], Any]


@contextmanager
def invalid_input_as_validation_error(message: str) -> Iterator[None]:
    """Ошибки валидации pydantic при сборке сущностей как доменная ValidationError."""
    try:
        yield
    except PydanticValidationError as e:
        raise ValidationError(message, errors=[error["msg"] for error in e.errors()]) from e


class UseCase(ABC, Generic[TRequest, TResponse]):
    """
    Базовый класс для Use Case с единичным результатом.

    Use Case инкапсулирует один сценарий использования приложения.
    Координирует работу доменных сервисов для выполнения задачи.

    Type Parameters:
        TRequest: Тип входного запроса
        TResponse: Тип результата

    Принципы:
        - Координация, а не бизнес-логика
        - Бизнес-логика остается в Domain Layer
        - Ошибки домена возвращаются как Result.fail, а не выбрасываются

    Пример:
        >>> class PublishModelUseCase(UseCase[PublishModelRequest, Result[ModelDTO]]):
        ...     async def execute(self, request: PublishModelRequest) -> Result[ModelDTO]:
        ...         ...
    """

    @abstractmethod
    async def execute(self, request: TRequest) -> TResponse:
        """
        Выполнить Use Case.

        Args:
            request: Входной запрос с параметрами

        Returns:
            Результат выполнения Use Case
        """
        pass


class ModelCommandUseCase(UseCase[TRequest, TResponse]):
    """
    Базовый класс для команд, изменяющих модель.

    Порядок работы команды:
    1. Блокировка модели через ModelLockManager
    2. Загрузка и проверка прав
    3. Изменение агрегата; каждый шаг регистрирует компенсацию
    4. Сохранение с ожидаемой версией (оптимистичная блокировка)
    5. Публикация накопленных доменных событий

    Если сохранение не удалось, компенсации откатывают агрегат
    в обратном порядке, события отбрасываются.

    Атрибуты:
        _repository: Репозиторий моделей
        _publisher: Публикатор событий
        _locks: Менеджер блокировок моделей
    """

    def __init__(
        self,
        repository: ModelRepository,
        event_publisher: IEventPublisher,
        lock_manager: Optional[ModelLockManager] = None
    ):
        self._repository = repository
        self._publisher = event_publisher
        self._locks = lock_manager or ModelLockManager()

    async def _load(self, model_id: str) -> FunctionModel:
        model = await self._repository.find_by_id(model_id)
        if model is None:
            raise NotFoundError("FunctionModel", model_id)
        return model

    async def _mutate(
        self,
        model_id: str,
        user_id: str,
        mutation: Mutation,
        expected_version: Optional[int] = None
    ) -> FunctionModel:
        """
        Изменить модель и сохранить ее.

        Args:
            model_id: ID модели
            user_id: Кто изменяет
            mutation: Изменение агрегата, регистрирует компенсации
            expected_version: Версия, которую видел вызывающий
                (по умолчанию версия, прочитанная под блокировкой)

        Returns:
            Сохраненная модель

        Raises:
            NotFoundError: Модель не найдена
            PermissionDeniedError: Нет прав на изменение
            VersionConflictError: Модель изменилась после чтения
        """
        async with self._locks.lock(model_id):
            model = await self._load(model_id)
            model.ensure_can_edit(user_id)
            version = model.version_count if expected_version is None else expected_version
            compensations = CompensationStack()

            try:
                mutation(model, compensations)
                await self._repository.save(model, expected_version=version)
            except WorkflowEngineError as e:
                records = await compensations.unwind()
                model.clear_domain_events()
                logger.warning(
                    f"Mutation of model {model_id} rolled back after {len(records)} compensations: {e.message}"
                )
                if records:
                    e.details.setdefault("compensations", [record.to_dict() for record in records])
                raise

        logger.debug(f"Model {model_id} saved (version_count={model.version_count})")
        await self._publisher.publish_all(model.pull_domain_events())
        return model
