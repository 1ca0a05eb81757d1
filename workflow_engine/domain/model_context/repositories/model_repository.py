"""
Repository Interface для FunctionModel.

Определяет контракт хранения моделей с оптимистичной блокировкой.
"""

from abc import abstractmethod
from typing import List, Optional

from ...shared.repository import Repository
from ..entities import FunctionModel


class ModelRepository(Repository[FunctionModel, str]):
    """
    Интерфейс репозитория функциональных моделей.

    Каждое успешное сохранение увеличивает version_count модели.
    Вызывающий код передает версию, прочитанную до изменения;
    если в хранилище уже другая версия, сохранение отклоняется.

    Example:
        >>> model = await repository.find_by_id("model-1")
        >>> expected = model.version_count
        >>> model.publish(user_id="alice")
        >>> await repository.save(model, expected_version=expected)
    """

    @abstractmethod
    async def find_by_id(self, model_id: str) -> Optional[FunctionModel]:
        """
        Найти модель по ID.

        Возвращает и мягко удаленные модели: решение об их
        использовании принимает вызывающий код.

        Args:
            model_id: ID модели

        Returns:
            Модель если найдена, None иначе
        """
        pass

    @abstractmethod
    async def save(
        self,
        model: FunctionModel,
        expected_version: Optional[int] = None
    ) -> None:
        """
        Сохранить модель.

        Args:
            model: Модель для сохранения
            expected_version: Версия, прочитанная до изменения

        Raises:
            VersionConflictError: Если сохраненная версия отличается от ожидаемой
            RepositoryError: При ошибке хранилища
        """
        pass

    @abstractmethod
    async def delete(self, model_id: str) -> bool:
        """
        Физически удалить модель.

        Returns:
            True если модель была удалена, False если не найдена
        """
        pass

    @abstractmethod
    async def exists(self, model_id: str) -> bool:
        pass

    @abstractmethod
    async def find_by_owner(
        self,
        owner_id: str,
        include_deleted: bool = False
    ) -> List[FunctionModel]:
        """
        Найти модели владельца.

        Args:
            owner_id: ID владельца
            include_deleted: Включать мягко удаленные модели

        Returns:
            Модели, отсортированные по created_at (новые первыми)
        """
        pass
