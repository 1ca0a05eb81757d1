"""
In-memory реализация ModelRepository.

Хранит копии агрегатов, поэтому изменения загруженной модели не видны
другим читателям до сохранения.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ....core.errors import VersionConflictError
from ....domain.model_context.entities import FunctionModel
from ....domain.model_context.repositories import ModelRepository

logger = logging.getLogger("workflow-engine.infrastructure.in_memory_model_repository")


class InMemoryModelRepository(ModelRepository):
    """
    Репозиторий моделей в памяти.

    Пример:
        >>> repository = InMemoryModelRepository()
        >>> await repository.save(model)
        >>> loaded = await repository.find_by_id(model.id)
        >>> loaded.version_count
        1
    """

    def __init__(self):
        self._models: Dict[str, FunctionModel] = {}

    async def find_by_id(self, model_id: str) -> Optional[FunctionModel]:
        stored = self._models.get(model_id)
        if stored is None:
            logger.debug(f"FunctionModel {model_id} not found")
            return None
        return stored.model_copy(deep=True)

    async def save(
        self,
        model: FunctionModel,
        expected_version: Optional[int] = None
    ) -> None:
        stored = self._models.get(model.id)
        current = stored.version_count if stored else 0
        if expected_version is not None and current != expected_version:
            logger.warning(
                f"Version conflict saving FunctionModel {model.id}: "
                f"expected {expected_version}, found {current}"
            )
            raise VersionConflictError(model.id, expected=expected_version, actual=current)

        model.version_count = current + 1
        model.last_saved_at = datetime.now(timezone.utc)

        snapshot = model.model_copy(deep=True)
        snapshot.clear_domain_events()
        self._models[model.id] = snapshot
        logger.debug(f"Saved FunctionModel {model.id} (version_count={model.version_count})")

    async def delete(self, model_id: str) -> bool:
        if self._models.pop(model_id, None) is None:
            logger.debug(f"FunctionModel {model_id} not found for deletion")
            return False
        logger.debug(f"Deleted FunctionModel {model_id}")
        return True

    async def exists(self, model_id: str) -> bool:
        return model_id in self._models

    async def find_by_owner(
        self,
        owner_id: str,
        include_deleted: bool = False
    ) -> List[FunctionModel]:
        models = [
            model for model in self._models.values()
            if model.permissions.owner == owner_id and (include_deleted or not model.is_deleted)
        ]
        models.sort(key=lambda m: m.created_at, reverse=True)
        return [model.model_copy(deep=True) for model in models]

    def clear(self) -> None:
        """Очистить хранилище (для тестов)."""
        self._models.clear()
