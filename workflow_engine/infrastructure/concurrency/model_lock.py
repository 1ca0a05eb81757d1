"""
Model-level locks для сериализации изменений одной модели.

Вместе с оптимистичной проверкой версии гарантирует, что из двух
конкурентных изменений одной версии модели успешно только одно.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict

logger = logging.getLogger("workflow-engine.infrastructure.model_lock")


class ModelLockManager:
    """
    Менеджер блокировок на уровне моделей.

    Отдельная блокировка для каждой модели, поэтому изменения разных
    моделей идут параллельно.

    Атрибуты:
        _locks: Словарь блокировок по model_id
        _global_lock: Блокировка для управления словарем

    Пример:
        >>> locks = ModelLockManager()
        >>> async with locks.lock("model-1"):
        ...     model = await repository.find_by_id("model-1")
        ...     await repository.save(model, expected_version=version)
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()
        logger.info("ModelLockManager initialized")

    @asynccontextmanager
    async def lock(self, model_id: str):
        """
        Получить блокировку модели на время блока.

        Args:
            model_id: ID модели
        """
        async with self._global_lock:
            if model_id not in self._locks:
                self._locks[model_id] = asyncio.Lock()
                logger.debug(f"Created new lock for model {model_id}")
            lock = self._locks[model_id]

        async with lock:
            logger.debug(f"Lock acquired for model {model_id}")
            try:
                yield
            finally:
                logger.debug(f"Lock released for model {model_id}")

    async def cleanup_unused_locks(self, max_locks: int = 1000) -> int:
        """
        Удалить свободные блокировки сверх max_locks.

        Returns:
            Количество удаленных блокировок
        """
        async with self._global_lock:
            excess = len(self._locks) - max_locks
            if excess <= 0:
                return 0
            unused = [model_id for model_id, lock in self._locks.items() if not lock.locked()]
            for model_id in unused[:excess]:
                del self._locks[model_id]
            removed = min(excess, len(unused))
            logger.info(f"Cleaned up {removed} unused model locks")
            return removed

    def get_lock_count(self) -> int:
        return len(self._locks)

    def is_locked(self, model_id: str) -> bool:
        lock = self._locks.get(model_id)
        return lock.locked() if lock else False
