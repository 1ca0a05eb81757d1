"""
Реализация ModelRepository с использованием SQLAlchemy.

Конкретная реализация интерфейса ModelRepository для работы с БД.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ....core.errors import RepositoryError, VersionConflictError
from ....domain.model_context.entities import FunctionModel
from ....domain.model_context.repositories import ModelRepository
from ..mappers import FunctionModelMapper
from ..models import FunctionModelRecord

logger = logging.getLogger("workflow-engine.infrastructure.function_model_repository")


class FunctionModelRepositoryImpl(ModelRepository):
    """
    Реализация репозитория функциональных моделей для SQLAlchemy.

    Использует FunctionModelMapper для преобразования между
    агрегатом и строкой БД. Транзакцией управляет вызывающий код:
    репозиторий только делает flush.

    Атрибуты:
        _db: Сессия БД SQLAlchemy
        _mapper: Mapper для преобразования данных

    Пример:
        >>> async with database.session() as db:
        ...     repo = FunctionModelRepositoryImpl(db)
        ...     model = await repo.find_by_id("model-123")
    """

    def __init__(self, db: AsyncSession):
        self._db = db
        self._mapper = FunctionModelMapper()

    async def find_by_id(self, model_id: str) -> Optional[FunctionModel]:
        try:
            result = await self._db.execute(
                select(FunctionModelRecord).where(FunctionModelRecord.id == model_id)
            )
            record = result.scalar_one_or_none()
            if not record:
                logger.debug(f"FunctionModel {model_id} not found")
                return None
            return self._mapper.to_entity(record)

        except SQLAlchemyError as e:
            logger.error(f"Error finding FunctionModel {model_id}: {e}", exc_info=True)
            raise RepositoryError("find_by_id", "FunctionModel", str(e)) from e

    async def save(
        self,
        model: FunctionModel,
        expected_version: Optional[int] = None
    ) -> None:
        """
        Сохранить модель (upsert) с проверкой версии.

        Версия проверяется дважды: по прочитанной строке и в самом UPDATE
        (version_id_col), поэтому запись из другой сессии между чтением
        и flush тоже дает конфликт.

        Raises:
            VersionConflictError: Сохраненная версия отличается от ожидаемой
            RepositoryError: Ошибка БД
        """
        current = 0
        try:
            record = await self._db.get(FunctionModelRecord, model.id, populate_existing=True)
            current = record.version_count if record else 0
            if expected_version is not None and current != expected_version:
                logger.warning(
                    f"Version conflict saving FunctionModel {model.id}: "
                    f"expected {expected_version}, found {current}"
                )
                raise VersionConflictError(model.id, expected=expected_version, actual=current)

            saved_at = datetime.now(timezone.utc)
            next_version = current + 1
            if record is None:
                record = self._mapper.to_record(model)
                record.version_count = next_version
                record.last_saved_at = saved_at
                self._db.add(record)
            else:
                self._mapper.update_record(record, model)
                record.version_count = next_version
                record.last_saved_at = saved_at
            await self._db.flush()

            model.version_count = next_version
            model.last_saved_at = saved_at
            logger.debug(f"Saved FunctionModel {model.id} (version_count={model.version_count})")

        except (StaleDataError, IntegrityError) as e:
            logger.warning(f"Concurrent write detected saving FunctionModel {model.id}: {e}")
            raise VersionConflictError(
                model.id,
                expected=current if expected_version is None else expected_version,
                actual=None,
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving FunctionModel {model.id}: {e}", exc_info=True)
            raise RepositoryError("save", "FunctionModel", str(e)) from e

    async def delete(self, model_id: str) -> bool:
        try:
            if not await self.exists(model_id):
                logger.debug(f"FunctionModel {model_id} not found for deletion")
                return False
            await self._db.execute(
                delete(FunctionModelRecord).where(FunctionModelRecord.id == model_id)
            )
            await self._db.flush()
            logger.debug(f"Deleted FunctionModel {model_id}")
            return True

        except SQLAlchemyError as e:
            logger.error(f"Error deleting FunctionModel {model_id}: {e}", exc_info=True)
            raise RepositoryError("delete", "FunctionModel", str(e)) from e

    async def exists(self, model_id: str) -> bool:
        try:
            result = await self._db.execute(
                select(FunctionModelRecord.id).where(FunctionModelRecord.id == model_id)
            )
            return result.scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking FunctionModel {model_id}: {e}", exc_info=True)
            raise RepositoryError("exists", "FunctionModel", str(e)) from e

    async def find_by_owner(
        self,
        owner_id: str,
        include_deleted: bool = False
    ) -> List[FunctionModel]:
        try:
            query = select(FunctionModelRecord).where(FunctionModelRecord.owner_id == owner_id)
            if not include_deleted:
                query = query.where(FunctionModelRecord.deleted_at.is_(None))
            result = await self._db.execute(query.order_by(FunctionModelRecord.created_at.desc()))
            models = [self._mapper.to_entity(record) for record in result.scalars().all()]
            logger.debug(f"Found {len(models)} models for owner {owner_id}")
            return models

        except SQLAlchemyError as e:
            logger.error(f"Error finding models for owner {owner_id}: {e}", exc_info=True)
            raise RepositoryError("find_by_owner", "FunctionModel", str(e)) from e
