"""
Data Transfer Objects для функциональных моделей.

DTO изолируют внутреннюю структуру агрегата FunctionModel
от внешнего API и других слоев.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ...domain.model_context.entities import FunctionModel


class ModelDTO(BaseModel):
    """
    DTO для сводной информации о модели.

    Атрибуты:
        id: ID модели
        name: Название
        status: Статус жизненного цикла
        version: Семантическая версия
        version_count: Счетчик сохранений (для expected_version)
        owner_id: Владелец
        node_ids: ID контейнерных узлов
        action_count: Количество действий
        is_deleted: Модель мягко удалена
        deleted_by: Кто удалил
        updated_at: Время последнего изменения

    Пример:
        >>> dto = ModelDTO.from_entity(model)
        >>> dto.status
        'draft'
    """

    id: str = Field(description="ID модели")
    name: str = Field(description="Название модели")
    status: str = Field(description="Статус модели")
    version: str = Field(description="Семантическая версия")
    version_count: int = Field(description="Счетчик сохранений")
    owner_id: str = Field(description="Владелец модели")
    node_ids: List[str] = Field(default_factory=list, description="ID узлов")
    action_count: int = Field(default=0, description="Количество действий")
    is_deleted: bool = Field(default=False, description="Модель удалена")
    deleted_by: Optional[str] = Field(default=None, description="Кто удалил модель")
    updated_at: Optional[datetime] = Field(default=None, description="Время изменения")

    @classmethod
    def from_entity(cls, model: FunctionModel) -> "ModelDTO":
        """Создать DTO из агрегата."""
        return cls(
            id=model.id,
            name=model.name,
            status=model.status.value,
            version=str(model.version),
            version_count=model.version_count,
            owner_id=model.permissions.owner,
            node_ids=list(model.nodes.keys()),
            action_count=len(model.action_nodes),
            is_deleted=model.is_deleted,
            deleted_by=model.deleted_by,
            updated_at=model.updated_at,
        )


class NodeAddedDTO(BaseModel):
    """
    Результат добавления контейнерного узла или действия.

    Атрибуты:
        model: Модель после сохранения
        node_id: ID добавленного узла или действия
    """

    model: ModelDTO
    node_id: str
