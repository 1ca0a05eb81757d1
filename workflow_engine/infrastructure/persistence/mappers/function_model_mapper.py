"""
Mapper для преобразования между FunctionModel и FunctionModelRecord.

Изолирует доменный слой от деталей персистентности.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ....domain.model_context.entities import ActionNode, ContainerNode, FunctionModel
from ....domain.model_context.value_objects import ModelPermissions, ModelStatus, ModelVersion
from ..models import FunctionModelRecord

logger = logging.getLogger("workflow-engine.infrastructure.function_model_mapper")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite возвращает naive datetime; время всегда хранится в UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class FunctionModelMapper:
    """
    Mapper между агрегатом FunctionModel и строкой function_models.

    Узлы и действия сериализуются через pydantic (mode="json"),
    поэтому множества зависимостей хранятся списками.

    Пример:
        >>> mapper = FunctionModelMapper()
        >>> record = mapper.to_record(model)
        >>> entity = mapper.to_entity(record)
    """

    def to_entity(self, record: FunctionModelRecord) -> FunctionModel:
        """Преобразовать строку БД в агрегат."""
        return FunctionModel(
            id=record.id,
            name=record.name,
            description=record.description or "",
            status=ModelStatus(record.status),
            version=ModelVersion.parse(record.version),
            version_count=record.version_count,
            permissions=ModelPermissions.model_validate(record.permissions),
            nodes={
                node_id: ContainerNode.model_validate(data)
                for node_id, data in (record.nodes or {}).items()
            },
            action_nodes={
                action_id: ActionNode.model_validate(data)
                for action_id, data in (record.action_nodes or {}).items()
            },
            metadata=dict(record.metadata_json or {}),
            deleted_at=_as_utc(record.deleted_at),
            deleted_by=record.deleted_by,
            last_saved_at=_as_utc(record.last_saved_at),
            created_at=_as_utc(record.created_at),
            updated_at=_as_utc(record.updated_at),
        )

    def to_record(self, model: FunctionModel) -> FunctionModelRecord:
        """Создать новую строку БД из агрегата."""
        record = FunctionModelRecord(id=model.id, created_at=model.created_at)
        self.update_record(record, model)
        return record

    def update_record(self, record: FunctionModelRecord, model: FunctionModel) -> None:
        """Перенести состояние агрегата в существующую строку."""
        record.name = model.name
        record.description = model.description
        record.status = model.status.value
        record.version = str(model.version)
        record.version_count = model.version_count
        record.owner_id = model.permissions.owner
        record.permissions = model.permissions.model_dump(mode="json")
        record.nodes = {
            node_id: node.model_dump(mode="json")
            for node_id, node in model.nodes.items()
        }
        record.action_nodes = {
            action_id: action.model_dump(mode="json")
            for action_id, action in model.action_nodes.items()
        }
        record.metadata_json = dict(model.metadata)
        record.deleted_at = model.deleted_at
        record.deleted_by = model.deleted_by
        record.last_saved_at = model.last_saved_at
        record.updated_at = model.updated_at or model.created_at
