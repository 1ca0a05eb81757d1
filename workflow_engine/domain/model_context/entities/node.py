"""
Доменная сущность ContainerNode.

Контейнерный узел графа: этап обработки (stage) или граница модели (io).
Группирует упорядоченные действия и объявляет зависимости от других узлов.
"""

import uuid
from typing import Any, Dict, Optional, Set

from pydantic import Field, field_validator, model_validator

from ....core.errors import ValidationError
from ...shared.base_entity import Entity
from ..value_objects import BoundaryType, ContainerType, NodeStatus, Position


class ContainerNode(Entity):
    """
    Контейнерный узел функциональной модели.

    Атрибуты:
        model_id: ID модели-владельца
        name: Название узла
        description: Описание узла
        container_type: Вид контейнера (stage / io)
        boundary_type: Тип границы для io узлов
        position: Позиция на холсте (только для отображения)
        dependencies: ID узлов, которые должны завершиться раньше
        status: Текущий статус выполнения
        metadata: Произвольные метаданные (priority и т.п.)

    Бизнес-правила:
        - Узел не может зависеть от самого себя
        - io узел обязан иметь boundary_type, stage узел не может его иметь
        - Переходы статуса проверяются NodeStatus

    Пример:
        >>> node = ContainerNode.stage(model_id="model-1", name="Process")
        >>> node.add_dependency("input-node")
    """

    model_id: str = Field(..., description="ID модели-владельца")
    name: str = Field(..., description="Название узла")
    description: str = Field(default="", description="Описание узла")
    container_type: ContainerType = Field(..., description="Вид контейнера")
    boundary_type: Optional[BoundaryType] = Field(
        default=None,
        description="Тип границы (только для io узлов)"
    )
    position: Position = Field(default_factory=Position, description="Позиция на холсте")
    dependencies: Set[str] = Field(default_factory=set, description="ID узлов-зависимостей")
    status: NodeStatus = Field(default=NodeStatus.IDLE, description="Статус выполнения")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Метаданные")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Node name cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_invariants(self) -> "ContainerNode":
        if self.id in self.dependencies:
            raise ValueError("Node cannot depend on itself")
        if self.container_type == ContainerType.IO and self.boundary_type is None:
            raise ValueError("IO node requires a boundary type")
        if self.container_type == ContainerType.STAGE and self.boundary_type is not None:
            raise ValueError("Stage node cannot have a boundary type")
        return self

    @classmethod
    def stage(
        cls,
        model_id: str,
        name: str,
        node_id: Optional[str] = None,
        **kwargs: Any
    ) -> "ContainerNode":
        """Создать stage узел."""
        return cls(
            id=node_id or str(uuid.uuid4()),
            model_id=model_id,
            name=name,
            container_type=ContainerType.STAGE,
            **kwargs
        )

    @classmethod
    def io(
        cls,
        model_id: str,
        name: str,
        boundary_type: BoundaryType,
        node_id: Optional[str] = None,
        **kwargs: Any
    ) -> "ContainerNode":
        """Создать io узел с указанным типом границы."""
        return cls(
            id=node_id or str(uuid.uuid4()),
            model_id=model_id,
            name=name,
            container_type=ContainerType.IO,
            boundary_type=boundary_type,
            **kwargs
        )

    @property
    def is_io(self) -> bool:
        return self.container_type == ContainerType.IO

    @property
    def is_stage(self) -> bool:
        return self.container_type == ContainerType.STAGE

    @property
    def priority(self) -> int:
        """Приоритет узла из метаданных (по умолчанию 5)."""
        return int(self.metadata.get("priority", 5))

    def add_dependency(self, node_id: str) -> None:
        """
        Добавить зависимость от другого узла.

        Проверку циклов во всем графе выполняет FunctionModel.

        Raises:
            ValidationError: Если узел добавляет зависимость от себя
        """
        if node_id == self.id:
            raise ValidationError(
                "Node cannot depend on itself",
                details={"node_id": self.id}
            )
        self.dependencies.add(node_id)
        self.mark_updated()

    def remove_dependency(self, node_id: str) -> bool:
        """Удалить зависимость. Возвращает False, если ее не было."""
        if node_id not in self.dependencies:
            return False
        self.dependencies.discard(node_id)
        self.mark_updated()
        return True

    def update_status(self, target: NodeStatus) -> None:
        """
        Перевести узел в новый статус.

        Raises:
            ValidationError: Если переход недопустим
        """
        if not self.status.can_transition_to(target):
            raise ValidationError(
                f"Invalid node status transition: {self.status.value} → {target.value}",
                details={"node_id": self.id}
            )
        self.status = target
        self.mark_updated()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "model_id": self.model_id,
            "name": self.name,
            "description": self.description,
            "container_type": self.container_type.value,
            "boundary_type": self.boundary_type.value if self.boundary_type else None,
            "position": {"x": self.position.x, "y": self.position.y},
            "dependencies": sorted(self.dependencies),
            "status": self.status.value,
            "metadata": dict(self.metadata),
        })
        return data
