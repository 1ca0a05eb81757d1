"""
Доменная сущность ActionNode.

Действие: листовой исполняемый шаг внутри ровно одного контейнерного узла.
"""

import uuid
from typing import Any, Dict, Optional, Set

from pydantic import Field, field_validator, model_validator

from ....core.errors import ValidationError
from ...shared.base_entity import Entity
from ..value_objects import ActionExecutionMode, ActionType, NodeStatus, RetryPolicy


class ActionNode(Entity):
    """
    Действие внутри контейнера.

    Атрибуты:
        model_id: ID модели-владельца
        parent_node_id: ID контейнерного узла
        name: Название действия
        description: Описание
        action_type: Вид действия (tether, kb, function_model_container)
        execution_mode: Последовательное или параллельное выполнение
        execution_order: Порядок внутри контейнера (начиная с 1)
        priority: Приоритет 1..10, разрешает равный порядок
        retry_policy: Политика повторов
        payload: Данные, специфичные для вида действия
        dependencies: ID действий того же контейнера, которые должны завершиться раньше
        status: Статус выполнения
        estimated_duration_s: Оценка длительности (секунды)

    Пример:
        >>> action = ActionNode.create(
        ...     model_id="model-1",
        ...     parent_node_id="stage-1",
        ...     name="Call API",
        ...     action_type=ActionType.TETHER,
        ...     execution_order=1
        ... )
    """

    model_id: str = Field(..., description="ID модели-владельца")
    parent_node_id: str = Field(..., description="ID контейнерного узла")
    name: str = Field(..., description="Название действия")
    description: str = Field(default="", description="Описание действия")
    action_type: ActionType = Field(..., description="Вид действия")
    execution_mode: ActionExecutionMode = Field(
        default=ActionExecutionMode.SEQUENTIAL,
        description="Режим выполнения"
    )
    execution_order: int = Field(default=1, ge=1, description="Порядок внутри контейнера")
    priority: int = Field(default=5, ge=1, le=10, description="Приоритет")
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy, description="Политика повторов")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Данные действия")
    dependencies: Set[str] = Field(default_factory=set, description="ID действий-зависимостей")
    status: NodeStatus = Field(default=NodeStatus.IDLE, description="Статус выполнения")
    estimated_duration_s: Optional[float] = Field(default=None, ge=0, description="Оценка длительности")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Action name cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_payload(self) -> "ActionNode":
        if self.id in self.dependencies:
            raise ValueError("Action cannot depend on itself")
        if self.action_type == ActionType.FUNCTION_MODEL_CONTAINER and not self.payload.get("nested_model_id"):
            raise ValueError("Function model container action requires 'nested_model_id' in payload")
        return self

    @classmethod
    def create(
        cls,
        model_id: str,
        parent_node_id: str,
        name: str,
        action_type: ActionType,
        action_id: Optional[str] = None,
        **kwargs: Any
    ) -> "ActionNode":
        """Создать действие с новым ID."""
        return cls(
            id=action_id or str(uuid.uuid4()),
            model_id=model_id,
            parent_node_id=parent_node_id,
            name=name,
            action_type=action_type,
            **kwargs
        )

    @property
    def is_parallel(self) -> bool:
        return self.execution_mode == ActionExecutionMode.PARALLEL

    @property
    def nested_model_id(self) -> Optional[str]:
        """ID вложенной модели для действий function_model_container."""
        if self.action_type != ActionType.FUNCTION_MODEL_CONTAINER:
            return None
        return self.payload.get("nested_model_id")

    def update_status(self, target: NodeStatus) -> None:
        """
        Перевести действие в новый статус.

        Raises:
            ValidationError: Если переход недопустим
        """
        if not self.status.can_transition_to(target):
            raise ValidationError(
                f"Invalid action status transition: {self.status.value} → {target.value}",
                details={"action_id": self.id}
            )
        self.status = target
        self.mark_updated()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "model_id": self.model_id,
            "parent_node_id": self.parent_node_id,
            "name": self.name,
            "description": self.description,
            "action_type": self.action_type.value,
            "execution_mode": self.execution_mode.value,
            "execution_order": self.execution_order,
            "priority": self.priority,
            "retry_policy": self.retry_policy.model_dump(mode="json"),
            "payload": dict(self.payload),
            "dependencies": sorted(self.dependencies),
            "status": self.status.value,
            "estimated_duration_s": self.estimated_duration_s,
        })
        return data
