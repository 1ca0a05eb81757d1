"""
Доменная сущность FunctionModel.

Aggregate Root: владеет контейнерными узлами и действиями,
контролирует жизненный цикл draft → published → archived,
мягкое удаление и права доступа.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ....core.errors import (
    CircularReferenceDetected,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ...shared.base_entity import Entity
from ..events import (
    ActionNodeAdded,
    ContainerNodeAdded,
    ModelArchived,
    ModelCreated,
    ModelPublished,
    ModelRestored,
    ModelSoftDeleted,
    ModelVersionBumped,
    NodeRemoved,
)
from ..services.dependency_graph_builder import DependencyGraphBuilder
from ..value_objects import (
    ActionType,
    ModelPermissions,
    ModelStatus,
    ModelVersion,
    WorkflowValidation,
)
from .action_node import ActionNode
from .node import ContainerNode


class FunctionModel(Entity):
    """
    Функциональная модель: граф контейнеров с упорядоченными действиями.

    Атрибуты:
        name: Название модели
        description: Описание модели
        status: Статус жизненного цикла
        version: Семантическая версия
        version_count: Счетчик сохранений для оптимистичной блокировки
        permissions: Права доступа
        nodes: Контейнерные узлы по ID
        action_nodes: Действия по ID
        metadata: Произвольные метаданные
        deleted_at: Время мягкого удаления
        deleted_by: Кто удалил модель
        last_saved_at: Время последнего сохранения

    Бизнес-правила:
        - Опубликованная модель отклоняет структурные изменения
        - Архивная модель отклоняет любые изменения, но доступна для чтения
        - Удаленная модель отклоняет изменения и выполнение
        - Для публикации нужны входной и выходной узлы и отсутствие циклов

    Пример:
        >>> model = FunctionModel.create(name="Onboarding", owner_id="alice")
        >>> model.add_node(ContainerNode.io(model.id, "Input", BoundaryType.INPUT))
        >>> model.publish(user_id="alice")
    """

    name: str = Field(..., description="Название модели")
    description: str = Field(default="", description="Описание модели")
    status: ModelStatus = Field(default=ModelStatus.DRAFT, description="Статус модели")
    version: ModelVersion = Field(default_factory=ModelVersion.initial, description="Семантическая версия")
    version_count: int = Field(default=0, ge=0, description="Счетчик сохранений")
    permissions: ModelPermissions = Field(..., description="Права доступа")
    nodes: Dict[str, ContainerNode] = Field(default_factory=dict, description="Контейнерные узлы")
    action_nodes: Dict[str, ActionNode] = Field(default_factory=dict, description="Действия")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Метаданные")
    deleted_at: Optional[datetime] = Field(default=None, description="Время мягкого удаления")
    deleted_by: Optional[str] = Field(default=None, description="Кто удалил модель")
    last_saved_at: Optional[datetime] = Field(default=None, description="Время последнего сохранения")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        if len(v) > 200:
            raise ValueError("Model name cannot exceed 200 characters")
        return v.strip()

    @classmethod
    def create(
        cls,
        name: str,
        owner_id: str,
        description: str = "",
        model_id: Optional[str] = None,
        **kwargs: Any
    ) -> "FunctionModel":
        """
        Создать новую модель в статусе draft.

        Args:
            name: Название модели
            owner_id: ID владельца
            description: Описание
            model_id: ID модели (генерируется, если не указан)
        """
        model = cls(
            id=model_id or str(uuid.uuid4()),
            name=name,
            description=description,
            permissions=ModelPermissions(owner=owner_id),
            **kwargs
        )
        model.add_domain_event(ModelCreated(model.id, model.name, user_id=owner_id))
        return model

    # ==================== Состояние ====================

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_draft(self) -> bool:
        return self.status == ModelStatus.DRAFT

    @property
    def is_published(self) -> bool:
        return self.status == ModelStatus.PUBLISHED

    @property
    def is_archived(self) -> bool:
        return self.status == ModelStatus.ARCHIVED

    def _ensure_structurally_mutable(self) -> None:
        if self.is_deleted:
            raise ValidationError("Cannot modify deleted model", details={"model_id": self.id})
        if self.is_published:
            raise ValidationError("Cannot modify published model", details={"model_id": self.id})
        if self.is_archived:
            raise ValidationError("Cannot modify archived model", details={"model_id": self.id})

    # ==================== Права ====================

    def ensure_can_view(self, user_id: str) -> None:
        if not self.permissions.can_view(user_id):
            raise PermissionDeniedError(user_id, "view", self.id)

    def ensure_can_edit(self, user_id: str) -> None:
        if not self.permissions.can_edit(user_id):
            raise PermissionDeniedError(user_id, "edit", self.id)

    def ensure_can_execute(self, user_id: str) -> None:
        if not self.permissions.can_execute(user_id):
            raise PermissionDeniedError(user_id, "execute", self.id)

    # ==================== Узлы ====================

    def get_node(self, node_id: str) -> ContainerNode:
        """
        Получить узел по ID.

        Raises:
            NotFoundError: Если узла нет в модели
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError("ContainerNode", node_id, details={"model_id": self.id})
        return node

    def add_node(self, node: ContainerNode, user_id: Optional[str] = None) -> None:
        """
        Добавить контейнерный узел.

        Raises:
            ValidationError: Модель неизменяема, ID занят, узел чужой
                или зависимости ссылаются на неизвестные узлы
        """
        self._ensure_structurally_mutable()
        if node.id in self.nodes:
            raise ValidationError("Node with this ID already exists", details={"node_id": node.id})
        if node.model_id != self.id:
            raise ValidationError("Node belongs to different model", details={"node_id": node.id})
        missing = sorted(dep for dep in node.dependencies if dep not in self.nodes)
        if missing:
            raise ValidationError(
                "Node depends on unknown nodes",
                errors=[f"Unknown dependency: {dep}" for dep in missing],
            )

        self.nodes[node.id] = node
        self.mark_updated()
        self.add_domain_event(
            ContainerNodeAdded(self.id, node.id, node.container_type.value, user_id=user_id)
        )

    def remove_node(self, node_id: str, user_id: Optional[str] = None) -> None:
        """
        Удалить узел и его действия.

        Raises:
            ValidationError: Модель неизменяема или от узла зависят другие узлы
            NotFoundError: Узел не найден
        """
        if self.is_deleted:
            raise ValidationError("Cannot modify deleted model", details={"model_id": self.id})
        if self.is_published:
            raise ValidationError("Cannot modify published model", details={"model_id": self.id})
        self.get_node(node_id)

        dependents = [node.name for node in self.nodes.values() if node_id in node.dependencies]
        if dependents:
            raise ValidationError(
                f"Cannot remove node. It is depended upon by: {', '.join(dependents)}",
                details={"node_id": node_id},
            )

        owned = [aid for aid, action in self.action_nodes.items() if action.parent_node_id == node_id]
        for action_id in owned:
            del self.action_nodes[action_id]
        del self.nodes[node_id]
        self.mark_updated()
        self.add_domain_event(NodeRemoved(self.id, node_id, len(owned), user_id=user_id))

    def add_dependency(self, node_id: str, depends_on: str) -> None:
        """
        Добавить ребро зависимости между узлами.

        Raises:
            ValidationError: Модель неизменяема или узел зависит от себя
            NotFoundError: Один из узлов не найден
            CircularReferenceDetected: Ребро замыкает цикл
        """
        self._ensure_structurally_mutable()
        node = self.get_node(node_id)
        self.get_node(depends_on)
        if depends_on in node.dependencies:
            return

        node.add_dependency(depends_on)
        cycle = DependencyGraphBuilder().find_cycle(list(self.nodes.values()))
        if cycle:
            node.remove_dependency(depends_on)
            raise CircularReferenceDetected(cycle)
        self.mark_updated()

    # ==================== Действия ====================

    def get_action(self, action_id: str) -> ActionNode:
        action = self.action_nodes.get(action_id)
        if action is None:
            raise NotFoundError("ActionNode", action_id, details={"model_id": self.id})
        return action

    def add_action_node(self, action: ActionNode, user_id: Optional[str] = None) -> None:
        """
        Добавить действие в контейнер.

        Raises:
            ValidationError: Модель неизменяема, ID занят, действие чужое,
                родитель не найден или зависимости вне контейнера
        """
        self._ensure_structurally_mutable()
        if action.id in self.action_nodes:
            raise ValidationError("Action with this ID already exists", details={"action_id": action.id})
        if action.model_id != self.id:
            raise ValidationError("Action node does not belong to this model", details={"action_id": action.id})
        if action.parent_node_id not in self.nodes:
            raise ValidationError("Parent node not found", details={"parent_node_id": action.parent_node_id})

        siblings = {a.id for a in self.actions_of(action.parent_node_id)}
        foreign = sorted(dep for dep in action.dependencies if dep not in siblings)
        if foreign:
            raise ValidationError(
                "Action dependencies must reference actions of the same container",
                errors=[f"Unknown sibling action: {dep}" for dep in foreign],
            )

        self.action_nodes[action.id] = action
        self.mark_updated()
        self.add_domain_event(
            ActionNodeAdded(
                self.id,
                action.id,
                action.parent_node_id,
                action.action_type.value,
                user_id=user_id,
            )
        )

    def remove_action_node(self, action_id: str) -> None:
        """
        Удалить действие.

        Raises:
            ValidationError: Модель неизменяема
            NotFoundError: Действие не найдено
        """
        self._ensure_structurally_mutable()
        self.get_action(action_id)
        del self.action_nodes[action_id]
        for action in self.action_nodes.values():
            action.dependencies.discard(action_id)
        self.mark_updated()

    def actions_of(self, node_id: str) -> List[ActionNode]:
        """Действия контейнера в порядке выполнения."""
        actions = [a for a in self.action_nodes.values() if a.parent_node_id == node_id]
        return sorted(actions, key=lambda a: (a.execution_order, -a.priority))

    def nested_model_ids(self) -> List[str]:
        """ID всех моделей, на которые ссылаются действия-контейнеры."""
        return sorted({
            action.nested_model_id
            for action in self.action_nodes.values()
            if action.action_type == ActionType.FUNCTION_MODEL_CONTAINER
        })

    # ==================== Валидация ====================

    def validate_workflow(self) -> WorkflowValidation:
        """
        Проверить структуру модели.

        Ошибки:
            - нет входного или выходного узла
            - цикл или неизвестные зависимости
            - повторяющийся execution_order внутри контейнера
            - модель вложена сама в себя
        Предупреждения:
            - нет stage узлов
            - узлы без связей и действий
            - stage узлы без действий
        """
        errors: List[str] = []
        warnings: List[str] = []

        io_nodes = [node for node in self.nodes.values() if node.is_io]
        if not any(node.boundary_type.is_input for node in io_nodes):
            errors.append("Workflow must have at least one input node")
        if not any(node.boundary_type.is_output for node in io_nodes):
            errors.append("Workflow must have at least one output node")

        graph_check = DependencyGraphBuilder().validate_acyclicity(self.nodes.values())
        errors.extend(graph_check.errors)
        warnings.extend(graph_check.warnings)

        for node_id in self.nodes:
            orders = [action.execution_order for action in self.actions_of(node_id)]
            if len(orders) != len(set(orders)):
                errors.append(f"Container {node_id} has duplicate execution orders")

        if self.id in self.nested_model_ids():
            errors.append("Function model cannot contain itself as a nested model")

        stage_nodes = [node for node in self.nodes.values() if node.is_stage]
        if not stage_nodes:
            warnings.append("Consider adding stage nodes for better workflow organization")

        depended_upon = {dep for node in self.nodes.values() for dep in node.dependencies}
        for node in self.nodes.values():
            has_actions = bool(self.actions_of(node.id))
            if node.is_stage and not has_actions:
                warnings.append(f'Stage node "{node.name}" has no actions')
            if (
                not node.is_io
                and not node.dependencies
                and node.id not in depended_upon
                and not has_actions
            ):
                warnings.append(f'Node "{node.name}" has no connections')

        return WorkflowValidation(errors=tuple(errors), warnings=tuple(warnings))

    # ==================== Жизненный цикл ====================

    def bump_version(self, part: str = "patch", user_id: Optional[str] = None) -> ModelVersion:
        """
        Увеличить семантическую версию.

        Args:
            part: major, minor или patch

        Returns:
            Предыдущая версия (для компенсации)
        """
        if self.is_deleted or self.is_archived:
            raise ValidationError("Cannot change version of deleted or archived model")
        bumpers = {
            "major": self.version.bump_major,
            "minor": self.version.bump_minor,
            "patch": self.version.bump_patch,
        }
        if part not in bumpers:
            raise ValidationError(f"Unknown version part: {part}")
        previous = self.version
        self.version = bumpers[part]()
        self.mark_updated()
        self.add_domain_event(ModelVersionBumped(self.id, str(previous), str(self.version), user_id=user_id))
        return previous

    def restore_version(self, version: ModelVersion) -> None:
        """Вернуть версию (используется компенсацией)."""
        self.version = version
        self.mark_updated()

    def publish(self, user_id: Optional[str] = None) -> None:
        """
        Опубликовать модель.

        Raises:
            ValidationError: Модель удалена, уже опубликована, в архиве
                или не проходит проверку структуры
        """
        if self.is_deleted:
            raise ValidationError("Cannot publish deleted model")
        if self.is_published:
            raise ValidationError("Model is already published")
        if self.is_archived:
            raise ValidationError("Cannot publish archived model")

        validation = self.validate_workflow()
        if not validation.is_valid:
            raise ValidationError("Cannot publish invalid workflow", errors=list(validation.errors))

        self.status = ModelStatus.PUBLISHED
        now = datetime.now(timezone.utc)
        self.updated_at = now
        self.last_saved_at = now
        self.add_domain_event(ModelPublished(self.id, str(self.version), user_id=user_id))

    def archive(self, user_id: Optional[str] = None) -> None:
        """
        Архивировать модель.

        Raises:
            ValidationError: Модель удалена или уже в архиве
        """
        if self.is_deleted:
            raise ValidationError("Cannot archive deleted model")
        if self.is_archived:
            raise ValidationError("Model is already archived")

        previous = self.status
        self.status = ModelStatus.ARCHIVED
        self.mark_updated()
        self.add_domain_event(ModelArchived(self.id, previous.value, user_id=user_id))

    def soft_delete(self, deleted_by: Optional[str] = None) -> None:
        """
        Мягко удалить модель. Статус сохраняется для аудита.

        Raises:
            ValidationError: Модель уже удалена или в архиве
        """
        if self.is_deleted:
            raise ValidationError("Model is already deleted")
        if self.is_archived:
            raise ValidationError("Cannot soft delete an archived model")

        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by = deleted_by.strip() if deleted_by else deleted_by
        self.mark_updated()
        self.add_domain_event(ModelSoftDeleted(self.id, deleted_by=self.deleted_by))

    def restore(self, user_id: Optional[str] = None) -> None:
        """
        Восстановить удаленную модель. Статус остается прежним.

        Raises:
            ValidationError: Модель не удалена
        """
        if not self.is_deleted:
            raise ValidationError("Model is not deleted and cannot be restored")

        self.deleted_at = None
        self.deleted_by = None
        self.mark_updated()
        self.add_domain_event(ModelRestored(self.id, user_id=user_id))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "version": str(self.version),
            "version_count": self.version_count,
            "permissions": self.permissions.to_dict(),
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "action_nodes": [action.to_dict() for action in self.action_nodes.values()],
            "metadata": dict(self.metadata),
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "deleted_by": self.deleted_by,
        })
        return data
