"""
Доменные события функциональной модели.

Каждое событие несет тип в формате шины событий (EVENT_TYPE),
ID агрегата и пользователя, вызвавшего изменение.
"""

from typing import Any, ClassVar, Dict, Optional

from ...shared.domain_event import DomainEvent


class ModelCreated(DomainEvent):
    """Модель создана."""

    EVENT_TYPE: ClassVar[str] = "model.created"

    def __init__(self, model_id: str, name: str, user_id: Optional[str] = None):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._name = name

    def event_data(self) -> Dict[str, Any]:
        return {"name": self._name}


class ContainerNodeAdded(DomainEvent):
    """В модель добавлен контейнерный узел."""

    EVENT_TYPE: ClassVar[str] = "model.node.added"

    def __init__(
        self,
        model_id: str,
        node_id: str,
        container_type: str,
        user_id: Optional[str] = None
    ):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._node_id = node_id
        self._container_type = container_type

    @property
    def node_id(self) -> str:
        return self._node_id

    def event_data(self) -> Dict[str, Any]:
        return {"node_id": self._node_id, "container_type": self._container_type}


class ActionNodeAdded(DomainEvent):
    """В контейнер добавлено действие."""

    EVENT_TYPE: ClassVar[str] = "model.action.added"

    def __init__(
        self,
        model_id: str,
        action_id: str,
        parent_node_id: str,
        action_type: str,
        user_id: Optional[str] = None
    ):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._action_id = action_id
        self._parent_node_id = parent_node_id
        self._action_type = action_type

    def event_data(self) -> Dict[str, Any]:
        return {
            "action_id": self._action_id,
            "parent_node_id": self._parent_node_id,
            "action_type": self._action_type,
        }


class NodeRemoved(DomainEvent):
    """Узел удален из модели вместе со своими действиями."""

    EVENT_TYPE: ClassVar[str] = "model.node.removed"

    def __init__(
        self,
        model_id: str,
        node_id: str,
        removed_actions: int,
        user_id: Optional[str] = None
    ):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._node_id = node_id
        self._removed_actions = removed_actions

    def event_data(self) -> Dict[str, Any]:
        return {"node_id": self._node_id, "removed_actions": self._removed_actions}


class ModelVersionBumped(DomainEvent):
    """Изменилась семантическая версия модели."""

    EVENT_TYPE: ClassVar[str] = "model.version.bumped"

    def __init__(
        self,
        model_id: str,
        previous: str,
        current: str,
        user_id: Optional[str] = None
    ):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._previous = previous
        self._current = current

    def event_data(self) -> Dict[str, Any]:
        return {"previous_version": self._previous, "version": self._current}


class ModelPublished(DomainEvent):
    """Модель опубликована."""

    EVENT_TYPE: ClassVar[str] = "model.published"

    def __init__(self, model_id: str, version: str, user_id: Optional[str] = None):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._version = version

    def event_data(self) -> Dict[str, Any]:
        return {"version": self._version}


class ModelArchived(DomainEvent):
    """Модель архивирована."""

    EVENT_TYPE: ClassVar[str] = "model.archived"

    def __init__(self, model_id: str, previous_status: str, user_id: Optional[str] = None):
        super().__init__(aggregate_id=model_id, user_id=user_id)
        self._previous_status = previous_status

    def event_data(self) -> Dict[str, Any]:
        return {"previous_status": self._previous_status}


class ModelSoftDeleted(DomainEvent):
    """Модель помечена удаленной."""

    EVENT_TYPE: ClassVar[str] = "model.deleted"

    def __init__(self, model_id: str, deleted_by: Optional[str] = None):
        super().__init__(aggregate_id=model_id, user_id=deleted_by)

    def event_data(self) -> Dict[str, Any]:
        return {"deleted_by": self.user_id}


class ModelRestored(DomainEvent):
    """Удаленная модель восстановлена."""

    EVENT_TYPE: ClassVar[str] = "model.restored"

    def __init__(self, model_id: str, user_id: Optional[str] = None):
        super().__init__(aggregate_id=model_id, user_id=user_id)
