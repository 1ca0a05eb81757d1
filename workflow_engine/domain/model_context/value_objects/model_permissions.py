"""
Value Object для прав доступа к модели.
"""

from enum import Enum
from typing import FrozenSet, Optional

from pydantic import Field, field_validator

from ...shared.value_object import ValueObject


class ModelRole(str, Enum):
    """Роль пользователя в модели."""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    EXECUTOR = "executor"


class ModelPermissions(ValueObject):
    """
    Набор прав: владелец, редакторы, наблюдатели, исполнители.

    Бизнес-правила:
    - владелец обязателен
    - редактировать могут владелец и редакторы
    - выполнять могут все роли
    - читать могут все роли

    Example:
        >>> perms = ModelPermissions(owner="alice", viewers={"bob"})
        >>> perms.can_execute("bob"), perms.can_edit("bob")
        (True, False)
    """

    owner: str
    editors: FrozenSet[str] = Field(default_factory=frozenset)
    viewers: FrozenSet[str] = Field(default_factory=frozenset)
    executors: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator("owner")
    @classmethod
    def validate_owner(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Model owner cannot be empty")
        return v.strip()

    def role_of(self, user_id: str) -> Optional[ModelRole]:
        """Определить роль пользователя (наивысшую)."""
        if user_id == self.owner:
            return ModelRole.OWNER
        if user_id in self.editors:
            return ModelRole.EDITOR
        if user_id in self.viewers:
            return ModelRole.VIEWER
        if user_id in self.executors:
            return ModelRole.EXECUTOR
        return None

    def can_view(self, user_id: str) -> bool:
        return self.role_of(user_id) is not None

    def can_edit(self, user_id: str) -> bool:
        return self.role_of(user_id) in (ModelRole.OWNER, ModelRole.EDITOR)

    def can_execute(self, user_id: str) -> bool:
        return self.role_of(user_id) is not None

    def with_editor(self, user_id: str) -> "ModelPermissions":
        """Вернуть права с добавленным редактором."""
        return self.model_copy(update={"editors": self.editors | {user_id}})

    def with_viewer(self, user_id: str) -> "ModelPermissions":
        return self.model_copy(update={"viewers": self.viewers | {user_id}})

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "editors": sorted(self.editors),
            "viewers": sorted(self.viewers),
            "executors": sorted(self.executors),
        }
