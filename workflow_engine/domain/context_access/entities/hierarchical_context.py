"""
Доменная сущность HierarchicalContext.

Узел дерева контекстов: локальные данные владельца, ссылка на
родительский контекст и снимок унаследованных данных.
"""

import copy
from typing import Any, Dict, List, Optional

from pydantic import Field

from ...shared.base_entity import Entity
from ..value_objects import AccessLevel, ContextScope, InheritanceRule


class HierarchicalContext(Entity):
    """
    Контекст узла графа.

    Атрибуты:
        node_id: ID узла-владельца
        scope: Область видимости
        data: Локальные данные
        inherited_data: Данные, унаследованные от родителя по правилам
        access_level: Уровень доступа (read для isolated, иначе read-write)
        parent_context_id: ID родительского контекста
        inheritance_rules: Правила, применявшиеся при наследовании

    Разрешение значения (effective_data):
        - свойство есть только у одного источника: берется оно
        - свойство есть у обоих и правило разрешает override:
          побеждает собственное значение
        - свойство есть у обоих и правило запрещает override:
          побеждает значение родителя
        - правила нет: побеждает собственное значение
    """

    node_id: str = Field(..., description="ID узла-владельца")
    scope: ContextScope = Field(default=ContextScope.EXECUTION, description="Область видимости")
    data: Dict[str, Any] = Field(default_factory=dict, description="Локальные данные")
    inherited_data: Dict[str, Any] = Field(default_factory=dict, description="Унаследованные данные")
    access_level: AccessLevel = Field(default=AccessLevel.READ_WRITE, description="Уровень доступа")
    parent_context_id: Optional[str] = Field(default=None, description="ID родительского контекста")
    inheritance_rules: List[InheritanceRule] = Field(default_factory=list, description="Правила наследования")

    @property
    def is_isolated(self) -> bool:
        return self.scope == ContextScope.ISOLATED

    @property
    def is_root(self) -> bool:
        return self.parent_context_id is None

    def rule_for(self, prop: str) -> Optional[InheritanceRule]:
        for rule in self.inheritance_rules:
            if rule.property == prop:
                return rule
        return None

    def effective_data(self) -> Dict[str, Any]:
        """Данные с учетом наследования (глубокая копия)."""
        result = copy.deepcopy(self.inherited_data)
        for key, value in self.data.items():
            rule = self.rule_for(key)
            if key in result and rule is not None and not rule.override:
                continue
            result[key] = copy.deepcopy(value)
        return result

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "node_id": self.node_id,
            "scope": self.scope.value,
            "data": copy.deepcopy(self.data),
            "inherited_data": copy.deepcopy(self.inherited_data),
            "access_level": self.access_level.value,
            "parent_context_id": self.parent_context_id,
            "inheritance_rules": [rule.model_dump() for rule in self.inheritance_rules],
        })
        return data
