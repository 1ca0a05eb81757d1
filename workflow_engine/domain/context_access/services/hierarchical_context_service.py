"""
Domain Service для иерархических контекстов.

Строит дерево контекстов, повторяющее вложенность узлов, применяет
правила наследования, клонирует и объединяет области видимости
и решает, может ли один узел читать контекст другого.

Все операции синхронные: при работе в одном event loop каждая
операция атомарна относительно других корутин. Одновременные записи
в один ключ разрешаются по правилу "последняя запись побеждает".
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ....core.errors import CircularReferenceDetected, NotFoundError, ValidationError
from ..entities import HierarchicalContext
from ..value_objects import AccessLevel, ContextAccessDecision, ContextScope, InheritanceRule
from .context_store import ContextStore

logger = logging.getLogger("workflow-engine.context_access.service")

FIRST_WINS = "first-wins"
LAST_WINS = "last-wins"


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Глубокое слияние словарей.

    Вложенные словари сливаются рекурсивно, остальные значения
    из patch заменяют значения base.
    """
    result = copy.deepcopy(dict(base))
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class HierarchicalContextService:
    """
    Сервис иерархических контекстов.

    Правила доступа между разными узлами:
        - предок читает потомка: любой уровень
        - потомок читает предка: только чтение
        - соседи (общий родитель): только чтение
        - несвязанные узлы: отказ
        - isolated контекст закрыт для узлов вне своего поддерева

    Пример:
        >>> service = HierarchicalContextService()
        >>> root = service.build_context("model-1", {"locale": "ru"}, ContextScope.EXECUTION)
        >>> child = service.build_context("stage-1", {}, ContextScope.EXECUTION, root.id)
        >>> [ctx.node_id for ctx in service.get_hierarchical_context("stage-1")]
        ['stage-1', 'model-1']
    """

    def __init__(self, store: Optional[ContextStore] = None):
        self._store = store if store is not None else ContextStore()

    @property
    def store(self) -> ContextStore:
        return self._store

    # ==================== Создание и изменение ====================

    def build_context(
        self,
        node_id: str,
        data: Optional[Mapping[str, Any]],
        scope: ContextScope = ContextScope.EXECUTION,
        parent_context_id: Optional[str] = None
    ) -> HierarchicalContext:
        """
        Создать контекст узла.

        Args:
            node_id: ID узла-владельца
            data: Локальные данные
            scope: Область видимости
            parent_context_id: ID родительского контекста

        Returns:
            Созданный контекст

        Raises:
            ValidationError: data равно None или не является словарем
            NotFoundError: Родительский контекст не найден
            CircularReferenceDetected: Узел стал бы собственным предком
        """
        if not node_id:
            raise ValidationError("Invalid context data: node id is required")
        if data is None:
            raise ValidationError("Invalid context data: data cannot be None")
        if not isinstance(data, Mapping):
            raise ValidationError("Invalid context data: data must be a mapping")

        scope = ContextScope(scope)
        inherited: Dict[str, Any] = {}
        if parent_context_id is not None:
            parent = self._require(parent_context_id)
            self._ensure_not_ancestor(node_id, parent)
            inherited = parent.effective_data()

        context = HierarchicalContext(
            id=self._store.next_id(node_id),
            node_id=node_id,
            scope=scope,
            data=copy.deepcopy(dict(data)),
            inherited_data=inherited,
            access_level=AccessLevel.READ if scope == ContextScope.ISOLATED else AccessLevel.READ_WRITE,
            parent_context_id=parent_context_id,
        )
        self._store.add(context)
        logger.debug(f"Built context {context.id} for node {node_id} (scope={scope.value})")
        return context

    def update_context(self, context_id: str, patch: Optional[Mapping[str, Any]]) -> HierarchicalContext:
        """
        Глубоко слить patch в данные контекста.

        Raises:
            ValidationError: patch равен None
            NotFoundError: Контекст не найден
        """
        if patch is None:
            raise ValidationError("Invalid context data: patch cannot be None")
        context = self._require(context_id)
        context.data = deep_merge(context.data, patch)
        context.mark_updated()
        return context

    def propagate_context(
        self,
        source_context_id: str,
        target_node_id: str,
        rules: Sequence[InheritanceRule]
    ) -> HierarchicalContext:
        """
        Сделать source родителем контекста целевого узла и применить
        правила наследования.

        Если у целевого узла нет контекста, он создается с пустыми данными.

        Raises:
            NotFoundError: Исходный контекст не найден
            CircularReferenceDetected: Целевой узел уже является предком source
        """
        source = self._require(source_context_id)
        self._ensure_not_ancestor(target_node_id, source)

        inherited = {
            rule.property: copy.deepcopy(source.data[rule.property])
            for rule in rules
            if rule.inherit and rule.property in source.data
        }

        target = self.get_node_context(target_node_id)
        if target is None:
            target = self.build_context(target_node_id, {}, source.scope, source_context_id)

        target.parent_context_id = source_context_id
        target.inherited_data = inherited
        target.inheritance_rules = list(rules)
        target.mark_updated()
        logger.debug(
            f"Propagated context {source_context_id} → node {target_node_id} "
            f"({len(inherited)} inherited properties)"
        )
        return target

    def clone_context_scope(
        self,
        source_context_id: str,
        target_node_id: str,
        new_scope: ContextScope,
        exclude_properties: Optional[Iterable[str]] = None,
        transform_properties: Optional[Mapping[str, Callable[[Any], Any]]] = None,
        parent_context_id: Optional[str] = None
    ) -> HierarchicalContext:
        """
        Скопировать данные контекста в новый контекст другого узла.

        Args:
            source_context_id: ID исходного контекста
            target_node_id: ID узла для нового контекста
            new_scope: Область видимости копии
            exclude_properties: Свойства, которые не копируются
            transform_properties: Функции преобразования по имени свойства
            parent_context_id: Родитель копии (если копия должна быть дочерней)

        Raises:
            NotFoundError: Исходный контекст не найден
            ValidationError: Преобразование свойства завершилось ошибкой
        """
        source = self._require(source_context_id)
        cloned = copy.deepcopy(source.data)

        for prop in exclude_properties or ():
            cloned.pop(prop, None)

        for prop, transform in (transform_properties or {}).items():
            if prop not in cloned:
                continue
            try:
                cloned[prop] = transform(cloned[prop])
            except Exception as e:
                raise ValidationError(
                    f"Transformation failed for property {prop}: {e}",
                    details={"context_id": source_context_id, "property": prop},
                ) from e

        return self.build_context(target_node_id, cloned, new_scope, parent_context_id)

    def merge_context_scopes(
        self,
        source_context_ids: Sequence[str],
        target_node_id: str,
        scope: ContextScope,
        conflict_resolution: str = LAST_WINS,
        preserve_source_metadata: bool = False
    ) -> HierarchicalContext:
        """
        Объединить несколько контекстов в новый контекст узла.

        Args:
            conflict_resolution: first-wins или last-wins (по свойствам верхнего уровня)
            preserve_source_metadata: Добавить _source_contexts и _merge_timestamp

        Raises:
            ValidationError: Неизвестная стратегия или ни один источник не найден
        """
        if conflict_resolution not in (FIRST_WINS, LAST_WINS):
            raise ValidationError(f"Unknown conflict resolution: {conflict_resolution}")

        if not source_context_ids:
            return self.build_context(target_node_id, {}, scope)

        sources = [ctx for ctx in (self._store.get(cid) for cid in source_context_ids) if ctx]
        if not sources:
            raise ValidationError(
                "No valid source contexts found",
                details={"source_context_ids": list(source_context_ids)},
            )

        merged: Dict[str, Any] = {}
        for source in sources:
            for key, value in source.data.items():
                if conflict_resolution == FIRST_WINS and key in merged:
                    continue
                merged[key] = copy.deepcopy(value)

        if preserve_source_metadata:
            merged["_source_contexts"] = list(source_context_ids)
            merged["_merge_timestamp"] = datetime.now(timezone.utc).isoformat()

        return self.build_context(target_node_id, merged, scope)

    def clear_context(self, node_id: str) -> int:
        """
        Удалить контексты узла и всех его потомков.

        Returns:
            Число удаленных контекстов
        """
        pending = [ctx.id for ctx in self._store.for_node(node_id)]
        removed: Set[str] = set()

        while pending:
            context_id = pending.pop()
            if context_id in removed:
                continue
            removed.add(context_id)
            pending.extend(child.id for child in self._store.children_of(context_id))

        for context_id in removed:
            self._store.remove(context_id)

        if removed:
            logger.debug(f"Cleared {len(removed)} contexts for node {node_id}")
        return len(removed)

    # ==================== Чтение ====================

    def get_context(self, context_id: str) -> Optional[HierarchicalContext]:
        return self._store.get(context_id)

    def get_node_context(self, node_id: str) -> Optional[HierarchicalContext]:
        """Первый созданный контекст узла или None."""
        contexts = self._store.for_node(node_id)
        return contexts[0] if contexts else None

    def get_hierarchical_context(self, node_id: str) -> List[HierarchicalContext]:
        """
        Цепочка контекстов от узла до корня (самый глубокий первым).

        Raises:
            NotFoundError: У узла нет контекста
        """
        context = self.get_node_context(node_id)
        if context is None:
            raise NotFoundError("HierarchicalContext", node_id)
        return self._chain(context)

    def resolve_value(self, node_id: str, key: str, default: Any = None) -> Any:
        """Найти значение ключа, поднимаясь от узла к корню."""
        context = self.get_node_context(node_id)
        if context is None:
            return default
        for level in self._chain(context):
            effective = level.effective_data()
            if key in effective:
                return effective[key]
        return default

    def get_stats(self) -> Dict[str, Any]:
        """Сводка по дереву контекстов."""
        contexts = list(self._store)
        by_scope: Dict[str, int] = {scope.value: 0 for scope in ContextScope}
        for context in contexts:
            by_scope[context.scope.value] += 1
        return {
            "total_contexts": len(contexts),
            "root_contexts": sum(1 for ctx in contexts if ctx.is_root),
            "isolated_contexts": by_scope[ContextScope.ISOLATED.value],
            "by_scope": by_scope,
            "max_depth": max((len(self._chain(ctx)) for ctx in contexts), default=0),
        }

    # ==================== Доступ ====================

    def validate_context_access(
        self,
        owner_node_id: str,
        requester_node_id: str,
        level: AccessLevel = AccessLevel.READ,
        properties: Optional[Iterable[str]] = None
    ) -> ContextAccessDecision:
        """
        Решить, может ли requester обратиться к контексту owner.

        Args:
            owner_node_id: Узел-владелец контекста
            requester_node_id: Запрашивающий узел
            level: Запрошенный уровень доступа
            properties: Запрошенные свойства

        Returns:
            ContextAccessDecision с разрешенными и запрещенными свойствами
        """
        level = AccessLevel(level)
        requested = tuple(properties or ())
        owner = self.get_node_context(owner_node_id)

        if owner is None or not self._store.for_node(requester_node_id):
            return ContextAccessDecision.deny("Node not found in hierarchy", requested)

        if owner_node_id == requester_node_id:
            effective = level
            inheritance_allowed = True
        else:
            barrier = self._isolation_barrier(owner, requester_node_id)
            if barrier is not None:
                return ContextAccessDecision.deny(
                    f"Context of node {barrier.node_id} is isolated",
                    requested,
                )

            owner_ancestors = self._ancestor_nodes(owner_node_id)
            requester_ancestors = self._ancestor_nodes(requester_node_id)
            owner_parent = self._parent_node(owner_node_id)

            if requester_node_id in owner_ancestors:
                effective = level
                inheritance_allowed = True
            elif owner_node_id in requester_ancestors:
                effective = AccessLevel.READ
                inheritance_allowed = True
            elif owner_parent is not None and owner_parent == self._parent_node(requester_node_id):
                effective = AccessLevel.READ
                inheritance_allowed = False
            else:
                return ContextAccessDecision.deny("No hierarchical relationship between nodes", requested)

            if effective == AccessLevel.READ and not level.includes_read:
                return ContextAccessDecision.deny("Insufficient permissions: read-only access", requested)

        available = owner.effective_data()
        granted = tuple(prop for prop in requested if prop in available)
        denied = tuple(prop for prop in requested if prop not in available)

        return ContextAccessDecision(
            granted=True,
            level=effective,
            granted_properties=granted,
            denied_properties=denied,
            reasons={prop: "Property not found in context" for prop in denied},
            inheritance_allowed=inheritance_allowed,
        )

    # ==================== Внутренние ====================

    def _require(self, context_id: str) -> HierarchicalContext:
        context = self._store.get(context_id)
        if context is None:
            raise NotFoundError("HierarchicalContext", context_id)
        return context

    def _chain(self, context: HierarchicalContext) -> List[HierarchicalContext]:
        chain: List[HierarchicalContext] = []
        visited: Set[str] = set()
        current: Optional[HierarchicalContext] = context
        while current is not None and current.id not in visited:
            visited.add(current.id)
            chain.append(current)
            current = self._store.get(current.parent_context_id) if current.parent_context_id else None
        return chain

    def _ensure_not_ancestor(self, node_id: str, parent: HierarchicalContext) -> None:
        """Проверить, что node_id не встречается в цепочке parent."""
        path: List[str] = [node_id]
        visited: Set[str] = set()
        current: Optional[HierarchicalContext] = parent

        while current is not None:
            if current.id in visited:
                raise CircularReferenceDetected(
                    path,
                    message="Circular reference detected in context parent chain",
                )
            visited.add(current.id)
            path.append(current.node_id)
            if current.node_id == node_id:
                raise CircularReferenceDetected(
                    path,
                    message=f"Circular reference detected: node {node_id} cannot be its own ancestor",
                )
            current = self._store.get(current.parent_context_id) if current.parent_context_id else None

    def _ancestor_nodes(self, node_id: str) -> Set[str]:
        ancestors: Set[str] = set()
        for context in self._store.for_node(node_id):
            ancestors.update(level.node_id for level in self._chain(context)[1:])
        ancestors.discard(node_id)
        return ancestors

    def _parent_node(self, node_id: str) -> Optional[str]:
        context = self.get_node_context(node_id)
        if context is None or context.parent_context_id is None:
            return None
        parent = self._store.get(context.parent_context_id)
        return parent.node_id if parent else None

    def _isolation_barrier(
        self,
        owner: HierarchicalContext,
        requester_node_id: str
    ) -> Optional[HierarchicalContext]:
        """Ближайший isolated контекст цепочки owner, вне поддерева которого находится requester."""
        requester_ancestors = self._ancestor_nodes(requester_node_id)
        for level in self._chain(owner):
            if not level.is_isolated:
                continue
            inside = requester_node_id == level.node_id or level.node_id in requester_ancestors
            if not inside:
                return level
        return None
