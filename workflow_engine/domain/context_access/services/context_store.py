"""
Хранилище иерархических контекстов.

Принадлежит конкретному экземпляру сервиса (и координатору выполнения),
поэтому параллельные запуски не видят контексты друг друга.
"""

from itertools import count
from typing import Dict, Iterator, List, Optional

from ..entities import HierarchicalContext


class ContextStore:
    """
    Контексты по ID и индекс по ID узла.

    Порядок контекстов узла соответствует порядку создания.
    """

    def __init__(self):
        self._contexts: Dict[str, HierarchicalContext] = {}
        self._by_node: Dict[str, List[str]] = {}
        self._counter = count(1)

    def next_id(self, node_id: str) -> str:
        return f"ctx-{next(self._counter)}-{node_id[-8:]}"

    def add(self, context: HierarchicalContext) -> None:
        self._contexts[context.id] = context
        self._by_node.setdefault(context.node_id, []).append(context.id)

    def get(self, context_id: str) -> Optional[HierarchicalContext]:
        return self._contexts.get(context_id)

    def for_node(self, node_id: str) -> List[HierarchicalContext]:
        return [self._contexts[cid] for cid in self._by_node.get(node_id, [])]

    def children_of(self, context_id: str) -> List[HierarchicalContext]:
        return [ctx for ctx in self._contexts.values() if ctx.parent_context_id == context_id]

    def remove(self, context_id: str) -> None:
        context = self._contexts.pop(context_id, None)
        if context is None:
            return
        ids = self._by_node.get(context.node_id, [])
        if context_id in ids:
            ids.remove(context_id)
        if not ids:
            self._by_node.pop(context.node_id, None)

    def clear(self) -> None:
        self._contexts.clear()
        self._by_node.clear()

    def __iter__(self) -> Iterator[HierarchicalContext]:
        return iter(list(self._contexts.values()))

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, context_id: object) -> bool:
        return context_id in self._contexts
