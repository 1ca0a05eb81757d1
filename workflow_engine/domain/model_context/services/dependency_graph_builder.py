"""
Domain Service для построения графа зависимостей узлов.

Строит ExecutionGraph: топологический порядок, уровни выполнения,
критический путь и возможности параллелизма. Обнаруживает циклы.
Сервис чистый: не выполняет I/O, одинаковый набор узлов всегда
дает одинаковый граф.
"""

import logging
from collections import deque
from math import comb
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Set, Tuple

from ....core.errors import CircularReferenceDetected, ValidationError
from ..value_objects import ExecutionGraph, WorkflowValidation

logger = logging.getLogger("workflow-engine.model_context.dependency_graph_builder")

# Пороги предупреждений validate_acyclicity
DEEP_CHAIN_LEVELS = 15
MANY_LINKS = 10


class GraphNode(Protocol):
    """Минимальный контракт узла для построения графа."""

    id: str
    dependencies: Set[str]


class DependencyGraphBuilder:
    """
    Построитель графа зависимостей.

    Ответственности:
    - Проверка, что все зависимости ссылаются на существующие узлы
    - Обнаружение циклов (DFS с множеством "посещаемых" узлов)
    - Топологическая сортировка (алгоритм Кана)
    - Группировка по уровням выполнения
    - Поиск критического пути

    Пример:
        >>> builder = DependencyGraphBuilder()
        >>> graph = builder.build(model.nodes.values())
        >>> graph.order
        ('input', 'stage', 'output')
    """

    def build(self, nodes: Iterable[GraphNode]) -> ExecutionGraph:
        """
        Построить граф выполнения.

        Args:
            nodes: Узлы модели

        Returns:
            ExecutionGraph

        Raises:
            ValidationError: Если зависимость ссылается на неизвестный узел
            CircularReferenceDetected: Если в графе есть цикл
        """
        node_list = list(nodes)
        self._ensure_known_dependencies(node_list)

        cycle = self.find_cycle(node_list)
        if cycle:
            logger.warning(f"Dependency cycle detected: {' → '.join(cycle)}")
            raise CircularReferenceDetected(cycle)

        order = self.topological_order(node_list)
        levels = self.execution_levels(node_list)
        critical_path = self.critical_path(node_list)
        parallel_opportunities = self.count_parallel_opportunities(node_list, levels)

        graph = ExecutionGraph(
            order=tuple(order),
            levels=tuple(tuple(level) for level in levels),
            critical_path=tuple(critical_path),
            parallel_opportunities=parallel_opportunities,
            dependencies={
                node.id: tuple(sorted(node.dependencies)) for node in node_list
            },
        )

        logger.debug(
            f"Built execution graph: {graph.node_count} nodes, "
            f"{len(levels)} levels, critical path {graph.critical_path_length}"
        )
        return graph

    def detect_cycles(self, nodes: Sequence[GraphNode]) -> List[List[str]]:
        """
        Найти все циклы, достижимые обходом в глубину.

        Каждый цикл возвращается как цепочка ID, замкнутая на первый узел:
        ["a", "b", "a"]. Обход итеративный, глубина цепочки не ограничена
        стеком вызовов.
        """
        dependents = self._dependents_map(nodes)
        visited: Set[str] = set()
        visiting: Set[str] = set()
        path: List[str] = []
        cycles: List[List[str]] = []

        for node in nodes:
            if node.id in visited:
                continue
            visited.add(node.id)
            visiting.add(node.id)
            path.append(node.id)
            stack: List[Tuple[str, Iterator[str]]] = [(node.id, iter(dependents.get(node.id, [])))]

            while stack:
                node_id, pending = stack[-1]
                dependent = next(pending, None)
                if dependent is None:
                    stack.pop()
                    path.pop()
                    visiting.discard(node_id)
                elif dependent in visiting:
                    start = path.index(dependent)
                    cycles.append(path[start:] + [dependent])
                elif dependent not in visited:
                    visited.add(dependent)
                    visiting.add(dependent)
                    path.append(dependent)
                    stack.append((dependent, iter(dependents.get(dependent, []))))

        return cycles

    def find_cycle(self, nodes: Sequence[GraphNode]) -> Optional[List[str]]:
        """Первый найденный цикл или None."""
        cycles = self.detect_cycles(nodes)
        return cycles[0] if cycles else None

    def topological_order(self, nodes: Sequence[GraphNode]) -> List[str]:
        """
        Топологическая сортировка (Кан).

        При равенстве сохраняется порядок входной последовательности.

        Raises:
            CircularReferenceDetected: Если отсортировать все узлы невозможно
        """
        dependents = self._dependents_map(nodes)
        known = {node.id for node in nodes}
        in_degree = {
            node.id: len([dep for dep in node.dependencies if dep in known])
            for node in nodes
        }
        queue = deque(node.id for node in nodes if in_degree[node.id] == 0)
        order: List[str] = []

        while queue:
            current = queue.popleft()
            order.append(current)
            for dependent in dependents.get(current, []):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(order) != len(nodes):
            cycle = self.find_cycle(nodes) or [nid for nid in in_degree if nid not in order]
            raise CircularReferenceDetected(cycle)

        return order

    def execution_levels(self, nodes: Sequence[GraphNode]) -> List[List[str]]:
        """
        Сгруппировать узлы по уровням.

        Уровень узла без зависимостей равен 0, иначе максимальному
        уровню зависимостей плюс один. Внутри уровня узлы упорядочены
        по приоритету (выше раньше), затем топологически.
        """
        order = self.topological_order(nodes)
        by_id = {node.id: node for node in nodes}
        level_of: Dict[str, int] = {}

        for node_id in order:
            deps = [dep for dep in by_id[node_id].dependencies if dep in by_id]
            level_of[node_id] = max((level_of[dep] + 1 for dep in deps), default=0)

        levels: List[List[str]] = [[] for _ in range(max(level_of.values(), default=-1) + 1)]
        for node_id in order:
            levels[level_of[node_id]].append(node_id)

        for level in levels:
            level.sort(key=lambda nid: -self._priority(by_id[nid]))

        return levels

    def critical_path(self, nodes: Sequence[GraphNode]) -> List[str]:
        """
        Самая длинная цепочка зависимостей (по числу узлов).

        При равной длине выбирается цепочка, заканчивающаяся раньше
        в топологическом порядке.
        """
        order = self.topological_order(nodes)
        by_id = {node.id: node for node in nodes}
        length: Dict[str, int] = {}
        previous: Dict[str, Optional[str]] = {}

        for node_id in order:
            best_dep: Optional[str] = None
            for dep in sorted(by_id[node_id].dependencies):
                if dep in length and (best_dep is None or length[dep] > length[best_dep]):
                    best_dep = dep
            length[node_id] = length[best_dep] + 1 if best_dep else 1
            previous[node_id] = best_dep

        if not length:
            return []

        tail = max(order, key=lambda nid: length[nid])
        path: List[str] = []
        cursor: Optional[str] = tail
        while cursor is not None:
            path.append(cursor)
            cursor = previous[cursor]
        path.reverse()
        return path

    def count_parallel_opportunities(
        self,
        nodes: Sequence[GraphNode],
        levels: Sequence[Sequence[str]]
    ) -> int:
        """
        Число пар узлов одного уровня без транзитивной зависимости.

        Узлы одного уровня обычно независимы, но проверка выполняется
        явно по множествам предков.
        """
        by_id = {node.id: node for node in nodes}
        ancestors: Dict[str, Set[str]] = {}

        for node_id in self.topological_order(nodes):
            collected: Set[str] = set()
            for dep in by_id[node_id].dependencies:
                if dep in by_id:
                    collected.add(dep)
                    collected |= ancestors.get(dep, set())
            ancestors[node_id] = collected

        total = 0
        for level in levels:
            if len(level) < 2:
                continue
            related = sum(
                1
                for i, a in enumerate(level)
                for b in level[i + 1:]
                if a in ancestors.get(b, set()) or b in ancestors.get(a, set())
            )
            total += comb(len(level), 2) - related
        return total

    def validate_acyclicity(self, nodes: Iterable[GraphNode]) -> WorkflowValidation:
        """
        Проверить граф без исключений.

        Returns:
            WorkflowValidation с ошибками (циклы, неизвестные зависимости)
            и предупреждениями (глубокие цепочки, узлы с большим числом связей)
        """
        node_list = list(nodes)
        errors: List[str] = []
        warnings: List[str] = []

        unknown = self._unknown_dependencies(node_list)
        for node_id, missing in unknown.items():
            errors.append(f"Node '{node_id}' depends on unknown nodes: {', '.join(missing)}")
        if unknown:
            return WorkflowValidation(errors=tuple(errors))

        for cycle in self.detect_cycles(node_list):
            errors.append(f"Circular dependency detected: {' → '.join(cycle)}")
        if errors:
            return WorkflowValidation(errors=tuple(errors))

        levels = self.execution_levels(node_list)
        if len(levels) > DEEP_CHAIN_LEVELS:
            warnings.append(
                f"Deep dependency chain detected ({len(levels)} levels), "
                f"consider restructuring"
            )

        dependents = self._dependents_map(node_list)
        for node in node_list:
            if len(node.dependencies) > MANY_LINKS:
                warnings.append(
                    f"Node '{node.id}' has many dependencies ({len(node.dependencies)})"
                )
            if len(dependents.get(node.id, [])) > MANY_LINKS:
                warnings.append(
                    f"Node '{node.id}' is depended upon by many nodes "
                    f"({len(dependents[node.id])})"
                )

        return WorkflowValidation(warnings=tuple(warnings))

    def _ensure_known_dependencies(self, nodes: Sequence[GraphNode]) -> None:
        unknown = self._unknown_dependencies(nodes)
        if unknown:
            raise ValidationError(
                "Dependencies reference unknown nodes",
                errors=[
                    f"Node '{node_id}' depends on unknown nodes: {', '.join(missing)}"
                    for node_id, missing in unknown.items()
                ],
            )

    @staticmethod
    def _unknown_dependencies(nodes: Sequence[GraphNode]) -> Dict[str, List[str]]:
        known = {node.id for node in nodes}
        unknown: Dict[str, List[str]] = {}
        for node in nodes:
            missing = sorted(dep for dep in node.dependencies if dep not in known)
            if missing:
                unknown[node.id] = missing
        return unknown

    @staticmethod
    def _dependents_map(nodes: Sequence[GraphNode]) -> Dict[str, List[str]]:
        """Обратные ребра: узел → узлы, которые от него зависят (в порядке входа)."""
        dependents: Dict[str, List[str]] = {node.id: [] for node in nodes}
        for node in nodes:
            for dep in sorted(node.dependencies):
                if dep in dependents:
                    dependents[dep].append(node.id)
        return dependents

    @staticmethod
    def _priority(node: GraphNode) -> int:
        return int(getattr(node, "priority", 5))
