"""
Value Object для графа выполнения.

Строится DependencyGraphBuilder из текущих узлов модели перед каждой
попыткой выполнения. Никогда не изменяется, только строится заново.
"""

from typing import Any, Dict, Tuple

from ...shared.value_object import ValueObject


class ExecutionGraph(ValueObject):
    """
    Производный граф выполнения.

    Атрибуты:
        order: Топологический порядок ID узлов
        levels: Уровни выполнения; узлы одного уровня независимы
        critical_path: Самая длинная цепочка зависимостей
        parallel_opportunities: Число пар независимых узлов на одном уровне
        dependencies: Прямые зависимости каждого узла

    Example:
        >>> graph.critical_path_length
        3
        >>> graph.parallel_counts
        (1, 2, 1)
    """

    order: Tuple[str, ...] = ()
    levels: Tuple[Tuple[str, ...], ...] = ()
    critical_path: Tuple[str, ...] = ()
    parallel_opportunities: int = 0
    dependencies: Dict[str, Tuple[str, ...]] = {}

    @property
    def node_count(self) -> int:
        return len(self.order)

    @property
    def critical_path_length(self) -> int:
        """Длина критического пути (число узлов, включительно)."""
        return len(self.critical_path)

    @property
    def parallel_counts(self) -> Tuple[int, ...]:
        """Число узлов, которые могут выполняться параллельно, на каждом уровне."""
        return tuple(len(level) for level in self.levels)

    @property
    def max_parallelism(self) -> int:
        return max(self.parallel_counts, default=0)

    def dependencies_of(self, node_id: str) -> Tuple[str, ...]:
        return self.dependencies.get(node_id, ())

    def level_of(self, node_id: str) -> int:
        """
        Уровень узла.

        Raises:
            KeyError: Если узла нет в графе
        """
        for index, level in enumerate(self.levels):
            if node_id in level:
                return index
        raise KeyError(node_id)

    def to_stats(self) -> Dict[str, Any]:
        """Сводка для мониторинга."""
        return {
            "dependency_graph_built": True,
            "node_count": self.node_count,
            "level_count": len(self.levels),
            "critical_path_length": self.critical_path_length,
            "parallel_opportunities": self.parallel_opportunities,
            "max_parallelism": self.max_parallelism,
        }
