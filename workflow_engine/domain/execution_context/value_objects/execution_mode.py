"""
Value Objects для режима и окружения запуска.
"""

from enum import Enum


class ExecutionMode(str, Enum):
    """
    Режим выполнения узлов.

    - sequential: по одному узлу в топологическом порядке
    - parallel: узлы одного уровня одновременно
    - adaptive: параллельно только уровни из нескольких узлов
    """
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    ADAPTIVE = "adaptive"

    def runs_concurrently(self, level_size: int) -> bool:
        if self == ExecutionMode.SEQUENTIAL:
            return False
        if self == ExecutionMode.ADAPTIVE:
            return level_size > 1
        return True


class Environment(str, Enum):
    """Целевое окружение запуска."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
