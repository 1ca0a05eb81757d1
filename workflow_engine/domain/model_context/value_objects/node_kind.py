"""
Перечисления видов узлов и действий.
"""

from enum import Enum


class ContainerType(str, Enum):
    """Вид контейнерного узла."""
    STAGE = "stage"   # Этап обработки
    IO = "io"         # Граница модели (вход/выход)


class BoundaryType(str, Enum):
    """Тип границы для IO узла."""
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input-output"

    @property
    def is_input(self) -> bool:
        return self in (BoundaryType.INPUT, BoundaryType.INPUT_OUTPUT)

    @property
    def is_output(self) -> bool:
        return self in (BoundaryType.OUTPUT, BoundaryType.INPUT_OUTPUT)


class ActionType(str, Enum):
    """Вид действия."""
    TETHER = "tether"                                    # Внешний вызов
    KB = "kb"                                            # Обращение к базе знаний
    FUNCTION_MODEL_CONTAINER = "function_model_container"  # Вложенная модель


class ActionExecutionMode(str, Enum):
    """Режим выполнения действия внутри контейнера."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
