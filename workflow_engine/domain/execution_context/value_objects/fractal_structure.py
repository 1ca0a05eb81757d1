"""
Value Object для статического анализа вложенности моделей.
"""

from typing import Tuple

from ...shared.value_object import ValueObject


class FractalStructure(ValueObject):
    """
    Результат analyze_fractal_structure.

    Атрибуты:
        model_id: Корневая модель
        max_depth: Наибольшая глубина вложенности (0 без вложенных моделей)
        nested_model_ids: Все достижимые вложенные модели
        missing_model_ids: Ссылки на отсутствующие модели
        cycle: Цепочка цикла вложенности, если он есть
        exceeds_max_depth: Глубина превышает допустимую
    """

    model_id: str
    max_depth: int = 0
    nested_model_ids: Tuple[str, ...] = ()
    missing_model_ids: Tuple[str, ...] = ()
    cycle: Tuple[str, ...] = ()
    exceeds_max_depth: bool = False

    @property
    def has_cycle(self) -> bool:
        return bool(self.cycle)

    @property
    def is_valid(self) -> bool:
        return not self.cycle and not self.exceeds_max_depth and not self.missing_model_ids
