"""
Value Object для результата проверки структуры workflow.
"""

from typing import Tuple

from ...shared.value_object import ValueObject


class WorkflowValidation(ValueObject):
    """
    Результат проверки модели перед публикацией или выполнением.

    Ошибки блокируют операцию, предупреждения носят рекомендательный характер.
    """

    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors
