"""
Интерфейс исполнителя действий.

Domain слой зависит только от интерфейса; реализация (внешний вызов,
поиск в базе знаний) находится в Infrastructure слое.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..model_context.entities import ActionNode


class IActionExecutor(ABC):
    """
    Интерфейс для выполнения листовых действий (tether, kb).

    Контракт:
    - execute возвращает выход действия
    - временный сбой сигнализируется TransientFailure
    - любая другая ошибка WorkflowEngineError не повторяется
    - остальные исключения считаются временными сбоями

    Пример использования:
        >>> executor: IActionExecutor = EchoActionExecutor()
        >>> output = await executor.execute(action, {"customer_id": "c-1"})
    """

    @abstractmethod
    async def execute(self, action: ActionNode, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Выполнить действие.

        Args:
            action: Действие
            context: Данные контекста узла и результат предыдущего действия

        Returns:
            Выход действия
        """
        pass

    async def compensate(self, action: ActionNode, output: Dict[str, Any]) -> None:
        """
        Отменить эффекты успешно выполненного действия.

        По умолчанию действие не имеет внешних эффектов.
        """
        return None
