"""
Исполнитель действий по умолчанию.

Не выполняет внешних вызовов: возвращает описание действия и данные,
с которыми оно было вызвано. Используется для dry-run окружений и тестов;
реальные исполнители реализуют тот же интерфейс.
"""

import logging
from typing import Any, Dict

from ...domain.interfaces.action_executor import IActionExecutor
from ...domain.model_context.entities import ActionNode

logger = logging.getLogger("workflow-engine.infrastructure.echo_executor")


class EchoActionExecutor(IActionExecutor):
    """
    Возвращает выход вида {"action": name, "type": ..., "payload": ..., "inputs": ...}.

    Пример:
        >>> executor = EchoActionExecutor()
        >>> output = await executor.execute(action, {"customer_id": "c-1"})
        >>> output["action"]
        'Call API'
    """

    def __init__(self):
        self.executed: list = []
        self.compensated: list = []

    async def execute(self, action: ActionNode, context: Dict[str, Any]) -> Dict[str, Any]:
        self.executed.append(action.id)
        logger.debug(f"Echo executing action {action.id} ({action.action_type.value})")
        return {
            "action": action.name,
            "type": action.action_type.value,
            "payload": dict(action.payload),
            "inputs": dict(context.get("input_parameters", {})),
        }

    async def compensate(self, action: ActionNode, output: Dict[str, Any]) -> None:
        self.compensated.append(action.id)
        logger.debug(f"Echo compensating action {action.id}")
