"""
Use Cases управления запуском: статус, пауза, возобновление, остановка.
"""

from dataclasses import dataclass
from typing import Optional

from ...core.result import Result
from ..coordinators.execution_coordinator import ExecutionCoordinator
from .base_use_case import UseCase


@dataclass
class ExecutionControlRequest:
    """
    Запрос к активному запуску.

    Attributes:
        run_id: ID запуска
        user_id: Кто выполняет операцию
    """
    run_id: str
    user_id: Optional[str] = None


class _ExecutionControlUseCase(UseCase[ExecutionControlRequest, Result]):
    def __init__(self, coordinator: ExecutionCoordinator):
        self._coordinator = coordinator


class GetExecutionStatusUseCase(_ExecutionControlUseCase):
    """Получить ExecutionProgress запуска."""

    async def execute(self, request: ExecutionControlRequest) -> Result:
        return await self._coordinator.get_execution_status(request.run_id)


class PauseExecutionUseCase(_ExecutionControlUseCase):
    """
    Поставить запуск на паузу.

    Пауза вступает в силу на ближайшей границе узла; выполняемые
    узлы дорабатывают. Возможна только из состояния running.
    """

    async def execute(self, request: ExecutionControlRequest) -> Result:
        return await self._coordinator.pause_execution(request.run_id, request.user_id)


class ResumeExecutionUseCase(_ExecutionControlUseCase):
    """Продолжить запуск, стоящий на паузе."""

    async def execute(self, request: ExecutionControlRequest) -> Result:
        return await self._coordinator.resume_execution(request.run_id, request.user_id)


class StopExecutionUseCase(_ExecutionControlUseCase):
    """
    Остановить запуск.

    Выполненные шаги компенсируются, итоговое состояние cancelled.
    Вложенные запуски останавливаются вместе с родительским.
    """

    async def execute(self, request: ExecutionControlRequest) -> Result:
        return await self._coordinator.stop_execution(request.run_id, request.user_id)
