"""
Use Case для запуска функциональной модели.
"""

import logging
from typing import Optional

from ...core.result import Result
from ..coordinators.execution_coordinator import ExecutionCoordinator
from ..coordinators.run_registry import ProgressCallback
from ..dto.execution_dto import ExecutionRequest
from .base_use_case import UseCase

logger = logging.getLogger("workflow-engine.use_cases.execute_workflow")


class ExecuteWorkflowUseCase(UseCase[ExecutionRequest, Result]):
    """
    Use Case для запуска модели.

    Делегирует ExecutionCoordinator. Возвращает Result с ExecutionReport,
    DryRunReport для dry_run или ошибкой, на которой запуск остановился.

    Пример:
        >>> use_case = ExecuteWorkflowUseCase(coordinator)
        >>> result = await use_case.execute(
        ...     ExecutionRequest(model_id="model-1", user_id="alice"),
        ...     progress_callback=print
        ... )
        >>> result.value.state
        'completed'
    """

    def __init__(self, coordinator: ExecutionCoordinator):
        self._coordinator = coordinator

    async def execute(
        self,
        request: ExecutionRequest,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Result:
        result = await self._coordinator.execute_workflow(request, progress_callback=progress_callback)
        if result.is_failure:
            logger.info(f"Execution of model {request.model_id} did not complete: {result.error.message}")
        return result
