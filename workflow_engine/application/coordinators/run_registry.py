"""
RunRegistry - хранилище запусков, принадлежащее координатору.

Каждый координатор владеет своим реестром, поэтому несколько
координаторов и параллельные запуски не пересекаются.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...domain.context_access.services import HierarchicalContextService
from ...domain.execution_context.entities import ExecutionRun
from ...domain.execution_context.services import (
    ActionOrchestrator,
    CompensationStack,
    FractalOrchestrator,
    NodeExecutionService,
    RecoveryPolicy,
)
from ...domain.execution_context.value_objects import ActionExecutionPlan
from ...domain.model_context.entities import FunctionModel
from ...domain.model_context.value_objects import ExecutionGraph
from ..dto.execution_dto import ExecutionRequest

logger = logging.getLogger("workflow-engine.application.run_registry")

ProgressCallback = Callable[[Any], Any]


def _resumed_event() -> asyncio.Event:
    event = asyncio.Event()
    event.set()
    return event


@dataclass
class RunHandle:
    """
    Все, что нужно для продвижения одного запуска.

    Атрибуты:
        run: Сущность запуска
        model: Снимок модели на момент старта
        request: Исходный запрос
        context_service: Сервис контекстов этого запуска (свое хранилище)
        policy: Политика восстановления
        compensations: Стек компенсаций
        action_orchestrator: Оркестратор действий
        fractal_orchestrator: Оркестратор вложенных моделей
        node_service: Выполнение узлов
        visited: Цепочка моделей от корневого запуска
        progress_callback: Callback прогресса
        resume_event: Установлен, пока запуск не на паузе
        compensation_lock: Сериализует раскрутку компенсаций и stop
        graph: Граф выполнения после dependency-analysis
        action_plans: Планы действий после orchestration
        final_outputs: Выходы выходных узлов после completion
        cancelled: Запрошена остановка
        children: ID вложенных запусков
    """

    run: ExecutionRun
    model: FunctionModel
    request: ExecutionRequest
    context_service: HierarchicalContextService
    policy: RecoveryPolicy
    compensations: CompensationStack
    action_orchestrator: ActionOrchestrator
    fractal_orchestrator: FractalOrchestrator
    node_service: NodeExecutionService
    visited: Tuple[str, ...] = ()
    progress_callback: Optional[ProgressCallback] = None
    resume_event: asyncio.Event = field(default_factory=_resumed_event)
    compensation_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    graph: Optional[ExecutionGraph] = None
    action_plans: Dict[str, ActionExecutionPlan] = field(default_factory=dict)
    final_outputs: Dict[str, Any] = field(default_factory=dict)
    cancelled: bool = False
    children: List[str] = field(default_factory=list)

    @property
    def run_id(self) -> str:
        return self.run.id


class RunRegistry:
    """
    Реестр запусков координатора.

    Пример:
        >>> registry = RunRegistry()
        >>> registry.add(handle)
        >>> registry.get(handle.run_id) is handle
        True
    """

    def __init__(self):
        self._runs: Dict[str, RunHandle] = {}

    def add(self, handle: RunHandle) -> None:
        self._runs[handle.run_id] = handle
        logger.debug(f"Registered run {handle.run_id} for model {handle.run.model_id}")

    def get(self, run_id: str) -> Optional[RunHandle]:
        return self._runs.get(run_id)

    def remove(self, run_id: str) -> bool:
        return self._runs.pop(run_id, None) is not None

    def active(self) -> List[RunHandle]:
        """Запуски в нетерминальных состояниях."""
        return [handle for handle in self._runs.values() if not handle.run.is_terminal]

    def purge_finished(self) -> int:
        """Удалить завершенные запуски, вернуть их число."""
        finished = [run_id for run_id, handle in self._runs.items() if handle.run.is_terminal]
        for run_id in finished:
            del self._runs[run_id]
        return len(finished)

    def __len__(self) -> int:
        return len(self._runs)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._runs
