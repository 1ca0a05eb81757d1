"""
ActionOrchestrator - Domain Service для выполнения действий одного контейнера.

Responsibilities:
- Упорядочивание действий по execution_order и priority
- Разбиение на последовательные и параллельные группы
- Выполнение с политикой повторов каждого действия
- Делегирование вложенных моделей FractalOrchestrator
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ....core.errors import TransientFailure, ValidationError, WorkflowEngineError
from ...interfaces.action_executor import IActionExecutor
from ...model_context.entities import ActionNode
from ...model_context.value_objects import ActionExecutionMode, ActionType
from ..value_objects import (
    ActionBatch,
    ActionExecutionPlan,
    ActionOrchestrationResult,
    ActionResult,
)

if TYPE_CHECKING:
    from .fractal_orchestrator import FractalOrchestrator

logger = logging.getLogger("workflow-engine.execution_context.action_orchestrator")

DEFAULT_ACTION_DURATION_S = 1.0


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, WorkflowEngineError) and error.is_retryable


class ActionOrchestrator:
    """
    Domain Service для выполнения действий внутри контейнерного узла.

    Действия сортируются по (execution_order, -priority). Подряд идущие
    параллельные действия образуют одну группу и стартуют одновременно,
    дожидаясь только своих зависимостей; каждое последовательное действие
    образует отдельную группу. Первая неудача останавливает контейнер,
    оставшиеся действия помечаются пропущенными.

    Attributes:
        executor: Исполнитель листовых действий
        fractal_orchestrator: Исполнитель вложенных моделей

    Example:
        >>> orchestrator = ActionOrchestrator(executor)
        >>> result = await orchestrator.orchestrate("stage-1", actions, {"order_id": 7})
        >>> result.executed_actions
        2
    """

    def __init__(
        self,
        executor: IActionExecutor,
        fractal_orchestrator: Optional["FractalOrchestrator"] = None
    ):
        self.executor = executor
        self.fractal_orchestrator = fractal_orchestrator
        self._stats = {
            "containers_orchestrated": 0,
            "actions_executed": 0,
            "actions_failed": 0,
            "actions_skipped": 0,
            "action_retries": 0,
        }

    # ==================== Планирование ====================

    @staticmethod
    def optimize_action_order(actions: Iterable[ActionNode]) -> List[ActionNode]:
        """Порядок выполнения: execution_order, затем более высокий priority."""
        return sorted(actions, key=lambda action: (action.execution_order, -action.priority))

    def split_into_batches(self, actions: Iterable[ActionNode]) -> List[Tuple[ActionExecutionMode, List[ActionNode]]]:
        batches: List[Tuple[ActionExecutionMode, List[ActionNode]]] = []
        for action in self.optimize_action_order(actions):
            if action.is_parallel and batches and batches[-1][0] == ActionExecutionMode.PARALLEL:
                batches[-1][1].append(action)
            else:
                batches.append((action.execution_mode, [action]))
        return batches

    def create_execution_plan(self, container_id: str, actions: Iterable[ActionNode]) -> ActionExecutionPlan:
        """
        Построить план выполнения без запуска действий.

        Параллельная группа оценивается по самому долгому действию,
        последовательная по сумме.
        """
        batches = []
        estimate = 0.0
        for mode, group in self.split_into_batches(actions):
            durations = [
                action.estimated_duration_s if action.estimated_duration_s is not None
                else DEFAULT_ACTION_DURATION_S
                for action in group
            ]
            estimate += max(durations) if mode == ActionExecutionMode.PARALLEL else sum(durations)
            batches.append(ActionBatch(mode=mode, action_ids=tuple(action.id for action in group)))
        return ActionExecutionPlan(
            container_id=container_id,
            batches=tuple(batches),
            estimated_duration_s=estimate,
        )

    # ==================== Выполнение ====================

    async def orchestrate(
        self,
        container_id: str,
        actions: Sequence[ActionNode],
        context: Dict[str, Any],
        visited: Tuple[str, ...] = (),
        context_id: Optional[str] = None,
        depth: int = 0
    ) -> ActionOrchestrationResult:
        """
        Выполнить действия контейнера.

        Args:
            container_id: ID контейнерного узла
            actions: Действия контейнера
            context: Данные контекста узла
            visited: ID моделей в текущей цепочке вложенности
            context_id: ID контекста узла (родитель для вложенных моделей)
            depth: Текущий уровень вложенности

        Returns:
            ActionOrchestrationResult с результатом каждого действия
        """
        start = time.monotonic()
        results: Dict[str, ActionResult] = {}
        ordered: List[str] = []
        shared_context = dict(context)
        stopped = False

        logger.debug(f"Orchestrating {len(actions)} actions in container {container_id}")

        for mode, group in self.split_into_batches(actions):
            ordered.extend(action.id for action in group)
            if stopped:
                for action in group:
                    results[action.id] = ActionResult.skip(action.id)
                continue

            if mode == ActionExecutionMode.PARALLEL and len(group) > 1:
                batch_results = await self._run_parallel(group, shared_context, results, visited, context_id, depth)
                shared_context["previous_result"] = {
                    result.action_id: result.output for result in batch_results if result.success
                }
            else:
                action = group[0]
                if self._unmet_dependencies(action, results):
                    result = ActionResult.skip(action.id)
                else:
                    result = await self._execute_action(action, shared_context, visited, context_id, depth)
                batch_results = [result]
                if result.success:
                    shared_context["previous_result"] = result.output

            for result in batch_results:
                results[result.action_id] = result
            if any(not result.success for result in batch_results):
                stopped = True

        outcome = ActionOrchestrationResult(
            container_id=container_id,
            results=tuple(results[action_id] for action_id in ordered),
            duration_ms=(time.monotonic() - start) * 1000,
        )
        self._record(outcome)

        if outcome.success:
            logger.debug(f"Container {container_id}: {outcome.executed_actions} actions executed")
        else:
            logger.warning(
                f"Container {container_id}: {outcome.failed_actions} failed, "
                f"{outcome.skipped_actions} skipped of {outcome.total_actions}"
            )
        return outcome

    async def _run_parallel(
        self,
        group: List[ActionNode],
        context: Dict[str, Any],
        finished: Dict[str, ActionResult],
        visited: Tuple[str, ...],
        context_id: Optional[str],
        depth: int
    ) -> List[ActionResult]:
        done = {action.id: asyncio.Event() for action in group}
        batch: Dict[str, ActionResult] = {}

        async def run(action: ActionNode) -> None:
            result = ActionResult.skip(action.id)
            try:
                for dependency in action.dependencies:
                    if dependency in done:
                        await done[dependency].wait()
                if not self._unmet_dependencies(action, {**finished, **batch}):
                    result = await self._execute_action(action, dict(context), visited, context_id, depth)
            finally:
                batch[action.id] = result
                done[action.id].set()

        await asyncio.gather(*(run(action) for action in group))
        return [batch[action.id] for action in group]

    @staticmethod
    def _unmet_dependencies(action: ActionNode, finished: Dict[str, ActionResult]) -> List[str]:
        return [
            dependency for dependency in action.dependencies
            if dependency not in finished or not finished[dependency].success
        ]

    async def _execute_action(
        self,
        action: ActionNode,
        context: Dict[str, Any],
        visited: Tuple[str, ...],
        context_id: Optional[str],
        depth: int
    ) -> ActionResult:
        """Выполнить одно действие с его политикой повторов."""
        policy = action.retry_policy
        start = time.monotonic()
        attempts = 0

        def wait(retry_state: RetryCallState) -> float:
            return policy.delay_ms(retry_state.attempt_number) / 1000

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(policy.max_attempts),
                wait=wait,
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        self._stats["action_retries"] += 1
                        logger.info(f"Retrying action {action.id} (attempt {attempts}/{policy.max_attempts})")
                    output = await self._invoke(action, context, visited, context_id, depth)
        except WorkflowEngineError as e:
            logger.warning(f"Action {action.id} failed after {attempts} attempts: {e.message}")
            return ActionResult(
                action_id=action.id,
                success=False,
                error=e,
                attempts=attempts,
                duration_ms=(time.monotonic() - start) * 1000,
            )

        return ActionResult(
            action_id=action.id,
            success=True,
            output=output,
            attempts=attempts,
            duration_ms=(time.monotonic() - start) * 1000,
        )

    async def _invoke(
        self,
        action: ActionNode,
        context: Dict[str, Any],
        visited: Tuple[str, ...],
        context_id: Optional[str],
        depth: int
    ) -> Dict[str, Any]:
        nested = action.action_type == ActionType.FUNCTION_MODEL_CONTAINER
        if nested and self.fractal_orchestrator is None:
            raise ValidationError(
                "Nested model execution is not configured",
                details={"action_id": action.id},
            )

        try:
            if nested:
                output = await self.fractal_orchestrator.execute_nested(action, context_id, visited, depth)
            else:
                output = await self.executor.execute(action, context)
        except WorkflowEngineError:
            raise
        except Exception as e:
            raise TransientFailure(
                f"Action {action.name} failed: {e}",
                details={"action_id": action.id, "exception_type": type(e).__name__},
            ) from e
        return dict(output or {})

    # ==================== Статистика ====================

    def _record(self, outcome: ActionOrchestrationResult) -> None:
        self._stats["containers_orchestrated"] += 1
        self._stats["actions_executed"] += outcome.executed_actions
        self._stats["actions_failed"] += outcome.failed_actions
        self._stats["actions_skipped"] += outcome.skipped_actions

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        if self.fractal_orchestrator is not None:
            stats["fractal_levels"] = self.fractal_orchestrator.fractal_levels
        return stats
