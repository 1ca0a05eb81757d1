"""
ExecutionCoordinator - Application-level coordinator для запусков моделей.

Проводит запуск через фазы dependency-analysis → context-setup →
orchestration → node-execution → completion, управляет повторами,
компенсациями, паузой и остановкой. Реестр запусков и деревья
контекстов принадлежат экземпляру координатора.
"""

import asyncio
import inspect
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from tenacity import RetryCallState

from ...core.config import EngineConfig
from ...core.errors import (
    ApplicationError,
    CircularReferenceDetected,
    ConflictError,
    EventBusError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
    WorkflowEngineError,
)
from ...core.result import Result
from ...domain.context_access.services import HierarchicalContextService
from ...domain.context_access.value_objects import ContextScope
from ...domain.execution_context.entities import ExecutionRun
from ...domain.execution_context.events import (
    ExecutionCancelled,
    ExecutionCompleted,
    ExecutionFailed,
    ExecutionPaused,
    ExecutionResumed,
    ExecutionStarted,
    NodeExecutionCompleted,
    NodeExecutionFailed,
    NodeExecutionStarted,
    PhaseCompleted,
    PhaseStarted,
)
from ...domain.execution_context.services import (
    ActionOrchestrator,
    CompensationStack,
    FractalOrchestrator,
    NodeExecutionService,
    RecoveryPolicy,
)
from ...domain.execution_context.value_objects import (
    ExecutionPhase,
    ExecutionState,
    NodeExecutionResult,
)
from ...domain.interfaces.action_executor import IActionExecutor
from ...domain.interfaces.event_publisher import IEventPublisher
from ...domain.model_context.entities import ActionNode, FunctionModel
from ...domain.model_context.repositories import ModelRepository
from ...domain.model_context.services import DependencyGraphBuilder
from ...domain.model_context.services.workflow_validation_service import WorkflowValidationService
from ...domain.model_context.value_objects import NodeStatus
from ...domain.shared.domain_event import DomainEvent
from ...infrastructure.resilience import CircuitBreaker, create_phase_retrying
from ..dto.execution_dto import DryRunReport, ExecutionProgress, ExecutionReport, ExecutionRequest
from .run_registry import ProgressCallback, RunHandle, RunRegistry

logger = logging.getLogger("workflow-engine.application.execution_coordinator")


class RunCancelled(Exception):
    """Запуск остановлен через stop_execution."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} was cancelled")


class ExecutionCoordinator:
    """
    Application-level coordinator для выполнения функциональных моделей.

    Responsibilities:
    - Проверка предусловий запуска (права, публикация, валидация)
    - Продвижение запуска по фазам с повторами и circuit breaker
    - Компенсация выполненных шагов при окончательном сбое
    - Пауза, возобновление и остановка запуска
    - Отчеты о прогрессе и доменные события

    Предусловия (не найдено, нет прав, удалена, не опубликована,
    не проходит валидацию) отклоняют запуск сразу, без повторов
    и без создания запуска.

    Attributes:
        repository: Репозиторий моделей
        executor: Исполнитель листовых действий
        event_publisher: Публикатор событий
        validation_service: Проверки перед выполнением
        graph_builder: Построитель графа зависимостей
        circuit_breaker: Защита фаз от каскадных сбоев
        max_parallel_nodes: Предел одновременно выполняемых узлов
        max_fractal_depth: Предел вложенности моделей

    Example:
        >>> coordinator = ExecutionCoordinator(repository, executor, publisher)
        >>> result = await coordinator.execute_workflow(
        ...     ExecutionRequest(model_id="model-1", user_id="alice")
        ... )
        >>> result.value.state
        'completed'
    """

    def __init__(
        self,
        repository: ModelRepository,
        executor: IActionExecutor,
        event_publisher: Optional[IEventPublisher] = None,
        validation_service: Optional[WorkflowValidationService] = None,
        graph_builder: Optional[DependencyGraphBuilder] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        max_parallel_nodes: int = EngineConfig.MAX_PARALLEL_NODES,
        max_fractal_depth: int = EngineConfig.MAX_FRACTAL_DEPTH
    ):
        self.repository = repository
        self.executor = executor
        self.event_publisher = event_publisher
        self.graph_builder = graph_builder or DependencyGraphBuilder()
        self.validation_service = validation_service or WorkflowValidationService(
            repository,
            graph_builder=self.graph_builder,
            max_depth=max_fractal_depth,
        )
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name="execution-phases",
            failure_threshold=EngineConfig.CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=EngineConfig.CIRCUIT_RECOVERY_TIMEOUT,
            expected_exception=InfrastructureError,
        )
        self.max_parallel_nodes = max(max_parallel_nodes, 1)
        self.max_fractal_depth = max_fractal_depth
        self._registry = RunRegistry()
        self._phase_handlers: Dict[ExecutionPhase, Callable[[RunHandle], Awaitable[None]]] = {
            ExecutionPhase.DEPENDENCY_ANALYSIS: self._analyze_dependencies,
            ExecutionPhase.CONTEXT_SETUP: self._setup_contexts,
            ExecutionPhase.ORCHESTRATION: self._prepare_orchestration,
            ExecutionPhase.NODE_EXECUTION: self._execute_nodes,
            ExecutionPhase.COMPLETION: self._complete,
        }

        logger.info(
            f"ExecutionCoordinator initialized with {type(executor).__name__} "
            f"(max_parallel_nodes={self.max_parallel_nodes}, max_fractal_depth={max_fractal_depth})"
        )

    # ==================== Запуск ====================

    async def execute_workflow(
        self,
        request: ExecutionRequest,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Result:
        """
        Запустить модель.

        Args:
            request: Параметры запуска
            progress_callback: Получает ExecutionProgress на каждой смене
                фазы и по завершении (функция или корутина)

        Returns:
            Result с ExecutionReport (или DryRunReport для dry_run);
            неуспешный Result содержит последнюю ошибку фазы
        """
        logger.info(
            f"Execution requested for model {request.model_id} by {request.user_id} "
            f"(mode={request.execution_mode.value}, dry_run={request.dry_run})"
        )

        try:
            model, warnings = await self._load_for_execution(request)
        except WorkflowEngineError as e:
            logger.warning(f"Execution of model {request.model_id} rejected: {e.message}")
            return Result.fail(e)

        if request.dry_run:
            return await self._dry_run(model, warnings)

        handle = self._create_handle(
            model,
            request,
            visited=(model.id,),
            progress_callback=progress_callback,
        )
        return await self._drive(handle)

    async def _load_for_execution(self, request: ExecutionRequest) -> Tuple[FunctionModel, List[str]]:
        model = await self.repository.find_by_id(request.model_id)
        if model is None:
            raise NotFoundError("FunctionModel", request.model_id)
        model.ensure_can_execute(request.user_id)
        if model.is_deleted:
            raise ValidationError("Cannot execute deleted model", details={"model_id": model.id})
        if not model.is_published:
            raise ValidationError(
                "Model must be published before execution",
                details={"model_id": model.id, "status": model.status.value},
            )

        report = await self.validation_service.validate_for_execution(
            model,
            environment=request.environment.value,
            input_parameters=request.input_parameters,
        )
        if not report.is_valid:
            raise ValidationError(
                "Model failed execution validation",
                errors=report.error_messages,
                details={"model_id": model.id},
            )
        return model, [issue.message for issue in report.warnings]

    async def _dry_run(self, model: FunctionModel, warnings: List[str]) -> Result:
        try:
            graph = self.graph_builder.build(model.nodes.values())
            planner = ActionOrchestrator(self.executor)
            plans = {
                node_id: planner.create_execution_plan(node_id, model.actions_of(node_id))
                for node_id in graph.order
                if model.actions_of(node_id)
            }
            fractal = FractalOrchestrator(
                self.repository,
                HierarchicalContextService(),
                max_depth=self.max_fractal_depth,
            )
            structure = await fractal.analyze_fractal_structure(model)
        except WorkflowEngineError as e:
            return Result.fail(e)

        logger.info(f"Dry run for model {model.id}: {graph.node_count} nodes, {len(graph.levels)} levels")
        return Result.ok(DryRunReport.from_graph(model.id, graph, plans, structure, warnings))

    def _create_handle(
        self,
        model: FunctionModel,
        request: ExecutionRequest,
        visited: Tuple[str, ...],
        depth: int = 0,
        parent_run_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> RunHandle:
        run = ExecutionRun.start_new(
            model_id=model.id,
            user_id=request.user_id,
            node_ids=list(model.nodes.keys()),
            mode=request.execution_mode,
            environment=request.environment,
            input_parameters=dict(request.input_parameters),
            parent_run_id=parent_run_id,
            depth=depth,
        )
        context_service = HierarchicalContextService()
        fractal = FractalOrchestrator(self.repository, context_service, max_depth=self.max_fractal_depth)
        actions = ActionOrchestrator(self.executor, fractal)
        handle = RunHandle(
            run=run,
            model=model,
            request=request,
            context_service=context_service,
            policy=RecoveryPolicy(request.recovery),
            compensations=CompensationStack(),
            action_orchestrator=actions,
            fractal_orchestrator=fractal,
            node_service=NodeExecutionService(actions, context_service),
            visited=visited,
            progress_callback=progress_callback,
        )
        fractal.runner = partial(self._run_nested, handle)
        self._registry.add(handle)
        return handle

    async def _drive(self, handle: RunHandle) -> Result:
        run = handle.run
        run.transition_to(ExecutionState.RUNNING)
        logger.info(f"Run {run.id} started for model {run.model_id} (depth={run.depth})")
        await self._publish(handle, ExecutionStarted(
            run.id,
            run.model_id,
            run.mode.value,
            run.environment.value,
            user_id=run.user_id,
        ))

        phase: Optional[ExecutionPhase] = None
        try:
            for phase in ExecutionPhase.ordered():
                await self._run_phase(handle, phase)
            await self._checkpoint(handle)
            run.transition_to(ExecutionState.COMPLETED)
        except RunCancelled:
            return await self._finish_cancelled(handle)
        except WorkflowEngineError as e:
            if handle.cancelled:
                return await self._finish_cancelled(handle)
            return await self._finish_failed(handle, phase, e)
        except Exception as e:
            logger.error(f"Unexpected error driving run {run.id}: {e}", exc_info=True)
            error = ApplicationError(
                f"Failed to coordinate execution: {e}",
                details={"exception_type": type(e).__name__},
                error_code="INTERNAL_ERROR",
            )
            return await self._finish_failed(handle, phase, error)

        logger.info(
            f"Run {run.id} completed: {len(run.completed_nodes)}/{run.total_nodes} nodes, "
            f"duration={run.elapsed_ms:.0f}ms"
        )
        await self._publish(handle, ExecutionCompleted(
            run.id,
            run.model_id,
            run.completed_nodes,
            run.elapsed_ms,
            user_id=run.user_id,
        ))
        await self._notify(handle)
        return Result.ok(self._report(handle))

    async def _run_nested(
        self,
        parent: RunHandle,
        model: FunctionModel,
        input_parameters: Dict[str, Any],
        visited: Tuple[str, ...],
        depth: int
    ) -> Dict[str, Any]:
        """Выполнить вложенную модель как дочерний запуск и вернуть ее выходы."""
        model.ensure_can_execute(parent.run.user_id)
        request = parent.request.model_copy(update={
            "model_id": model.id,
            "input_parameters": input_parameters,
            "dry_run": False,
        })
        child = self._create_handle(
            model,
            request,
            visited=visited,
            depth=depth,
            parent_run_id=parent.run_id,
        )
        parent.children.append(child.run_id)
        child.cancelled = parent.cancelled

        result = await self._drive(child)
        if result.is_failure:
            raise result.error
        return dict(child.final_outputs)

    # ==================== Фазы ====================

    async def _run_phase(self, handle: RunHandle, phase: ExecutionPhase) -> None:
        await self.circuit_breaker.call(self._attempt_with_retries, handle, phase)

        run = handle.run
        run.complete_phase(phase)
        logger.debug(f"Run {run.id}: phase {phase.value} completed (retries={run.retry_count(phase)})")
        await self._publish(handle, PhaseCompleted(run.id, run.model_id, phase.value, run.retry_count(phase)))
        await self._notify(handle)

    async def _attempt_with_retries(self, handle: RunHandle, phase: ExecutionPhase) -> None:
        policy = handle.policy
        retrying = create_phase_retrying(
            policy.max_attempts(phase),
            policy.retry_delay_seconds,
            before_sleep=partial(self._enter_recovery, handle, phase),
            retry_predicate=partial(policy.should_retry, phase),
        )
        async for attempt in retrying:
            with attempt:
                await self._attempt_phase(handle, phase)

    async def _attempt_phase(self, handle: RunHandle, phase: ExecutionPhase) -> None:
        run = handle.run
        await self._checkpoint(handle)
        if run.state == ExecutionState.RECOVERING:
            run.transition_to(ExecutionState.RUNNING)

        attempt = run.begin_phase_attempt(phase)
        handle.policy.record_attempt(phase)
        await self._publish(handle, PhaseStarted(run.id, run.model_id, phase.value, attempt))
        await self._notify(handle)

        try:
            await self._phase_handlers[phase](handle)
        except RunCancelled:
            raise
        except Exception as e:
            handle.policy.record_failure(phase)
            error = handle.policy.normalize_error(phase, e)
            logger.warning(f"Run {run.id}: phase {phase.value} attempt {attempt} failed: {error.message}")
            if error is e:
                raise
            raise error from e

    def _enter_recovery(self, handle: RunHandle, phase: ExecutionPhase, retry_state: RetryCallState) -> None:
        run = handle.run
        run.record_phase_retry(phase)
        if run.state == ExecutionState.RUNNING:
            run.transition_to(ExecutionState.RECOVERING)
        logger.info(
            f"Run {run.id}: retrying phase {phase.value} "
            f"(retry {run.retry_count(phase)}/{handle.policy.options.max_retry_attempts})"
        )

    async def _analyze_dependencies(self, handle: RunHandle) -> None:
        handle.graph = self.graph_builder.build(handle.model.nodes.values())
        logger.debug(
            f"Run {handle.run_id}: graph with {handle.graph.node_count} nodes "
            f"in {len(handle.graph.levels)} levels"
        )

    async def _setup_contexts(self, handle: RunHandle) -> None:
        """Корневой контекст модели и по одному контексту на каждый узел."""
        run = handle.run
        model = handle.model
        service = handle.context_service
        service.store.clear()

        root = service.build_context(
            model.id,
            {
                "model_id": model.id,
                "run_id": run.id,
                "environment": run.environment.value,
                "input_parameters": dict(run.input_parameters),
            },
            ContextScope.EXECUTION,
        )
        for node_id in handle.graph.order:
            node = model.nodes[node_id]
            service.build_context(
                node_id,
                {"node_id": node_id, "node_name": node.name, **dict(node.metadata.get("context") or {})},
                ContextScope.EXECUTION,
                parent_context_id=root.id,
            )

        handle.compensations.push("context-setup", partial(service.clear_context, model.id))

    async def _prepare_orchestration(self, handle: RunHandle) -> None:
        model = handle.model
        planner = handle.action_orchestrator
        handle.action_plans = {
            node_id: planner.create_execution_plan(node_id, model.actions_of(node_id))
            for node_id in handle.graph.order
            if model.actions_of(node_id)
        }

        structure = await handle.fractal_orchestrator.analyze_fractal_structure(model)
        if structure.has_cycle:
            raise CircularReferenceDetected(list(structure.cycle))
        if structure.missing_model_ids:
            raise NotFoundError("FunctionModel", structure.missing_model_ids[0])
        if structure.exceeds_max_depth:
            raise ValidationError(
                f"Maximum fractal depth {self.max_fractal_depth} exceeded",
                details={"model_id": model.id, "depth": structure.max_depth},
            )

    async def _execute_nodes(self, handle: RunHandle) -> None:
        """Уровни графа по порядку; на повторе завершенные узлы пропускаются."""
        run = handle.run
        for level in handle.graph.levels:
            pending = [node_id for node_id in level if run.node_status(node_id) != NodeStatus.COMPLETED]
            if not pending:
                continue
            if run.mode.runs_concurrently(len(pending)):
                await self._execute_level(handle, pending)
            else:
                for node_id in pending:
                    await self._execute_node(handle, node_id)

    async def _execute_level(self, handle: RunHandle, node_ids: List[str]) -> None:
        semaphore = asyncio.Semaphore(self.max_parallel_nodes)

        async def run_node(node_id: str) -> None:
            async with semaphore:
                await self._execute_node(handle, node_id)

        outcomes = await asyncio.gather(*(run_node(node_id) for node_id in node_ids), return_exceptions=True)
        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        for error in errors:
            if isinstance(error, RunCancelled):
                raise error
        if errors:
            raise errors[0]

    async def _execute_node(self, handle: RunHandle, node_id: str) -> None:
        await self._checkpoint(handle)
        run = handle.run
        run.set_node_status(node_id, NodeStatus.RUNNING)
        await self._publish(handle, NodeExecutionStarted(run.id, run.model_id, node_id))

        try:
            result = await handle.node_service.execute_node(
                handle.model,
                node_id,
                run.input_parameters,
                run.outputs,
                visited=handle.visited,
                depth=run.depth,
            )
        except Exception as e:
            error = handle.policy.normalize_error(ExecutionPhase.NODE_EXECUTION, e)
            await self._node_failed(handle, node_id, error)
            if error is e:
                raise
            raise error from e

        if not result.success:
            await self._compensate_partial(handle, result)
            await self._node_failed(handle, node_id, result.error)
            raise result.error

        handle.compensations.push(f"node:{node_id}", partial(self._compensate_node, handle.model, result))
        if handle.cancelled:
            raise RunCancelled(run.id)

        run.outputs[node_id] = result.output
        run.set_node_status(node_id, NodeStatus.COMPLETED)
        logger.debug(f"Run {run.id}: node {node_id} completed in {result.duration_ms:.0f}ms")
        await self._publish(handle, NodeExecutionCompleted(run.id, run.model_id, node_id, result.duration_ms))
        await self._notify(handle)

    async def _node_failed(self, handle: RunHandle, node_id: str, error: WorkflowEngineError) -> None:
        run = handle.run
        run.set_node_status(node_id, NodeStatus.FAILED)
        error.details.setdefault("node_id", node_id)
        logger.warning(f"Run {run.id}: node {node_id} failed: {error.message}")
        await self._publish(handle, NodeExecutionFailed(run.id, run.model_id, node_id, error.to_dict()))

    async def _compensate_partial(self, handle: RunHandle, result: NodeExecutionResult) -> None:
        """
        Отменить действия, успевшие выполниться в упавшем узле.

        Откат происходит сразу, до повтора фазы: повторная попытка
        выполняет узел с чистого листа.
        """
        if not handle.request.recovery.enable_compensation:
            return
        steps = [
            (f"action:{action.id}", partial(self.executor.compensate, action, output))
            for action, output in self._completed_actions(handle.model, result)
        ]
        if not steps:
            return
        records = await handle.compensations.compensate_now(steps)
        for record in records:
            handle.run.add_compensation(record)
        logger.info(f"Run {handle.run.id}: node {result.node_id} rolled back {len(records)} actions")

    async def _compensate_node(self, model: FunctionModel, result: NodeExecutionResult) -> None:
        """Отменить успешные действия узла в обратном порядке."""
        for action, output in reversed(self._completed_actions(model, result)):
            await self.executor.compensate(action, output)

    @staticmethod
    def _completed_actions(model: FunctionModel, result: NodeExecutionResult) -> List[Tuple[ActionNode, Dict[str, Any]]]:
        """Успешные листовые действия узла в порядке выполнения."""
        if result.actions is None:
            return []
        completed = []
        for action_result in result.actions.results:
            if not action_result.success:
                continue
            action = model.action_nodes.get(action_result.action_id)
            if action is None or action.nested_model_id is not None:
                continue
            completed.append((action, action_result.output))
        return completed

    async def _complete(self, handle: RunHandle) -> None:
        run = handle.run
        model = handle.model
        unfinished = [
            node_id for node_id in handle.graph.order
            if run.node_status(node_id) != NodeStatus.COMPLETED
        ]
        if unfinished:
            raise ValidationError(
                "Not all nodes completed",
                details={"run_id": run.id, "nodes": unfinished},
            )

        output_nodes = [
            node_id for node_id in handle.graph.order
            if model.nodes[node_id].is_io and model.nodes[node_id].boundary_type.is_output
        ]
        handle.final_outputs = {
            node_id: run.outputs.get(node_id, {})
            for node_id in (output_nodes or handle.graph.order)
        }

    # ==================== Завершение ====================

    async def _finish_failed(
        self,
        handle: RunHandle,
        phase: Optional[ExecutionPhase],
        error: WorkflowEngineError
    ) -> Result:
        run = handle.run
        async with handle.compensation_lock:
            if run.is_terminal:
                return self._cancelled_result(handle)
            records = []
            if handle.request.recovery.enable_compensation:
                records = await handle.compensations.unwind()
            for record in records:
                run.add_compensation(record)
            run.skip_unfinished_nodes()
            error.details.update({
                "run_id": run.id,
                "phase": phase.value if phase else None,
                "retries": run.retry_count(phase) if phase else 0,
            })
            run.record_error(error.to_dict())
            run.transition_to(ExecutionState.FAILED)

        logger.error(
            f"Run {run.id} failed in phase {phase.value if phase else 'startup'}: "
            f"{error.message} ({len(records)} compensations)"
        )
        await self._publish(handle, ExecutionFailed(
            run.id,
            run.model_id,
            phase.value if phase else None,
            error.to_dict(),
            len(records),
            user_id=run.user_id,
        ))
        await self._notify(handle)
        return Result.fail(error)

    async def _finish_cancelled(self, handle: RunHandle) -> Result:
        run = handle.run
        async with handle.compensation_lock:
            if handle.request.recovery.enable_compensation:
                for record in await handle.compensations.unwind():
                    run.add_compensation(record)
            if not run.is_terminal:
                run.skip_unfinished_nodes()
                run.transition_to(ExecutionState.CANCELLED)
        return self._cancelled_result(handle)

    @staticmethod
    def _cancelled_result(handle: RunHandle) -> Result:
        return Result.fail(ApplicationError(
            f"Execution {handle.run_id} was cancelled",
            details={"run_id": handle.run_id, "state": handle.run.state.value},
            error_code="EXECUTION_CANCELLED",
        ))

    async def _checkpoint(self, handle: RunHandle) -> None:
        """Граница узла или фазы: здесь запуск ждет resume или узнает об остановке."""
        if handle.cancelled:
            raise RunCancelled(handle.run_id)
        if not handle.resume_event.is_set():
            logger.info(f"Run {handle.run_id} is paused")
            await handle.resume_event.wait()
            if handle.cancelled:
                raise RunCancelled(handle.run_id)

    # ==================== Управление ====================

    def _require(self, run_id: str) -> RunHandle:
        handle = self._registry.get(run_id)
        if handle is None:
            raise NotFoundError("ExecutionRun", run_id)
        return handle

    async def pause_execution(self, run_id: str, user_id: Optional[str] = None) -> Result:
        """Поставить запуск на паузу на следующей границе узла."""
        try:
            handle = self._require(run_id)
        except NotFoundError as e:
            return Result.fail(e)

        run = handle.run
        if run.state != ExecutionState.RUNNING:
            return Result.fail(ConflictError(
                f"Cannot pause execution in state {run.state.value}",
                details={"run_id": run_id},
            ))

        run.transition_to(ExecutionState.PAUSED)
        handle.resume_event.clear()
        logger.info(f"Run {run_id} pause requested")
        await self._publish(handle, ExecutionPaused(run.id, run.model_id, user_id=user_id or run.user_id))
        await self._notify(handle)
        return Result.ok(self._progress(handle))

    async def resume_execution(self, run_id: str, user_id: Optional[str] = None) -> Result:
        """Продолжить запуск после паузы."""
        try:
            handle = self._require(run_id)
        except NotFoundError as e:
            return Result.fail(e)

        run = handle.run
        if run.state != ExecutionState.PAUSED:
            return Result.fail(ConflictError(
                f"Cannot resume execution in state {run.state.value}",
                details={"run_id": run_id},
            ))

        run.transition_to(ExecutionState.RUNNING)
        handle.resume_event.set()
        logger.info(f"Run {run_id} resumed")
        await self._publish(handle, ExecutionResumed(run.id, run.model_id, user_id=user_id or run.user_id))
        await self._notify(handle)
        return Result.ok(self._progress(handle))

    async def stop_execution(self, run_id: str, user_id: Optional[str] = None) -> Result:
        """
        Остановить запуск из любой фазы.

        Выполняемая компенсация дорабатывает до конца до подтверждения
        остановки; итоговое состояние cancelled.

        Returns:
            Result с ExecutionReport
        """
        try:
            handle = self._require(run_id)
        except NotFoundError as e:
            return Result.fail(e)

        run = handle.run
        if run.is_terminal:
            return Result.fail(ConflictError(
                f"Execution {run_id} is already {run.state.value}",
                details={"run_id": run_id},
            ))

        handle.cancelled = True
        for child_id in list(handle.children):
            child = self._registry.get(child_id)
            if child is not None and not child.run.is_terminal:
                await self.stop_execution(child_id, user_id)

        cancelled_now = False
        async with handle.compensation_lock:
            if not run.is_terminal:
                if handle.request.recovery.enable_compensation:
                    for record in await handle.compensations.unwind():
                        run.add_compensation(record)
                run.skip_unfinished_nodes()
                run.transition_to(ExecutionState.CANCELLED)
                cancelled_now = True
        handle.resume_event.set()

        if cancelled_now:
            logger.info(f"Run {run_id} cancelled ({len(run.compensations)} compensations)")
            await self._publish(handle, ExecutionCancelled(
                run.id,
                run.model_id,
                run.current_phase.value if run.current_phase else None,
                user_id=user_id or run.user_id,
            ))
            await self._notify(handle)
        return Result.ok(self._report(handle))

    async def get_execution_status(self, run_id: str) -> Result:
        """Текущий прогресс запуска."""
        handle = self._registry.get(run_id)
        if handle is None:
            return Result.fail(NotFoundError("ExecutionRun", run_id))
        return Result.ok(self._progress(handle))

    def list_active_runs(self) -> List[ExecutionProgress]:
        return [self._progress(handle) for handle in self._registry.active()]

    def purge_finished_runs(self) -> int:
        """Удалить завершенные запуски из реестра."""
        return self._registry.purge_finished()

    # ==================== Наблюдение ====================

    def _progress(self, handle: RunHandle) -> ExecutionProgress:
        run = handle.run
        return ExecutionProgress(
            run_id=run.id,
            model_id=run.model_id,
            state=run.state.value,
            phase=run.current_phase.value if run.current_phase else None,
            total_nodes=run.total_nodes,
            completed_nodes=len(run.completed_nodes),
            failed_nodes=len(run.failed_nodes),
            skipped_nodes=len(run.skipped_nodes),
            percentage=run.progress_percentage,
            elapsed_ms=run.elapsed_ms,
            dependency_stats=handle.graph.to_stats() if handle.graph else {"dependency_graph_built": False},
            context_stats=handle.context_service.get_stats(),
            orchestration_stats={
                "actions": handle.action_orchestrator.get_stats(),
                "fractal": handle.fractal_orchestrator.get_stats(),
                "recovery": handle.policy.get_stats(),
                "circuit_breaker": self.circuit_breaker.get_stats(),
            },
        )

    def _report(self, handle: RunHandle) -> ExecutionReport:
        return ExecutionReport.from_run(
            handle.run,
            final_outputs=handle.final_outputs,
            fractal_levels=handle.fractal_orchestrator.fractal_levels,
        )

    async def _notify(self, handle: RunHandle) -> None:
        callback = handle.progress_callback
        if callback is None or not handle.request.monitoring.enable_progress_tracking:
            return
        try:
            outcome = callback(self._progress(handle))
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"Progress callback failed for run {handle.run_id}: {e}", exc_info=True)

    async def _publish(self, handle: RunHandle, event: DomainEvent) -> None:
        if self.event_publisher is None or not handle.request.monitoring.enable_events:
            return
        try:
            await self.event_publisher.publish(event)
        except EventBusError as e:
            logger.warning(f"Failed to publish {event.event_type} for run {handle.run_id}: {e.message}")
