"""
Тесты для ExecutionCoordinator.

Проверяет полный проход по фазам, отклонение запусков до старта,
повторы фаз с компенсацией, паузу, возобновление и остановку,
dry run и вложенные модели.
"""

import asyncio

import pytest

from conftest import FailingExecutor, build_pipeline_model
from workflow_engine.application.dto import DryRunReport, ExecutionReport, ExecutionRequest
from workflow_engine.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from workflow_engine.domain.execution_context.value_objects import ExecutionMode, RecoveryOptions
from workflow_engine.domain.model_context.entities import ActionNode, ContainerNode
from workflow_engine.domain.model_context.value_objects import ActionType, RetryPolicy
from workflow_engine.infrastructure.executors import EchoActionExecutor


class BlockingExecutor(EchoActionExecutor):
    """Исполнитель, который держит действие до release()."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self._released = asyncio.Event()

    def release(self) -> None:
        self._released.set()

    async def execute(self, action, context):
        self.started.set()
        await self._released.wait()
        return await super().execute(action, context)


def no_delay(max_retry_attempts: int = 2) -> RecoveryOptions:
    return RecoveryOptions(max_retry_attempts=max_retry_attempts, retry_delay_ms=0)


def parent_with_child():
    """Модель parent, в process которой второе действие запускает модель child."""
    parent = build_pipeline_model("parent")
    parent.add_action_node(ActionNode.create(
        "parent", "process", "Run child", ActionType.FUNCTION_MODEL_CONTAINER,
        action_id="run-child",
        execution_order=2,
        retry_policy=RetryPolicy.no_retry(),
        payload={"nested_model_id": "child", "input_parameters": {"source": "parent"}},
    ))
    return parent


async def wait_for_active_run(coordinator) -> str:
    for _ in range(100):
        active = coordinator.list_active_runs()
        if active:
            return active[0].run_id
        await asyncio.sleep(0.01)
    raise AssertionError("run did not start")


# ==================== Успешный запуск ====================

class TestSuccessfulExecution:
    """Тесты полного прохода по фазам"""

    @pytest.mark.asyncio
    async def test_pipeline_completes(self, make_coordinator, executor, save_published):
        """Тест: опубликованная модель выполняется до completed"""
        await save_published(build_pipeline_model())
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            input_parameters={"order_id": 7},
        ))

        assert result.is_success
        report = result.value
        assert isinstance(report, ExecutionReport)
        assert report.state == "completed"
        assert report.completed_nodes == ["input", "process", "output"]
        assert report.failed_nodes == []
        assert report.recovery_count == 0
        assert report.compensations == []
        assert executor.executed == ["action-1"]

    @pytest.mark.asyncio
    async def test_outputs_flow_between_nodes(self, make_coordinator, executor, save_published):
        """Тест: выход выходного узла собирает выходы зависимостей"""
        await save_published(build_pipeline_model())
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            input_parameters={"order_id": 7},
        ))

        report = result.value
        assert report.outputs["input"] == {"order_id": 7}
        action_output = report.outputs["process"]["actions"]["action-1"]
        assert action_output["inputs"] == {"order_id": 7}
        assert action_output["payload"] == {"endpoint": "https://service.local/1"}
        assert list(report.final_outputs) == ["output"]
        assert report.final_outputs["output"]["results"]["process"] == report.outputs["process"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [ExecutionMode.PARALLEL, ExecutionMode.ADAPTIVE])
    async def test_concurrent_modes_complete(self, make_coordinator, executor, save_published, mode):
        model = build_pipeline_model(stage_actions=2)
        await save_published(model)
        coordinator = make_coordinator(executor, max_parallel_nodes=2)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            execution_mode=mode,
        ))

        assert result.value.state == "completed"
        assert sorted(executor.executed) == ["action-1", "action-2"]

    @pytest.mark.asyncio
    async def test_progress_callback_and_events(self, make_coordinator, executor, save_published, recorded_events):
        """Тест: callback получает прогресс, шина получает события запуска"""
        await save_published(build_pipeline_model())
        coordinator = make_coordinator(executor)
        snapshots = []

        async def on_progress(progress):
            snapshots.append(progress)

        await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice"),
            progress_callback=on_progress,
        )

        assert snapshots[-1].state == "completed"
        assert snapshots[-1].percentage == 100
        assert snapshots[-1].completed_nodes == 3
        assert recorded_events[0] == "execution.started"
        assert recorded_events[-1] == "execution.completed"
        assert recorded_events.count("execution.phase.completed") == 5
        assert recorded_events.count("execution.node.completed") == 3

    @pytest.mark.asyncio
    async def test_finished_runs_can_be_purged(self, make_coordinator, executor, save_published):
        await save_published(build_pipeline_model())
        coordinator = make_coordinator(executor)
        result = await coordinator.execute_workflow(ExecutionRequest(model_id="model-1", user_id="alice"))

        status = await coordinator.get_execution_status(result.value.run_id)

        assert status.value.state == "completed"
        assert coordinator.list_active_runs() == []
        assert coordinator.purge_finished_runs() == 1
        assert (await coordinator.get_execution_status(result.value.run_id)).is_failure


# ==================== Предусловия ====================

class TestPreconditions:
    """Тесты отклонения запуска до старта"""

    @pytest.mark.asyncio
    async def test_unpublished_model_rejected(self, make_coordinator, executor, repository):
        """Тест: черновик нельзя выполнить, модель остается draft"""
        await repository.save(build_pipeline_model())
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="model-1", user_id="alice"))

        assert result.is_failure
        assert isinstance(result.error, ValidationError)
        assert "published" in result.error.message
        assert (await repository.find_by_id("model-1")).is_draft
        assert executor.executed == []
        assert coordinator.list_active_runs() == []

    @pytest.mark.asyncio
    async def test_missing_model(self, make_coordinator, executor):
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="ghost", user_id="alice"))

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_user_without_access(self, make_coordinator, executor, save_published):
        await save_published(build_pipeline_model())
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="model-1", user_id="mallory"))

        assert isinstance(result.error, PermissionDeniedError)
        assert executor.executed == []

    @pytest.mark.asyncio
    async def test_deleted_model_rejected(self, make_coordinator, executor, save_published, repository):
        model = await save_published(build_pipeline_model())
        model.soft_delete(deleted_by="alice")
        await repository.save(model)
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="model-1", user_id="alice"))

        assert isinstance(result.error, ValidationError)
        assert result.error.message == "Cannot execute deleted model"

    @pytest.mark.asyncio
    async def test_execution_validation_errors(self, make_coordinator, executor, save_published):
        """Тест: контекстная переменная без источника блокирует запуск"""
        model = build_pipeline_model()
        model.add_action_node(ActionNode.create(
            "model-1", "process", "Needs customer", ActionType.KB,
            action_id="needs-customer",
            execution_order=2,
            payload={"context_inputs": ["customer_id"]},
        ))
        await save_published(model)
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="model-1", user_id="alice"))
        supplied = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            input_parameters={"customer_id": "c-1"},
        ))

        assert result.error.message == "Model failed execution validation"
        assert any("customer_id" in message for message in result.error.errors)
        assert supplied.value.state == "completed"


# ==================== Повторы и компенсации ====================

class TestRecovery:
    """Тесты повторов фаз и компенсаций"""

    @pytest.mark.asyncio
    async def test_failing_phase_retried_then_compensated(self, make_coordinator, save_published):
        """Тест: N повторов дают N+1 попыток, затем компенсация в обратном порядке"""
        await save_published(build_pipeline_model())
        executor = FailingExecutor(["action-1"])
        coordinator = make_coordinator(executor)
        snapshots = []

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice", recovery=no_delay(2)),
            progress_callback=snapshots.append,
        )

        assert result.is_failure
        error = result.error
        assert error.error_code == "TRANSIENT_FAILURE"
        assert error.details["phase"] == "node-execution"
        assert error.details["retries"] == 2
        assert error.details["node_id"] == "process"
        assert executor.calls["action-1"] == 3

        run_id = error.details["run_id"]
        conflict = (await coordinator.stop_execution(run_id)).error
        assert isinstance(conflict, ConflictError)

        final = snapshots[-1]
        assert final.state == "failed"
        assert final.completed_nodes == 1
        assert final.failed_nodes == 1
        assert final.skipped_nodes == 1

    @pytest.mark.asyncio
    async def test_report_of_failed_run(self, make_coordinator, save_published, recorded_events):
        await save_published(build_pipeline_model())
        executor = FailingExecutor(["action-1"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice", recovery=no_delay(2))
        )
        handle = coordinator._registry.get(result.error.details["run_id"])
        report = coordinator._report(handle)

        assert report.state == "failed"
        assert report.recovery_count == 2
        assert report.phase_retries == {"node-execution": 2}
        assert [c["name"] for c in report.compensations] == ["node:input", "context-setup"]
        assert all(c["status"] == "completed" for c in report.compensations)
        assert report.failed_nodes == ["process"]
        assert report.skipped_nodes == ["output"]
        assert report.errors[0]["error_code"] == "TRANSIENT_FAILURE"
        assert recorded_events[-1] == "execution.failed"

    @pytest.mark.asyncio
    async def test_recovers_when_failure_is_temporary(self, make_coordinator, save_published):
        """Тест: повтор фазы проходит, завершенные узлы не выполняются повторно"""
        await save_published(build_pipeline_model())
        executor = FailingExecutor(["action-1"], failures=1)
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice", recovery=no_delay(2))
        )

        report = result.value
        assert report.state == "completed"
        assert report.recovery_count == 1
        assert report.phase_retries == {"node-execution": 1}
        assert executor.calls == {"action-1": 2}
        assert report.compensations == []

    @pytest.mark.asyncio
    async def test_recovery_disabled(self, make_coordinator, save_published):
        """Тест: без автоматического восстановления фаза выполняется один раз"""
        await save_published(build_pipeline_model())
        executor = FailingExecutor(["action-1"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            recovery=RecoveryOptions.disabled(),
        ))

        handle = coordinator._registry.get(result.error.details["run_id"])
        assert executor.calls["action-1"] == 1
        assert result.error.details["retries"] == 0
        assert [record.name for record in handle.run.compensations] == ["node:input", "context-setup"]

    @pytest.mark.asyncio
    async def test_compensation_undoes_completed_actions(self, make_coordinator, save_published):
        """Тест: действия завершенного узла компенсируются исполнителем"""
        model = build_pipeline_model()
        model.add_node(ContainerNode.stage("model-1", "Review", node_id="review", dependencies={"process"}))
        model.add_action_node(ActionNode.create(
            "model-1", "review", "Review call", ActionType.TETHER,
            action_id="review-call",
            payload={"endpoint": "https://service.local/review"},
        ))
        model.add_dependency("output", "review")
        model.add_dependency("review", "process")
        await save_published(model)
        executor = FailingExecutor(["review-call"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice", recovery=no_delay(0))
        )

        assert result.is_failure
        assert executor.compensated == ["action-1"]

    @pytest.mark.asyncio
    async def test_partial_node_rolled_back_before_each_retry(self, make_coordinator, save_published):
        """Тест: успевшие действия упавшего узла откатываются на каждой попытке"""
        await save_published(build_pipeline_model(stage_actions=2))
        executor = FailingExecutor(["action-2"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice", recovery=no_delay(1))
        )

        assert result.is_failure
        assert executor.calls == {"action-1": 2, "action-2": 2}
        assert executor.compensated == ["action-1", "action-1"]

        handle = coordinator._registry.get(result.error.details["run_id"])
        records = handle.run.compensations
        assert [record.name for record in records] == [
            "action:action-1",
            "action:action-1",
            "node:input",
            "context-setup",
        ]
        assert [record.sequence for record in records] == [1, 2, 3, 4]
        assert all(record.succeeded for record in records)

    @pytest.mark.asyncio
    async def test_partial_node_kept_when_compensation_disabled(self, make_coordinator, save_published):
        await save_published(build_pipeline_model(stage_actions=2))
        executor = FailingExecutor(["action-2"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            recovery=RecoveryOptions(enable_compensation=False, max_retry_attempts=0, retry_delay_ms=0),
        ))

        assert result.is_failure
        assert executor.compensated == []


# ==================== Управление запуском ====================

class TestExecutionControl:
    """Тесты паузы, возобновления и остановки"""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, make_coordinator, save_published):
        """Тест: пауза вступает в силу на границе узла"""
        await save_published(build_pipeline_model())
        executor = BlockingExecutor()
        coordinator = make_coordinator(executor)

        task = asyncio.create_task(coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice")
        ))
        await executor.started.wait()
        run_id = await wait_for_active_run(coordinator)

        paused = await coordinator.pause_execution(run_id)
        assert paused.value.state == "paused"
        assert (await coordinator.pause_execution(run_id)).is_failure

        executor.release()
        await asyncio.sleep(0.05)
        status = (await coordinator.get_execution_status(run_id)).value
        assert status.state == "paused"
        assert status.completed_nodes == 2
        assert not task.done()

        resumed = await coordinator.resume_execution(run_id)
        assert resumed.value.state == "running"

        result = await asyncio.wait_for(task, timeout=2)
        assert result.value.state == "completed"

    @pytest.mark.asyncio
    async def test_resume_requires_pause(self, make_coordinator, save_published):
        await save_published(build_pipeline_model())
        executor = BlockingExecutor()
        coordinator = make_coordinator(executor)
        task = asyncio.create_task(coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice")
        ))
        await executor.started.wait()
        run_id = await wait_for_active_run(coordinator)

        result = await coordinator.resume_execution(run_id)

        assert isinstance(result.error, ConflictError)
        executor.release()
        await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_stop_compensates_and_cancels(self, make_coordinator, save_published, recorded_events):
        """Тест: остановка компенсирует выполненные шаги и дает cancelled"""
        await save_published(build_pipeline_model())
        executor = BlockingExecutor()
        coordinator = make_coordinator(executor)
        task = asyncio.create_task(coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice")
        ))
        await executor.started.wait()
        run_id = await wait_for_active_run(coordinator)

        stopped = await coordinator.stop_execution(run_id, user_id="alice")

        assert stopped.value.state == "cancelled"
        assert [c["name"] for c in stopped.value.compensations] == ["node:input", "context-setup"]
        assert "execution.cancelled" in recorded_events

        executor.release()
        result = await asyncio.wait_for(task, timeout=2)

        assert result.is_failure
        assert result.error.error_code == "EXECUTION_CANCELLED"
        assert executor.compensated == ["action-1"]
        status = (await coordinator.get_execution_status(run_id)).value
        assert status.state == "cancelled"
        assert status.completed_nodes == 1
        assert isinstance((await coordinator.stop_execution(run_id)).error, ConflictError)

    @pytest.mark.asyncio
    async def test_stop_paused_run(self, make_coordinator, save_published):
        await save_published(build_pipeline_model())
        executor = BlockingExecutor()
        coordinator = make_coordinator(executor)
        task = asyncio.create_task(coordinator.execute_workflow(
            ExecutionRequest(model_id="model-1", user_id="alice")
        ))
        await executor.started.wait()
        run_id = await wait_for_active_run(coordinator)
        await coordinator.pause_execution(run_id)
        executor.release()
        await asyncio.sleep(0.05)

        stopped = await coordinator.stop_execution(run_id)
        result = await asyncio.wait_for(task, timeout=2)

        assert stopped.value.state == "cancelled"
        assert result.error.error_code == "EXECUTION_CANCELLED"
        assert "output" in stopped.value.skipped_nodes

    @pytest.mark.asyncio
    async def test_unknown_run(self, make_coordinator, executor):
        coordinator = make_coordinator(executor)

        assert isinstance((await coordinator.pause_execution("run-ghost")).error, NotFoundError)
        assert isinstance((await coordinator.resume_execution("run-ghost")).error, NotFoundError)
        assert isinstance((await coordinator.stop_execution("run-ghost")).error, NotFoundError)
        assert isinstance((await coordinator.get_execution_status("run-ghost")).error, NotFoundError)


# ==================== Dry run и вложенные модели ====================

class TestDryRunAndNesting:
    """Тесты dry run и вложенных моделей"""

    @pytest.mark.asyncio
    async def test_dry_run_builds_plan_without_executing(self, make_coordinator, executor, save_published):
        """Тест: dry run строит план и не вызывает исполнитель"""
        await save_published(build_pipeline_model(stage_actions=2))
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(
            model_id="model-1",
            user_id="alice",
            dry_run=True,
        ))

        plan = result.value
        assert isinstance(plan, DryRunReport)
        assert plan.execution_order == ["input", "process", "output"]
        assert plan.levels == [["input"], ["process"], ["output"]]
        assert plan.critical_path == ["input", "process", "output"]
        assert list(plan.action_plans) == ["process"]
        assert plan.fractal_structure.max_depth == 0
        assert executor.executed == []
        assert coordinator.list_active_runs() == []

    @pytest.mark.asyncio
    async def test_nested_model_runs_as_child(self, make_coordinator, executor, save_published):
        """Тест: вложенная модель выполняется дочерним запуском"""
        await save_published(build_pipeline_model("child"))
        await save_published(parent_with_child())
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(ExecutionRequest(model_id="parent", user_id="alice"))

        report = result.value
        nested = report.outputs["process"]["actions"]["run-child"]
        assert report.state == "completed"
        assert report.fractal_levels == 1
        assert nested["nested_model_id"] == "child"
        assert nested["fractal_level"] == 1
        assert list(nested["nested_outputs"]) == ["output"]
        assert executor.executed == ["action-1", "action-1"]

    @pytest.mark.asyncio
    async def test_failed_child_fails_parent(self, make_coordinator, save_published):
        """Тест: ошибка дочернего запуска завершает родительский"""
        await save_published(build_pipeline_model("child", stage_actions=2))
        await save_published(parent_with_child())
        executor = FailingExecutor(["action-2"])
        coordinator = make_coordinator(executor)

        result = await coordinator.execute_workflow(
            ExecutionRequest(model_id="parent", user_id="alice", recovery=RecoveryOptions.disabled())
        )

        assert result.is_failure
        assert result.error.error_code == "TRANSIENT_FAILURE"
        assert result.error.details["phase"] == "node-execution"
        assert executor.calls == {"action-1": 2, "action-2": 1}
