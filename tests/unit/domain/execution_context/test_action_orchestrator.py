"""
Тесты для ActionOrchestrator.
"""

import asyncio

import pytest

from conftest import FailingExecutor
from workflow_engine.core.errors import ValidationError
from workflow_engine.domain.execution_context.services import ActionOrchestrator
from workflow_engine.domain.model_context.entities import ActionNode
from workflow_engine.domain.model_context.value_objects import (
    ActionExecutionMode,
    ActionType,
    RetryPolicy,
)
from workflow_engine.infrastructure.executors import EchoActionExecutor


def action(
    action_id: str,
    order: int = 1,
    priority: int = 5,
    parallel: bool = False,
    action_type: ActionType = ActionType.TETHER,
    **kwargs
) -> ActionNode:
    return ActionNode.create(
        "model-1",
        "stage",
        action_id,
        action_type,
        action_id=action_id,
        execution_order=order,
        priority=priority,
        execution_mode=ActionExecutionMode.PARALLEL if parallel else ActionExecutionMode.SEQUENTIAL,
        **kwargs
    )


class TestPlanning:
    """Тесты планирования действий"""

    def test_order_then_priority(self):
        actions = [action("late", order=2), action("low", priority=1), action("high", priority=9)]

        ordered = ActionOrchestrator.optimize_action_order(actions)

        assert [a.id for a in ordered] == ["high", "low", "late"]

    def test_consecutive_parallel_actions_share_batch(self, executor):
        """Тест: подряд идущие параллельные действия образуют одну группу"""
        orchestrator = ActionOrchestrator(executor)
        actions = [
            action("prepare", order=1),
            action("fetch-a", order=2, parallel=True),
            action("fetch-b", order=3, parallel=True),
            action("merge", order=4),
        ]

        batches = orchestrator.split_into_batches(actions)

        assert [[a.id for a in group] for _, group in batches] == [
            ["prepare"], ["fetch-a", "fetch-b"], ["merge"],
        ]

    def test_plan_estimate(self, executor):
        """Тест: параллельная группа оценивается по самому долгому действию"""
        orchestrator = ActionOrchestrator(executor)
        actions = [
            action("prepare", order=1, estimated_duration_s=2.0),
            action("fetch-a", order=2, parallel=True, estimated_duration_s=3.0),
            action("fetch-b", order=3, parallel=True, estimated_duration_s=5.0),
            action("merge", order=4),
        ]

        plan = orchestrator.create_execution_plan("stage", actions)

        assert plan.estimated_duration_s == pytest.approx(8.0)
        assert plan.action_count == 4
        assert plan.parallel_batches == 1


class TestOrchestrate:
    """Тесты выполнения действий"""

    @pytest.mark.asyncio
    async def test_sequential_success(self, executor):
        orchestrator = ActionOrchestrator(executor)

        result = await orchestrator.orchestrate(
            "stage", [action("b", order=2), action("a", order=1)], {"input_parameters": {"order": 7}},
        )

        assert result.success
        assert executor.executed == ["a", "b"]
        assert result.outputs()["a"]["inputs"] == {"order": 7}

    @pytest.mark.asyncio
    async def test_failure_skips_remaining(self):
        """Тест: первая неудача останавливает контейнер"""
        executor = FailingExecutor(["a"])
        orchestrator = ActionOrchestrator(executor)

        result = await orchestrator.orchestrate(
            "stage", [action("a", order=1), action("b", order=2), action("c", order=3)], {},
        )

        assert not result.success
        assert result.failed_actions == 1
        assert result.skipped_actions == 2
        assert result.first_error.error_code == "TRANSIENT_FAILURE"
        assert "b" not in executor.calls

    @pytest.mark.asyncio
    async def test_action_retry_policy(self):
        """Тест: действие повторяется по своей политике"""
        executor = FailingExecutor(["flaky"], failures=2)
        orchestrator = ActionOrchestrator(executor)
        flaky = action("flaky", retry_policy=RetryPolicy(max_attempts=3, backoff_ms=0))

        result = await orchestrator.orchestrate("stage", [flaky], {})

        assert result.success
        assert result.results[0].attempts == 3
        assert orchestrator.get_stats()["action_retries"] == 2

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_transient(self):
        class BrokenExecutor(EchoActionExecutor):
            async def execute(self, action, context):
                raise KeyError("missing field")

        orchestrator = ActionOrchestrator(BrokenExecutor())

        result = await orchestrator.orchestrate("stage", [action("a")], {})

        assert result.first_error.is_retryable
        assert result.first_error.details["exception_type"] == "KeyError"

    @pytest.mark.asyncio
    async def test_parallel_actions_run_concurrently(self):
        """Тест: параллельные действия стартуют одновременно"""
        started = []
        release = asyncio.Event()

        class GateExecutor(EchoActionExecutor):
            async def execute(self, action, context):
                started.append(action.id)
                if len(started) == 2:
                    release.set()
                await asyncio.wait_for(release.wait(), timeout=1)
                return await super().execute(action, context)

        orchestrator = ActionOrchestrator(GateExecutor())
        actions = [action("a", order=1, parallel=True), action("b", order=2, parallel=True)]

        result = await orchestrator.orchestrate("stage", actions, {})

        assert result.success
        assert sorted(started) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_parallel_dependency_waits(self, executor):
        """Тест: параллельное действие ждет свою зависимость"""
        orchestrator = ActionOrchestrator(executor)
        first = action("first", order=1, parallel=True)
        second = action("second", order=2, parallel=True, dependencies={"first"})

        result = await orchestrator.orchestrate("stage", [second, first], {})

        assert result.success
        assert executor.executed == ["first", "second"]

    @pytest.mark.asyncio
    async def test_nested_action_without_fractal_orchestrator(self, executor):
        orchestrator = ActionOrchestrator(executor)
        nested = action(
            "nested",
            action_type=ActionType.FUNCTION_MODEL_CONTAINER,
            payload={"nested_model_id": "child"},
        )

        result = await orchestrator.orchestrate("stage", [nested], {})

        assert isinstance(result.first_error, ValidationError)
        assert executor.executed == []
