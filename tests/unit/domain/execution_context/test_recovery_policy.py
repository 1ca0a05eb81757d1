"""
Тесты для RecoveryPolicy и CompensationStack.
"""

import pytest

from workflow_engine.core.errors import ApplicationError, TransientFailure, ValidationError
from workflow_engine.domain.execution_context.services import CompensationStack, RecoveryPolicy
from workflow_engine.domain.execution_context.value_objects import (
    CompensationStatus,
    ExecutionPhase,
    RecoveryOptions,
)


class TestRecoveryPolicy:
    """Тесты для RecoveryPolicy"""

    def test_attempts_are_retries_plus_one(self):
        """Тест: max_retry_attempts=N дает N+1 попыток"""
        policy = RecoveryPolicy(RecoveryOptions(max_retry_attempts=2, retry_delay_ms=0))

        assert policy.max_attempts(ExecutionPhase.NODE_EXECUTION) == 3

    def test_dependency_analysis_is_not_retried(self):
        policy = RecoveryPolicy(RecoveryOptions(max_retry_attempts=5))

        assert policy.max_attempts(ExecutionPhase.DEPENDENCY_ANALYSIS) == 1
        assert not policy.should_retry(ExecutionPhase.DEPENDENCY_ANALYSIS, TransientFailure("flaky"))

    def test_disabled_recovery(self):
        policy = RecoveryPolicy(RecoveryOptions.disabled())

        assert policy.max_attempts(ExecutionPhase.NODE_EXECUTION) == 1
        assert not policy.should_retry(ExecutionPhase.NODE_EXECUTION, TransientFailure("flaky"))

    def test_only_retryable_errors_are_retried(self):
        """Тест: ошибки валидации не повторяются"""
        policy = RecoveryPolicy()

        assert policy.should_retry(ExecutionPhase.NODE_EXECUTION, TransientFailure("flaky"))
        assert not policy.should_retry(ExecutionPhase.NODE_EXECUTION, ValidationError("bad input"))
        assert not policy.should_retry(ExecutionPhase.NODE_EXECUTION, RuntimeError("raw"))

    def test_normalize_error(self):
        """Тест: непредвиденные исключения приводятся к типизированным"""
        policy = RecoveryPolicy()

        retryable = policy.normalize_error(ExecutionPhase.NODE_EXECUTION, RuntimeError("boom"))
        terminal = policy.normalize_error(ExecutionPhase.DEPENDENCY_ANALYSIS, RuntimeError("boom"))

        assert isinstance(retryable, TransientFailure)
        assert retryable.phase == "node-execution"
        assert isinstance(terminal, ApplicationError)
        assert terminal.error_code == "INTERNAL_ERROR"

    def test_stats(self):
        policy = RecoveryPolicy()
        policy.record_attempt(ExecutionPhase.ORCHESTRATION)
        policy.record_attempt(ExecutionPhase.ORCHESTRATION)
        policy.record_failure(ExecutionPhase.ORCHESTRATION)

        stats = policy.get_stats()

        assert policy.retries(ExecutionPhase.ORCHESTRATION) == 1
        assert stats["attempts"] == {"orchestration": 2}
        assert stats["failures"] == {"orchestration": 1}


class TestCompensationStack:
    """Тесты для CompensationStack"""

    @pytest.mark.asyncio
    async def test_unwind_in_reverse_order(self):
        """Тест: компенсации выполняются в обратном порядке"""
        undone = []
        stack = CompensationStack()
        stack.push("first", lambda: undone.append("first"))

        async def undo_second():
            undone.append("second")

        stack.push("second", undo_second)
        stack.push("third", lambda: undone.append("third"))

        records = await stack.unwind()

        assert undone == ["third", "second", "first"]
        assert [record.sequence for record in records] == [1, 2, 3]
        assert len(stack) == 0

    @pytest.mark.asyncio
    async def test_failed_compensation_does_not_stop_others(self):
        """Тест: ошибка одной компенсации записывается, остальные выполняются"""
        undone = []

        def broken():
            raise RuntimeError("storage offline")

        stack = CompensationStack()
        stack.push("first", lambda: undone.append("first"))
        stack.push("broken", broken)

        records = await stack.unwind()

        assert undone == ["first"]
        assert records[0].status == CompensationStatus.FAILED
        assert records[0].error == "storage offline"
        assert records[1].succeeded

    def test_discard_removes_latest(self):
        stack = CompensationStack()
        stack.push("node:a", lambda: None)
        stack.push("node:b", lambda: None)

        assert stack.discard("node:a")
        assert not stack.discard("node:missing")
        assert stack.pending == ["node:b"]
