"""
Тесты для механизмов устойчивости.

Проверяет работу Model Locks, Circuit Breaker и повторов на tenacity.
"""

import asyncio

import pytest

from workflow_engine.core.errors import CircuitOpen, TransientFailure, ValidationError
from workflow_engine.infrastructure.concurrency import ModelLockManager
from workflow_engine.infrastructure.resilience import (
    CircuitBreaker,
    CircuitState,
    create_phase_retrying,
    is_retryable_error,
)


# ==================== Тесты ModelLockManager ====================

class TestModelLockManager:
    """Тесты для Model Lock Manager"""

    @pytest.mark.asyncio
    async def test_lock_serializes_same_model(self):
        """Тест: блокировка сериализует изменения одной модели"""
        lock_manager = ModelLockManager()
        results = []

        async def task(task_id: int):
            async with lock_manager.lock("model-1"):
                results.append(f"start-{task_id}")
                await asyncio.sleep(0.05)
                results.append(f"end-{task_id}")

        await asyncio.gather(task(1), task(2))

        assert results in (
            ["start-1", "end-1", "start-2", "end-2"],
            ["start-2", "end-2", "start-1", "end-1"],
        )

    @pytest.mark.asyncio
    async def test_different_models_run_in_parallel(self):
        """Тест: разные модели не блокируют друг друга"""
        lock_manager = ModelLockManager()
        results = []

        async def task(model_id: str):
            async with lock_manager.lock(model_id):
                results.append(f"start-{model_id}")
                await asyncio.sleep(0.05)
                results.append(f"end-{model_id}")

        await asyncio.gather(task("model-1"), task("model-2"))

        assert results[:2] == ["start-model-1", "start-model-2"]

    @pytest.mark.asyncio
    async def test_cleanup_unused_locks(self):
        lock_manager = ModelLockManager()
        async with lock_manager.lock("model-1"):
            pass
        async with lock_manager.lock("model-2"):
            pass

        cleaned = await lock_manager.cleanup_unused_locks(max_locks=1)

        assert cleaned == 1
        assert lock_manager.get_lock_count() == 1
        assert not lock_manager.is_locked("model-2")


# ==================== Тесты CircuitBreaker ====================

class TestCircuitBreaker:
    """Тесты для Circuit Breaker"""

    @pytest.mark.asyncio
    async def test_circuit_opens_after_failures(self):
        """Тест: circuit открывается после превышения порога ошибок"""
        circuit = CircuitBreaker("phases", failure_threshold=3, recovery_timeout=1)

        async def failing_func():
            raise TransientFailure("Service unavailable")

        for _ in range(3):
            with pytest.raises(TransientFailure):
                await circuit.call(failing_func)

        assert circuit.get_state() == CircuitState.OPEN

        with pytest.raises(CircuitOpen) as exc_info:
            await circuit.call(failing_func)
        assert exc_info.value.error_code == "CIRCUIT_OPEN"
        assert exc_info.value.details["failure_count"] == 3

    @pytest.mark.asyncio
    async def test_circuit_recovers_after_timeout(self):
        """Тест: после timeout circuit пропускает пробный вызов и закрывается"""
        circuit = CircuitBreaker("phases", failure_threshold=2, recovery_timeout=0.05)

        async def failing_func():
            raise TransientFailure("Error")

        async def success_func():
            return "ok"

        for _ in range(2):
            with pytest.raises(TransientFailure):
                await circuit.call(failing_func)

        await asyncio.sleep(0.1)

        assert await circuit.call(success_func) == "ok"
        assert circuit.get_state() == CircuitState.CLOSED
        assert circuit.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        circuit = CircuitBreaker("phases", failure_threshold=1, recovery_timeout=0.05)

        async def failing_func():
            raise TransientFailure("Error")

        with pytest.raises(TransientFailure):
            await circuit.call(failing_func)
        await asyncio.sleep(0.1)
        with pytest.raises(TransientFailure):
            await circuit.call(failing_func)

        assert circuit.get_state() == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_unexpected_exception_type_not_counted(self):
        """Тест: учитываются только исключения expected_exception"""
        circuit = CircuitBreaker("phases", failure_threshold=1, expected_exception=TransientFailure)

        async def invalid():
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await circuit.call(invalid)

        assert circuit.get_state() == CircuitState.CLOSED

    def test_reset_and_stats(self):
        circuit = CircuitBreaker("phases", failure_threshold=1)
        circuit._on_failure()

        assert circuit.get_stats()["state"] == "open"

        circuit.reset()

        assert circuit.get_stats() == {
            "name": "phases",
            "state": "closed",
            "failure_count": 0,
            "failure_threshold": 1,
            "last_failure_time": None,
            "recovery_timeout": 60,
        }


# ==================== Тесты повторов ====================

class TestPhaseRetrying:
    """Тесты для create_phase_retrying"""

    @staticmethod
    async def run_phase(phase, max_attempts: int, **kwargs):
        async for attempt in create_phase_retrying(max_attempts, **kwargs):
            with attempt:
                return await phase()

    def test_only_transient_failures_are_retryable(self):
        assert is_retryable_error(TransientFailure("timeout"))
        assert not is_retryable_error(ValidationError("bad"))
        assert not is_retryable_error(ConnectionError("raw"))

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        """Тест: временный сбой повторяется, before_sleep видит каждую попытку"""
        calls = []
        sleeps = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TransientFailure("not yet")
            return "done"

        result = await self.run_phase(
            flaky,
            max_attempts=3,
            before_sleep=lambda state: sleeps.append(state.attempt_number),
        )

        assert result == "done"
        assert len(calls) == 3
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []

        async def always_failing():
            calls.append(1)
            raise TransientFailure("down")

        with pytest.raises(TransientFailure):
            await self.run_phase(always_failing, max_attempts=2)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_raised_immediately(self):
        """Тест: ошибка валидации не повторяется"""
        calls = []

        async def invalid():
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await self.run_phase(invalid, max_attempts=5)

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_zero_attempts_still_runs_once(self):
        calls = []

        async def failing():
            calls.append(1)
            raise TransientFailure("down")

        with pytest.raises(TransientFailure):
            await self.run_phase(failing, max_attempts=0)

        assert calls == [1]
