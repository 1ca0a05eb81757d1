"""
Политика восстановления запуска и стек компенсаций.

RecoveryPolicy решает, повторять ли фазу, и считает попытки.
CompensationStack хранит "undo" шаги и выполняет их в обратном порядке.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ....core.errors import ApplicationError, TransientFailure, WorkflowEngineError
from ..value_objects import (
    CompensationRecord,
    CompensationStatus,
    ExecutionPhase,
    RecoveryOptions,
)

logger = logging.getLogger("workflow-engine.execution_context.recovery")

Undo = Callable[[], Union[Awaitable[Any], Any]]


class RecoveryPolicy:
    """
    Политика повторов фаз запуска.

    Координатор обращается к политике на каждой границе фазы:
    сколько попыток разрешено, повторять ли конкретную ошибку,
    сколько ждать перед следующей попыткой.

    Атрибуты:
        options: Параметры восстановления

    Пример:
        >>> policy = RecoveryPolicy(RecoveryOptions(max_retry_attempts=2, retry_delay_ms=0))
        >>> policy.max_attempts(ExecutionPhase.NODE_EXECUTION)
        3
    """

    def __init__(self, options: Optional[RecoveryOptions] = None):
        self.options = options or RecoveryOptions()
        self._attempts: Dict[ExecutionPhase, int] = {}
        self._failures: Dict[ExecutionPhase, int] = {}

    @property
    def retry_delay_seconds(self) -> float:
        return self.options.retry_delay_ms / 1000

    def max_attempts(self, phase: ExecutionPhase) -> int:
        return self.options.attempts_for(phase)

    def normalize_error(self, phase: ExecutionPhase, error: BaseException) -> WorkflowEngineError:
        """
        Привести исключение фазы к типизированной ошибке.

        Непредвиденные исключения становятся TransientFailure для фаз,
        допускающих повтор, и терминальной ApplicationError для остальных.
        """
        if isinstance(error, WorkflowEngineError):
            return error
        if self.options.is_retryable_phase(phase):
            return TransientFailure(
                f"Unexpected error in phase {phase.value}: {error}",
                phase=phase.value,
                details={"exception_type": type(error).__name__},
            )
        return ApplicationError(
            f"Unexpected error in phase {phase.value}: {error}",
            details={"phase": phase.value, "exception_type": type(error).__name__},
            error_code="INTERNAL_ERROR",
        )

    def should_retry(self, phase: ExecutionPhase, error: BaseException) -> bool:
        """Повторять ли фазу после этой ошибки."""
        if not self.options.enable_auto_recovery:
            return False
        if not self.options.is_retryable_phase(phase):
            return False
        return isinstance(error, WorkflowEngineError) and error.is_retryable

    def record_attempt(self, phase: ExecutionPhase) -> int:
        self._attempts[phase] = self._attempts.get(phase, 0) + 1
        return self._attempts[phase]

    def record_failure(self, phase: ExecutionPhase) -> None:
        self._failures[phase] = self._failures.get(phase, 0) + 1

    def attempts(self, phase: ExecutionPhase) -> int:
        return self._attempts.get(phase, 0)

    def retries(self, phase: ExecutionPhase) -> int:
        return max(self.attempts(phase) - 1, 0)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "auto_recovery": self.options.enable_auto_recovery,
            "max_retry_attempts": self.options.max_retry_attempts,
            "attempts": {phase.value: count for phase, count in self._attempts.items()},
            "failures": {phase.value: count for phase, count in self._failures.items()},
        }


class CompensationStack:
    """
    Стек компенсирующих шагов.

    Каждый успешно завершенный шаг регистрирует свой "undo".
    При окончательном сбое стек раскручивается в обратном порядке,
    каждая компенсация записывается отдельно; ошибка одной компенсации
    не останавливает остальные.

    Пример:
        >>> stack = CompensationStack()
        >>> stack.push("version bump", restore_version)
        >>> stack.push("node created", remove_node)
        >>> records = await stack.unwind()
        >>> [r.name for r in records]
        ['node created', 'version bump']
    """

    def __init__(self):
        self._steps: List[Tuple[str, Undo]] = []
        self._sequence = 0

    def push(self, name: str, undo: Undo) -> None:
        self._steps.append((name, undo))

    def discard(self, name: str) -> bool:
        """Убрать последний шаг с указанным именем (шаг был отменен иначе)."""
        for index in range(len(self._steps) - 1, -1, -1):
            if self._steps[index][0] == name:
                del self._steps[index]
                return True
        return False

    @property
    def pending(self) -> List[str]:
        return [name for name, _ in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    async def unwind(self) -> List[CompensationRecord]:
        """
        Выполнить все компенсации в обратном порядке.

        Returns:
            Записи о компенсациях в порядке выполнения
        """
        records: List[CompensationRecord] = []
        while self._steps:
            name, undo = self._steps.pop()
            records.append(await self._compensate(name, undo))
        return records

    async def compensate_now(self, steps: Sequence[Tuple[str, Undo]]) -> List[CompensationRecord]:
        """
        Сразу отменить шаги, не попавшие в стек, в обратном порядке.

        Нумерация записей продолжает общую последовательность стека.
        """
        return [await self._compensate(name, undo) for name, undo in reversed(steps)]

    async def _compensate(self, name: str, undo: Undo) -> CompensationRecord:
        self._sequence += 1
        sequence = self._sequence
        try:
            outcome = undo()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Compensation #{sequence} failed: {name}: {e}", exc_info=True)
            return CompensationRecord(
                name=name,
                sequence=sequence,
                status=CompensationStatus.FAILED,
                error=str(e),
            )
        logger.info(f"Compensation #{sequence} completed: {name}")
        return CompensationRecord(
            name=name,
            sequence=sequence,
            status=CompensationStatus.COMPLETED,
        )
