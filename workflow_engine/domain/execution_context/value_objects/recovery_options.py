"""
Value Objects для параметров восстановления и мониторинга.
"""

from typing import FrozenSet

from pydantic import Field

from ...shared.value_object import ValueObject
from .execution_phase import ExecutionPhase


def _default_retryable_phases() -> FrozenSet[ExecutionPhase]:
    return frozenset({
        ExecutionPhase.CONTEXT_SETUP,
        ExecutionPhase.ORCHESTRATION,
        ExecutionPhase.NODE_EXECUTION,
        ExecutionPhase.COMPLETION,
    })


class RecoveryOptions(ValueObject):
    """
    Параметры восстановления запуска.

    Атрибуты:
        enable_auto_recovery: Повторять фазы при временных сбоях
        max_retry_attempts: Число повторов (всего попыток max_retry_attempts + 1)
        retry_delay_ms: Пауза между попытками
        retryable_phases: Фазы, для которых разрешены повторы
        enable_compensation: Откатывать выполненные шаги при окончательном сбое

    Example:
        >>> RecoveryOptions(max_retry_attempts=2, retry_delay_ms=0)
    """

    enable_auto_recovery: bool = True
    max_retry_attempts: int = Field(default=3, ge=0, le=10)
    retry_delay_ms: int = Field(default=1000, ge=0)
    retryable_phases: FrozenSet[ExecutionPhase] = Field(default_factory=_default_retryable_phases)
    enable_compensation: bool = True

    @classmethod
    def disabled(cls) -> "RecoveryOptions":
        return cls(enable_auto_recovery=False, max_retry_attempts=0)

    def is_retryable_phase(self, phase: ExecutionPhase) -> bool:
        return phase in self.retryable_phases

    def attempts_for(self, phase: ExecutionPhase) -> int:
        """Сколько раз фаза может быть выполнена всего."""
        if self.enable_auto_recovery and self.is_retryable_phase(phase):
            return self.max_retry_attempts + 1
        return 1


class MonitoringOptions(ValueObject):
    """
    Параметры наблюдения за запуском.

    Атрибуты:
        enable_progress_tracking: Вызывать callback прогресса
        enable_events: Публиковать события запуска
    """

    enable_progress_tracking: bool = True
    enable_events: bool = True
