"""
Circuit Breaker для защиты от каскадных сбоев.

Приостанавливает выполнение фаз, если сбои идут подряд.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional

from ...core.errors import CircuitOpen

logger = logging.getLogger("workflow-engine.infrastructure.circuit_breaker")


class CircuitState(str, Enum):
    """
    Состояния Circuit Breaker.

    - CLOSED: Нормальная работа, вызовы проходят
    - OPEN: Порог сбоев превышен, вызовы блокируются
    - HALF_OPEN: Тестовый режим, пробуем восстановить
    """
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit Breaker для защиты от каскадных сбоев.

    Отслеживает ошибки вызовов и блокирует вызовы при превышении порога.
    Заблокированный вызов завершается CircuitOpen.

    Атрибуты:
        name: Имя для логов и ошибок
        failure_threshold: Количество ошибок подряд для открытия circuit
        recovery_timeout: Время до попытки восстановления (секунды)
        expected_exception: Тип исключения для отслеживания
        state: Текущее состояние circuit
        failure_count: Счетчик ошибок
        last_failure_time: Время последней ошибки

    Пример:
        >>> breaker = CircuitBreaker("phases", failure_threshold=5, recovery_timeout=60)
        >>> result = await breaker.call(run_phase, run, phase)
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        expected_exception: type = Exception
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None

        logger.info(
            f"CircuitBreaker '{name}' initialized "
            f"(threshold={failure_threshold}, timeout={recovery_timeout}s)"
        )

    async def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Вызвать функцию через Circuit Breaker.

        Raises:
            CircuitOpen: Если circuit OPEN
            Exception: Ошибка самой функции
        """
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                logger.info(f"Circuit breaker '{self.name}' entering HALF_OPEN state")
                self.state = CircuitState.HALF_OPEN
            else:
                logger.warning(f"Circuit breaker '{self.name}' is OPEN, rejecting call")
                raise CircuitOpen(
                    self.name,
                    self.failure_count,
                    details={"retry_after_seconds": self.recovery_timeout},
                )

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception as e:
            self._on_failure()
            logger.error(f"Circuit breaker '{self.name}' recorded failure: {e}")
            raise

        self._on_success()
        return result

    def _on_success(self):
        if self.state == CircuitState.HALF_OPEN:
            logger.info(f"Circuit breaker '{self.name}' recovered, entering CLOSED state")
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = datetime.now(timezone.utc)

        logger.warning(
            f"Circuit breaker '{self.name}' failure count: "
            f"{self.failure_count}/{self.failure_threshold}"
        )

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            logger.error(
                f"Circuit breaker '{self.name}' threshold exceeded, entering OPEN state "
                f"for {self.recovery_timeout} seconds"
            )
            self.state = CircuitState.OPEN

    def _should_attempt_reset(self) -> bool:
        if not self.last_failure_time:
            return False
        elapsed = datetime.now(timezone.utc) - self.last_failure_time
        return elapsed > timedelta(seconds=self.recovery_timeout)

    def get_state(self) -> CircuitState:
        return self.state

    def reset(self):
        """Принудительно сбросить circuit в CLOSED состояние."""
        logger.info(f"Circuit breaker '{self.name}' manually reset to CLOSED state")
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time = None

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "recovery_timeout": self.recovery_timeout,
        }
