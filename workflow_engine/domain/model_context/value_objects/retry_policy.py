"""
Value Object для политики повторов действия.
"""

from enum import Enum

from pydantic import Field, model_validator

from ...shared.value_object import ValueObject


class BackoffStrategy(str, Enum):
    """Стратегия роста задержки между попытками."""
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class RetryPolicy(ValueObject):
    """
    Политика повторов для одного действия.

    Бизнес-правила:
    - max_attempts считает все попытки, включая первую (1..10)
    - backoff_ms не может быть отрицательным
    - задержка не превышает max_backoff_ms

    Example:
        >>> policy = RetryPolicy(max_attempts=3, backoff_ms=100, strategy="exponential")
        >>> [policy.delay_ms(n) for n in (1, 2)]
        [100, 200]
    """

    max_attempts: int = Field(default=1, ge=1, le=10)
    backoff_ms: int = Field(default=0, ge=0)
    strategy: BackoffStrategy = BackoffStrategy.FIXED
    max_backoff_ms: int = Field(default=30_000, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "RetryPolicy":
        if self.backoff_ms > self.max_backoff_ms:
            raise ValueError("backoff_ms cannot exceed max_backoff_ms")
        return self

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(max_attempts=1)

    def delay_ms(self, failed_attempt: int) -> int:
        """
        Задержка перед следующей попыткой.

        Args:
            failed_attempt: Номер неудачной попытки, начиная с 1
        """
        if self.strategy == BackoffStrategy.LINEAR:
            delay = self.backoff_ms * failed_attempt
        elif self.strategy == BackoffStrategy.EXPONENTIAL:
            delay = self.backoff_ms * (2 ** (failed_attempt - 1))
        else:
            delay = self.backoff_ms
        return min(delay, self.max_backoff_ms)
