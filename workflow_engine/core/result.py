"""
Результат операции: успех со значением или неудача с типизированной ошибкой.

Use cases и координатор возвращают Result на своей границе,
доменный код выбрасывает исключения из core.errors.
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from .errors import WorkflowEngineError

T = TypeVar("T")


class Result(Generic[T]):
    """
    Результат операции.

    Пример:
        >>> result = Result.ok({"run_id": "run-1"})
        >>> result.is_success
        True
        >>> failed = Result.fail(ValidationError("Model is not published"))
        >>> failed.error.error_code
        'VALIDATION_ERROR'
    """

    def __init__(
        self,
        value: Optional[T] = None,
        error: Optional[WorkflowEngineError] = None
    ):
        self._value = value
        self._error = error

    @staticmethod
    def ok(value: Optional[T] = None) -> "Result[T]":
        """Создать успешный результат."""
        return Result(value=value)

    @staticmethod
    def fail(error: WorkflowEngineError) -> "Result[T]":
        """Создать неуспешный результат."""
        return Result(error=error)

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def is_failure(self) -> bool:
        return self._error is not None

    @property
    def value(self) -> T:
        """
        Значение успешного результата.

        Raises:
            ValueError: Если результат неуспешный
        """
        if self._error is not None:
            raise ValueError(f"Cannot read value of failed result: {self._error.message}")
        return self._value

    @property
    def error(self) -> Optional[WorkflowEngineError]:
        return self._error

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать в словарь"""
        if self._error is not None:
            return {"success": False, "error": self._error.to_dict()}
        return {"success": True, "value": self._value}

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.fail({self._error.error_code}: {self._error.message})"
        return f"Result.ok({self._value!r})"
