"""
Инфраструктурные исключения.

Исключения для ошибок работы с внешними системами и инфраструктурой.
"""

from typing import Optional, Dict, Any
from .base import InfrastructureError


class RepositoryError(InfrastructureError):
    """
    Исключение: ошибка работы с репозиторием.

    Пример:
        >>> raise RepositoryError(
        ...     operation="save",
        ...     entity_type="FunctionModel",
        ...     reason="Database connection failed"
        ... )
    """

    def __init__(
        self,
        operation: str,
        entity_type: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            operation: Операция (get, save, delete и т.д.)
            entity_type: Тип сущности
            reason: Причина ошибки
            details: Дополнительные детали
        """
        message = (
            f"Repository error during '{operation}' "
            f"on {entity_type}: {reason}"
        )
        super().__init__(
            message=message,
            details={
                "operation": operation,
                "entity_type": entity_type,
                "reason": reason,
                **(details or {})
            },
            error_code="REPOSITORY_ERROR"
        )


class EventBusError(InfrastructureError):
    """
    Исключение: ошибка публикации события.
    """

    def __init__(
        self,
        event_type: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None
    ):
        message = f"Failed to publish event '{event_type}': {reason}"
        super().__init__(
            message=message,
            details={
                "event_type": event_type,
                "reason": reason,
                **(details or {})
            },
            error_code="EVENT_BUS_ERROR"
        )


class TransientFailure(InfrastructureError):
    """
    Исключение: временный сбой, допускающий повтор.

    Политика восстановления повторяет фазу, завершившуюся
    этой ошибкой, если включено автоматическое восстановление.

    Пример:
        >>> raise TransientFailure("Executor timed out", phase="node-execution")
    """

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        node_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.phase = phase
        self.node_id = node_id
        payload = dict(details or {})
        if phase:
            payload["phase"] = phase
        if node_id:
            payload["node_id"] = node_id
        super().__init__(
            message=message,
            details=payload,
            error_code="TRANSIENT_FAILURE"
        )

    @property
    def is_retryable(self) -> bool:
        return True


class CircuitOpen(InfrastructureError):
    """
    Исключение: circuit breaker разомкнут, попытки приостановлены.
    """

    def __init__(
        self,
        name: str,
        failure_count: int,
        details: Optional[Dict[str, Any]] = None
    ):
        message = (
            f"Circuit '{name}' is open after {failure_count} failures, "
            f"further attempts are suspended"
        )
        super().__init__(
            message=message,
            details={
                "circuit": name,
                "failure_count": failure_count,
                **(details or {})
            },
            error_code="CIRCUIT_OPEN"
        )
