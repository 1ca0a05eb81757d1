"""
Кастомные исключения для Workflow Engine.

Этот модуль содержит иерархию исключений для различных
ошибочных ситуаций в системе.
"""

from .base import (
    WorkflowEngineError,
    DomainError,
    InfrastructureError,
    ApplicationError
)

from .domain_errors import (
    ValidationError,
    NotFoundError,
    PermissionDeniedError,
    ConflictError,
    VersionConflictError,
    CircularReferenceDetected
)

from .infrastructure_errors import (
    RepositoryError,
    EventBusError,
    TransientFailure,
    CircuitOpen
)

__all__ = [
    # Базовые исключения
    "WorkflowEngineError",
    "DomainError",
    "InfrastructureError",
    "ApplicationError",

    # Доменные исключения
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "VersionConflictError",
    "CircularReferenceDetected",

    # Инфраструктурные исключения
    "RepositoryError",
    "EventBusError",
    "TransientFailure",
    "CircuitOpen",
]
