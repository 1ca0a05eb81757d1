"""
Доменные исключения.

Исключения для ошибок бизнес-логики и нарушения бизнес-правил.
"""

from typing import Optional, Dict, Any, List
from .base import DomainError


class ValidationError(DomainError):
    """
    Исключение: некорректные входные данные или нарушение структуры.

    Никогда не повторяется политикой восстановления: причина
    в неверных предусловиях, а не во временном сбое.

    Пример:
        >>> raise ValidationError(
        ...     "Cannot publish invalid workflow",
        ...     errors=["Workflow must have at least one input node"]
        ... )
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: Сообщение об ошибке
            errors: Список конкретных нарушений
            details: Дополнительные детали
        """
        self.errors = list(errors or [])
        payload = dict(details or {})
        if self.errors:
            payload["errors"] = self.errors
        super().__init__(
            message=message,
            details=payload,
            error_code="VALIDATION_ERROR"
        )


class NotFoundError(DomainError):
    """
    Исключение: сущность не найдена.

    Пример:
        >>> raise NotFoundError("FunctionModel", "model-123")
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            entity_type: Тип сущности
            entity_id: ID несуществующей сущности
            details: Дополнительные детали
        """
        self.entity_type = entity_type
        self.entity_id = entity_id
        message = f"{entity_type} '{entity_id}' not found"
        super().__init__(
            message=message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                **(details or {})
            },
            error_code="NOT_FOUND"
        )


class PermissionDeniedError(DomainError):
    """
    Исключение: у пользователя нет нужной роли.

    Пример:
        >>> raise PermissionDeniedError("user-1", "execute", "model-123")
    """

    def __init__(
        self,
        user_id: str,
        action: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            user_id: ID пользователя
            action: Запрошенное действие
            resource_id: ID ресурса
            details: Дополнительные детали
        """
        message = f"User '{user_id}' is not allowed to {action} '{resource_id}'"
        super().__init__(
            message=message,
            details={
                "user_id": user_id,
                "action": action,
                "resource_id": resource_id,
                **(details or {})
            },
            error_code="PERMISSION_ERROR"
        )


class ConflictError(DomainError):
    """
    Исключение: конфликт состояния.

    Выбрасывается при конфликте версий или когда операция с тем же
    ключом идемпотентности уже выполняется.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "CONFLICT"
    ):
        super().__init__(
            message=message,
            details=details,
            error_code=error_code
        )


class VersionConflictError(ConflictError):
    """
    Исключение: оптимистичная проверка версии не прошла.

    Вызывающий код должен перечитать агрегат и повторить операцию.

    Пример:
        >>> raise VersionConflictError("model-123", expected=3, actual=4)
    """

    def __init__(
        self,
        entity_id: str,
        expected: int,
        actual: Optional[int],
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            entity_id: ID сущности
            expected: Версия, прочитанная вызывающим кодом
            actual: Текущая версия в хранилище (None, если строку изменили
                во время записи)
            details: Дополнительные детали
        """
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        found = "a concurrent write" if actual is None else actual
        message = (
            f"Version conflict for '{entity_id}': "
            f"expected {expected}, found {found}"
        )
        super().__init__(
            message=message,
            details={
                "entity_id": entity_id,
                "expected_version": expected,
                "actual_version": actual,
                **(details or {})
            },
            error_code="VERSION_CONFLICT"
        )


class CircularReferenceDetected(DomainError):
    """
    Исключение: цикл в графе зависимостей, цепочке контекстов
    или во вложенных моделях.

    Атрибуты:
        chain: Цепочка ID, образующая цикл

    Пример:
        >>> raise CircularReferenceDetected(["a", "b", "a"])
    """

    def __init__(
        self,
        chain: List[str],
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.chain = list(chain)
        message = message or f"Circular reference detected: {' → '.join(self.chain)}"
        super().__init__(
            message=message,
            details={"chain": self.chain, **(details or {})},
            error_code="CIRCULAR_REFERENCE"
        )
