"""
Базовые исключения для Workflow Engine.

Определяет иерархию исключений для различных слоев приложения.
"""

from typing import Optional, Dict, Any


class WorkflowEngineError(Exception):
    """
    Базовое исключение для всех ошибок Workflow Engine.

    Все кастомные исключения должны наследоваться от этого класса.
    Позволяет легко отлавливать все ошибки движка.

    Атрибуты:
        message: Сообщение об ошибке
        details: Дополнительные детали ошибки
        error_code: Код ошибки для идентификации

    Пример:
        >>> try:
        ...     raise WorkflowEngineError("Something went wrong")
        ... except WorkflowEngineError as e:
        ...     print(f"Error: {e}")
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        """
        Инициализация исключения.

        Args:
            message: Сообщение об ошибке
            details: Дополнительные детали (опционально)
            error_code: Код ошибки (опционально)
        """
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def is_retryable(self) -> bool:
        """Можно ли повторить операцию, завершившуюся этой ошибкой."""
        return False

    def to_dict(self) -> Dict[str, Any]:
        """
        Преобразовать исключение в словарь.

        Полезно для логирования, событий и результатов операций.

        Returns:
            Словарь с информацией об ошибке
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        """Строковое представление ошибки"""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class DomainError(WorkflowEngineError):
    """
    Базовое исключение для ошибок доменного слоя.

    Используется для ошибок бизнес-логики, нарушения
    бизнес-правил и инвариантов.
    """
    pass


class InfrastructureError(WorkflowEngineError):
    """
    Базовое исключение для ошибок инфраструктурного слоя.

    Используется для ошибок работы с внешними системами:
    база данных, шина событий, внешние исполнители действий.
    """
    pass


class ApplicationError(WorkflowEngineError):
    """
    Базовое исключение для ошибок прикладного слоя.

    Используется для ошибок в use cases и координаторе выполнения.
    """
    pass
