"""
Интерфейсы domain слоя.

Этот модуль содержит абстрактные интерфейсы, определяющие контракты
для взаимодействия между слоями приложения.
"""

from .action_executor import IActionExecutor
from .event_publisher import IEventPublisher

__all__ = ["IActionExecutor", "IEventPublisher"]
