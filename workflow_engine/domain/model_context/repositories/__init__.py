"""
Интерфейсы репозиториев контекста моделей.
"""

from .model_repository import ModelRepository

__all__ = ["ModelRepository"]
