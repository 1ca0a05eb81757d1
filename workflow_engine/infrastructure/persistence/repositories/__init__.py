"""
Реализации репозиториев.
"""

from .function_model_repository_impl import FunctionModelRepositoryImpl
from .in_memory_model_repository import InMemoryModelRepository

__all__ = ["FunctionModelRepositoryImpl", "InMemoryModelRepository"]
