"""
Mappers между доменными сущностями и моделями БД.
"""

from .function_model_mapper import FunctionModelMapper

__all__ = ["FunctionModelMapper"]
