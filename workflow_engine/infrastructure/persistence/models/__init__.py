"""
SQLAlchemy models.
"""

from .base import Base
from .function_model import FunctionModelRecord

__all__ = ["Base", "FunctionModelRecord"]
