"""
Сущности контекста выполнения.
"""

from .execution_run import ExecutionRun

__all__ = ["ExecutionRun"]
