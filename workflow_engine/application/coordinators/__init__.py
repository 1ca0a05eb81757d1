"""
Координаторы уровня приложения.
"""

from .execution_coordinator import ExecutionCoordinator, RunCancelled
from .run_registry import ProgressCallback, RunHandle, RunRegistry

__all__ = [
    "ExecutionCoordinator",
    "ProgressCallback",
    "RunCancelled",
    "RunHandle",
    "RunRegistry",
]
