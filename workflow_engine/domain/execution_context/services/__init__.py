"""
Domain Services контекста выполнения.
"""

from .action_orchestrator import ActionOrchestrator
from .fractal_orchestrator import FractalOrchestrator, NestedRunner
from .node_execution_service import NodeExecutionService
from .recovery_policy import CompensationStack, RecoveryPolicy

__all__ = [
    "ActionOrchestrator",
    "CompensationStack",
    "FractalOrchestrator",
    "NestedRunner",
    "NodeExecutionService",
    "RecoveryPolicy",
]
