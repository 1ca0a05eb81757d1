"""
Value Objects контекста выполнения.
"""

from .action_result import ActionBatch, ActionExecutionPlan, ActionOrchestrationResult, ActionResult
from .compensation_record import CompensationRecord, CompensationStatus
from .execution_mode import Environment, ExecutionMode
from .execution_phase import ExecutionPhase
from .execution_state import ExecutionState
from .fractal_structure import FractalStructure
from .node_result import NodeExecutionResult
from .recovery_options import MonitoringOptions, RecoveryOptions

__all__ = [
    "ActionBatch",
    "ActionExecutionPlan",
    "ActionOrchestrationResult",
    "ActionResult",
    "CompensationRecord",
    "CompensationStatus",
    "Environment",
    "ExecutionMode",
    "ExecutionPhase",
    "ExecutionState",
    "FractalStructure",
    "MonitoringOptions",
    "NodeExecutionResult",
    "RecoveryOptions",
]
