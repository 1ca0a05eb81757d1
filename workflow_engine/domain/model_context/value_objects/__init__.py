"""
Value Objects для графа функциональной модели.
"""

from .execution_graph import ExecutionGraph
from .model_permissions import ModelPermissions, ModelRole
from .model_status import ModelStatus
from .model_version import ModelVersion
from .node_kind import ActionExecutionMode, ActionType, BoundaryType, ContainerType
from .node_status import NodeStatus
from .position import Position
from .retry_policy import BackoffStrategy, RetryPolicy
from .workflow_validation import WorkflowValidation

__all__ = [
    "ExecutionGraph",
    "ModelPermissions",
    "ModelRole",
    "ModelStatus",
    "ModelVersion",
    "ActionExecutionMode",
    "ActionType",
    "BoundaryType",
    "ContainerType",
    "NodeStatus",
    "Position",
    "BackoffStrategy",
    "RetryPolicy",
    "WorkflowValidation",
]
