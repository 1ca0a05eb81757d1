"""
Use Cases приложения.

Каждый Use Case координирует один сценарий и возвращает Result.
"""

from .add_action_node_use_case import AddActionNodeRequest, AddActionNodeUseCase
from .add_container_node_use_case import AddContainerNodeRequest, AddContainerNodeUseCase
from .add_dependency_use_case import AddDependencyRequest, AddDependencyUseCase
from .base_use_case import ModelCommandUseCase, UseCase
from .create_model_use_case import CreateModelRequest, CreateModelUseCase
from .execute_workflow_use_case import ExecuteWorkflowUseCase
from .execution_control_use_cases import (
    ExecutionControlRequest,
    GetExecutionStatusUseCase,
    PauseExecutionUseCase,
    ResumeExecutionUseCase,
    StopExecutionUseCase,
)
from .model_lifecycle_use_cases import (
    ArchiveModelUseCase,
    ModelLifecycleRequest,
    RestoreModelUseCase,
    SoftDeleteModelUseCase,
)
from .publish_model_use_case import PublishedModelDTO, PublishModelRequest, PublishModelUseCase

__all__ = [
    "AddActionNodeRequest",
    "AddActionNodeUseCase",
    "AddContainerNodeRequest",
    "AddContainerNodeUseCase",
    "AddDependencyRequest",
    "AddDependencyUseCase",
    "ArchiveModelUseCase",
    "CreateModelRequest",
    "CreateModelUseCase",
    "ExecuteWorkflowUseCase",
    "ExecutionControlRequest",
    "GetExecutionStatusUseCase",
    "ModelCommandUseCase",
    "ModelLifecycleRequest",
    "PauseExecutionUseCase",
    "PublishedModelDTO",
    "PublishModelRequest",
    "PublishModelUseCase",
    "RestoreModelUseCase",
    "ResumeExecutionUseCase",
    "SoftDeleteModelUseCase",
    "StopExecutionUseCase",
    "UseCase",
]
