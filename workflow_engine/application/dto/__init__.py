"""
Data Transfer Objects (DTO).

DTO используются для передачи данных между слоями приложения.
Они изолируют внутреннюю структуру доменных сущностей от внешнего API.
"""

from .execution_dto import DryRunReport, ExecutionProgress, ExecutionReport, ExecutionRequest
from .model_dto import ModelDTO, NodeAddedDTO

__all__ = [
    "DryRunReport",
    "ExecutionProgress",
    "ExecutionReport",
    "ExecutionRequest",
    "ModelDTO",
    "NodeAddedDTO",
]
