"""
Сущности контекста моделей.
"""

from .action_node import ActionNode
from .function_model import FunctionModel
from .node import ContainerNode

__all__ = [
    "ActionNode",
    "ContainerNode",
    "FunctionModel",
]
