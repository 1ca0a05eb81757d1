"""
Domain Services контекста моделей.

Валидаторы импортируются из workflow_validation_service напрямую:
они зависят от сущностей, а сущности зависят от построителя графа.
"""

from .dependency_graph_builder import DependencyGraphBuilder

__all__ = [
    "DependencyGraphBuilder",
]
