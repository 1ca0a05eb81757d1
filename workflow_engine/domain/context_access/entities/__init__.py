"""
Сущности контекста доступа.
"""

from .hierarchical_context import HierarchicalContext

__all__ = ["HierarchicalContext"]
