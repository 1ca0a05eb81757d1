"""
Domain Services контекста доступа.
"""

from .context_store import ContextStore
from .hierarchical_context_service import HierarchicalContextService, deep_merge

__all__ = [
    "ContextStore",
    "HierarchicalContextService",
    "deep_merge",
]
