"""
Value Objects контекста доступа.
"""

from .context_access_decision import ContextAccessDecision
from .context_scope import AccessLevel, ContextScope
from .inheritance_rule import InheritanceRule

__all__ = [
    "AccessLevel",
    "ContextAccessDecision",
    "ContextScope",
    "InheritanceRule",
]
