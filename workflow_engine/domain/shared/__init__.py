"""
Shared kernel: base building blocks for all bounded contexts.
"""

from .base_entity import Entity
from .domain_event import DomainEvent
from .repository import Repository
from .value_object import ValueObject

__all__ = [
    "Entity",
    "DomainEvent",
    "Repository",
    "ValueObject",
]
