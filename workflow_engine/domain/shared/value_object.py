"""
Base Value Object class for Domain-Driven Design.

This module provides the foundation for all value objects following DDD principles.
"""

from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """
    Base class for all value objects.

    A value object is defined by its attributes, not by identity.
    Two value objects with the same attributes are considered equal.

    Principles:
    - Immutability: Value objects cannot be modified after creation
    - Equality: Based on attributes, not identity
    - Self-validation: Value objects validate themselves on creation

    Usage:
        class Position(ValueObject):
            x: float = 0.0
            y: float = 0.0

        moved = position.model_copy(update={"x": 10.0})
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())
