"""
Доменные события контекста моделей.
"""

from .model_events import (
    ActionNodeAdded,
    ContainerNodeAdded,
    ModelArchived,
    ModelCreated,
    ModelPublished,
    ModelRestored,
    ModelSoftDeleted,
    ModelVersionBumped,
    NodeRemoved,
)

__all__ = [
    "ActionNodeAdded",
    "ContainerNodeAdded",
    "ModelArchived",
    "ModelCreated",
    "ModelPublished",
    "ModelRestored",
    "ModelSoftDeleted",
    "ModelVersionBumped",
    "NodeRemoved",
]
