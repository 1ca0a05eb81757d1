"""
Примитивы конкурентного доступа.
"""

from .model_lock import ModelLockManager

__all__ = ["ModelLockManager"]
