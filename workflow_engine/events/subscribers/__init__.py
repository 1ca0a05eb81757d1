"""
Event bus subscribers.
"""

from .audit_logger import AuditLogger

__all__ = ["AuditLogger"]
