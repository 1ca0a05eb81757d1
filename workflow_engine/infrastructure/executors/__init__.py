"""
Исполнители действий.
"""

from .echo_executor import EchoActionExecutor

__all__ = ["EchoActionExecutor"]
