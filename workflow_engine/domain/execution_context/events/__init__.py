"""
Доменные события контекста выполнения.
"""

from .execution_events import (
    ExecutionCancelled,
    ExecutionCompleted,
    ExecutionEvent,
    ExecutionFailed,
    ExecutionPaused,
    ExecutionResumed,
    ExecutionStarted,
    NodeExecutionCompleted,
    NodeExecutionFailed,
    NodeExecutionStarted,
    PhaseCompleted,
    PhaseStarted,
)

__all__ = [
    "ExecutionCancelled",
    "ExecutionCompleted",
    "ExecutionEvent",
    "ExecutionFailed",
    "ExecutionPaused",
    "ExecutionResumed",
    "ExecutionStarted",
    "NodeExecutionCompleted",
    "NodeExecutionFailed",
    "NodeExecutionStarted",
    "PhaseCompleted",
    "PhaseStarted",
]
