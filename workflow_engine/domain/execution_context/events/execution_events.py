"""
Domain Events для Execution Context.

События запуска модели. aggregate_id всегда равен ID запуска,
ID модели передается в данных события.
"""

from typing import Any, ClassVar, Dict, List, Optional

from ...shared.domain_event import DomainEvent


class ExecutionEvent(DomainEvent):
    """Базовое событие запуска."""

    EVENT_TYPE: ClassVar[str] = "execution.event"

    def __init__(self, run_id: str, model_id: str, user_id: Optional[str] = None):
        super().__init__(aggregate_id=run_id, user_id=user_id)
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    def event_data(self) -> Dict[str, Any]:
        return {"model_id": self._model_id}


class ExecutionStarted(ExecutionEvent):
    """Запуск начат."""

    EVENT_TYPE: ClassVar[str] = "execution.started"

    def __init__(
        self,
        run_id: str,
        model_id: str,
        mode: str,
        environment: str,
        user_id: Optional[str] = None
    ):
        super().__init__(run_id, model_id, user_id=user_id)
        self._mode = mode
        self._environment = environment

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "mode": self._mode, "environment": self._environment}


class PhaseStarted(ExecutionEvent):
    """Начата попытка фазы."""

    EVENT_TYPE: ClassVar[str] = "execution.phase.started"

    def __init__(self, run_id: str, model_id: str, phase: str, attempt: int):
        super().__init__(run_id, model_id)
        self._phase = phase
        self._attempt = attempt

    @property
    def phase(self) -> str:
        return self._phase

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "phase": self._phase, "attempt": self._attempt}


class PhaseCompleted(ExecutionEvent):
    """Фаза завершена."""

    EVENT_TYPE: ClassVar[str] = "execution.phase.completed"

    def __init__(self, run_id: str, model_id: str, phase: str, retries: int):
        super().__init__(run_id, model_id)
        self._phase = phase
        self._retries = retries

    @property
    def phase(self) -> str:
        return self._phase

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "phase": self._phase, "retries": self._retries}


class NodeExecutionStarted(ExecutionEvent):
    """Начато выполнение узла."""

    EVENT_TYPE: ClassVar[str] = "execution.node.started"

    def __init__(self, run_id: str, model_id: str, node_id: str):
        super().__init__(run_id, model_id)
        self._node_id = node_id

    @property
    def node_id(self) -> str:
        return self._node_id

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "node_id": self._node_id}


class NodeExecutionCompleted(NodeExecutionStarted):
    """Узел выполнен."""

    EVENT_TYPE: ClassVar[str] = "execution.node.completed"

    def __init__(self, run_id: str, model_id: str, node_id: str, duration_ms: float):
        super().__init__(run_id, model_id, node_id)
        self._duration_ms = duration_ms

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "duration_ms": self._duration_ms}


class NodeExecutionFailed(NodeExecutionStarted):
    """Узел завершился ошибкой."""

    EVENT_TYPE: ClassVar[str] = "execution.node.failed"

    def __init__(self, run_id: str, model_id: str, node_id: str, error: Dict[str, Any]):
        super().__init__(run_id, model_id, node_id)
        self._error = error

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "error": self._error}


class ExecutionPaused(ExecutionEvent):
    """Запуск приостановлен."""

    EVENT_TYPE: ClassVar[str] = "execution.paused"


class ExecutionResumed(ExecutionEvent):
    """Запуск возобновлен."""

    EVENT_TYPE: ClassVar[str] = "execution.resumed"


class ExecutionCompleted(ExecutionEvent):
    """Запуск успешно завершен."""

    EVENT_TYPE: ClassVar[str] = "execution.completed"

    def __init__(
        self,
        run_id: str,
        model_id: str,
        completed_nodes: List[str],
        duration_ms: float,
        user_id: Optional[str] = None
    ):
        super().__init__(run_id, model_id, user_id=user_id)
        self._completed_nodes = list(completed_nodes)
        self._duration_ms = duration_ms

    def event_data(self) -> Dict[str, Any]:
        return {
            **super().event_data(),
            "completed_nodes": list(self._completed_nodes),
            "duration_ms": self._duration_ms,
        }


class ExecutionFailed(ExecutionEvent):
    """Запуск завершился ошибкой."""

    EVENT_TYPE: ClassVar[str] = "execution.failed"

    def __init__(
        self,
        run_id: str,
        model_id: str,
        phase: Optional[str],
        error: Dict[str, Any],
        compensations: int,
        user_id: Optional[str] = None
    ):
        super().__init__(run_id, model_id, user_id=user_id)
        self._phase = phase
        self._error = error
        self._compensations = compensations

    def event_data(self) -> Dict[str, Any]:
        return {
            **super().event_data(),
            "phase": self._phase,
            "error": self._error,
            "compensations": self._compensations,
        }


class ExecutionCancelled(ExecutionEvent):
    """Запуск остановлен пользователем."""

    EVENT_TYPE: ClassVar[str] = "execution.cancelled"

    def __init__(
        self,
        run_id: str,
        model_id: str,
        phase: Optional[str],
        user_id: Optional[str] = None
    ):
        super().__init__(run_id, model_id, user_id=user_id)
        self._phase = phase

    def event_data(self) -> Dict[str, Any]:
        return {**super().event_data(), "phase": self._phase}
