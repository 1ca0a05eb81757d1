"""
Доменная сущность ExecutionRun.

Эфемерная запись о запуске модели: состояние, текущая фаза,
статусы узлов, счетчики повторов и компенсации.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from pydantic import Field

from ....core.errors import ValidationError
from ...model_context.value_objects import NodeStatus
from ...shared.base_entity import Entity
from ..value_objects import (
    CompensationRecord,
    Environment,
    ExecutionMode,
    ExecutionPhase,
    ExecutionState,
)


class ExecutionRun(Entity):
    """
    Запуск функциональной модели.

    Атрибуты:
        model_id: ID модели
        user_id: Кто запустил
        mode: Режим выполнения узлов
        environment: Целевое окружение
        state: Состояние запуска
        current_phase: Текущая фаза
        completed_phases: Завершенные фазы по порядку
        node_statuses: Статус каждого узла в этом запуске
        skipped_nodes: Узлы, которые не запускались
        phase_attempts: Число попыток каждой фазы
        phase_retries: Число повторов каждой фазы
        recovery_count: Сколько раз запуск переходил в recovering
        compensations: Выполненные компенсации
        input_parameters: Входные параметры
        outputs: Выходы узлов
        errors: Ошибки запуска
        parent_run_id: Родительский запуск (для вложенных моделей)
        depth: Уровень вложенности (0 для корневого запуска)
    """

    model_id: str = Field(..., description="ID модели")
    user_id: str = Field(..., description="Кто запустил")
    mode: ExecutionMode = Field(default=ExecutionMode.SEQUENTIAL, description="Режим выполнения")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Окружение")
    state: ExecutionState = Field(default=ExecutionState.INITIALIZING, description="Состояние")
    current_phase: Optional[ExecutionPhase] = Field(default=None, description="Текущая фаза")
    completed_phases: List[ExecutionPhase] = Field(default_factory=list, description="Завершенные фазы")
    node_statuses: Dict[str, NodeStatus] = Field(default_factory=dict, description="Статусы узлов")
    skipped_nodes: Set[str] = Field(default_factory=set, description="Пропущенные узлы")
    phase_attempts: Dict[str, int] = Field(default_factory=dict, description="Попытки фаз")
    phase_retries: Dict[str, int] = Field(default_factory=dict, description="Повторы фаз")
    recovery_count: int = Field(default=0, ge=0, description="Число восстановлений")
    compensations: List[CompensationRecord] = Field(default_factory=list, description="Компенсации")
    input_parameters: Dict[str, Any] = Field(default_factory=dict, description="Входные параметры")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Выходы узлов")
    errors: List[Dict[str, Any]] = Field(default_factory=list, description="Ошибки")
    parent_run_id: Optional[str] = Field(default=None, description="Родительский запуск")
    depth: int = Field(default=0, ge=0, description="Уровень вложенности")
    started_at: Optional[datetime] = Field(default=None, description="Время старта")
    finished_at: Optional[datetime] = Field(default=None, description="Время завершения")

    @classmethod
    def start_new(
        cls,
        model_id: str,
        user_id: str,
        node_ids: List[str],
        **kwargs: Any
    ) -> "ExecutionRun":
        """Создать запуск со всеми узлами в статусе idle."""
        return cls(
            id=f"run-{uuid.uuid4()}",
            model_id=model_id,
            user_id=user_id,
            node_statuses={node_id: NodeStatus.IDLE for node_id in node_ids},
            **kwargs
        )

    # ==================== Состояние ====================

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def transition_to(self, target: ExecutionState) -> None:
        """
        Перевести запуск в новое состояние.

        Raises:
            ValidationError: Если переход недопустим
        """
        if self.state == target:
            return
        if not self.state.can_transition_to(target):
            raise ValidationError(
                f"Invalid execution state transition: {self.state.value} → {target.value}",
                details={"run_id": self.id},
            )
        if target == ExecutionState.RUNNING and self.started_at is None:
            self.started_at = datetime.now(timezone.utc)
        if target == ExecutionState.RECOVERING:
            self.recovery_count += 1
        self.state = target
        if target.is_terminal:
            self.finished_at = datetime.now(timezone.utc)
        self.mark_updated()

    # ==================== Фазы ====================

    def begin_phase_attempt(self, phase: ExecutionPhase) -> int:
        """Отметить начало попытки фазы и вернуть ее номер."""
        self.current_phase = phase
        attempt = self.phase_attempts.get(phase.value, 0) + 1
        self.phase_attempts[phase.value] = attempt
        return attempt

    def record_phase_retry(self, phase: ExecutionPhase) -> None:
        self.phase_retries[phase.value] = self.phase_retries.get(phase.value, 0) + 1

    def complete_phase(self, phase: ExecutionPhase) -> None:
        if phase not in self.completed_phases:
            self.completed_phases.append(phase)

    def retry_count(self, phase: ExecutionPhase) -> int:
        return self.phase_retries.get(phase.value, 0)

    @property
    def progress_percentage(self) -> int:
        if not self.completed_phases:
            return 0
        return max(phase.progress_on_completion for phase in self.completed_phases)

    # ==================== Узлы ====================

    def set_node_status(self, node_id: str, status: NodeStatus) -> None:
        self.node_statuses[node_id] = status
        self.skipped_nodes.discard(node_id)

    def skip_node(self, node_id: str) -> None:
        self.node_statuses[node_id] = NodeStatus.IDLE
        self.skipped_nodes.add(node_id)

    def node_status(self, node_id: str) -> NodeStatus:
        return self.node_statuses.get(node_id, NodeStatus.IDLE)

    @property
    def completed_nodes(self) -> List[str]:
        return [nid for nid, status in self.node_statuses.items() if status == NodeStatus.COMPLETED]

    @property
    def failed_nodes(self) -> List[str]:
        return [nid for nid, status in self.node_statuses.items() if status == NodeStatus.FAILED]

    @property
    def total_nodes(self) -> int:
        return len(self.node_statuses)

    def skip_unfinished_nodes(self) -> None:
        """Пометить пропущенными узлы, которые не завершились и не упали."""
        for node_id, status in self.node_statuses.items():
            if status not in (NodeStatus.COMPLETED, NodeStatus.FAILED):
                self.skip_node(node_id)

    # ==================== Итоги ====================

    def record_error(self, error: Dict[str, Any]) -> None:
        self.errors.append(error)
        self.mark_updated()

    def add_compensation(self, record: CompensationRecord) -> None:
        self.compensations.append(record)

    @property
    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "model_id": self.model_id,
            "user_id": self.user_id,
            "mode": self.mode.value,
            "environment": self.environment.value,
            "state": self.state.value,
            "current_phase": self.current_phase.value if self.current_phase else None,
            "completed_phases": [phase.value for phase in self.completed_phases],
            "completed_nodes": self.completed_nodes,
            "failed_nodes": self.failed_nodes,
            "skipped_nodes": sorted(self.skipped_nodes),
            "phase_retries": dict(self.phase_retries),
            "recovery_count": self.recovery_count,
            "compensations": [record.to_dict() for record in self.compensations],
            "errors": list(self.errors),
            "parent_run_id": self.parent_run_id,
            "depth": self.depth,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        })
        return data
