"""
Data Transfer Objects для запусков моделей.

ExecutionRequest неизменяем: вложенный запуск получает копию
с новыми model_id и input_parameters, а не изменяет исходный запрос.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...domain.execution_context.entities import ExecutionRun
from ...domain.execution_context.value_objects import (
    ActionExecutionPlan,
    Environment,
    ExecutionMode,
    FractalStructure,
    MonitoringOptions,
    RecoveryOptions,
)
from ...domain.model_context.value_objects import ExecutionGraph


class ExecutionRequest(BaseModel):
    """
    Запрос на запуск модели.

    Атрибуты:
        model_id: ID модели
        user_id: Кто запускает
        execution_mode: Режим выполнения узлов
        environment: Целевое окружение
        input_parameters: Входные параметры
        recovery: Параметры восстановления
        monitoring: Параметры наблюдения
        dry_run: Только построить план, не выполняя узлы

    Пример:
        >>> request = ExecutionRequest(
        ...     model_id="model-1",
        ...     user_id="alice",
        ...     execution_mode=ExecutionMode.SEQUENTIAL,
        ...     input_parameters={"order_id": 7}
        ... )
    """

    model_config = ConfigDict(frozen=True)

    model_id: str = Field(description="ID модели")
    user_id: str = Field(description="Кто запускает")
    execution_mode: ExecutionMode = Field(default=ExecutionMode.SEQUENTIAL, description="Режим выполнения")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Окружение")
    input_parameters: Dict[str, Any] = Field(default_factory=dict, description="Входные параметры")
    recovery: RecoveryOptions = Field(default_factory=RecoveryOptions, description="Восстановление")
    monitoring: MonitoringOptions = Field(default_factory=MonitoringOptions, description="Наблюдение")
    dry_run: bool = Field(default=False, description="Только план")


class ExecutionProgress(BaseModel):
    """
    Снимок прогресса запуска, передается в callback прогресса.

    Атрибуты:
        run_id: ID запуска
        model_id: ID модели
        state: Состояние запуска
        phase: Текущая фаза
        total_nodes: Всего узлов
        completed_nodes: Завершено узлов
        failed_nodes: Упало узлов
        skipped_nodes: Пропущено узлов
        percentage: Процент выполнения
        elapsed_ms: Время с начала запуска
        dependency_stats: Статистика графа зависимостей
        context_stats: Статистика дерева контекстов
        orchestration_stats: Статистика действий и вложенных моделей
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    model_id: str
    state: str
    phase: Optional[str] = None
    total_nodes: int = 0
    completed_nodes: int = 0
    failed_nodes: int = 0
    skipped_nodes: int = 0
    percentage: int = 0
    elapsed_ms: float = 0.0
    dependency_stats: Dict[str, Any] = Field(default_factory=dict)
    context_stats: Dict[str, Any] = Field(default_factory=dict)
    orchestration_stats: Dict[str, Any] = Field(default_factory=dict)


class ExecutionReport(BaseModel):
    """
    Итог запуска.

    Атрибуты:
        run_id: ID запуска
        model_id: ID модели
        state: Итоговое состояние
        completed_nodes: Завершенные узлы
        failed_nodes: Упавшие узлы
        skipped_nodes: Пропущенные узлы
        outputs: Выходы всех узлов
        final_outputs: Выходы выходных граничных узлов
        phase_retries: Повторы по фазам
        recovery_count: Сколько раз запуск восстанавливался
        compensations: Выполненные компенсации по порядку
        errors: Ошибки запуска
        duration_ms: Длительность
        fractal_levels: Наибольший достигнутый уровень вложенности
        parent_run_id: Родительский запуск
    """

    run_id: str
    model_id: str
    state: str
    completed_nodes: List[str] = Field(default_factory=list)
    failed_nodes: List[str] = Field(default_factory=list)
    skipped_nodes: List[str] = Field(default_factory=list)
    outputs: Dict[str, Any] = Field(default_factory=dict)
    final_outputs: Dict[str, Any] = Field(default_factory=dict)
    phase_retries: Dict[str, int] = Field(default_factory=dict)
    recovery_count: int = 0
    compensations: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    duration_ms: float = 0.0
    fractal_levels: int = 0
    parent_run_id: Optional[str] = None

    @classmethod
    def from_run(
        cls,
        run: ExecutionRun,
        final_outputs: Optional[Dict[str, Any]] = None,
        fractal_levels: int = 0
    ) -> "ExecutionReport":
        return cls(
            run_id=run.id,
            model_id=run.model_id,
            state=run.state.value,
            completed_nodes=run.completed_nodes,
            failed_nodes=run.failed_nodes,
            skipped_nodes=sorted(run.skipped_nodes),
            outputs=dict(run.outputs),
            final_outputs=dict(final_outputs or {}),
            phase_retries=dict(run.phase_retries),
            recovery_count=run.recovery_count,
            compensations=[record.to_dict() for record in run.compensations],
            errors=list(run.errors),
            duration_ms=run.elapsed_ms,
            fractal_levels=fractal_levels,
            parent_run_id=run.parent_run_id,
        )


class DryRunReport(BaseModel):
    """
    План запуска без выполнения узлов.

    Атрибуты:
        model_id: ID модели
        execution_order: Топологический порядок узлов
        levels: Уровни выполнения
        critical_path: Критический путь
        parallel_opportunities: Число независимых пар узлов
        action_plans: План действий каждого узла
        estimated_duration_s: Оценка по критическому пути
        fractal_structure: Анализ вложенных моделей
        warnings: Предупреждения валидации
    """

    model_id: str
    execution_order: List[str] = Field(default_factory=list)
    levels: List[List[str]] = Field(default_factory=list)
    critical_path: List[str] = Field(default_factory=list)
    parallel_opportunities: int = 0
    action_plans: Dict[str, ActionExecutionPlan] = Field(default_factory=dict)
    estimated_duration_s: float = 0.0
    fractal_structure: Optional[FractalStructure] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_graph(
        cls,
        model_id: str,
        graph: ExecutionGraph,
        action_plans: Dict[str, ActionExecutionPlan],
        fractal_structure: Optional[FractalStructure] = None,
        warnings: Optional[List[str]] = None
    ) -> "DryRunReport":
        estimate = sum(
            action_plans[node_id].estimated_duration_s
            for node_id in graph.critical_path
            if node_id in action_plans
        )
        return cls(
            model_id=model_id,
            execution_order=list(graph.order),
            levels=[list(level) for level in graph.levels],
            critical_path=list(graph.critical_path),
            parallel_opportunities=graph.parallel_opportunities,
            action_plans=action_plans,
            estimated_duration_s=estimate,
            fractal_structure=fractal_structure,
            warnings=list(warnings or []),
        )
