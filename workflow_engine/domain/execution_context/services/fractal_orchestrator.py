"""
FractalOrchestrator - Domain Service для выполнения вложенных моделей.

Действие function_model_container ссылается на другую функциональную
модель. Оркестратор загружает ее, выделяет изолированный дочерний
контекст и рекурсивно запускает модель через runner координатора.
Рекурсия ограничена множеством посещенных моделей и max_depth.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ....core.errors import CircularReferenceDetected, NotFoundError, ValidationError
from ...context_access.services import HierarchicalContextService, deep_merge
from ...context_access.value_objects import ContextScope
from ...model_context.entities import ActionNode, FunctionModel
from ...model_context.repositories import ModelRepository
from ..value_objects import FractalStructure

logger = logging.getLogger("workflow-engine.execution_context.fractal_orchestrator")

# runner(model, input_parameters, visited, depth) -> выходы вложенного запуска
NestedRunner = Callable[[FunctionModel, Dict[str, Any], Tuple[str, ...], int], Awaitable[Dict[str, Any]]]


class FractalOrchestrator:
    """
    Исполнитель вложенных моделей.

    Attributes:
        repository: Репозиторий моделей
        context_service: Сервис контекстов текущего запуска
        runner: Запускает вложенную модель и возвращает ее выходы
        max_depth: Максимальный уровень вложенности

    Example:
        >>> fractal = FractalOrchestrator(repository, context_service, coordinator_runner)
        >>> output = await fractal.execute_nested(action, ctx.id, ("model-root",), 0)
        >>> output["fractal_level"]
        1
    """

    def __init__(
        self,
        repository: ModelRepository,
        context_service: HierarchicalContextService,
        runner: Optional[NestedRunner] = None,
        max_depth: int = 10
    ):
        self.repository = repository
        self.context_service = context_service
        self.runner = runner
        self.max_depth = max_depth
        self._fractal_levels = 0
        self._nested_runs = 0

    @property
    def fractal_levels(self) -> int:
        """Самый глубокий достигнутый уровень вложенности."""
        return self._fractal_levels

    async def execute_nested(
        self,
        action: ActionNode,
        parent_context_id: Optional[str],
        visited: Tuple[str, ...],
        depth: int
    ) -> Dict[str, Any]:
        """
        Выполнить вложенную модель действия.

        Args:
            action: Действие function_model_container
            parent_context_id: Контекст узла-владельца действия
            visited: ID моделей в текущей цепочке (включая текущую)
            depth: Уровень модели, которой принадлежит действие

        Returns:
            nested_model_id, nested_outputs и fractal_level

        Raises:
            CircularReferenceDetected: Модель уже есть в цепочке вложенности
            ValidationError: Превышена глубина или модель не опубликована
            NotFoundError: Модель не найдена или удалена
        """
        nested_id = action.nested_model_id
        if nested_id is None:
            raise ValidationError(
                "Action does not reference a nested model",
                details={"action_id": action.id},
            )
        if nested_id in visited:
            chain = list(visited) + [nested_id]
            raise CircularReferenceDetected(
                chain,
                message=f"Fractal model cycle detected: {' → '.join(chain)}",
            )

        level = depth + 1
        if level > self.max_depth:
            raise ValidationError(
                f"Maximum fractal depth {self.max_depth} exceeded",
                details={"nested_model_id": nested_id, "level": level},
            )
        if self.runner is None:
            raise ValidationError("Nested model runner is not configured")

        model = await self.repository.find_by_id(nested_id)
        if model is None or model.is_deleted:
            raise NotFoundError("FunctionModel", nested_id)
        if not model.is_published:
            raise ValidationError(
                "Nested model must be published before execution",
                details={"nested_model_id": nested_id, "status": model.status.value},
            )

        inputs = self._derive_inputs(action, nested_id, parent_context_id)
        self._fractal_levels = max(self._fractal_levels, level)
        self._nested_runs += 1

        logger.info(f"Executing nested model {nested_id} at fractal level {level}")
        outputs = await self.runner(model, inputs, visited + (nested_id,), level)

        return {
            "nested_model_id": nested_id,
            "nested_outputs": outputs,
            "fractal_level": level,
        }

    def _derive_inputs(
        self,
        action: ActionNode,
        nested_id: str,
        parent_context_id: Optional[str]
    ) -> Dict[str, Any]:
        """Изолированный дочерний контекст плюс параметры из payload действия."""
        explicit = action.payload.get("input_parameters") or {}
        if parent_context_id is None or parent_context_id not in self.context_service.store:
            return dict(explicit)

        excluded = action.payload.get("exclude_properties") or []
        child = self.context_service.clone_context_scope(
            parent_context_id,
            f"{action.id}:{nested_id}",
            ContextScope.ISOLATED,
            exclude_properties=excluded,
            parent_context_id=parent_context_id,
        )
        # inherited_data carries the parent's full view, excluded keys included
        inputs = child.effective_data()
        for prop in excluded:
            inputs.pop(prop, None)
        return deep_merge(inputs, explicit)

    async def analyze_fractal_structure(self, model: FunctionModel) -> FractalStructure:
        """
        Статический анализ вложенности без запуска.

        Обходит ссылки на вложенные модели через репозиторий, находит
        цикл, отсутствующие модели и наибольшую глубину.
        """
        cache: Dict[str, Optional[FunctionModel]] = {model.id: model}
        nested: List[str] = []
        missing: List[str] = []
        cycle: List[str] = []

        async def load(model_id: str) -> Optional[FunctionModel]:
            if model_id not in cache:
                cache[model_id] = await self.repository.find_by_id(model_id)
            return cache[model_id]

        async def walk(current: FunctionModel, path: Tuple[str, ...]) -> int:
            deepest = 0
            for nested_id in current.nested_model_ids():
                if nested_id in path:
                    if not cycle:
                        cycle.extend(list(path) + [nested_id])
                    continue
                child = await load(nested_id)
                if child is None or child.is_deleted:
                    if nested_id not in missing:
                        missing.append(nested_id)
                    continue
                if nested_id not in nested:
                    nested.append(nested_id)
                if len(path) > self.max_depth:
                    deepest = max(deepest, 1)
                    continue
                deepest = max(deepest, 1 + await walk(child, path + (nested_id,)))
            return deepest

        max_depth = await walk(model, (model.id,))
        return FractalStructure(
            model_id=model.id,
            max_depth=max_depth,
            nested_model_ids=tuple(nested),
            missing_model_ids=tuple(missing),
            cycle=tuple(cycle),
            exceeds_max_depth=max_depth > self.max_depth,
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "fractal_levels": self._fractal_levels,
            "nested_runs": self._nested_runs,
            "max_depth": self.max_depth,
        }
