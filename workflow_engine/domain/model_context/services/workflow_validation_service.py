"""
Domain Services для проверки функциональной модели.

Пять валидаторов (структура, бизнес-правила, готовность к выполнению,
контекст, межмодельные ссылки) и фасад, объединяющий их отчеты.
Любая проблема с серьезностью error блокирует публикацию или выполнение.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...shared.value_object import ValueObject
from ..entities import FunctionModel
from ..repositories import ModelRepository
from ..value_objects import ActionType
from .dependency_graph_builder import DependencyGraphBuilder

logger = logging.getLogger("workflow-engine.model_context.validation")

MAX_NAME_LENGTH = 100
LARGE_WORKFLOW_NODES = 50
LONG_ACTION_SECONDS = 3600


class IssueSeverity(str, Enum):
    """Серьезность проблемы."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(ValueObject):
    """
    Одна найденная проблема.

    Атрибуты:
        severity: Серьезность
        code: Машиночитаемый код проблемы
        message: Сообщение для пользователя
        node_id: Узел или действие, к которому относится проблема
    """

    severity: IssueSeverity
    code: str
    message: str
    node_id: Optional[str] = None

    @classmethod
    def error(cls, code: str, message: str, node_id: Optional[str] = None) -> "ValidationIssue":
        return cls(severity=IssueSeverity.ERROR, code=code, message=message, node_id=node_id)

    @classmethod
    def warning(cls, code: str, message: str, node_id: Optional[str] = None) -> "ValidationIssue":
        return cls(severity=IssueSeverity.WARNING, code=code, message=message, node_id=node_id)


class ValidationReport(ValueObject):
    """
    Отчет валидатора.

    Example:
        >>> report = await StructuralValidator().validate(model)
        >>> report.is_valid
        True
        >>> [issue.code for issue in report.warnings]
        ['NO_STAGE_NODES']
    """

    validator: str
    issues: Tuple[ValidationIssue, ...] = ()

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.WARNING]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_messages(self) -> List[str]:
        return [issue.message for issue in self.errors]

    @classmethod
    def combine(cls, validator: str, reports: Iterable["ValidationReport"]) -> "ValidationReport":
        """Объединить несколько отчетов в один."""
        issues: List[ValidationIssue] = []
        for report in reports:
            issues.extend(report.issues)
        return cls(validator=validator, issues=tuple(issues))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "validator": self.validator,
            "is_valid": self.is_valid,
            "issues": [issue.model_dump(mode="json") for issue in self.issues],
        }


class WorkflowValidator(ABC):
    """Базовый валидатор модели."""

    name: str = "workflow"

    @abstractmethod
    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        """
        Проверить модель.

        Args:
            model: Проверяемая модель
            **context: Дополнительные данные (окружение, входные параметры)
        """
        pass

    def _report(self, issues: Sequence[ValidationIssue]) -> ValidationReport:
        report = ValidationReport(validator=self.name, issues=tuple(issues))
        if not report.is_valid:
            logger.debug(
                f"{self.name} validation failed for model: "
                f"{len(report.errors)} errors, {len(report.warnings)} warnings"
            )
        return report


class StructuralValidator(WorkflowValidator):
    """
    Структура графа: ссылки, циклы, границы, порядок действий.
    """

    name = "structural"

    def __init__(self, graph_builder: Optional[DependencyGraphBuilder] = None):
        self._graph_builder = graph_builder or DependencyGraphBuilder()

    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        issues: List[ValidationIssue] = []
        nodes = list(model.nodes.values())

        if not nodes:
            issues.append(ValidationIssue.error("EMPTY_WORKFLOW", "Empty workflow detected"))
            return self._report(issues)

        if not any(node.is_io for node in nodes):
            issues.append(ValidationIssue.error(
                "NO_IO_NODES",
                "Workflow must contain at least one IO node to define input/output boundaries",
            ))
        if not any(node.is_stage for node in nodes):
            issues.append(ValidationIssue.warning(
                "NO_STAGE_NODES",
                "Consider adding stage nodes to organize workflow into logical phases",
            ))

        graph_check = self._graph_builder.validate_acyclicity(nodes)
        for message in graph_check.errors:
            code = "CIRCULAR_DEPENDENCY" if message.startswith("Circular") else "UNKNOWN_DEPENDENCY"
            issues.append(ValidationIssue.error(code, message))
        for message in graph_check.warnings:
            issues.append(ValidationIssue.warning("GRAPH_COMPLEXITY", message))

        if len(nodes) > LARGE_WORKFLOW_NODES:
            issues.append(ValidationIssue.warning(
                "LARGE_WORKFLOW",
                "Large workflow detected - consider breaking into smaller, nested function models",
            ))

        depended_upon = {dep for node in nodes for dep in node.dependencies}
        isolated = [
            node.name for node in nodes
            if not node.dependencies and node.id not in depended_upon
        ]
        if len(nodes) > 1 and len(isolated) > 1:
            issues.append(ValidationIssue.warning(
                "ISOLATED_NODES",
                f"Multiple isolated nodes detected: {', '.join(isolated)}",
            ))

        for node in nodes:
            orders = [action.execution_order for action in model.actions_of(node.id)]
            if len(orders) != len(set(orders)):
                issues.append(ValidationIssue.error(
                    "DUPLICATE_EXECUTION_ORDER",
                    f'Container "{node.name}" has actions with duplicate execution orders',
                    node_id=node.id,
                ))
            elif orders and sorted(orders) != list(range(1, len(orders) + 1)):
                issues.append(ValidationIssue.warning(
                    "EXECUTION_ORDER_GAPS",
                    f'Container "{node.name}" has gaps in execution order sequence',
                    node_id=node.id,
                ))

        return self._report(issues)


class BusinessRuleValidator(WorkflowValidator):
    """
    Бизнес-правила: границы workflow, права, именование, производительность.
    """

    name = "business-rule"

    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        issues: List[ValidationIssue] = []
        io_nodes = [node for node in model.nodes.values() if node.is_io]

        if not any(node.boundary_type.is_input for node in io_nodes):
            issues.append(ValidationIssue.error(
                "MISSING_INPUT_BOUNDARY",
                "Workflow must have at least one input node",
            ))
        if not any(node.boundary_type.is_output for node in io_nodes):
            issues.append(ValidationIssue.error(
                "MISSING_OUTPUT_BOUNDARY",
                "Workflow must have at least one output node",
            ))

        permissions = model.permissions
        if permissions.owner in permissions.viewers:
            issues.append(ValidationIssue.warning(
                "REDUNDANT_PERMISSION",
                "Owner should not be in viewers list - implicit permission",
            ))
        if permissions.owner in permissions.editors:
            issues.append(ValidationIssue.warning(
                "REDUNDANT_PERMISSION",
                "Owner should not be in editors list - implicit permission",
            ))

        if len(model.name) > MAX_NAME_LENGTH:
            issues.append(ValidationIssue.error(
                "NAME_TOO_LONG",
                f"Model name exceeds maximum length of {MAX_NAME_LENGTH} characters",
            ))

        for action in model.action_nodes.values():
            if action.action_type == ActionType.TETHER and not action.payload.get("endpoint"):
                issues.append(ValidationIssue.warning(
                    "TETHER_WITHOUT_ENDPOINT",
                    f"Action node {action.name} should specify an endpoint",
                    node_id=action.id,
                ))

        for node in model.nodes.values():
            if node.is_stage and not model.actions_of(node.id):
                issues.append(ValidationIssue.warning(
                    "STAGE_WITHOUT_ACTIONS",
                    f"Stage node {node.name} has no actions",
                    node_id=node.id,
                ))

        actions = list(model.action_nodes.values())
        if len(actions) > 3 and not any(action.is_parallel for action in actions):
            issues.append(ValidationIssue.warning(
                "SEQUENTIAL_ONLY",
                "Consider parallel processing for improved performance",
            ))

        return self._report(issues)


class ExecutionReadinessValidator(WorkflowValidator):
    """
    Готовность к выполнению: статус модели, зависимости действий,
    политика повторов и длительность.

    Контекст:
        environment: development, staging или production
    """

    name = "execution-readiness"

    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        issues: List[ValidationIssue] = []
        environment = context.get("environment")

        if model.is_deleted:
            issues.append(ValidationIssue.error("MODEL_DELETED", "Cannot execute deleted model"))
        if not model.is_published:
            issues.append(ValidationIssue.error(
                "MODEL_NOT_PUBLISHED",
                "Model must be published before execution",
            ))
        if not model.nodes:
            issues.append(ValidationIssue.error("NO_NODES", "Model has no nodes to execute"))

        for action in model.action_nodes.values():
            for dep_id in sorted(action.dependencies):
                dependency = model.action_nodes.get(dep_id)
                if dependency is None or dependency.parent_node_id != action.parent_node_id:
                    issues.append(ValidationIssue.error(
                        "INVALID_ACTION_DEPENDENCY",
                        f"Action node {action.name} depends on unknown action {dep_id}",
                        node_id=action.id,
                    ))
                elif dependency.execution_order > action.execution_order:
                    issues.append(ValidationIssue.error(
                        "ACTION_DEPENDENCY_ORDER",
                        f"Action node {action.name} depends on {dependency.name} "
                        f"which runs later",
                        node_id=action.id,
                    ))

            if environment == "production" and action.retry_policy.max_attempts == 1:
                issues.append(ValidationIssue.warning(
                    "NO_RETRY_IN_PRODUCTION",
                    f"Action node {action.name} has no retry policy for production",
                    node_id=action.id,
                ))
            if action.estimated_duration_s and action.estimated_duration_s > LONG_ACTION_SECONDS:
                issues.append(ValidationIssue.warning(
                    "LONG_RUNNING_ACTION",
                    f"Action node {action.name} is expected to run longer than an hour",
                    node_id=action.id,
                ))

        return self._report(issues)


class ContextValidator(WorkflowValidator):
    """
    Контекстные переменные действий.

    Действие объявляет в payload читаемые ключи (context_inputs)
    и записываемые ключи (context_outputs). Ключ должен быть
    определен входными параметрами, действием предшествующего узла
    или более ранним действием того же контейнера.

    Контекст:
        input_parameters: Входные параметры выполнения
    """

    name = "context"

    def __init__(self, graph_builder: Optional[DependencyGraphBuilder] = None):
        self._graph_builder = graph_builder or DependencyGraphBuilder()

    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        issues: List[ValidationIssue] = []
        input_parameters = context.get("input_parameters") or {}

        if not isinstance(input_parameters, Mapping):
            issues.append(ValidationIssue.error(
                "INVALID_INPUT_PARAMETERS",
                "Input parameters must be a mapping",
            ))
            return self._report(issues)

        graph_check = self._graph_builder.validate_acyclicity(model.nodes.values())
        if not graph_check.is_valid:
            return self._report(issues)

        order = self._graph_builder.topological_order(list(model.nodes.values()))
        defined_by_node: Dict[str, set] = {}
        seen_outputs: Dict[str, str] = {}

        for node_id in order:
            node = model.nodes[node_id]
            available = set(input_parameters)
            for dep in self._ancestors(model, node_id):
                available |= defined_by_node.get(dep, set())

            produced: set = set()
            for action in model.actions_of(node_id):
                for key in self._keys(action.payload, "context_inputs"):
                    if key not in available and key not in produced:
                        issues.append(ValidationIssue.error(
                            "CONTEXT_USED_BEFORE_DEFINED",
                            f"Context variable {key} used before being defined",
                            node_id=action.id,
                        ))
                for key in self._keys(action.payload, "context_outputs"):
                    if key in seen_outputs and seen_outputs[key] != action.id:
                        issues.append(ValidationIssue.warning(
                            "CONTEXT_DEFINED_MULTIPLE_TIMES",
                            f"Context variable {key} defined multiple times",
                            node_id=action.id,
                        ))
                    seen_outputs[key] = action.id
                    produced.add(key)
            defined_by_node[node.id] = produced

        return self._report(issues)

    @staticmethod
    def _keys(payload: Mapping[str, Any], field: str) -> List[str]:
        value = payload.get(field) or []
        if isinstance(value, str):
            return [value]
        return [str(key) for key in value]

    @staticmethod
    def _ancestors(model: FunctionModel, node_id: str) -> set:
        result: set = set()
        stack = list(model.nodes[node_id].dependencies)
        while stack:
            current = stack.pop()
            if current in result or current not in model.nodes:
                continue
            result.add(current)
            stack.extend(model.nodes[current].dependencies)
        return result


class CrossFeatureValidator(WorkflowValidator):
    """
    Ссылки на вложенные модели: существование, публикация, циклы вложенности.
    """

    name = "cross-feature"

    def __init__(self, repository: ModelRepository, max_depth: int = 10):
        self._repository = repository
        self._max_depth = max_depth

    async def validate(self, model: FunctionModel, **context: Any) -> ValidationReport:
        issues: List[ValidationIssue] = []

        for nested_id in model.nested_model_ids():
            if nested_id == model.id:
                issues.append(ValidationIssue.error(
                    "SELF_NESTING",
                    "Function model cannot contain itself as a nested model",
                ))
                continue
            nested = await self._repository.find_by_id(nested_id)
            if nested is None or nested.is_deleted:
                issues.append(ValidationIssue.error(
                    "NESTED_MODEL_UNAVAILABLE",
                    f"Referenced nested model {nested_id} is not available",
                ))
            elif not nested.is_published:
                issues.append(ValidationIssue.error(
                    "NESTED_MODEL_NOT_PUBLISHED",
                    f"Referenced nested model {nested_id} must be published",
                ))

        chain = await self._find_nesting_cycle(model)
        if chain:
            issues.append(ValidationIssue.error(
                "NESTING_CYCLE",
                f"Nested model cycle detected: {' → '.join(chain)}",
            ))

        return self._report(issues)

    async def _find_nesting_cycle(self, model: FunctionModel) -> Optional[List[str]]:
        path: List[str] = [model.id]

        async def walk(current: FunctionModel, depth: int) -> Optional[List[str]]:
            if depth >= self._max_depth:
                return None
            for nested_id in current.nested_model_ids():
                if nested_id in path:
                    return path[path.index(nested_id):] + [nested_id]
                nested = await self._repository.find_by_id(nested_id)
                if nested is None:
                    continue
                path.append(nested_id)
                found = await walk(nested, depth + 1)
                path.pop()
                if found:
                    return found
            return None

        return await walk(model, 0)


class WorkflowValidationService:
    """
    Фасад над валидаторами.

    Пример:
        >>> service = WorkflowValidationService(repository)
        >>> report = await service.validate_for_execution(model, environment="production")
        >>> report.is_valid
    """

    def __init__(
        self,
        repository: ModelRepository,
        graph_builder: Optional[DependencyGraphBuilder] = None,
        max_depth: int = 10
    ):
        builder = graph_builder or DependencyGraphBuilder()
        self.structural = StructuralValidator(builder)
        self.business_rules = BusinessRuleValidator()
        self.execution_readiness = ExecutionReadinessValidator()
        self.context = ContextValidator(builder)
        self.cross_feature = CrossFeatureValidator(repository, max_depth=max_depth)

    async def validate_for_publish(self, model: FunctionModel) -> ValidationReport:
        """Проверки перед публикацией."""
        reports = [
            await self.structural.validate(model),
            await self.business_rules.validate(model),
            await self.context.validate(model),
            await self.cross_feature.validate(model),
        ]
        return ValidationReport.combine("publish", reports)

    async def validate_for_execution(
        self,
        model: FunctionModel,
        environment: Optional[str] = None,
        input_parameters: Optional[Mapping[str, Any]] = None
    ) -> ValidationReport:
        """Проверки перед выполнением."""
        reports = [
            await self.structural.validate(model),
            await self.business_rules.validate(model),
            await self.execution_readiness.validate(model, environment=environment),
            await self.context.validate(model, input_parameters=input_parameters),
            await self.cross_feature.validate(model),
        ]
        report = ValidationReport.combine("execution", reports)
        logger.debug(
            f"Execution validation for model {model.id}: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report
