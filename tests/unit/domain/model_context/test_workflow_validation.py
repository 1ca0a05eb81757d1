"""
Тесты для WorkflowValidationService и его валидаторов.
"""

from unittest.mock import AsyncMock

import pytest

from conftest import build_pipeline_model
from workflow_engine.domain.model_context.entities import ActionNode, FunctionModel
from workflow_engine.domain.model_context.services.workflow_validation_service import (
    BusinessRuleValidator,
    ContextValidator,
    CrossFeatureValidator,
    ExecutionReadinessValidator,
    StructuralValidator,
    WorkflowValidationService,
)
from workflow_engine.domain.model_context.value_objects import ActionType


def codes(issues):
    return [issue.code for issue in issues]


def nested_action(model_id: str, nested_model_id: str, order: int = 2) -> ActionNode:
    return ActionNode.create(
        model_id, "process", f"Run {nested_model_id}", ActionType.FUNCTION_MODEL_CONTAINER,
        execution_order=order,
        payload={"nested_model_id": nested_model_id},
    )


def context_action(action_id: str, parent: str, order: int = 1, **payload) -> ActionNode:
    return ActionNode.create(
        "model-1", parent, action_id, ActionType.KB,
        action_id=action_id,
        execution_order=order,
        payload=payload,
    )


class TestStructuralValidator:
    """Тесты для StructuralValidator"""

    @pytest.mark.asyncio
    async def test_valid_pipeline(self):
        report = await StructuralValidator().validate(build_pipeline_model())

        assert report.is_valid
        assert report.issues == ()

    @pytest.mark.asyncio
    async def test_empty_workflow(self):
        model = FunctionModel.create(name="Empty", owner_id="alice")

        report = await StructuralValidator().validate(model)

        assert codes(report.errors) == ["EMPTY_WORKFLOW"]

    @pytest.mark.asyncio
    async def test_duplicate_and_gapped_execution_orders(self):
        """Тест: дубли порядка блокируют, пропуски только предупреждают"""
        duplicated = build_pipeline_model()
        duplicated.add_action_node(context_action("again", "process", order=1))
        gapped = build_pipeline_model()
        gapped.add_action_node(context_action("later", "process", order=3))

        duplicated_report = await StructuralValidator().validate(duplicated)
        gapped_report = await StructuralValidator().validate(gapped)

        assert codes(duplicated_report.errors) == ["DUPLICATE_EXECUTION_ORDER"]
        assert gapped_report.is_valid
        assert codes(gapped_report.warnings) == ["EXECUTION_ORDER_GAPS"]


class TestBusinessRuleValidator:
    """Тесты для BusinessRuleValidator"""

    @pytest.mark.asyncio
    async def test_stage_without_actions_warns(self):
        report = await BusinessRuleValidator().validate(build_pipeline_model(stage_actions=0))

        assert report.is_valid
        assert codes(report.warnings) == ["STAGE_WITHOUT_ACTIONS"]
        assert report.warnings[0].node_id == "process"

    @pytest.mark.asyncio
    async def test_tether_without_endpoint_and_redundant_permission(self):
        model = build_pipeline_model(stage_actions=0)
        model.add_action_node(ActionNode.create("model-1", "process", "Notify", ActionType.TETHER))
        model.permissions = model.permissions.with_editor("alice")

        report = await BusinessRuleValidator().validate(model)

        assert sorted(codes(report.warnings)) == ["REDUNDANT_PERMISSION", "TETHER_WITHOUT_ENDPOINT"]


class TestExecutionReadinessValidator:
    """Тесты для ExecutionReadinessValidator"""

    @pytest.mark.asyncio
    async def test_draft_not_ready(self):
        report = await ExecutionReadinessValidator().validate(build_pipeline_model())

        assert codes(report.errors) == ["MODEL_NOT_PUBLISHED"]

    @pytest.mark.asyncio
    async def test_production_without_retry_warns(self):
        model = build_pipeline_model()
        model.publish(user_id="alice")

        development = await ExecutionReadinessValidator().validate(model, environment="development")
        production = await ExecutionReadinessValidator().validate(model, environment="production")

        assert development.issues == ()
        assert production.is_valid
        assert codes(production.warnings) == ["NO_RETRY_IN_PRODUCTION"]
        assert production.warnings[0].node_id == "action-1"

    @pytest.mark.asyncio
    async def test_action_depends_on_later_action(self):
        """Тест: действие не может зависеть от действия, идущего позже"""
        model = build_pipeline_model(stage_actions=0)
        model.add_action_node(context_action("late", "process", order=2))
        model.add_action_node(ActionNode.create(
            "model-1", "process", "First", ActionType.KB,
            action_id="first",
            execution_order=1,
            dependencies={"late"},
        ))

        report = await ExecutionReadinessValidator().validate(model)

        assert "ACTION_DEPENDENCY_ORDER" in codes(report.errors)


class TestContextValidator:
    """Тесты для ContextValidator"""

    @pytest.mark.asyncio
    async def test_variable_used_before_defined(self):
        model = build_pipeline_model(stage_actions=0)
        model.add_action_node(context_action("reader", "process", context_inputs=["customer_id"]))

        report = await ContextValidator().validate(model)

        assert codes(report.errors) == ["CONTEXT_USED_BEFORE_DEFINED"]
        assert report.errors[0].node_id == "reader"

    @pytest.mark.asyncio
    async def test_variable_from_inputs_or_earlier_node(self):
        """Тест: переменную определяют входные параметры или предшествующий узел"""
        model = build_pipeline_model(stage_actions=0)
        model.add_action_node(context_action("writer", "input", context_outputs=["customer_id"]))
        model.add_action_node(context_action("reader", "process", context_inputs="customer_id"))
        from_inputs = build_pipeline_model(stage_actions=0)
        from_inputs.add_action_node(context_action("reader", "process", context_inputs=["customer_id"]))

        assert (await ContextValidator().validate(model)).is_valid
        assert (await ContextValidator().validate(
            from_inputs,
            input_parameters={"customer_id": "c-1"},
        )).is_valid

    @pytest.mark.asyncio
    async def test_input_parameters_must_be_mapping(self):
        report = await ContextValidator().validate(build_pipeline_model(), input_parameters=["x"])

        assert codes(report.errors) == ["INVALID_INPUT_PARAMETERS"]


class TestCrossFeatureValidator:
    """Тесты для CrossFeatureValidator"""

    @pytest.mark.asyncio
    async def test_self_nesting(self):
        model = build_pipeline_model()
        model.add_action_node(nested_action("model-1", "model-1"))
        repository = AsyncMock()
        repository.find_by_id.return_value = model

        report = await CrossFeatureValidator(repository).validate(model)

        assert "SELF_NESTING" in codes(report.errors)

    @pytest.mark.asyncio
    async def test_unavailable_nested_model(self):
        model = build_pipeline_model()
        model.add_action_node(nested_action("model-1", "ghost"))
        repository = AsyncMock()
        repository.find_by_id.return_value = None

        report = await CrossFeatureValidator(repository).validate(model)

        assert codes(report.errors) == ["NESTED_MODEL_UNAVAILABLE"]
        repository.find_by_id.assert_awaited_with("ghost")

    @pytest.mark.asyncio
    async def test_nesting_cycle(self):
        """Тест: цикл через репозиторий выводится цепочкой ID"""
        first = build_pipeline_model("first")
        first.add_action_node(nested_action("first", "second"))
        second = build_pipeline_model("second")
        second.add_action_node(nested_action("second", "first"))
        second.publish(user_id="alice")
        models = {"first": first, "second": second}
        repository = AsyncMock()
        repository.find_by_id.side_effect = lambda model_id: models.get(model_id)

        report = await CrossFeatureValidator(repository).validate(first)

        assert codes(report.errors) == ["NESTING_CYCLE"]
        assert report.errors[0].message == "Nested model cycle detected: first → second → first"


class TestWorkflowValidationService:
    """Тесты для фасада WorkflowValidationService"""

    @pytest.mark.asyncio
    async def test_publish_checks_do_not_require_publication(self, repository):
        service = WorkflowValidationService(repository)

        report = await service.validate_for_publish(build_pipeline_model())

        assert report.is_valid
        assert report.validator == "publish"

    @pytest.mark.asyncio
    async def test_execution_checks_collect_all_errors(self, repository):
        service = WorkflowValidationService(repository)
        model = build_pipeline_model()
        model.add_action_node(context_action("reader", "process", order=2, context_inputs=["customer_id"]))

        report = await service.validate_for_execution(model, environment="development")

        assert codes(report.errors) == ["MODEL_NOT_PUBLISHED", "CONTEXT_USED_BEFORE_DEFINED"]
        assert report.error_messages == [
            "Model must be published before execution",
            "Context variable customer_id used before being defined",
        ]
        assert report.to_dict()["is_valid"] is False
