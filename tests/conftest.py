"""
Pytest configuration and fixtures.
"""

from typing import Any, Dict, List, Optional

import pytest

from workflow_engine.application.coordinators import ExecutionCoordinator
from workflow_engine.core.errors import TransientFailure
from workflow_engine.domain.model_context.entities import ActionNode, ContainerNode, FunctionModel
from workflow_engine.domain.model_context.value_objects import ActionType, BoundaryType, RetryPolicy
from workflow_engine.events import EventBus
from workflow_engine.infrastructure.concurrency import ModelLockManager
from workflow_engine.infrastructure.events import EventBusPublisher
from workflow_engine.infrastructure.executors import EchoActionExecutor
from workflow_engine.infrastructure.persistence.repositories import InMemoryModelRepository
from workflow_engine.infrastructure.resilience import CircuitBreaker


class FailingExecutor(EchoActionExecutor):
    """Исполнитель, который падает временной ошибкой на указанных действиях."""

    def __init__(self, failing_actions: Optional[List[str]] = None, failures: Optional[int] = None):
        super().__init__()
        self.failing_actions = set(failing_actions or [])
        self.failures_left = failures
        self.calls: Dict[str, int] = {}

    async def execute(self, action: ActionNode, context: Dict[str, Any]) -> Dict[str, Any]:
        self.calls[action.id] = self.calls.get(action.id, 0) + 1
        if action.id in self.failing_actions and (self.failures_left is None or self.failures_left > 0):
            if self.failures_left is not None:
                self.failures_left -= 1
            raise TransientFailure(f"Executor unavailable for {action.id}")
        return await super().execute(action, context)


def build_pipeline_model(
    model_id: str = "model-1",
    owner_id: str = "alice",
    stage_actions: int = 1
) -> FunctionModel:
    """input → process → output, в process stage_actions действий tether."""
    model = FunctionModel.create(name="Order pipeline", owner_id=owner_id, model_id=model_id)
    model.add_node(ContainerNode.io(model_id, "Input", BoundaryType.INPUT, node_id="input"))
    model.add_node(ContainerNode.stage(model_id, "Process", node_id="process", dependencies={"input"}))
    model.add_node(ContainerNode.io(model_id, "Output", BoundaryType.OUTPUT, node_id="output", dependencies={"process"}))
    for order in range(1, stage_actions + 1):
        model.add_action_node(ActionNode.create(
            model_id=model_id,
            parent_node_id="process",
            name=f"Call service {order}",
            action_type=ActionType.TETHER,
            action_id=f"action-{order}",
            execution_order=order,
            retry_policy=RetryPolicy.no_retry(),
            payload={"endpoint": f"https://service.local/{order}"},
        ))
    return model


@pytest.fixture
def repository():
    """Репозиторий моделей в памяти."""
    return InMemoryModelRepository()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def publisher(event_bus):
    return EventBusPublisher(event_bus)


@pytest.fixture
def recorded_events(event_bus):
    """Типы всех опубликованных событий в порядке публикации."""
    received: List[str] = []

    async def record(event):
        received.append(event.event_type)

    event_bus.subscribe(handler=record)
    return received


@pytest.fixture
def lock_manager():
    return ModelLockManager()


@pytest.fixture
def executor():
    return EchoActionExecutor()


@pytest.fixture
def pipeline_model():
    return build_pipeline_model()


@pytest.fixture
def save_published(repository):
    """Опубликовать и сохранить модель."""
    async def save(model: FunctionModel) -> FunctionModel:
        if not model.is_published:
            model.publish(user_id=model.permissions.owner)
        model.clear_domain_events()
        await repository.save(model)
        return model
    return save


@pytest.fixture
def make_coordinator(repository, publisher):
    """Координатор с отдельным circuit breaker для каждого теста."""
    def make(executor, **kwargs) -> ExecutionCoordinator:
        kwargs.setdefault("circuit_breaker", CircuitBreaker(name="test-phases", failure_threshold=50))
        return ExecutionCoordinator(repository, executor, publisher, **kwargs)
    return make
