"""
Тесты для Event Bus, адаптера публикации и AuditLogger.
"""

import pytest

from workflow_engine.core.errors import EventBusError
from workflow_engine.domain.execution_context.events import ExecutionEvent, ExecutionFailed, ExecutionStarted
from workflow_engine.domain.model_context.events import ModelCreated, ModelPublished
from workflow_engine.events import BaseEvent, EventBus, EventCategory, EventType
from workflow_engine.events.subscribers.audit_logger import AuditLogger
from workflow_engine.infrastructure.events import EventBusPublisher


def make_event(event_type: EventType, aggregate_id: str = "model-1", **data) -> BaseEvent:
    return BaseEvent(
        event_type=event_type,
        event_category=event_type.category,
        aggregate_id=aggregate_id,
        data=data,
        source="tests",
    )


class TestEventBus:
    """Тесты для EventBus"""

    @pytest.mark.asyncio
    async def test_type_category_and_wildcard_subscribers(self, event_bus):
        """Тест: событие получают подписчики типа, категории и все события"""
        received = []

        async def by_type(event):
            received.append("type")

        async def by_category(event):
            received.append("category")

        async def everything(event):
            received.append("wildcard")

        event_bus.subscribe(event_type=EventType.MODEL_CREATED, handler=by_type)
        event_bus.subscribe(event_category=EventCategory.MODEL, handler=by_category)
        event_bus.subscribe(handler=everything)

        await event_bus.publish(make_event(EventType.MODEL_CREATED))
        await event_bus.publish(make_event(EventType.EXECUTION_STARTED, "run-1"))

        assert sorted(received[:3]) == ["category", "type", "wildcard"]
        assert received[3:] == ["wildcard"]

    @pytest.mark.asyncio
    async def test_priority_order(self, event_bus):
        received = []

        async def low(event):
            received.append("low")

        async def high(event):
            received.append("high")

        event_bus.subscribe(handler=low, priority=1)
        event_bus.subscribe(handler=high, priority=10)

        await event_bus.publish(make_event(EventType.MODEL_PUBLISHED))

        assert received == ["high", "low"]

    @pytest.mark.asyncio
    async def test_handler_error_is_counted_not_raised(self, event_bus):
        """Тест: ошибка обработчика не прерывает публикацию"""
        received = []

        async def broken(event):
            raise RuntimeError("subscriber crashed")

        async def healthy(event):
            received.append(event.event_type)

        event_bus.subscribe(handler=broken, priority=5)
        event_bus.subscribe(handler=healthy)

        await event_bus.publish(make_event(EventType.MODEL_ARCHIVED))

        stats = event_bus.get_stats()
        assert received == ["model.archived"]
        assert stats.failed_handlers == 1
        assert stats.successful_handlers == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        received = []

        async def handler(event):
            received.append(event)

        unsubscribe = event_bus.subscribe(event_type=EventType.MODEL_CREATED, handler=handler)
        unsubscribe()

        await event_bus.publish(make_event(EventType.MODEL_CREATED))

        assert received == []

    @pytest.mark.asyncio
    async def test_middleware_can_cancel(self, event_bus):
        """Тест: middleware может отменить событие"""
        received = []

        async def handler(event):
            received.append(event)

        async def drop_system(event):
            return None if event.event_category == "system" else event

        event_bus.subscribe(handler=handler)
        event_bus.add_middleware(drop_system)

        await event_bus.publish(BaseEvent(
            event_type=EventType.MODEL_CREATED,
            event_category=EventCategory.SYSTEM,
            aggregate_id="model-1",
            source="tests",
        ))

        assert received == []

    @pytest.mark.asyncio
    async def test_fire_and_forget_with_drain(self, event_bus):
        received = []

        async def handler(event):
            received.append(event.event_type)

        event_bus.subscribe(handler=handler)

        assert await event_bus.publish(make_event(EventType.MODEL_CREATED), wait_for_handlers=False) is None
        await event_bus.drain()

        assert received == ["model.created"]


class TestEventBusPublisher:
    """Тесты для EventBusPublisher"""

    def test_model_event_conversion(self, publisher):
        event = publisher.to_bus_event(ModelCreated("model-1", "Billing", user_id="alice"))

        assert event.event_type == "model.created"
        assert event.event_category == "model"
        assert event.user_id == "alice"
        assert event.correlation_id is None
        assert event.data == {"name": "Billing"}

    def test_execution_event_correlated_by_run(self, publisher):
        """Тест: для событий запуска correlation_id равен ID запуска"""
        event = publisher.to_bus_event(ExecutionStarted("run-1", "model-1", "sequential", "development"))

        assert event.aggregate_id == "run-1"
        assert event.correlation_id == "run-1"
        assert event.data["model_id"] == "model-1"

    def test_unknown_event_type(self, publisher):
        with pytest.raises(EventBusError) as exc_info:
            publisher.to_bus_event(ExecutionEvent("run-1", "model-1"))

        assert exc_info.value.error_code == "EVENT_BUS_ERROR"

    @pytest.mark.asyncio
    async def test_publish_reaches_bus(self, publisher, recorded_events):
        await publisher.publish(ModelPublished("model-1", "1.0.0", user_id="alice"))

        assert recorded_events == ["model.published"]


class TestAuditLogger:
    """Тесты для AuditLogger"""

    @pytest.mark.asyncio
    async def test_records_model_and_execution_events(self, event_bus, publisher):
        """Тест: аудит строится из событий модели и запуска"""
        audit = AuditLogger(event_bus)

        await publisher.publish(ModelCreated("model-1", "Billing", user_id="alice"))
        await publisher.publish(ExecutionStarted("run-1", "model-1", "sequential", "development", user_id="alice"))
        await publisher.publish(ExecutionFailed(
            "run-1",
            "model-1",
            "node-execution",
            {"error_code": "TRANSIENT_FAILURE", "message": "Executor down"},
            compensations=2,
        ))

        assert len(audit.get_audit_log()) == 3
        assert [e["event_type"] for e in audit.get_audit_log(aggregate_id="run-1")] == [
            "execution.started",
            "execution.failed",
        ]
        assert audit.get_audit_log(event_type="model.created")[0]["user_id"] == "alice"
        assert audit.get_audit_log(limit=1)[0]["event_type"] == "execution.failed"

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, event_bus, publisher):
        audit = AuditLogger(event_bus)
        audit.close()

        await publisher.publish(ModelCreated("model-1", "Billing"))

        assert audit.get_audit_log() == []
