"""
Тесты для Use Cases функциональных моделей.

Создание, добавление узлов, действий и зависимостей, публикация
и жизненный цикл. Проверяются блокировки, оптимистичные версии
и откат изменений через компенсации.
"""

import asyncio

import pytest

from conftest import build_pipeline_model
from workflow_engine.application.use_cases import (
    AddActionNodeRequest,
    AddActionNodeUseCase,
    AddContainerNodeRequest,
    AddContainerNodeUseCase,
    AddDependencyRequest,
    AddDependencyUseCase,
    ArchiveModelUseCase,
    CreateModelRequest,
    CreateModelUseCase,
    ModelLifecycleRequest,
    PublishModelRequest,
    PublishModelUseCase,
    RestoreModelUseCase,
    SoftDeleteModelUseCase,
)
from workflow_engine.core.errors import (
    CircularReferenceDetected,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    VersionConflictError,
)
from workflow_engine.domain.model_context.value_objects import ActionType, BoundaryType, ContainerType


@pytest.fixture
def use_cases(repository, publisher, lock_manager):
    """Все Use Cases моделей над одним репозиторием."""
    return {
        "create": CreateModelUseCase(repository, publisher),
        "add_node": AddContainerNodeUseCase(repository, publisher, lock_manager),
        "add_action": AddActionNodeUseCase(repository, publisher, lock_manager),
        "add_dependency": AddDependencyUseCase(repository, publisher, lock_manager),
        "publish": PublishModelUseCase(repository, publisher, lock_manager=lock_manager),
        "archive": ArchiveModelUseCase(repository, publisher, lock_manager),
        "soft_delete": SoftDeleteModelUseCase(repository, publisher, lock_manager),
        "restore": RestoreModelUseCase(repository, publisher, lock_manager),
    }


async def create_model(use_cases, model_id: str = "model-1"):
    result = await use_cases["create"].execute(CreateModelRequest(
        name="Onboarding",
        owner_id="alice",
        model_id=model_id,
    ))
    return result.value


# ==================== Создание ====================

class TestCreateModel:
    """Тесты для CreateModelUseCase"""

    @pytest.mark.asyncio
    async def test_create_draft(self, use_cases, repository, recorded_events):
        """Тест: новая модель сохраняется в статусе draft"""
        result = await use_cases["create"].execute(CreateModelRequest(
            name="  Onboarding  ",
            owner_id="alice",
            model_id="model-1",
        ))

        assert result.is_success
        assert result.value.name == "Onboarding"
        assert result.value.status == "draft"
        assert result.value.version == "1.0.0"
        assert result.value.version_count == 1
        assert await repository.exists("model-1")
        assert recorded_events == ["model.created"]

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, use_cases, recorded_events):
        await create_model(use_cases)

        result = await use_cases["create"].execute(CreateModelRequest(
            name="Copy",
            owner_id="bob",
            model_id="model-1",
        ))

        assert isinstance(result.error, VersionConflictError)
        assert recorded_events == ["model.created"]

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, use_cases, repository):
        """Тест: ошибка pydantic возвращается как ValidationError"""
        result = await use_cases["create"].execute(CreateModelRequest(name="   ", owner_id="alice"))

        assert isinstance(result.error, ValidationError)
        assert result.error.message == "Invalid model data"
        assert result.error.errors


# ==================== Узлы и зависимости ====================

class TestAddContainerNode:
    """Тесты для AddContainerNodeUseCase"""

    @pytest.mark.asyncio
    async def test_add_node_bumps_version(self, use_cases, repository, recorded_events):
        await create_model(use_cases)

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="alice",
            name="Input",
            container_type=ContainerType.IO,
            boundary_type=BoundaryType.INPUT,
            node_id="input",
        ))

        assert result.value.node_id == "input"
        assert result.value.model.version == "1.0.1"
        assert result.value.model.node_ids == ["input"]
        stored = await repository.find_by_id("model-1")
        assert stored.version_count == 2
        assert recorded_events[1:] == ["model.version.bumped", "model.node.added"]

    @pytest.mark.asyncio
    async def test_stale_version_rolls_back(self, use_cases, repository, recorded_events):
        """Тест: конфликт версий откатывает узел и версию в обратном порядке"""
        await create_model(use_cases)

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="alice",
            name="Process",
            node_id="process",
            expected_version=0,
        ))

        error = result.error
        assert isinstance(error, VersionConflictError)
        assert [c["name"] for c in error.details["compensations"]] == ["node-created", "version-bump"]
        stored = await repository.find_by_id("model-1")
        assert stored.nodes == {}
        assert str(stored.version) == "1.0.0"
        assert recorded_events == ["model.created"]

    @pytest.mark.asyncio
    async def test_io_node_requires_boundary(self, use_cases):
        await create_model(use_cases)

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="alice",
            name="Input",
            container_type=ContainerType.IO,
        ))

        assert isinstance(result.error, ValidationError)
        assert result.error.message == "Invalid container node"

    @pytest.mark.asyncio
    async def test_unknown_dependency(self, use_cases):
        await create_model(use_cases)

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="alice",
            name="Process",
            dependencies=["ghost"],
        ))

        assert isinstance(result.error, ValidationError)
        assert result.error.errors == ["Unknown dependency: ghost"]

    @pytest.mark.asyncio
    async def test_requires_edit_permission(self, use_cases):
        await create_model(use_cases)

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="mallory",
            name="Process",
        ))

        assert isinstance(result.error, PermissionDeniedError)

    @pytest.mark.asyncio
    async def test_missing_model(self, use_cases):
        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="ghost",
            user_id="alice",
            name="Process",
        ))

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_concurrent_edits_are_serialized(self, use_cases, repository):
        """Тест: параллельные изменения одной модели не теряются"""
        await create_model(use_cases)

        results = await asyncio.gather(*(
            use_cases["add_node"].execute(AddContainerNodeRequest(
                model_id="model-1",
                user_id="alice",
                name=f"Stage {index}",
                node_id=f"stage-{index}",
            ))
            for index in range(3)
        ))

        stored = await repository.find_by_id("model-1")
        assert all(result.is_success for result in results)
        assert set(stored.nodes) == {"stage-0", "stage-1", "stage-2"}
        assert stored.version_count == 4
        assert str(stored.version) == "1.0.3"

    @pytest.mark.asyncio
    async def test_concurrent_edits_of_same_version(self, use_cases, repository):
        """Тест: из двух изменений одной версии проходит ровно одно"""
        await create_model(use_cases)
        seen_version = (await repository.find_by_id("model-1")).version_count

        results = await asyncio.gather(*(
            use_cases["add_node"].execute(AddContainerNodeRequest(
                model_id="model-1",
                user_id="alice",
                name=f"Stage {index}",
                node_id=f"stage-{index}",
                expected_version=seen_version,
            ))
            for index in range(2)
        ))

        succeeded = [result for result in results if result.is_success]
        failed = [result for result in results if result.is_failure]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0].error, VersionConflictError)
        assert failed[0].error.details["actual_version"] == seen_version + 1

        stored = await repository.find_by_id("model-1")
        assert list(stored.nodes) == [succeeded[0].value.node_id]
        assert stored.version_count == seen_version + 1
        assert str(stored.version) == "1.0.1"


class TestAddActionAndDependency:
    """Тесты для AddActionNodeUseCase и AddDependencyUseCase"""

    @pytest.mark.asyncio
    async def test_add_action(self, use_cases, repository):
        await repository.save(build_pipeline_model())

        result = await use_cases["add_action"].execute(AddActionNodeRequest(
            model_id="model-1",
            user_id="alice",
            parent_node_id="process",
            name="Lookup",
            action_type=ActionType.KB,
            action_id="lookup",
            execution_order=2,
        ))

        stored = await repository.find_by_id("model-1")
        assert result.value.node_id == "lookup"
        assert result.value.model.action_count == 2
        assert stored.get_action("lookup").parent_node_id == "process"

    @pytest.mark.asyncio
    async def test_action_with_unknown_parent(self, use_cases, repository):
        await repository.save(build_pipeline_model())

        result = await use_cases["add_action"].execute(AddActionNodeRequest(
            model_id="model-1",
            user_id="alice",
            parent_node_id="ghost",
            name="Lookup",
            action_type=ActionType.KB,
        ))

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_add_dependency(self, use_cases, repository):
        model = build_pipeline_model()
        await repository.save(model)

        result = await use_cases["add_dependency"].execute(AddDependencyRequest(
            model_id="model-1",
            user_id="alice",
            node_id="output",
            depends_on="input",
        ))

        stored = await repository.find_by_id("model-1")
        assert result.is_success
        assert stored.get_node("output").dependencies == {"process", "input"}

    @pytest.mark.asyncio
    async def test_cycle_rejected(self, use_cases, repository):
        """Тест: ребро, замыкающее цикл, не сохраняется"""
        await repository.save(build_pipeline_model())

        result = await use_cases["add_dependency"].execute(AddDependencyRequest(
            model_id="model-1",
            user_id="alice",
            node_id="input",
            depends_on="output",
        ))

        stored = await repository.find_by_id("model-1")
        assert isinstance(result.error, CircularReferenceDetected)
        assert stored.get_node("input").dependencies == set()
        assert stored.version_count == 1


# ==================== Публикация ====================

class TestPublishModel:
    """Тесты для PublishModelUseCase"""

    @pytest.mark.asyncio
    async def test_publish_valid_model(self, use_cases, repository, recorded_events):
        await repository.save(build_pipeline_model())

        result = await use_cases["publish"].execute(PublishModelRequest(model_id="model-1", user_id="alice"))

        assert result.value.model.status == "published"
        assert result.value.warnings == []
        assert (await repository.find_by_id("model-1")).is_published
        assert recorded_events == ["model.published"]

    @pytest.mark.asyncio
    async def test_publish_returns_warnings(self, use_cases, repository):
        """Тест: предупреждения не блокируют публикацию"""
        await repository.save(build_pipeline_model())
        await use_cases["add_action"].execute(AddActionNodeRequest(
            model_id="model-1",
            user_id="alice",
            parent_node_id="process",
            name="Notify",
            action_type=ActionType.TETHER,
            execution_order=2,
        ))

        result = await use_cases["publish"].execute(PublishModelRequest(model_id="model-1", user_id="alice"))

        assert result.is_success
        assert result.value.warnings == ["Action node Notify should specify an endpoint"]

    @pytest.mark.asyncio
    async def test_invalid_model_not_published(self, use_cases, repository):
        """Тест: модель без узлов не публикуется и остается draft"""
        await create_model(use_cases)

        result = await use_cases["publish"].execute(PublishModelRequest(model_id="model-1", user_id="alice"))

        assert isinstance(result.error, ValidationError)
        assert result.error.message == "Model failed publish validation"
        assert "Empty workflow detected" in result.error.errors
        assert (await repository.find_by_id("model-1")).is_draft

    @pytest.mark.asyncio
    async def test_nested_model_must_be_published(self, use_cases, repository):
        await repository.save(build_pipeline_model("child"))
        await repository.save(build_pipeline_model())
        await use_cases["add_action"].execute(AddActionNodeRequest(
            model_id="model-1",
            user_id="alice",
            parent_node_id="process",
            name="Run child",
            action_type=ActionType.FUNCTION_MODEL_CONTAINER,
            execution_order=2,
            payload={"nested_model_id": "child"},
        ))

        result = await use_cases["publish"].execute(PublishModelRequest(model_id="model-1", user_id="alice"))

        assert result.is_failure
        assert "Referenced nested model child must be published" in result.error.errors

    @pytest.mark.asyncio
    async def test_published_model_is_immutable(self, use_cases, repository):
        await repository.save(build_pipeline_model())
        await use_cases["publish"].execute(PublishModelRequest(model_id="model-1", user_id="alice"))

        result = await use_cases["add_node"].execute(AddContainerNodeRequest(
            model_id="model-1",
            user_id="alice",
            name="Late stage",
        ))

        assert isinstance(result.error, ValidationError)


# ==================== Жизненный цикл ====================

class TestModelLifecycle:
    """Тесты архивирования, удаления и восстановления"""

    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, use_cases, recorded_events):
        await create_model(use_cases)
        request = ModelLifecycleRequest(model_id="model-1", user_id="alice")

        deleted = await use_cases["soft_delete"].execute(request)
        restored = await use_cases["restore"].execute(request)

        assert deleted.value.is_deleted
        assert deleted.value.deleted_by == "alice"
        assert deleted.value.status == "draft"
        assert not restored.value.is_deleted
        assert recorded_events[1:] == ["model.deleted", "model.restored"]

    @pytest.mark.asyncio
    async def test_restore_requires_deleted_model(self, use_cases):
        await create_model(use_cases)

        result = await use_cases["restore"].execute(ModelLifecycleRequest(model_id="model-1", user_id="alice"))

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_archived_model_cannot_be_deleted(self, use_cases):
        """Тест: архивную модель нельзя мягко удалить"""
        await create_model(use_cases)
        request = ModelLifecycleRequest(model_id="model-1", user_id="alice")

        archived = await use_cases["archive"].execute(request)
        deleted = await use_cases["soft_delete"].execute(request)

        assert archived.value.status == "archived"
        assert isinstance(deleted.error, ValidationError)
        assert deleted.error.message == "Cannot soft delete an archived model"

    @pytest.mark.asyncio
    async def test_deleted_model_cannot_be_archived(self, use_cases):
        await create_model(use_cases)
        request = ModelLifecycleRequest(model_id="model-1", user_id="alice")
        await use_cases["soft_delete"].execute(request)

        result = await use_cases["archive"].execute(request)

        assert result.error.message == "Cannot archive deleted model"
