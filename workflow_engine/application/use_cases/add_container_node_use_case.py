"""
Use Case для добавления контейнерного узла.

Добавление узла увеличивает версию модели. Оба шага регистрируют
компенсации: если сохранение не удалось, сначала удаляется
созданный узел, затем возвращается прежняя версия.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional

from ...core.errors import WorkflowEngineError
from ...core.result import Result
from ...domain.execution_context.services import CompensationStack
from ...domain.model_context.entities import ContainerNode, FunctionModel
from ...domain.model_context.value_objects import BoundaryType, ContainerType
from ..dto.model_dto import ModelDTO, NodeAddedDTO
from .base_use_case import ModelCommandUseCase, invalid_input_as_validation_error

logger = logging.getLogger("workflow-engine.use_cases.add_container_node")


@dataclass
class AddContainerNodeRequest:
    """
    Запрос на добавление контейнерного узла.

    Attributes:
        model_id: ID модели
        user_id: Кто добавляет
        name: Название узла
        container_type: stage или io
        boundary_type: Тип границы (только для io)
        dependencies: ID узлов-зависимостей
        metadata: Метаданные узла
        node_id: ID узла (генерируется, если не указан)
        expected_version: Версия модели, которую видел вызывающий
        version_bump: Какая часть версии увеличивается

    Пример:
        >>> request = AddContainerNodeRequest(
        ...     model_id="model-1",
        ...     user_id="alice",
        ...     name="Input",
        ...     container_type=ContainerType.IO,
        ...     boundary_type=BoundaryType.INPUT
        ... )
    """
    model_id: str
    user_id: str
    name: str
    container_type: ContainerType = ContainerType.STAGE
    boundary_type: Optional[BoundaryType] = None
    dependencies: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    node_id: Optional[str] = None
    expected_version: Optional[int] = None
    version_bump: str = "patch"


class AddContainerNodeUseCase(ModelCommandUseCase[AddContainerNodeRequest, Result[NodeAddedDTO]]):
    """
    Use Case для добавления контейнерного узла.

    Координирует:
    1. Сборку узла
    2. Увеличение версии модели
    3. Добавление узла в модель
    4. Сохранение с проверкой версии

    Пример:
        >>> use_case = AddContainerNodeUseCase(repository, publisher, lock_manager)
        >>> result = await use_case.execute(request)
        >>> result.value.node_id
        'input'
    """

    async def execute(self, request: AddContainerNodeRequest) -> Result[NodeAddedDTO]:
        try:
            node = self._build_node(request)

            def mutation(model: FunctionModel, compensations: CompensationStack) -> None:
                previous = model.bump_version(request.version_bump, user_id=request.user_id)
                compensations.push("version-bump", partial(model.restore_version, previous))
                model.add_node(node, user_id=request.user_id)
                compensations.push("node-created", partial(model.remove_node, node.id))

            model = await self._mutate(request.model_id, request.user_id, mutation, request.expected_version)
        except WorkflowEngineError as e:
            logger.warning(f"Failed to add node {request.name!r} to model {request.model_id}: {e.message}")
            return Result.fail(e)

        logger.info(f"Added {node.container_type.value} node {node.id} to model {model.id} (version {model.version})")
        return Result.ok(NodeAddedDTO(model=ModelDTO.from_entity(model), node_id=node.id))

    @staticmethod
    def _build_node(request: AddContainerNodeRequest) -> ContainerNode:
        options = {
            "node_id": request.node_id,
            "dependencies": set(request.dependencies),
            "metadata": dict(request.metadata),
        }
        with invalid_input_as_validation_error("Invalid container node"):
            if request.container_type == ContainerType.IO:
                return ContainerNode.io(request.model_id, request.name, request.boundary_type, **options)
            return ContainerNode.stage(request.model_id, request.name, boundary_type=request.boundary_type, **options)
