"""
Base Repository interface for Domain-Driven Design.

This module provides the foundation for all repository interfaces following DDD principles.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from .base_entity import Entity

# Type variable for entity type
TEntity = TypeVar('TEntity', bound=Entity)
TId = TypeVar('TId')


class Repository(ABC, Generic[TEntity, TId]):
    """
    Base interface for all repositories.

    A repository provides the illusion of an in-memory collection of domain objects.
    It hides persistence details from the domain layer; there is one repository
    per aggregate root.

    Usage:
        class ModelRepository(Repository[FunctionModel, str]):
            async def find_by_owner(self, owner_id: str) -> List[FunctionModel]:
                pass
    """

    @abstractmethod
    async def find_by_id(self, id: TId) -> Optional[TEntity]:
        """
        Get entity by identifier.

        Args:
            id: Entity identifier

        Returns:
            Entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def save(self, entity: TEntity, expected_version: Optional[int] = None) -> None:
        """
        Insert or update entity.

        Args:
            entity: Entity to save
            expected_version: Version the caller read before mutating;
                None skips the optimistic check (first insert)

        Raises:
            VersionConflictError: If the stored version differs from expected_version
        """
        pass

    @abstractmethod
    async def delete(self, id: TId) -> bool:
        """
        Remove entity from repository.

        Returns:
            True if entity was removed, False if it did not exist
        """
        pass

    @abstractmethod
    async def exists(self, id: TId) -> bool:
        """Check if entity exists."""
        pass
