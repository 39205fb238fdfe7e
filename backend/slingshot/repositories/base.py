"""
Base repository class with common CRUD operations.
"""
from typing import Generic, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

T = TypeVar("T", bound=DeclarativeBase)


class BaseRepository(Generic[T]):
    """
    Generic base repository for CRUD operations.

    Subclass this and set the `model` class attribute to your SQLAlchemy model.
    """

    model: Type[T]

    def __init__(self, db: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            db: SQLAlchemy async session
        """
        self.db = db

    async def create(self, entity: T) -> T:
        """
        Create a new record.

        Args:
            entity: Entity to create

        Returns:
            Created entity with ID populated
        """
        self.db.add(entity)
        await self.db.commit()
        await self.db.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """
        Persist changes made to an entity.

        Args:
            entity: Entity with updated values

        Returns:
            Updated entity
        """
        await self.db.commit()
        await self.db.refresh(entity)
        return entity

    async def reload(self, entity: T) -> T:
        """Re-read an entity's columns from the database."""
        await self.db.refresh(entity)
        return entity
