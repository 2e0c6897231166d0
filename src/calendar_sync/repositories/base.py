"""Base repository class with common data-access operations."""

import logging
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.database.models import Base, utcnow
from calendar_sync.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# Type variable for the model type
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository keyed on the model's single-column primary key."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session
        self.key_column = model.__mapper__.primary_key[0]

    async def get_by_key(self, key: str) -> Optional[ModelType]:
        """
        Get a record by primary key.

        Args:
            key: Primary key value

        Returns:
            Model instance or None if not found
        """
        try:
            result = await self.session.execute(
                select(self.model)
                .where(self.key_column == key)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} by key {key}: {e}")
            raise DatabaseError(f"Failed to retrieve {self.model.__name__}") from e

    async def upsert(self, values: Dict[str, Any]) -> None:
        """
        Insert a record or overwrite every given column when the key already exists.

        Uses ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent writers converge
        on a single row. Columns absent from ``values`` keep their stored value.

        Args:
            values: Column values, including the primary key
        """
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(self.model.__table__).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite_insert(self.model.__table__).values(**values)
        else:
            raise DatabaseError(f"Upsert not supported for dialect '{dialect}'")

        key_name = self.key_column.key
        update_columns = {
            column.key: stmt.excluded[column.key]
            for column in self.model.__table__.columns
            if column.key != key_name and column.key in values
        }
        if "updated_at" in self.model.__table__.c:
            update_columns["updated_at"] = utcnow()

        stmt = stmt.on_conflict_do_update(index_elements=[key_name], set_=update_columns)
        try:
            await self.session.execute(stmt)
            logger.debug(f"Upserted {self.model.__name__} with key: {values.get(key_name)}")
        except SQLAlchemyError as e:
            logger.error(f"Error upserting {self.model.__name__}: {e}")
            await self.session.rollback()
            raise DatabaseError(f"Failed to save {self.model.__name__}") from e

    async def delete_where(self, **filters: Any) -> int:
        """
        Delete every record matching the given column filters.

        Returns:
            Number of deleted rows (0 when nothing matched)
        """
        try:
            stmt = delete(self.model)
            for field, value in filters.items():
                stmt = stmt.where(getattr(self.model, field) == value)
            result = await self.session.execute(stmt)
            deleted = result.rowcount or 0
            logger.debug(f"Deleted {deleted} {self.model.__name__} row(s) where {filters}")
            return deleted
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model.__name__} where {filters}: {e}")
            await self.session.rollback()
            raise DatabaseError(f"Failed to delete {self.model.__name__}") from e

