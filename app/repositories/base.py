"""
Base repository.

Generic CRUD operations for all repositories, plus the conflict-aware
inserts that back every idempotency key of the ledger.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base
from app.utils.exceptions import ConfigurationError

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)

# Dialects with INSERT ... ON CONFLICT support
_INSERT_BUILDERS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    Provides async database operations for any SQLAlchemy model.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class UserBalanceRepository(BaseRepository[UserBalance]):
            def __init__(self, session: AsyncSession):
                super().__init__(UserBalance, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None if not found
        """
        return await self.session.get(self.model, id)

    async def create(self, **data: Any) -> ModelType:
        """
        Create new entity.

        Args:
            **data: Entity data

        Returns:
            Created entity
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching filters.

        Args:
            **filters: Column filters

        Returns:
            Count of matching entities
        """
        stmt = select(func.count()).select_from(self.model)

        if filters:
            stmt = stmt.filter_by(**filters)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    def _dialect_insert(self):
        """
        Build a dialect specific INSERT for this model.

        Raises:
            ConfigurationError: If the bound dialect has no ON CONFLICT
        """
        dialect = self.session.get_bind().dialect.name
        builder = _INSERT_BUILDERS.get(dialect)
        if builder is None:
            raise ConfigurationError(
                f"Dialect {dialect} does not support conflict-aware inserts"
            )
        return builder(self.model)

    async def insert_ignore(
        self, index_elements: list[str] | None, **values: Any
    ) -> int | None:
        """
        Insert a row unless its unique key already exists.

        The unique constraint decides; there is no SELECT beforehand, so
        two concurrent writers cannot both succeed.

        Args:
            index_elements: Columns of the unique key (None: any unique
                constraint or index)
            **values: Row values

        Returns:
            ID of the new row, or None if the key was already taken
        """
        stmt = (
            self._dialect_insert()
            .values(**values)
            .on_conflict_do_nothing(index_elements=index_elements)
            .returning(self.model.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        index_elements: list[str],
        values: dict[str, Any],
        update_fields: list[str] | None = None,
    ) -> None:
        """
        Insert a row or overwrite it on unique key conflict.

        Args:
            index_elements: Columns of the unique key
            values: Row values
            update_fields: Columns replaced on conflict (default: every
                column in values except the key)
        """
        stmt = self._dialect_insert().values(**values)
        fields = update_fields or [
            name for name in values if name not in index_elements
        ]
        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={name: stmt.excluded[name] for name in fields},
        )
        await self.session.execute(stmt)
