"""
Generic data access over any mapped model.

The model class itself is the entity key: ``get_by_id(Article, 3)``,
``get_all(Comment)``.  ``get_all`` hands back an unexecuted ``Select`` so
callers can compose filters, joins, ordering and eager-loading options
before running it through ``scalars`` / ``first`` / ``count``.

Writes flush but never commit; the transaction boundary belongs to the
``get_db`` dependency.
"""
from typing import Any, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(self, model: type[ModelT], entity_id: Any) -> ModelT | None:
        return await self.db.get(model, entity_id)

    def get_all(self, model: type[ModelT]) -> Select:
        return select(model)

    async def scalars(self, stmt: Select) -> Sequence:
        """
        Execute *stmt* and return every first-column value.

        ``populate_existing`` makes eager-loading options apply to instances
        already sitting in the session's identity map, whose ``noload``
        relationships would otherwise stay empty.
        """
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.unique().scalars().all()

    async def first(self, stmt: Select):
        result = await self.db.execute(
            stmt.limit(1).execution_options(populate_existing=True)
        )
        return result.unique().scalars().first()

    async def count(self, stmt: Select) -> int:
        """Row count of *stmt*, ignoring any ORDER BY it carries."""
        count_q = select(func.count()).select_from(stmt.order_by(None).subquery())
        return (await self.db.execute(count_q)).scalar_one()

    async def exists(self, stmt: Select) -> bool:
        return await self.first(stmt) is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        # The instance is already tracked by the session; flushing
        # writes whatever attributes the caller changed.
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()
