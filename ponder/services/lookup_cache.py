"""
Lookup-or-create cache for natural keys.

Resolves a natural key (keyword name, card catalog id, format name) to
its surrogate row id, creating the row on first sight. Ids are memoised
for the lifetime of one ingestion run.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from ponder.db.upsert import insert_if_absent
from ponder.models.db import Base
from ponder.models.failure import RowConflictError

logger = logging.getLogger(__name__)


class LookupCache:
    """
    Maps natural keys of one table to surrogate ids.

    Creation is a single INSERT ... ON CONFLICT DO NOTHING RETURNING id.
    When the insert reports a conflict (no id returned) the existing
    row is selected instead, so the id is never lost.

    Keys created since the last commit() are journaled. When the
    transaction or savepoint that created them rolls back, the caller
    passes the mark taken before it to rollback_to() and those ids are
    evicted, since their rows no longer exist.

    Not safe for concurrent use: one cache belongs to one writer.
    """

    def __init__(self, model: type[Base], key_column: InstrumentedAttribute[Any]):
        self.model = model
        self.key_column = key_column
        self._ids: dict[Any, int] = {}
        self._journal: list[Any] = []

    def __contains__(self, key: object) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def _id_column(self) -> InstrumentedAttribute[int]:
        id_column: InstrumentedAttribute[int] = self.model.id  # type: ignore[attr-defined]
        return id_column

    async def preload(self, session: AsyncSession) -> int:
        """
        Load every existing (key, id) pair into the cache.

        Intended for small vocabularies. Returns the number of entries.
        """
        result = await session.execute(select(self.key_column, self._id_column))
        for key, row_id in result.all():
            self._ids[key] = row_id
        return len(self._ids)

    async def lookup(self, session: AsyncSession, key: Any) -> int:
        """
        Resolve a key whose row must already exist.

        Raises:
            KeyError: If no row has this key
        """
        if key in self._ids:
            return self._ids[key]

        row_id = await self._select_id(session, key)
        if row_id is None:
            raise KeyError(f"No {self.model.__tablename__} row for {key!r}")
        self._ids[key] = row_id
        return row_id

    async def get_or_create(
        self, session: AsyncSession, key: Any, **values: Any
    ) -> tuple[int, bool]:
        """
        Resolve a key to its id, inserting the row if it does not exist.

        Args:
            session: Session inside the current transaction
            key: Natural key value
            **values: Other column values, used only when creating the row

        Returns:
            Tuple of (id, created) where created is True if this call
            inserted the row.

        Raises:
            RowConflictError: If the insert conflicted but no row has the key
        """
        if key in self._ids:
            return self._ids[key], False

        column_name = self.key_column.key
        stmt = (
            insert_if_absent(session, self.model, [column_name])
            .values({column_name: key, **values})
            .returning(self._id_column)
        )
        result = await session.execute(stmt)
        row_id = result.scalar_one_or_none()
        created = row_id is not None

        if row_id is None:
            row_id = await self._select_id(session, key)
            if row_id is None:
                raise RowConflictError(
                    f"{self.model.__tablename__} row for {key!r} vanished after conflict"
                )
        else:
            self._journal.append(key)

        self._ids[key] = row_id
        return row_id, created

    async def resolve(self, session: AsyncSession, key: Any, **values: Any) -> int:
        """Resolve a key to its id, creating the row on first sight."""
        row_id, _created = await self.get_or_create(session, key, **values)
        return row_id

    def mark(self) -> int:
        """Position in the creation journal, for a later rollback_to()."""
        return len(self._journal)

    def rollback_to(self, mark: int) -> None:
        """Evict every key created after mark."""
        for key in self._journal[mark:]:
            self._ids.pop(key, None)
        del self._journal[mark:]

    def commit(self) -> None:
        """Forget the journal once created rows are durable."""
        self._journal.clear()

    async def _select_id(self, session: AsyncSession, key: Any) -> int | None:
        result = await session.execute(select(self._id_column).where(self.key_column == key))
        return result.scalar_one_or_none()
