"""
Insert-if-absent statements.

Builds dialect-specific INSERT ... ON CONFLICT DO NOTHING statements so
re-ingestion never duplicates or overwrites rows.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ponder.models.db import Base


def insert_if_absent(
    session: AsyncSession,
    model: type[Base],
    conflict_columns: Sequence[str],
) -> Insert:
    """
    Build an insert for model that is a no-op on a unique-key conflict.

    Args:
        session: Session whose bind decides the SQL dialect
        model: ORM class to insert into
        conflict_columns: Columns of the unique key that may conflict

    Raises:
        NotImplementedError: For dialects without ON CONFLICT support
    """
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(model).on_conflict_do_nothing(index_elements=list(conflict_columns))
    if dialect == "postgresql":
        return postgresql.insert(model).on_conflict_do_nothing(
            index_elements=list(conflict_columns)
        )
    raise NotImplementedError(f"insert-if-absent is not supported on {dialect}")


async def insert_row_if_absent(
    session: AsyncSession,
    model: type[Base],
    conflict_columns: Sequence[str],
    **values: Any,
) -> bool:
    """
    Insert one row unless it already exists.

    Returns:
        True if a row was inserted, False if it was already present.
    """
    stmt = insert_if_absent(session, model, conflict_columns).values(**values)
    result = await session.execute(stmt)
    # rowcount is available on INSERT results; type stubs incomplete for async
    return bool(result.rowcount)  # type: ignore[attr-defined]
