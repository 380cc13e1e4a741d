"""
Database operations.

Provides async functions for seeding the reference vocabularies and
for reading cards back out of the database.
"""

import logging

from sqlalchemy import ColumnElement, String, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ponder.config import DEFAULT_SEARCH_LIMIT
from ponder.db.upsert import insert_row_if_absent
from ponder.models.db import Base, CardDB, FormatDB, ImageDB, ImageTypeDB, LegalityDB
from ponder.models.failure import ReferenceDataError
from ponder.models.vocabulary import FORMAT_NAMES, IMAGE_TYPE_NAMES

logger = logging.getLogger(__name__)

# --- Reference Data ---


async def seed_reference_tables(session: AsyncSession) -> int:
    """
    Ensure every known format and image type has a row.

    Insert-if-absent, so running it again is a no-op. The caller owns
    the transaction.

    Returns:
        Number of rows inserted.

    Raises:
        ReferenceDataError: If any row could not be written
    """
    inserted = 0
    try:
        for format_name in FORMAT_NAMES:
            inserted += await insert_row_if_absent(session, FormatDB, ["name"], name=format_name)
        for image_type in IMAGE_TYPE_NAMES:
            inserted += await insert_row_if_absent(
                session, ImageTypeDB, ["name"], name=image_type
            )
    except SQLAlchemyError as e:
        raise ReferenceDataError(f"Failed to seed reference tables: {e}") from e

    logger.info("Seeded reference tables (%d new rows)", inserted)
    return inserted


# --- Card Queries ---


def _name_contains(session: AsyncSession, needle: str) -> ColumnElement[bool]:
    """Case-insensitive containment on card names, Unicode-aware on every dialect."""
    if session.get_bind().dialect.name == "sqlite":
        folded_name = func.casefold(CardDB.name, type_=String)
        return folded_name.contains(needle.casefold(), autoescape=True)
    return CardDB.name.icontains(needle, autoescape=True)


async def search_cards_by_name(
    session: AsyncSession, text: str, limit: int = DEFAULT_SEARCH_LIMIT
) -> list[CardDB]:
    """
    Find cards whose name contains text, ignoring case.

    Returns an empty list for blank search text.
    """
    needle = text.strip()
    if not needle:
        return []

    result = await session.execute(
        select(CardDB)
        .where(_name_contains(session, needle))
        .order_by(CardDB.name, CardDB.catalog_id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_card(session: AsyncSession, catalog_id: str) -> CardDB | None:
    """
    Get a card with its legalities, keywords, images and taxonomy loaded.

    Returns None if no card has this catalog id.
    """
    result = await session.execute(
        select(CardDB)
        .where(CardDB.catalog_id == catalog_id)
        .options(
            selectinload(CardDB.legalities).selectinload(LegalityDB.format),
            selectinload(CardDB.keywords),
            selectinload(CardDB.images).selectinload(ImageDB.image_type),
            selectinload(CardDB.supertypes),
            selectinload(CardDB.types),
            selectinload(CardDB.subtypes),
        )
    )
    return result.scalar_one_or_none()


async def count_rows(session: AsyncSession, model: type[Base]) -> int:
    """Count rows in a table."""
    result = await session.execute(select(func.count()).select_from(model))
    return int(result.scalar_one())


async def table_counts(session: AsyncSession) -> dict[str, int]:
    """Row count of every table, keyed by table name."""
    counts: dict[str, int] = {}
    for mapper in Base.registry.mappers:
        model = mapper.class_
        counts[model.__tablename__] = await count_rows(session, model)
    return counts
