"""
Card ingestion engine.

Writes normalized cards into the relational schema in fixed-size batches.

Each batch is one transaction. Each card inside a batch runs in its own
SAVEPOINT, so a database error on one card rolls back only that card's
rows; the rest of the batch still commits. Every write is
insert-if-absent, which makes re-running an ingestion safe: existing rows
are left untouched and only missing rows are added.

The writer is strictly sequential. One ingestor owns its lookup caches
and must not be shared between concurrent tasks.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from itertools import islice
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ponder.config import settings
from ponder.db.operations import seed_reference_tables
from ponder.db.upsert import insert_row_if_absent
from ponder.filtering.card_filter import filter_cards, filter_faces
from ponder.models.card import CardRecord
from ponder.models.db import (
    CardDB,
    CardKeywordDB,
    CardSubtypeDB,
    CardSupertypeDB,
    CardTypeDB,
    FormatDB,
    ImageDB,
    ImageTypeDB,
    KeywordDB,
    LegalityDB,
)
from ponder.models.failure import (
    CardWriteError,
    FailureKind,
    IngestionFailure,
    ReferenceDataError,
    RowConflictError,
)
from ponder.models.vocabulary import FORMAT_NAMES, IMAGE_TYPE_NAMES
from ponder.parsers.scryfall import flatten_card_faces, normalize_card
from ponder.parsers.type_line import parse_type_line
from ponder.services.lookup_cache import LookupCache

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """
    Outcome of one ingestion run.

    Attributes:
        written: Cards whose row was created by this run
        existing: Cards whose row was already present (missing child rows
            are still added)
        batches: Batches committed
        failed_batches: Batches rolled back as a whole
        failures: Every recorded failure, in the order encountered
    """

    written: int = 0
    existing: int = 0
    batches: int = 0
    failed_batches: int = 0
    failures: list[IngestionFailure] = field(default_factory=list)

    @property
    def first_failure(self) -> IngestionFailure | None:
        """The first failure encountered, if any."""
        return self.failures[0] if self.failures else None

    @property
    def card_failures(self) -> list[IngestionFailure]:
        """Failures that prevented a card from being written."""
        return [f for f in self.failures if f.kind == FailureKind.CARD_WRITE]

    @property
    def ok(self) -> bool:
        """True when every card was written."""
        return not self.card_failures

    def failure_counts(self) -> dict[FailureKind, int]:
        """Number of failures per kind."""
        counts: dict[FailureKind, int] = {}
        for failure in self.failures:
            counts[failure.kind] = counts.get(failure.kind, 0) + 1
        return counts


def _batched(cards: Iterable[CardRecord], size: int) -> Iterator[list[CardRecord]]:
    iterator = iter(cards)
    while batch := list(islice(iterator, size)):
        yield batch


class CardIngestor:
    """
    Writes CardRecords through lookup-or-create caches.

    Usage:
        ingestor = CardIngestor(async_session_factory)
        report = await ingestor.ingest(records)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        batch_size: int | None = None,
    ):
        self.session_factory = session_factory
        self.batch_size = batch_size if batch_size is not None else settings.ingest_batch_size
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

        self.cards = LookupCache(CardDB, CardDB.catalog_id)
        self.keywords = LookupCache(KeywordDB, KeywordDB.name)
        self.formats = LookupCache(FormatDB, FormatDB.name)
        self.image_types = LookupCache(ImageTypeDB, ImageTypeDB.name)
        self._seeded = False

    # --- Reference data ---

    async def seed(self) -> None:
        """
        Seed formats and image types in a short transaction of their own.

        Raises:
            ReferenceDataError: If seeding fails or a vocabulary row is missing
        """
        try:
            async with self.session_factory() as session, session.begin():
                await seed_reference_tables(session)
                await self.formats.preload(session)
                await self.image_types.preload(session)
        except SQLAlchemyError as e:
            raise ReferenceDataError(f"Failed to commit reference tables: {e}") from e

        missing = [n for n in FORMAT_NAMES if n not in self.formats]
        missing += [n for n in IMAGE_TYPE_NAMES if n not in self.image_types]
        if missing:
            raise ReferenceDataError(f"Reference rows missing after seeding: {missing}")

        self._seeded = True

    # --- Batches ---

    async def ingest(self, cards: Iterable[CardRecord]) -> IngestionReport:
        """
        Write cards in batches of batch_size.

        Seeds the reference tables first if this ingestor has not yet
        done so. Cancelling the task rolls back the in-flight batch.

        Returns:
            Report with counts and every per-card failure.

        Raises:
            ReferenceDataError: If the reference tables cannot be seeded
        """
        if not self._seeded:
            await self.seed()

        report = IngestionReport()
        for batch in _batched(cards, self.batch_size):
            await self._write_batch(batch, report)

        logger.info(
            "Ingestion finished: %d written, %d already present, %d failures, %d batches",
            report.written,
            report.existing,
            len(report.card_failures),
            report.batches,
        )
        return report

    async def _write_batch(self, batch: list[CardRecord], report: IngestionReport) -> None:
        batch_marks = self._mark()
        written = existing = 0
        failures: list[IngestionFailure] = []
        committed = False

        try:
            async with self.session_factory() as session, session.begin():
                for card in batch:
                    card_marks = self._mark()
                    try:
                        async with session.begin_nested():
                            created = await self._write_card(session, card)
                    except CardWriteError as e:
                        self._rollback(card_marks)
                        failure = e.to_failure()
                        logger.warning("%s", failure)
                        failures.append(failure)
                        continue

                    if created:
                        written += 1
                    else:
                        existing += 1
            committed = True
        except SQLAlchemyError as e:
            logger.error("Batch of %d cards rolled back: %s", len(batch), e)
            report.failed_batches += 1
            report.failures.append(
                IngestionFailure(
                    kind=FailureKind.CARD_WRITE,
                    catalog_id=batch[0].catalog_id,
                    name=batch[0].name,
                    operation=f"commit batch of {len(batch)} cards",
                    message=str(e),
                )
            )
        finally:
            if committed:
                self._commit()
            else:
                self._rollback(batch_marks)

        if committed:
            report.batches += 1
            report.written += written
            report.existing += existing
            report.failures.extend(failures)
            logger.info("Committed batch %d (%d cards)", report.batches, len(batch))

    def _mark(self) -> tuple[int, int]:
        return self.cards.mark(), self.keywords.mark()

    def _rollback(self, marks: tuple[int, int]) -> None:
        self.cards.rollback_to(marks[0])
        self.keywords.rollback_to(marks[1])

    def _commit(self) -> None:
        self.cards.commit()
        self.keywords.commit()

    # --- Single card ---

    async def _write_card(self, session: AsyncSession, card: CardRecord) -> bool:
        """
        Write one card and all its child rows.

        Returns:
            True if the card row was created, False if it already existed.

        Raises:
            CardWriteError: Naming the step that failed
        """
        operation = "insert card"
        try:
            values = card.column_values()
            del values["catalog_id"]
            card_id, created = await self.cards.get_or_create(session, card.catalog_id, **values)

            operation = "insert legalities"
            await self._write_legalities(session, card_id, card.legalities)

            operation = "insert keywords"
            await self._write_keywords(session, card_id, card.keywords)

            operation = "insert images"
            await self._write_images(session, card_id, card.image_uris)

            operation = "insert taxonomy"
            await self._write_taxonomy(session, card_id, card.type_line)
        except (SQLAlchemyError, KeyError, RowConflictError) as e:
            raise CardWriteError(card.catalog_id, card.name, operation, e) from e

        return created

    async def _write_legalities(
        self, session: AsyncSession, card_id: int, legalities: Mapping[str, str]
    ) -> None:
        for format_name, status in legalities.items():
            format_id = await self.formats.lookup(session, format_name)
            await insert_row_if_absent(
                session,
                LegalityDB,
                ["card_id", "format_id"],
                card_id=card_id,
                format_id=format_id,
                status=status,
            )

    async def _write_keywords(
        self, session: AsyncSession, card_id: int, keywords: Iterable[str]
    ) -> None:
        for keyword in keywords:
            keyword_id = await self.keywords.resolve(session, keyword)
            await insert_row_if_absent(
                session,
                CardKeywordDB,
                ["card_id", "keyword_id"],
                card_id=card_id,
                keyword_id=keyword_id,
            )

    async def _write_images(
        self, session: AsyncSession, card_id: int, image_uris: Mapping[str, str]
    ) -> None:
        for image_type, uri in image_uris.items():
            image_type_id = await self.image_types.lookup(session, image_type)
            await insert_row_if_absent(
                session,
                ImageDB,
                ["card_id", "image_type_id"],
                card_id=card_id,
                image_type_id=image_type_id,
                uri=uri,
            )

    async def _write_taxonomy(
        self, session: AsyncSession, card_id: int, type_line: str | None
    ) -> None:
        parsed = parse_type_line(type_line)
        key = ["card_id", "value"]

        if parsed.supertype is not None:
            await insert_row_if_absent(
                session, CardSupertypeDB, key, card_id=card_id, value=parsed.supertype
            )
        for value in parsed.types:
            await insert_row_if_absent(session, CardTypeDB, key, card_id=card_id, value=value)
        for value in parsed.subtypes:
            await insert_row_if_absent(session, CardSubtypeDB, key, card_id=card_id, value=value)


def prepare_cards(
    raw_cards: Iterable[Mapping[str, Any]],
) -> tuple[list[CardRecord], list[IngestionFailure]]:
    """
    Filter, flatten and normalize raw Scryfall records.

    Records are filtered before flattening and each face is filtered
    again afterwards, so art-series and token faces never reach the writer.

    Pure and side-effect free; safe to run off the event loop.

    Returns:
        Tuple of (records, malformed-field failures).
    """
    records: list[CardRecord] = []
    failures: list[IngestionFailure] = []

    faces = [face for raw in filter_cards(raw_cards) for face in flatten_card_faces(raw)]
    for face in filter_faces(faces):
        record, issues = normalize_card(face)
        failures.extend(issues)
        if record is not None:
            records.append(record)

    logger.info("Prepared %d card records (%d field issues)", len(records), len(failures))
    return records, failures


async def ingest_bulk(
    raw_cards: Iterable[Mapping[str, Any]],
    session_factory: async_sessionmaker[AsyncSession],
    batch_size: int | None = None,
) -> IngestionReport:
    """
    Run the full pipeline over raw bulk records.

    filter -> flatten -> normalize (in a worker thread) -> seed -> write.
    Malformed-field failures from normalization lead the report's
    failure list.
    """
    records, field_failures = await asyncio.to_thread(prepare_cards, raw_cards)

    ingestor = CardIngestor(session_factory, batch_size=batch_size)
    report = await ingestor.ingest(records)
    report.failures[:0] = field_failures
    return report
