"""Tests for the card ingestion engine."""

import asyncio
from dataclasses import replace
from typing import Any

import pytest
from sqlalchemy import event, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

from ponder.db.operations import count_rows, get_card, table_counts
from ponder.db.upsert import insert_row_if_absent
from ponder.models.card import CardRecord
from ponder.models.db import (
    CardDB,
    CardKeywordDB,
    CardTypeDB,
    FormatDB,
    ImageDB,
    ImageTypeDB,
    KeywordDB,
    LegalityDB,
)
from ponder.models.failure import FailureKind, ReferenceDataError
from ponder.services.ingestion import CardIngestor, ingest_bulk, prepare_cards


def _record(catalog_id: str, name: str, **fields: Any) -> CardRecord:
    return CardRecord(catalog_id=catalog_id, name=name, **fields)


@pytest.fixture
def records(raw_cards: list[dict[str, Any]]) -> list[CardRecord]:
    prepared, _ = prepare_cards(raw_cards)
    return prepared


class TestPrepareCards:
    def test_filters_and_flattens(self, raw_cards: list[dict[str, Any]]) -> None:
        records, failures = prepare_cards(raw_cards)

        # 5 single-faced cards + 2 two-faced cards; 5 entries excluded
        assert len(records) == 9
        assert failures == []

    def test_faces_get_distinct_catalog_ids(self, records: list[CardRecord]) -> None:
        delver = [r for r in records if r.catalog_id.startswith("a1b2c3d4-0000-4000-8000-000000000005")]

        assert [r.catalog_id.rsplit(":", 1)[1] for r in delver] == ["0", "1"]
        assert [r.name for r in delver] == ["Delver of Secrets", "Insectile Aberration"]

    def test_split_faces_inherit_parent_colors_and_images(
        self, records: list[CardRecord]
    ) -> None:
        fire = next(r for r in records if r.name == "Fire")

        assert fire.color_mask == 2 | 8
        assert fire.image_uris == {"normal": "https://cards.scryfall.io/normal/front/a/1/fireice.jpg"}
        assert fire.mana_cost == "{1}{R}"


class TestIngest:
    async def test_writes_every_table(self, session_factory, records: list[CardRecord]) -> None:
        report = await CardIngestor(session_factory).ingest(records)

        assert report.ok
        assert report.written == 9
        assert report.existing == 0
        assert report.batches == 1

        async with session_factory() as session:
            counts = await table_counts(session)

        assert counts == {
            "format": 22,
            "image_type": 6,
            "keyword": 3,
            "card": 9,
            "legality": 22,
            "card_keyword": 4,
            "image": 13,
            "card_supertype": 2,
            "card_type": 9,
            "card_subtype": 9,
        }

    async def test_second_run_is_idempotent(
        self, session_factory, records: list[CardRecord]
    ) -> None:
        await CardIngestor(session_factory).ingest(records)
        async with session_factory() as session:
            first_counts = await table_counts(session)

        report = await CardIngestor(session_factory).ingest(records)
        async with session_factory() as session:
            second_counts = await table_counts(session)

        assert second_counts == first_counts
        assert report.written == 0
        assert report.existing == 9
        assert report.ok

    async def test_rerun_adds_missing_child_rows_only(self, session_factory) -> None:
        bolt = _record("abc", "Lightning Bolt", legalities={"modern": "legal"})
        await CardIngestor(session_factory).ingest([bolt])

        changed = replace(
            bolt,
            rarity="mythic",
            legalities={"modern": "banned", "legacy": "legal"},
        )
        await CardIngestor(session_factory).ingest([changed])

        async with session_factory() as session:
            card = await get_card(session, "abc")

        assert card is not None
        # Existing rows are never updated
        assert card.rarity is None
        assert {lg.format.name: lg.status for lg in card.legalities} == {
            "modern": "legal",
            "legacy": "legal",
        }

    async def test_taxonomy_rows(self, session_factory, records: list[CardRecord]) -> None:
        await CardIngestor(session_factory).ingest(records)

        async with session_factory() as session:
            card = await get_card(session, "0b5d1ab6-8b4e-4a5f-9b39-5d1ee8c6ac47")

        assert card is not None
        assert [s.value for s in card.supertypes] == ["Legendary"]
        assert [t.value for t in card.types] == ["Creature"]
        assert sorted(s.value for s in card.subtypes) == ["Druid", "Elf"]

    async def test_referential_integrity(self, session_factory, records: list[CardRecord]) -> None:
        await CardIngestor(session_factory).ingest(records)

        async with session_factory() as session:
            orphan_legalities = await session.execute(
                select(LegalityDB).where(LegalityDB.format_id.not_in(select(FormatDB.id)))
            )
            orphan_images = await session.execute(
                select(ImageDB).where(ImageDB.image_type_id.not_in(select(ImageTypeDB.id)))
            )
            orphan_keywords = await session.execute(
                select(CardKeywordDB).where(CardKeywordDB.keyword_id.not_in(select(KeywordDB.id)))
            )

            assert orphan_legalities.scalars().all() == []
            assert orphan_images.scalars().all() == []
            assert orphan_keywords.scalars().all() == []

    async def test_keyword_created_once_across_cards(self, session_factory) -> None:
        cards = [
            _record("1", "Serra Angel", keywords=("Flying", "Vigilance")),
            _record("2", "Wind Drake", keywords=("Flying",)),
        ]

        await CardIngestor(session_factory).ingest(cards)

        async with session_factory() as session:
            assert await count_rows(session, KeywordDB) == 2
            assert await count_rows(session, CardKeywordDB) == 3

    async def test_duplicate_catalog_id_in_input(self, session_factory) -> None:
        cards = [_record("1", "Shock"), _record("1", "Shock")]

        report = await CardIngestor(session_factory).ingest(cards)

        assert report.written == 1
        assert report.existing == 1


class TestBatching:
    async def test_commits_in_fixed_size_batches(
        self, session_factory, records: list[CardRecord]
    ) -> None:
        report = await CardIngestor(session_factory, batch_size=4).ingest(records)

        assert report.batches == 3
        assert report.written == 9

    async def test_rejects_non_positive_batch_size(self, session_factory) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            CardIngestor(session_factory, batch_size=0)

    async def test_empty_input_still_seeds(self, session_factory) -> None:
        report = await CardIngestor(session_factory).ingest([])

        assert report.batches == 0
        async with session_factory() as session:
            assert await count_rows(session, FormatDB) == 22


class TestFailureIsolation:
    async def test_bad_card_does_not_void_its_batch(self, session_factory) -> None:
        cards = [
            _record("1", "Shock"),
            _record("2", None),  # type: ignore[arg-type]
            _record("3", "Opt"),
        ]

        report = await CardIngestor(session_factory).ingest(cards)

        assert report.written == 2
        assert not report.ok
        assert len(report.card_failures) == 1
        failure = report.first_failure
        assert failure is not None
        assert failure.kind == FailureKind.CARD_WRITE
        assert failure.catalog_id == "2"
        assert failure.operation == "insert card"

        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 2

    async def test_failure_after_card_row_rolls_back_whole_card(self, session_factory) -> None:
        """A failing child row removes the card row and its other children too."""
        # Unknown image type fails after card, legality and keyword rows were written
        bad = _record(
            "1",
            "Serra Angel",
            legalities={"modern": "legal"},
            keywords=("Flying",),
            image_uris={"normal": "https://x/n.jpg", "thumbnail": "https://x/t"},
        )

        report = await CardIngestor(session_factory).ingest([bad, _record("2", "Opt")])

        assert report.written == 1
        assert report.card_failures[0].operation == "insert images"
        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 1
            assert await count_rows(session, KeywordDB) == 0
            assert await count_rows(session, CardKeywordDB) == 0
            assert await count_rows(session, ImageDB) == 0
            assert await count_rows(session, LegalityDB) == 0

    async def test_rolled_back_keyword_is_recreated_by_next_card(self, session_factory) -> None:
        cards = [
            _record("1", "Bad Angel", keywords=("Flying",), image_uris={"thumbnail": "https://x/t"}),
            _record("2", "Wind Drake", keywords=("Flying",)),
        ]

        report = await CardIngestor(session_factory).ingest(cards)

        assert report.written == 1
        async with session_factory() as session:
            assert await count_rows(session, KeywordDB) == 1
            assert await count_rows(session, CardKeywordDB) == 1

    async def test_fixed_input_resumes_cleanly(self, session_factory) -> None:
        broken = [_record("1", "Shock"), _record("2", None)]  # type: ignore[arg-type]
        await CardIngestor(session_factory).ingest(broken)

        fixed = [_record("1", "Shock"), _record("2", "Opt")]
        report = await CardIngestor(session_factory).ingest(fixed)

        assert report.ok
        assert report.written == 1
        assert report.existing == 1

    async def test_cancellation_rolls_back_in_flight_batch(
        self, session_factory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        ingestor = CardIngestor(session_factory, batch_size=10)
        original = ingestor._write_card
        calls = 0

        async def cancel_on_second_card(session: AsyncSession, card: CardRecord) -> bool:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise asyncio.CancelledError
            return await original(session, card)

        monkeypatch.setattr(ingestor, "_write_card", cancel_on_second_card)

        with pytest.raises(asyncio.CancelledError):
            await ingestor.ingest([_record("1", "Shock"), _record("2", "Opt")])

        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 0
        assert "1" not in ingestor.cards


    async def test_vanished_conflict_row_fails_only_that_card(
        self, session_factory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async with session_factory() as session:
            await insert_row_if_absent(session, KeywordDB, ["name"], name="Flying")
            await session.commit()

        ingestor = CardIngestor(session_factory)

        async def no_row(_session: AsyncSession, _key: Any) -> None:
            return None

        monkeypatch.setattr(ingestor.keywords, "_select_id", no_row)

        report = await ingestor.ingest(
            [_record("1", "Serra Angel", keywords=("Flying",)), _record("2", "Opt")]
        )

        assert report.written == 1
        failure = report.card_failures[0]
        assert failure.catalog_id == "1"
        assert failure.operation == "insert keywords"
        assert "vanished" in failure.message
        async with session_factory() as session:
            assert await get_card(session, "1") is None
            assert await get_card(session, "2") is not None


class TestBatchFailure:
    @staticmethod
    def _fail_first_batch_commit(
        ingestor: CardIngestor,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        opened = 0

        def fail_outer_commit(session: Session) -> None:
            # Savepoint releases also fire before_commit
            if not session.in_nested_transaction():
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        def open_session() -> AsyncSession:
            nonlocal opened
            opened += 1
            session = session_factory()
            if opened == 1:
                event.listen(session.sync_session, "before_commit", fail_outer_commit)
            return session

        monkeypatch.setattr(ingestor, "session_factory", open_session)

    async def test_commit_failure_rolls_back_whole_batch(
        self, session_factory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        ingestor = CardIngestor(session_factory, batch_size=2)
        await ingestor.seed()
        self._fail_first_batch_commit(ingestor, session_factory, monkeypatch)

        report = await ingestor.ingest(
            [
                _record("1", "Serra Angel", keywords=("Flying",)),
                _record("2", "Opt"),
                _record("3", "Wind Drake", keywords=("Flying",)),
            ]
        )

        assert report.failed_batches == 1
        assert report.batches == 1
        assert report.written == 1
        assert not report.ok
        failure = report.card_failures[0]
        assert failure.catalog_id == "1"
        assert failure.operation == "commit batch of 2 cards"
        assert "disk I/O error" in failure.message

        async with session_factory() as session:
            assert await get_card(session, "1") is None
            assert await get_card(session, "2") is None
            assert await get_card(session, "3") is not None
            # The keyword from the failed batch is created again by the next one
            assert await count_rows(session, KeywordDB) == 1
            assert await count_rows(session, CardKeywordDB) == 1

    async def test_commit_failure_evicts_cached_ids(
        self, session_factory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        ingestor = CardIngestor(session_factory)
        await ingestor.seed()
        self._fail_first_batch_commit(ingestor, session_factory, monkeypatch)

        report = await ingestor.ingest([_record("1", "Serra Angel", keywords=("Flying",))])

        assert report.failed_batches == 1
        assert report.written == 0
        assert "1" not in ingestor.cards
        assert "Flying" not in ingestor.keywords
        assert "modern" in ingestor.formats
        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 0
            assert await count_rows(session, KeywordDB) == 0


class TestReferenceData:
    async def test_seed_failure_is_fatal(
        self, session_factory: async_sessionmaker[AsyncSession], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken(_session: AsyncSession) -> int:
            raise SQLAlchemyError("no such table: format")

        monkeypatch.setattr("ponder.services.ingestion.seed_reference_tables", broken)

        with pytest.raises(ReferenceDataError):
            await CardIngestor(session_factory).ingest([_record("1", "Shock")])

        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 0


class TestIngestBulk:
    async def test_full_pipeline(self, session_factory, raw_cards: list[dict[str, Any]]) -> None:
        report = await ingest_bulk(raw_cards, session_factory)

        assert report.ok
        assert report.written == 9

    async def test_field_failures_are_reported_and_card_is_written(self, session_factory) -> None:
        raw = [{"id": "abc", "name": "Odd", "type_line": "Instant", "colors": ["Z"]}]

        report = await ingest_bulk(raw, session_factory)

        assert report.ok
        assert report.written == 1
        assert report.first_failure is not None
        assert report.first_failure.kind == FailureKind.MALFORMED_FIELD
        assert report.failure_counts() == {FailureKind.MALFORMED_FIELD: 1}

        async with session_factory() as session:
            card = await get_card(session, "abc")
        assert card is not None
        assert card.color_mask is None

    async def test_art_series_faces_are_not_written(self, session_factory) -> None:
        art_series = {
            "id": "art1",
            "name": "Tarmogoyf // Tarmogoyf",
            "type_line": "Card // Card",
            "layout": "art_series",
            "card_faces": [
                {"name": "Tarmogoyf", "type_line": "Card"},
                {"name": "Tarmogoyf", "type_line": "Card"},
            ],
        }

        report = await ingest_bulk([art_series], session_factory)

        assert report.ok
        assert report.written == 0
        async with session_factory() as session:
            assert await count_rows(session, CardDB) == 0
            assert await count_rows(session, CardTypeDB) == 0
