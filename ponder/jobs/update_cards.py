"""
Job to refresh the card database from Scryfall bulk data.

Downloads the default-cards bulk file (reusing the local cache when
present), then filters, normalizes and ingests it. Safe to re-run:
all writes are insert-if-absent.

Usage:
    python -m ponder.jobs.update_cards
    python -m ponder.jobs.update_cards --bulk-file cards.json --batch-size 500
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ponder.db.database import async_session_factory, init_db
from ponder.models.failure import PonderError
from ponder.services.bulk_data import download_bulk_data, load_bulk_data
from ponder.services.ingestion import IngestionReport, ingest_bulk

logger = logging.getLogger(__name__)


async def run_update(
    bulk_path: Path | None = None,
    *,
    download: bool = True,
    force_download: bool = False,
    batch_size: int | None = None,
) -> IngestionReport:
    """
    Fetch (optionally), load and ingest the bulk card file.

    Args:
        bulk_path: Bulk file location. Defaults to settings.bulk_data_path
        download: If False, only read an existing local file
        force_download: Re-download even if the file is cached
        batch_size: Cards per transaction. Defaults to settings.ingest_batch_size

    Returns:
        Ingestion report

    Raises:
        BulkDataError: If the bulk file cannot be fetched or parsed
        ReferenceDataError: If formats/image types cannot be seeded
    """
    if download:
        bulk_path = await download_bulk_data(bulk_path, force=force_download)

    raw_cards = await asyncio.to_thread(load_bulk_data, bulk_path)

    await init_db()
    report = await ingest_bulk(raw_cards, async_session_factory, batch_size=batch_size)

    logger.info(
        "Update complete. %d cards committed (%d already present) in %d batches",
        report.written,
        report.existing,
        report.batches,
    )
    for kind, count in report.failure_counts().items():
        logger.info("%d %s failures", count, kind.value)
    if report.first_failure is not None:
        logger.warning("First failure: %s", report.first_failure)

    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest Scryfall bulk card data")
    parser.add_argument(
        "--bulk-file",
        type=Path,
        default=None,
        help="Path of the bulk JSON file (default: settings.bulk_data_path)",
    )
    parser.add_argument(
        "--no-download",
        action="store_true",
        help="Only read an existing bulk file, never fetch",
    )
    parser.add_argument(
        "--force-download",
        action="store_true",
        help="Re-download the bulk file even if it is cached",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Cards per transaction (default: settings.ingest_batch_size)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        report = asyncio.run(
            run_update(
                args.bulk_file,
                download=not args.no_download,
                force_download=args.force_download,
                batch_size=args.batch_size,
            )
        )
    except PonderError as e:
        logger.error("Card update failed: %s", e)
        return 1

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
