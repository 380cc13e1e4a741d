from ponder.services.bulk_data import download_bulk_data, get_bulk_data_url, load_bulk_data
from ponder.services.ingestion import (
    CardIngestor,
    IngestionReport,
    ingest_bulk,
    prepare_cards,
)
from ponder.services.lookup_cache import LookupCache

__all__ = [
    "CardIngestor",
    "IngestionReport",
    "LookupCache",
    "download_bulk_data",
    "get_bulk_data_url",
    "ingest_bulk",
    "load_bulk_data",
    "prepare_cards",
]
