from ponder.db.database import get_session, init_db
from ponder.db.operations import (
    count_rows,
    get_card,
    search_cards_by_name,
    seed_reference_tables,
    table_counts,
)
from ponder.db.upsert import insert_if_absent, insert_row_if_absent

__all__ = [
    "count_rows",
    "get_card",
    "get_session",
    "init_db",
    "insert_if_absent",
    "insert_row_if_absent",
    "search_cards_by_name",
    "seed_reference_tables",
    "table_counts",
]
