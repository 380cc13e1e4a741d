from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Ponder"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///ponder.db"

    scryfall_bulk_api: str = "https://api.scryfall.com/bulk-data"
    user_agent: str = "Ponder/0.1"

    # Local cache of the default_cards bulk file
    bulk_data_path: Path = Path("data") / "default-cards.json"

    # Cards per ingestion transaction
    ingest_batch_size: int = 1000


settings = Settings()


# =============================================================================
# SEARCH LIMITS
# =============================================================================

DEFAULT_SEARCH_LIMIT = 50

MAX_SEARCH_LIMIT = 500
