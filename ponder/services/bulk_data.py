"""
Scryfall bulk data download and loading.

Resolves the default-cards bulk file from Scryfall's bulk-data index,
streams it to a local cache file and loads it back as raw card records.

Bulk data: https://scryfall.com/docs/api/bulk-data
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from ponder.config import settings
from ponder.models.failure import BulkDataError

logger = logging.getLogger(__name__)

BULK_DATA_TYPE = "default_cards"


async def get_bulk_data_url(client: httpx.AsyncClient) -> str:
    """
    Fetch the download URL for the default-cards bulk file.

    Raises:
        BulkDataError: If the index has no default_cards entry
        httpx.HTTPError: If the API request fails
    """
    response = await client.get(settings.scryfall_bulk_api)
    response.raise_for_status()
    data = response.json()

    for entry in data.get("data", []):
        if entry.get("type") == BULK_DATA_TYPE:
            return str(entry["download_uri"])

    raise BulkDataError(f"Could not find {BULK_DATA_TYPE} bulk data URL")


async def download_bulk_data(output_path: Path | None = None, *, force: bool = False) -> Path:
    """
    Download the default-cards bulk file.

    Args:
        output_path: Where to save the file. Defaults to settings.bulk_data_path
        force: If True, re-download even if the file exists

    Returns:
        Path to the cached file.

    Raises:
        BulkDataError: If the index or the download fails

    Note:
        The file is several hundred MB; it is streamed to a temporary
        file and moved into place only once complete.
    """
    if output_path is None:
        output_path = settings.bulk_data_path

    if output_path.exists() and not force:
        logger.info("Using cached bulk data at %s", output_path)
        return output_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = output_path.with_suffix(output_path.suffix + ".part")

    try:
        async with httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            follow_redirects=True,
            timeout=30.0,
        ) as client:
            url = await get_bulk_data_url(client)
            logger.info("Downloading bulk data from %s", url)

            async with client.stream("GET", url, timeout=300.0) as response:
                response.raise_for_status()
                with open(partial_path, "wb") as f:
                    async for chunk in response.aiter_bytes(8192):
                        f.write(chunk)
    except httpx.HTTPStatusError as e:
        partial_path.unlink(missing_ok=True)
        raise BulkDataError(
            f"Failed to download bulk data: HTTP {e.response.status_code}"
        ) from e
    except httpx.RequestError as e:
        partial_path.unlink(missing_ok=True)
        raise BulkDataError(f"Failed to download bulk data: {e}") from e

    partial_path.replace(output_path)
    return output_path


def load_bulk_data(path: Path | None = None) -> list[dict[str, Any]]:
    """
    Load raw card records from a bulk file.

    Args:
        path: Path to the JSON file. Defaults to settings.bulk_data_path

    Raises:
        BulkDataError: If the file is missing, not JSON, or not a list of cards
    """
    if path is None:
        path = settings.bulk_data_path

    if not path.exists():
        raise BulkDataError(
            f"Bulk data not found at {path}. "
            "Run `python -m ponder.jobs.update_cards` to download it."
        )

    try:
        with open(path, encoding="utf-8") as f:
            cards = json.load(f)
    except json.JSONDecodeError as e:
        raise BulkDataError(f"Bulk data at {path} is not valid JSON: {e}") from e

    if not isinstance(cards, list):
        raise BulkDataError(f"Bulk data at {path} is not a list of cards")

    logger.info("Loaded %d raw card records from %s", len(cards), path)
    return cards
