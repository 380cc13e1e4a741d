"""Tests for liveness and readiness checks."""

from typing import Any

from httpx import AsyncClient

from ponder.db.database import drop_db
from ponder.main import app
from ponder.services.ingestion import ingest_bulk


async def test_liveness_ignores_database(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": None, "cards": None}


class TestReadiness:
    async def test_empty_database_is_ready(self, client: AsyncClient) -> None:
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "connected", "cards": 0}

    async def test_counts_ingested_cards(
        self, client: AsyncClient, session_factory, raw_cards: list[dict[str, Any]]
    ) -> None:
        await ingest_bulk(raw_cards, session_factory)

        response = await client.get("/ready")

        assert response.json()["cards"] == 9

    async def test_missing_schema_is_not_ready(self, client: AsyncClient, async_engine) -> None:
        await drop_db(async_engine)

        response = await client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not ready"
        assert body["database"] == "disconnected"
        assert body["cards"] is None


def test_app_title() -> None:
    assert app.title == "Ponder"
