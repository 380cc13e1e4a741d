"""Tests for card API endpoints."""

from typing import Any

import pytest
from httpx import AsyncClient

from ponder.services.ingestion import ingest_bulk

BOLT_ID = "e3285e6b-3e79-4d7c-bf96-d920f973b80d"
DELVER_ID = "a1b2c3d4-0000-4000-8000-000000000005"


@pytest.fixture
async def ingested(session_factory, raw_cards: list[dict[str, Any]]) -> None:
    await ingest_bulk(raw_cards, session_factory)


class TestSearchCards:
    async def test_finds_by_partial_name(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get("/cards/search", params={"q": "bolt"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "bolt"
        assert data["count"] == 1
        card = data["cards"][0]
        assert card["catalog_id"] == BOLT_ID
        assert card["colors"] == ["R"]
        assert card["mana_value"] == 1.0

    async def test_faces_are_separate_results(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get("/cards/search", params={"q": "i"})

        names = [c["name"] for c in response.json()["cards"]]
        assert "Fire" in names
        assert "Ice" in names
        assert "Fire // Ice" not in names

    async def test_limit(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get("/cards/search", params={"q": "e", "limit": 2})

        assert response.json()["count"] == 2

    async def test_no_match(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get("/cards/search", params={"q": "zzz"})

        assert response.status_code == 200
        assert response.json() == {"query": "zzz", "count": 0, "cards": []}

    async def test_empty_query_is_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": ""})

        assert response.status_code == 422

    async def test_limit_out_of_range_is_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": "bolt", "limit": 0})

        assert response.status_code == 422


class TestGetCardDetail:
    async def test_full_detail(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get(f"/cards/{BOLT_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Lightning Bolt"
        assert data["types"] == ["Instant"]
        assert data["supertype"] is None
        assert data["legalities"]["modern"] == "legal"
        assert data["legalities"]["standard"] == "not_legal"
        assert len(data["images"]) == 6
        assert data["color_identity"] == ["R"]

    async def test_face_detail(self, client: AsyncClient, ingested: None) -> None:
        response = await client.get(f"/cards/{DELVER_ID}:1")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Insectile Aberration"
        assert data["keywords"] == ["Flying"]
        assert data["color_identity"] == ["U"]

    async def test_variable_stats_keep_printed_text(
        self, client: AsyncClient, ingested: None
    ) -> None:
        response = await client.get("/cards/search", params={"q": "tarmogoyf"})

        card = response.json()["cards"][0]
        assert card["power"] == "*"
        assert card["toughness"] == "1+*"

    async def test_not_found(self, client: AsyncClient) -> None:
        response = await client.get("/cards/missing")

        assert response.status_code == 404
