import json
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ponder.db.database import (
    build_engine,
    build_session_factory,
    drop_db,
    get_session,
    init_db,
)
from ponder.main import app

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await drop_db(engine)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    """Session factory bound to the in-memory engine."""
    return build_session_factory(async_engine)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def sample_bulk_path() -> Path:
    return FIXTURES / "scryfall_sample.json"


@pytest.fixture
def raw_cards(sample_bulk_path: Path) -> list[dict[str, Any]]:
    """Raw Scryfall records: seven playable cards and five excluded entries."""
    with open(sample_bulk_path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database session."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
