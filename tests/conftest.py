"""Pytest configuration and fixtures."""

import pytest
from typing import AsyncIterator, Iterator

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from lan_relay.core.config import Settings
from lan_relay.database import Store, init_db
from lan_relay.main import create_app

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

INDEX_HTML = "<!doctype html><title>POS</title>"


@pytest.fixture
async def store() -> AsyncIterator[Store]:
    """Create an empty store with its schema."""
    store = Store(TEST_DATABASE_URL)
    await init_db(store)
    yield store
    await store.dispose()


@pytest.fixture
async def session(store: Store) -> AsyncIterator[AsyncSession]:
    async with store.session() as session:
        yield session


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at an in-memory store and a temporary public directory."""
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text(INDEX_HTML)
    (public / "app.js").write_text("console.log('pos');")
    return Settings(working_dir=str(tmp_path), database_url=TEST_DATABASE_URL)


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Create a test client running the full application lifespan."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def sample_order(**overrides) -> dict:
    order = {
        "tableId": "tab-1",
        "items": [{"name": "X", "qty": 1}],
        "total": 100,
        "timestamp": "T",
    }
    order.update(overrides)
    return order
