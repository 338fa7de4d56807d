"""Tests for store initialization and the default floor-plan bootstrap."""

import pytest
from sqlalchemy import func, inspect, select

from lan_relay.core.exceptions import StoreInitializationError
from lan_relay.database import init_db, open_store, seed_defaults
from lan_relay.models import DiningTable, Section, TableStatus


async def _count(store, model) -> int:
    async with store.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def test_init_db_creates_collections(store):
    async with store.engine.connect() as conn:
        names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    assert {"sections", "tables", "orders"} <= set(names)


async def test_init_db_is_idempotent(store):
    await init_db(store)
    await init_db(store)

    assert await _count(store, Section) == 0


async def test_seed_defaults_on_empty_store(store, session):
    assert await seed_defaults(session) is True

    async with store.session() as check:
        sections = (await check.execute(select(Section))).scalars().all()
        tables = (await check.execute(select(DiningTable))).scalars().all()

    assert [(s.id, s.name, s.is_active) for s in sections] == [("sec-1", "Main Hall", True)]
    assert sorted((t.id, t.table_number, t.capacity) for t in tables) == [
        ("tab-1", "1", 4),
        ("tab-2", "2", 2),
    ]
    assert all(t.section_id == "sec-1" for t in tables)
    assert all(t.status == TableStatus.AVAILABLE for t in tables)


async def test_seed_defaults_skips_non_empty_store(store, session):
    session.add(Section(id="sec-patio", name="Patio", is_active=True))
    await session.commit()

    assert await seed_defaults(session) is False
    assert await _count(store, Section) == 1
    assert await _count(store, DiningTable) == 0


async def test_bootstrap_runs_once_across_restarts(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'restaurant.sqlite'}"

    first = await open_store(url)
    await first.dispose()
    second = await open_store(url)
    try:
        assert await _count(second, Section) == 1
        assert await _count(second, DiningTable) == 2
    finally:
        await second.dispose()


async def test_open_store_failure_is_fatal(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'restaurant.sqlite'}"

    with pytest.raises(StoreInitializationError):
        await open_store(url)
