"""
Database Connection Module

Owns the single persistence store of the relay process: one SQLAlchemy async
engine plus its session factory, created at startup and handed to the
repositories. Also owns schema creation and the default floor-plan bootstrap.
"""

import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from lan_relay.core.exceptions import StoreInitializationError

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict:
    """In-memory SQLite must share one connection or every session sees an empty database."""
    if url.startswith("sqlite") and ":memory:" in url:
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {}


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """
    Make every session on a file-backed SQLite store run in a real transaction.

    pysqlite only sends BEGIN before writes, so two SELECTs on one session
    could otherwise see different commits. WAL lets a reader keep its
    snapshot while a writer commits.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Store:
    """
    Process-wide handle to the persistence layer.

    Exactly one instance exists per running service; tests build their own
    against an in-memory database.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **_engine_options(url))
        if url.startswith("sqlite") and ":memory:" not in url:
            _enable_sqlite_transactions(self.engine)
        # Session factory - creates new database sessions
        self.session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Objects remain accessible after commit
        )

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def dispose(self) -> None:
        await self.engine.dispose()


async def init_db(store: Store) -> None:
    """
    Create all tables in the store.
    Safe to call on every boot.
    """
    # Register models on Base.metadata
    import lan_relay.models  # noqa: F401

    async with store.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_defaults(session: AsyncSession) -> bool:
    """
    Insert the default floor plan into an empty store.

    Emptiness is decided by counting sections, so a store whose sections were
    all created by hand is never seeded.

    Returns:
        True if the defaults were inserted, False if the store already had data
    """
    from lan_relay.models import DiningTable, Section, TableStatus

    count = (await session.execute(select(func.count()).select_from(Section))).scalar_one()
    if count:
        return False

    logger.info("Empty store, initializing default floor plan...")
    session.add(Section(id="sec-1", name="Main Hall", is_active=True))
    # Flush the section first so its row precedes the tables that reference it
    await session.flush()
    session.add_all([
        DiningTable(id="tab-1", section_id="sec-1", table_number="1", capacity=4, status=TableStatus.AVAILABLE),
        DiningTable(id="tab-2", section_id="sec-1", table_number="2", capacity=2, status=TableStatus.AVAILABLE),
    ])
    await session.commit()
    return True


async def open_store(url: str, echo: bool = False) -> Store:
    """
    Open the store, create its schema and bootstrap default data.

    Raises:
        StoreInitializationError: the store cannot be opened or initialized;
            the service must not start serving in that case.
    """
    store = Store(url, echo=echo)
    try:
        await init_db(store)
        async with store.session() as session:
            await seed_defaults(session)
    except (SQLAlchemyError, OSError) as e:
        await store.dispose()
        raise StoreInitializationError(f"Cannot initialize store at {url}", detail=str(e)) from e

    logger.info(f"✅ Store ready: {url}")
    return store


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a session on the application's store and ensures cleanup.
    """
    store: Store = request.app.state.store
    async with store.session() as session:
        try:
            yield session
        finally:
            await session.close()
