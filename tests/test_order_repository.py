"""Tests for order storage and id generation."""

import re

import pytest
from sqlalchemy import text

from lan_relay.core.exceptions import DuplicateEntityError, MalformedOrderError, PersistenceError
from lan_relay.models import OrderStatus
from lan_relay.repositories import OrderIdGenerator, OrderRepository
from tests.conftest import sample_order

ORDER_ID = re.compile(r"^ord-\d+$")


async def _orders(store):
    async with store.session() as session:
        return await OrderRepository(session).list_orders()


async def test_order_round_trip(store, session):
    order = await OrderRepository(session).insert(sample_order())

    rows = await _orders(store)
    assert len(rows) == 1
    row = rows[0]
    assert row.id == order.id
    assert ORDER_ID.match(row.id)
    assert row.status == OrderStatus.PENDING
    assert row.table_id == "tab-1"
    assert row.total == 100
    assert row.timestamp == "T"
    assert isinstance(row.items, str)
    assert OrderRepository.decode_items(row) == [{"name": "X", "qty": 1}]


async def test_client_status_ignored(store, session):
    await OrderRepository(session).insert(sample_order(status="served"))

    rows = await _orders(store)
    assert rows[0].status == OrderStatus.PENDING


@pytest.mark.parametrize("missing", ["tableId", "items"])
async def test_incomplete_order_not_stored(store, session, missing):
    payload = sample_order()
    del payload[missing]

    with pytest.raises(MalformedOrderError):
        await OrderRepository(session).insert(payload)

    assert await _orders(store) == []


@pytest.mark.parametrize("payload", [None, [], "order", 42])
async def test_non_object_payload_rejected(session, payload):
    with pytest.raises(MalformedOrderError):
        await OrderRepository(session).insert(payload)


async def test_items_must_be_a_sequence(session):
    with pytest.raises(MalformedOrderError):
        await OrderRepository(session).insert(sample_order(items="two dosas"))


async def test_extra_fields_are_not_stored(store, session):
    await OrderRepository(session).insert(sample_order(customerNote="no onions"))

    rows = await _orders(store)
    assert len(rows) == 1


async def test_id_collision_reported(store):
    same_id = lambda: "ord-1"  # noqa: E731

    async with store.session() as session:
        await OrderRepository(session, id_generator=same_id).insert(sample_order())
    async with store.session() as session:
        with pytest.raises(DuplicateEntityError):
            await OrderRepository(session, id_generator=same_id).insert(sample_order())

    assert len(await _orders(store)) == 1


async def test_store_failure_reported(store):
    async with store.engine.begin() as conn:
        await conn.execute(text("DROP TABLE orders"))

    async with store.session() as session:
        with pytest.raises(PersistenceError):
            await OrderRepository(session).insert(sample_order())


async def test_many_orders_get_distinct_ids(store):
    ids = OrderIdGenerator()
    created = []
    for _ in range(25):
        async with store.session() as session:
            created.append((await OrderRepository(session, id_generator=ids).insert(sample_order())).id)

    assert len(set(created)) == 25
    assert {row.id for row in await _orders(store)} == set(created)


class TestOrderIdGenerator:

    def test_format_uses_clock_millis(self):
        assert OrderIdGenerator(clock=lambda: 1700000000123)() == "ord-1700000000123"

    def test_same_millisecond_does_not_repeat(self):
        generate = OrderIdGenerator(clock=lambda: 1000)

        assert [generate() for _ in range(3)] == ["ord-1000", "ord-1001", "ord-1002"]

    def test_clock_going_backwards(self):
        ticks = iter([5000, 4000, 6000])
        generate = OrderIdGenerator(clock=lambda: next(ticks))

        assert [generate() for _ in range(3)] == ["ord-5000", "ord-5001", "ord-6000"]

    def test_default_clock_is_epoch_millis(self):
        order_id = OrderIdGenerator()()
        assert ORDER_ID.match(order_id)
        assert len(order_id) >= len("ord-") + 13

