"""
Order Repository

Stores customer orders. Incoming payloads are validated before anything is
written so a partial order never reaches the store.
"""

import json
import logging
import time
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lan_relay.core.exceptions import DuplicateEntityError, MalformedOrderError, PersistenceError
from lan_relay.models import Order, OrderStatus
from lan_relay.schemas import OrderCreate

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class OrderIdGenerator:
    """
    Issues ``ord-<epochMillis>`` ids that never repeat within the process.

    When two orders arrive in the same millisecond (or the clock steps back)
    the next id is the previous one plus one.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or _epoch_millis
        self._last = 0

    def __call__(self) -> str:
        now = self._clock()
        if now <= self._last:
            now = self._last + 1
        self._last = now
        return f"ord-{now}"


class OrderRepository:
    """Order access on a single session."""

    def __init__(self, session: AsyncSession, id_generator: Optional[Callable[[], str]] = None):
        self.session = session
        self.next_id = id_generator or OrderIdGenerator()

    @staticmethod
    def validate(payload: Union[OrderCreate, Mapping[str, Any]]) -> OrderCreate:
        """
        Check that a decoded payload is an order.

        Raises:
            MalformedOrderError: tableId or items missing or of the wrong type
        """
        if isinstance(payload, OrderCreate):
            return payload
        if not isinstance(payload, Mapping):
            raise MalformedOrderError("Order payload must be a JSON object")
        try:
            return OrderCreate.model_validate(payload)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise MalformedOrderError("Malformed order", detail=f"invalid fields: {fields}") from e

    async def insert(self, payload: Union[OrderCreate, Mapping[str, Any]]) -> Order:
        """
        Validate and store an order as pending.

        Any status sent by the client is ignored.

        Raises:
            MalformedOrderError: payload is not a valid order
            DuplicateEntityError: the generated id is already taken
            PersistenceError: the store failed the write
        """
        order_data = self.validate(payload)
        order = Order(
            id=self.next_id(),
            table_id=order_data.table_id,
            items=json.dumps(order_data.items),
            total=order_data.total,
            timestamp=order_data.timestamp,
            status=OrderStatus.PENDING,
        )

        self.session.add(order)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Order id collision on {order.id}")
            raise DuplicateEntityError("Order", order.id) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Could not store order {order.id}: {e}")
            raise PersistenceError("Order could not be stored", detail=str(e)) from e

        logger.info(f"Order {order.id} stored for table {order.table_id}")
        return order

    async def list_orders(self) -> Sequence[Order]:
        """All orders in storage order, items still encoded."""
        result = await self.session.execute(select(Order))
        return result.scalars().all()

    @staticmethod
    def decode_items(order: Order) -> list:
        return json.loads(order.items)
