"""
Broadcast Channel

In-process fan-out topic for POS terminals.

Delivery model:
    - publish() never awaits a subscriber. It drops the frame into every
      subscriber's own FIFO queue and returns.
    - One delivery task per subscriber drains its queue, so a slow terminal
      only delays itself.
    - Queues are filled in publish order inside a single event-loop step,
      so every subscriber sees the same order of events.
    - No replay: a subscriber only sees frames published after it joined.
    - Best effort: a subscriber whose send fails or whose queue overflows is
      evicted. The publisher is never told.
"""

import asyncio
import logging
from typing import Optional

from lan_relay.services.broadcast.base import BaseConnection, Payload

logger = logging.getLogger(__name__)

# Close code sent to terminals that fall too far behind
SLOW_CONSUMER_CLOSE_CODE = 1013


class Subscription:
    """One subscriber's queue and the task that drains it."""

    def __init__(self, channel: "BroadcastChannel", connection: BaseConnection, max_pending: int):
        self.channel = channel
        self.connection = connection
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self.task = asyncio.create_task(
            self._deliver(), name=f"{channel.topic}:{connection.connection_id}"
        )

    def offer(self, payload: Payload) -> bool:
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull:
            return False
        return True

    async def _deliver(self) -> None:
        while True:
            payload = await self.queue.get()
            try:
                await self.connection.send(payload)
            except asyncio.CancelledError:
                self.queue.task_done()
                raise
            except Exception as e:
                logger.debug(f"Delivery to {self.connection.connection_id} failed: {e}")
                self.queue.task_done()
                self.channel._evict(self, reason="send failed")
                return
            self.queue.task_done()
            self.channel._deliveries += 1

    def discard_pending(self) -> None:
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()


class BroadcastChannel:
    """
    A named topic that relays every published frame to all live subscribers.

    Usage:
        channel = BroadcastChannel("pos-updates")
        channel.subscribe(connection)
        channel.publish('{"type": "NEW_ORDER", ...}')
    """

    def __init__(self, topic: str, max_pending: int = 256):
        self.topic = topic
        self.max_pending = max_pending
        self._subscriptions: dict[BaseConnection, Subscription] = {}
        self._background: set[asyncio.Task] = set()

        # Statistics
        self._published = 0
        self._deliveries = 0
        self._dropped = 0

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, connection: BaseConnection) -> bool:
        return connection in self._subscriptions

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    def subscribe(self, connection: BaseConnection) -> Subscription:
        """
        Attach a connection to all future publishes. Must run inside the event loop.
        """
        existing = self._subscriptions.get(connection)
        if existing is not None:
            return existing

        subscription = Subscription(self, connection, self.max_pending)
        self._subscriptions[connection] = subscription
        logger.info(f"{connection.connection_id} subscribed to {self.topic} ({len(self)} active)")
        return subscription

    def unsubscribe(self, connection: BaseConnection) -> bool:
        """Detach a connection. Returns False if it was not subscribed."""
        subscription = self._subscriptions.pop(connection, None)
        if subscription is None:
            return False
        subscription.discard_pending()
        if subscription.task is not asyncio.current_task():
            subscription.task.cancel()
        logger.info(f"{connection.connection_id} unsubscribed from {self.topic} ({len(self)} active)")
        return True

    def _evict(self, subscription: Subscription, reason: str) -> None:
        if self._subscriptions.get(subscription.connection) is not subscription:
            return
        self._dropped += 1
        logger.warning(f"Dropping {subscription.connection.connection_id} from {self.topic}: {reason}")
        self.unsubscribe(subscription.connection)
        code = SLOW_CONSUMER_CLOSE_CODE if reason == "queue full" else 1011
        self._spawn(self._close_quietly(subscription.connection, code))

    # =========================================================================
    # PUBLISHING
    # =========================================================================

    def publish(self, payload: Payload, exclude: Optional[BaseConnection] = None) -> int:
        """
        Queue a frame for every subscriber except ``exclude``.

        Returns:
            Number of subscribers the frame was queued for
        """
        self._published += 1
        queued = 0
        for connection, subscription in list(self._subscriptions.items()):
            if connection is exclude:
                continue
            if subscription.offer(payload):
                queued += 1
            else:
                self._evict(subscription, reason="queue full")
        logger.debug(f"Published to {self.topic}: {queued} recipient(s)")
        return queued

    async def flush(self) -> None:
        """Wait until every queued frame has been delivered or discarded."""
        await asyncio.gather(*(s.queue.join() for s in list(self._subscriptions.values())))

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def close(self) -> None:
        """Stop all delivery tasks. Connections themselves are left to their handlers."""
        tasks = [s.task for s in self._subscriptions.values()]
        for connection in list(self._subscriptions):
            self.unsubscribe(connection)
        tasks.extend(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def stats(self) -> dict:
        """Get channel statistics."""
        return {
            "topic": self.topic,
            "active_subscribers": len(self),
            "messages_published": self._published,
            "deliveries": self._deliveries,
            "dropped_subscribers": self._dropped,
        }

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _close_quietly(connection: BaseConnection, code: int) -> None:
        try:
            await connection.close(code=code)
        except Exception as e:
            logger.debug(f"Closing {connection.connection_id} failed: {e}")
