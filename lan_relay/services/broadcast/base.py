"""
Broadcast Connection Abstract Base Class

Defines what the broadcast channel needs from a subscriber: an id for the
logs and a way to push one frame. WebSocket terminals implement it in
websocket.py; tests use in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Union

# Frames are relayed verbatim, text or binary
Payload = Union[str, bytes]


class BaseConnection(ABC):
    """Abstract base class for broadcast subscribers."""

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Return an identifier for logging."""
        pass

    @abstractmethod
    async def send(self, payload: Payload) -> None:
        """Deliver one frame. Raise on failure."""
        pass

    @abstractmethod
    async def close(self, code: int = 1000) -> None:
        """Close the underlying transport."""
        pass
