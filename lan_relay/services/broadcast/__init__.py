"""
Broadcast Service

Live fan-out of order events and terminal messages to connected POS
terminals.

Usage:
    from lan_relay.services.broadcast import BroadcastChannel, WebSocketConnection

    channel = BroadcastChannel("pos-updates")
    connection = WebSocketConnection(websocket)
    channel.subscribe(connection)
    await connection.accept()
"""

from lan_relay.services.broadcast.base import BaseConnection, Payload
from lan_relay.services.broadcast.channel import BroadcastChannel, Subscription
from lan_relay.services.broadcast.websocket import WebSocketConnection

__all__ = [
    "BaseConnection",
    "Payload",
    "BroadcastChannel",
    "Subscription",
    "WebSocketConnection",
]
