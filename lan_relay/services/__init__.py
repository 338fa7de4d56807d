"""
                        Services Module

Runtime services shared by the gateway routes.

Services:
    - broadcast: POS fan-out topic and WebSocket subscribers
"""

from lan_relay.services.broadcast import BroadcastChannel

__all__ = ["BroadcastChannel"]
