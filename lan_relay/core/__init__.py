"""
Core module initialization.
Exports configuration, logging utilities and service exceptions.
"""

from lan_relay.core.config import get_settings, Settings, EnvironmentMode
from lan_relay.core.exceptions import (
    RelayServiceError,
    MalformedRequestError,
    MalformedOrderError,
    DuplicateEntityError,
    StoreInitializationError,
    PersistenceError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "RelayServiceError",
    "MalformedRequestError",
    "MalformedOrderError",
    "DuplicateEntityError",
    "StoreInitializationError",
    "PersistenceError",
]
