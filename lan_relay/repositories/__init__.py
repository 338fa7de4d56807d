"""
Repositories Module

Typed access to the persistence store. Each repository works on one
AsyncSession supplied by the caller; nothing here reaches the store any
other way.

Repositories:
    - floor_plan: sections and tables
    - orders: customer orders
"""

from lan_relay.repositories.floor_plan import FloorPlanRepository
from lan_relay.repositories.orders import OrderIdGenerator, OrderRepository

__all__ = ["FloorPlanRepository", "OrderIdGenerator", "OrderRepository"]
