"""
SQLAlchemy Database Models

Floor plan (sections, tables) and submitted orders. Column names are the
camelCase field names POS clients and the customer ordering app already use,
so rows can be handed over without renaming.
"""

from sqlalchemy import Column, String, Float, DateTime, Text, Enum, Boolean, Integer
from lan_relay.database import Base
import enum


class TableStatus(str, enum.Enum):
    """Service state of a physical table."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class OrderStatus(str, enum.Enum):
    """Order status workflow. Orders are only ever stored as PENDING today."""
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    PREPARING = "preparing"
    SERVED = "served"
    CANCELLED = "cancelled"


def _values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Section(Base):
    """A named physical zone, e.g. "Patio". Deactivated, never deleted."""
    __tablename__ = "sections"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    is_active = Column("isActive", Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Section {self.id} - {self.name}>"


class DiningTable(Base):
    """
    A physical table with its QR code and current service state.

    sectionId is a soft reference with no foreign key on any backend; nothing
    cascades when a section is deactivated.
    """
    __tablename__ = "tables"

    id = Column(String, primary_key=True)
    section_id = Column("sectionId", String, nullable=False)
    table_number = Column("tableNumber", String, nullable=False)
    capacity = Column(Integer, nullable=False)
    qr_code_url = Column("qrCodeUrl", String, nullable=True)
    status = Column(
        Enum(TableStatus, native_enum=False, length=16, values_callable=_values),
        default=TableStatus.AVAILABLE,
        nullable=False,
    )

    # =========================================================================
    # SERVICE STATE (not yet driven by the order flow)
    # =========================================================================
    assigned_staff_id = Column("assignedStaffId", String, nullable=True)
    current_order_id = Column("currentOrderId", String, nullable=True)
    last_active_at = Column("lastActiveAt", DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DiningTable {self.id} - #{self.table_number} - {self.status.value}>"


class Order(Base):
    """
    A customer order as submitted from a table.

    items holds the line items as a JSON string; decoding is up to the reader.
    """
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    table_id = Column("tableId", String, nullable=False, index=True)
    items = Column(Text, nullable=False)  # JSON string of ordered items
    total = Column(Float, nullable=True)
    timestamp = Column(String, nullable=True)
    status = Column(
        Enum(OrderStatus, native_enum=False, length=16, values_callable=_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    def __repr__(self):
        return f"<Order {self.id} - table {self.table_id} - {self.status.value}>"
