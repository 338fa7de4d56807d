"""
Pydantic Schemas for Request/Response Validation

Wire field names are camelCase to match the POS and customer apps; Python
attributes stay snake_case through an alias generator.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any, Set
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase field names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ENUMS
# =============================================================================

class TableStatusEnum(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    PREPARING = "preparing"
    SERVED = "served"
    CANCELLED = "cancelled"


class RelayEventType(str, Enum):
    NEW_ORDER = "NEW_ORDER"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SectionCreate(CamelModel):
    """Request schema for creating a section."""
    id: str = Field(..., min_length=1, examples=["sec-2"])
    name: str = Field(..., min_length=1, max_length=100, examples=["Patio"])


class TableCreate(CamelModel):
    """Request schema for creating a table. Only qrCodeUrl may be omitted."""
    id: str = Field(..., min_length=1, examples=["tab-3"])
    section_id: str = Field(..., min_length=1, examples=["sec-1"])
    table_number: str = Field(..., min_length=1, examples=["3"])
    capacity: int = Field(..., ge=1, examples=[4])
    qr_code_url: Optional[str] = Field(None, examples=["http://192.168.1.10:3000/?table=tab-3"])
    status: TableStatusEnum = Field(..., examples=["available"])
    assigned_staff_id: Optional[str] = None
    current_order_id: Optional[str] = None
    last_active_at: Optional[datetime] = None


class OrderCreate(CamelModel):
    """
    Order submitted by the customer ordering app.

    Line items are opaque to the relay: they are stored and forwarded as-is.
    Fields other than the ones below are ignored for storage.
    """
    model_config = ConfigDict(extra="ignore")

    table_id: str = Field(..., min_length=1, examples=["tab-1"])
    items: List[Any] = Field(..., examples=[[{"name": "Masala Dosa", "qty": 1}]])
    total: Optional[float] = Field(None, examples=[100])
    timestamp: Optional[str] = Field(None, examples=["2024-01-15T18:30:00Z"])


class StaffAssignment(CamelModel):
    """Staff coverage of sections or individual tables. Not persisted yet."""
    user_id: str
    user_name: str
    section_ids: Set[str] = Field(default_factory=set)
    table_ids: Set[str] = Field(default_factory=set)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SectionResponse(CamelModel):
    id: str
    name: str
    is_active: bool


class TableResponse(CamelModel):
    id: str
    section_id: str
    table_number: str
    capacity: int
    qr_code_url: Optional[str] = None
    status: TableStatusEnum
    assigned_staff_id: Optional[str] = None
    current_order_id: Optional[str] = None
    last_active_at: Optional[datetime] = None


class FloorPlanResponse(CamelModel):
    """Sections and tables read as one snapshot."""
    sections: List[SectionResponse]
    tables: List[TableResponse]


class OrderRecord(CamelModel):
    """A stored order row. items is the encoded JSON text, not a list."""
    id: str
    table_id: str
    items: str
    total: Optional[float] = None
    timestamp: Optional[str] = None
    status: OrderStatusEnum


class OrderCreateResponse(CamelModel):
    """Response after successfully storing an order."""
    success: bool
    message: str
    order_id: str


class SuccessResponse(BaseModel):
    success: bool = True


class RelayStatsResponse(CamelModel):
    topic: str
    active_subscribers: int
    messages_published: int
    deliveries: int
    dropped_subscribers: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
