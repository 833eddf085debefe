"""
Order Pydantic Schemas

Engine-side snapshots of orders, events, drivers and services, plus the
request bodies accepted by the order controllers. Snapshots are frozen: the
state machine returns updated copies instead of mutating its input.
"""

import re
from datetime import datetime
from enum import Enum
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# schema
from schema.base import DBBaseModel, Money
from modules.geo.geo_schema import AddressDetail


PHONE_NUMBER_REGEX = re.compile(r"^(\+62|62|0)[0-9]{8,13}$")


def normalize_phone_number(value: str) -> str:
    """Strip spaces and dashes from a phone number"""
    return re.sub(r"[\s\-]", "", value or "")


# ============================================
# ENUMS
# ============================================


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED_BY_MITRA = "ACCEPTED_BY_MITRA"
    PENDING_DRIVER_ASSIGNMENT = "PENDING_DRIVER_ASSIGNMENT"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    REJECTED_BY_DRIVER = "REJECTED_BY_DRIVER"
    ACCEPTED_BY_DRIVER = "ACCEPTED_BY_DRIVER"
    DRIVER_AT_PICKUP = "DRIVER_AT_PICKUP"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DRIVER_AT_DROPOFF = "DRIVER_AT_DROPOFF"
    DELIVERED = "DELIVERED"
    CANCELLED_BY_USER = "CANCELLED_BY_USER"
    CANCELLED_BY_MITRA = "CANCELLED_BY_MITRA"
    CANCELLED_BY_DRIVER = "CANCELLED_BY_DRIVER"
    FAILED_DELIVERY = "FAILED_DELIVERY"
    REFUNDED = "REFUNDED"


class OrderEventType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    STATUS_UPDATE = "STATUS_UPDATE"
    ASSIGNMENT_CHANGED = "ASSIGNMENT_CHANGED"
    NOTE_ADDED = "NOTE_ADDED"
    PHOTO_UPLOADED = "PHOTO_UPLOADED"
    LOCATION_UPDATE = "LOCATION_UPDATE"
    PAYMENT_UPDATE = "PAYMENT_UPDATE"
    COST_UPDATED = "COST_UPDATED"


class ActorType(str, Enum):
    USER = "USER"
    MITRA_ADMIN = "MITRA_ADMIN"
    DRIVER = "DRIVER"
    SYSTEM = "SYSTEM"


# ============================================
# ORDER INPUT
# ============================================


class OrderDetails(BaseModel):
    pickup_address: AddressDetail
    dropoff_address: AddressDetail
    selected_cargo_id: Optional[str] = None
    selected_facility_ids: Optional[List[str]] = None
    quantity: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    driver_instructions: Optional[str] = None


class OrderPlacementRequest(BaseModel):
    details: OrderDetails
    orderer_identifier: str
    receiver_wa_number: Optional[str] = None
    advance_payment_amount: Optional[float] = Field(None, ge=0)
    contains_valuables: bool = False

    @field_validator("receiver_wa_number")
    @classmethod
    def validate_receiver_wa_number(cls, v):
        if v is None:
            return v
        v = normalize_phone_number(v)
        if not v:
            return None
        if not PHONE_NUMBER_REGEX.match(v):
            raise ValueError("Invalid Indonesian phone number format")
        return v

    @property
    def has_advance_payment(self) -> bool:
        return bool(self.advance_payment_amount and self.advance_payment_amount > 0)


# ============================================
# ENGINE SNAPSHOTS
# ============================================


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True)

    actor_type: ActorType
    actor_id: str


class OrderModel(DBBaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    service_id: str
    mitra_id: str
    driver_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    orderer_identifier: str
    receiver_wa_number: Optional[str] = None
    details: Dict[str, Any] = {}
    estimated_cost: Money = Decimal("0")
    cost_breakdown: Dict[str, Any] = {}
    advance_payment_amount: Optional[float] = None
    trust_level: Optional[str] = None


class OrderEventModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    order_id: str
    timestamp: datetime
    event_type: OrderEventType
    data: Dict[str, Any] = {}
    actor_type: ActorType
    actor_id: str


class DriverModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    mitra_id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True


class ServiceModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    mitra_id: str
    name: Optional[str] = None
    is_active: bool = True


# ============================================
# API REQUEST BODIES
# ============================================


class PlaceOrderRequestModel(OrderPlacementRequest):
    service_id: str


class EstimateCostRequestModel(BaseModel):
    service_id: str
    details: OrderDetails


class AssignDriverRequestModel(BaseModel):
    driver_id: str
    reason: Optional[str] = Field(None, max_length=255)


class UpdateStatusRequestModel(BaseModel):
    new_status: OrderStatus
    notes: Optional[str] = Field(None, max_length=255)
    photo_key: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lon: Optional[float] = Field(None, ge=-180, le=180)


class RejectOrderRequestModel(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class AddNoteRequestModel(BaseModel):
    note: str = Field(..., min_length=1, max_length=500)
