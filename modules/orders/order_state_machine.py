"""
Order State Machine

Guarded order lifecycle transitions. Every function here is pure: it takes
the current order snapshot and returns the updated snapshot plus exactly one
event to append, or a Failure and nothing to append.

Happy path:
    PENDING -> ACCEPTED_BY_MITRA -> PENDING_DRIVER_ASSIGNMENT -> DRIVER_ASSIGNED
    -> ACCEPTED_BY_DRIVER -> DRIVER_AT_PICKUP -> PICKED_UP -> IN_TRANSIT
    -> DRIVER_AT_DROPOFF -> DELIVERED

DRIVER_ASSIGNED is only entered through assign_driver. Persisting the result
(and making sure two writers do not both succeed) is the caller's job.
"""

import http
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional

import pytz

from utils.result import EngineError, returns_result

from .order_schema import (
    Actor,
    ActorType,
    DriverModel,
    OrderEventModel,
    OrderEventType,
    OrderModel,
    OrderStatus,
    ServiceModel,
)


CANCELLED_STATUSES = frozenset(
    {
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_MITRA,
        OrderStatus.CANCELLED_BY_DRIVER,
    }
)

ASSIGNABLE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.ACCEPTED_BY_MITRA,
        OrderStatus.PENDING_DRIVER_ASSIGNMENT,
        OrderStatus.REJECTED_BY_DRIVER,
    }
)

# the driver holds the order in these statuses
ACTIVE_ASSIGNMENT_STATUSES = frozenset(
    {
        OrderStatus.DRIVER_ASSIGNED,
        OrderStatus.ACCEPTED_BY_DRIVER,
        OrderStatus.DRIVER_AT_PICKUP,
        OrderStatus.PICKED_UP,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DRIVER_AT_DROPOFF,
    }
)

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.ACCEPTED_BY_MITRA,
            OrderStatus.PENDING_DRIVER_ASSIGNMENT,
            OrderStatus.CANCELLED_BY_USER,
            OrderStatus.CANCELLED_BY_MITRA,
        }
    ),
    OrderStatus.ACCEPTED_BY_MITRA: frozenset(
        {
            OrderStatus.PENDING_DRIVER_ASSIGNMENT,
            OrderStatus.CANCELLED_BY_USER,
            OrderStatus.CANCELLED_BY_MITRA,
        }
    ),
    OrderStatus.PENDING_DRIVER_ASSIGNMENT: frozenset(
        {OrderStatus.CANCELLED_BY_USER, OrderStatus.CANCELLED_BY_MITRA}
    ),
    OrderStatus.REJECTED_BY_DRIVER: frozenset(
        {
            OrderStatus.PENDING_DRIVER_ASSIGNMENT,
            OrderStatus.CANCELLED_BY_USER,
            OrderStatus.CANCELLED_BY_MITRA,
        }
    ),
    OrderStatus.DRIVER_ASSIGNED: frozenset(
        {
            OrderStatus.ACCEPTED_BY_DRIVER,
            OrderStatus.REJECTED_BY_DRIVER,
            OrderStatus.CANCELLED_BY_DRIVER,
            OrderStatus.CANCELLED_BY_MITRA,
        }
    ),
    OrderStatus.ACCEPTED_BY_DRIVER: frozenset(
        {
            OrderStatus.DRIVER_AT_PICKUP,
            OrderStatus.CANCELLED_BY_DRIVER,
            OrderStatus.CANCELLED_BY_MITRA,
        }
    ),
    OrderStatus.DRIVER_AT_PICKUP: frozenset(
        {OrderStatus.PICKED_UP, OrderStatus.CANCELLED_BY_DRIVER}
    ),
    OrderStatus.PICKED_UP: frozenset(
        {
            OrderStatus.IN_TRANSIT,
            OrderStatus.DRIVER_AT_DROPOFF,
            OrderStatus.CANCELLED_BY_DRIVER,
        }
    ),
    OrderStatus.IN_TRANSIT: frozenset(
        {OrderStatus.DRIVER_AT_DROPOFF, OrderStatus.CANCELLED_BY_DRIVER}
    ),
    OrderStatus.DRIVER_AT_DROPOFF: frozenset(
        {
            OrderStatus.DELIVERED,
            OrderStatus.FAILED_DELIVERY,
            OrderStatus.CANCELLED_BY_DRIVER,
        }
    ),
    OrderStatus.CANCELLED_BY_USER: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED_BY_MITRA: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED_BY_DRIVER: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.FAILED_DELIVERY: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# statuses each actor type may move an order into; SYSTEM is unrestricted
ACTOR_ALLOWED_TARGETS: Dict[ActorType, FrozenSet[OrderStatus]] = {
    ActorType.USER: frozenset({OrderStatus.CANCELLED_BY_USER}),
    ActorType.MITRA_ADMIN: frozenset(
        {
            OrderStatus.ACCEPTED_BY_MITRA,
            OrderStatus.PENDING_DRIVER_ASSIGNMENT,
            OrderStatus.CANCELLED_BY_MITRA,
            OrderStatus.REFUNDED,
        }
    ),
    ActorType.DRIVER: frozenset(
        {
            OrderStatus.ACCEPTED_BY_DRIVER,
            OrderStatus.REJECTED_BY_DRIVER,
            OrderStatus.DRIVER_AT_PICKUP,
            OrderStatus.PICKED_UP,
            OrderStatus.IN_TRANSIT,
            OrderStatus.DRIVER_AT_DROPOFF,
            OrderStatus.DELIVERED,
            OrderStatus.FAILED_DELIVERY,
            OrderStatus.CANCELLED_BY_DRIVER,
        }
    ),
    ActorType.SYSTEM: frozenset(OrderStatus),
}


class OrderStatusError(EngineError):
    def __init__(self, message: str, code: str, details: dict = None, status_code: int = None):
        super().__init__(
            message, code, details, status_code=status_code or http.HTTPStatus.CONFLICT
        )


class DriverAssignmentError(EngineError):
    def __init__(self, message: str, code: str, details: dict = None, status_code: int = None):
        super().__init__(
            message, code, details, status_code=status_code or http.HTTPStatus.BAD_REQUEST
        )


@dataclass(frozen=True)
class TransitionOutcome:
    updated_order: OrderModel
    event: OrderEventModel


def allowed_transitions(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return ALLOWED_TRANSITIONS.get(OrderStatus(status), frozenset())


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in allowed_transitions(current)


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_transitions(status)


def actor_can_set(actor_type: ActorType, target: OrderStatus) -> bool:
    return OrderStatus(target) in ACTOR_ALLOWED_TARGETS.get(ActorType(actor_type), frozenset())


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(pytz.UTC)


def build_event(
    order_id: str,
    event_type: OrderEventType,
    actor: Actor,
    data: Dict[str, Any],
    now: Optional[datetime] = None,
) -> OrderEventModel:
    return OrderEventModel(
        id=str(uuid.uuid4()),
        order_id=order_id,
        timestamp=_now(now),
        event_type=event_type,
        data=data,
        actor_type=actor.actor_type,
        actor_id=actor.actor_id,
    )


# ============================================
# DRIVER ASSIGNMENT
# ============================================


@returns_result(DriverAssignmentError)
def assign_driver(
    order: OrderModel,
    driver: DriverModel,
    service: ServiceModel,
    eligible_service_ids: Iterable[str],
    actor: Optional[Actor] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionOutcome:
    """
    Assign (or re-assign) a driver to an order.

    Preconditions, checked in order:
        1. order is in an assignable status           ORDER_NOT_ASSIGNABLE (409)
        2. service is the order's service             SERVICE_MISMATCH
        3. driver belongs to the order's mitra        DRIVER_NOT_IN_MITRA (404)
        4. driver is active                           DRIVER_INACTIVE
        5. driver is qualified for the service        DRIVER_NOT_QUALIFIED

    Returns:
        Success(TransitionOutcome) with one ASSIGNMENT_CHANGED event
    """
    if order.status not in ASSIGNABLE_STATUSES:
        raise DriverAssignmentError(
            f"Order cannot be assigned in its current status: {order.status.value}",
            "ORDER_NOT_ASSIGNABLE",
            {
                "current_status": order.status.value,
                "assignable_statuses": sorted(s.value for s in ASSIGNABLE_STATUSES),
            },
            status_code=http.HTTPStatus.CONFLICT,
        )

    if service.id != order.service_id or service.mitra_id != order.mitra_id:
        raise DriverAssignmentError(
            "Service does not match the order",
            "SERVICE_MISMATCH",
            {"order_service_id": order.service_id, "service_id": service.id},
        )

    if driver.mitra_id != order.mitra_id:
        raise DriverAssignmentError(
            "Driver not found or does not belong to this mitra",
            "DRIVER_NOT_IN_MITRA",
            {"driver_id": driver.id, "mitra_id": order.mitra_id},
            status_code=http.HTTPStatus.NOT_FOUND,
        )

    if not driver.is_active:
        raise DriverAssignmentError(
            "Driver is not active", "DRIVER_INACTIVE", {"driver_id": driver.id}
        )

    if order.service_id not in set(eligible_service_ids):
        raise DriverAssignmentError(
            "Driver is not qualified for this service",
            "DRIVER_NOT_QUALIFIED",
            {"driver_id": driver.id, "service_id": order.service_id},
        )

    timestamp = _now(now)
    actor = actor or Actor(actor_type=ActorType.MITRA_ADMIN, actor_id=order.mitra_id)

    updated = order.model_copy(
        update={
            "status": OrderStatus.DRIVER_ASSIGNED,
            "driver_id": driver.id,
            "updated_at": timestamp,
        }
    )
    event = build_event(
        order.id,
        OrderEventType.ASSIGNMENT_CHANGED,
        actor,
        {
            "old_driver_id": order.driver_id,
            "new_driver_id": driver.id,
            "driver_name": driver.name,
            "previous_status": order.status.value,
            "new_status": OrderStatus.DRIVER_ASSIGNED.value,
            "reason": reason,
        },
        timestamp,
    )
    return TransitionOutcome(updated_order=updated, event=event)


# ============================================
# STATUS TRANSITIONS
# ============================================


@returns_result(OrderStatusError)
def transition_status(
    order: OrderModel,
    target_status: OrderStatus,
    actor: Actor,
    reason: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> TransitionOutcome:
    """
    Move an order one step along the adjacency table.

    payload may carry `photo_key` and `location` ({lat, lon}); both are
    recorded on the single STATUS_UPDATE event.
    """
    target_status = OrderStatus(target_status)

    if actor.actor_type == ActorType.DRIVER and order.driver_id != actor.actor_id:
        raise OrderStatusError(
            "Order is not assigned to this driver",
            "ORDER_NOT_ASSIGNED_TO_ACTOR",
            {"order_id": order.id, "driver_id": actor.actor_id},
            status_code=http.HTTPStatus.FORBIDDEN,
        )

    allowed = allowed_transitions(order.status)
    if target_status not in allowed:
        raise OrderStatusError(
            f"Cannot transition order from {order.status.value} to {target_status.value}",
            "INVALID_STATUS_TRANSITION",
            {
                "current_status": order.status.value,
                "target_status": target_status.value,
                "allowed": sorted(s.value for s in allowed),
            },
        )

    if not actor_can_set(actor.actor_type, target_status):
        raise OrderStatusError(
            f"{actor.actor_type.value} cannot set order status to {target_status.value}",
            "STATUS_NOT_ALLOWED_FOR_ACTOR",
            {"actor_type": actor.actor_type.value, "target_status": target_status.value},
            status_code=http.HTTPStatus.FORBIDDEN,
        )

    timestamp = _now(now)
    update = {"status": target_status, "updated_at": timestamp}
    if target_status == OrderStatus.REJECTED_BY_DRIVER:
        # back to the assignable pool
        update["driver_id"] = None

    data: Dict[str, Any] = {
        "old_status": order.status.value,
        "new_status": target_status.value,
        "reason": reason,
    }
    payload = payload or {}
    if payload.get("photo_key"):
        data["photo_key"] = payload["photo_key"]
    if payload.get("location"):
        data["location"] = dict(payload["location"])
    if target_status == OrderStatus.REJECTED_BY_DRIVER:
        data["previous_driver_id"] = order.driver_id

    updated = order.model_copy(update=update)
    event = build_event(order.id, OrderEventType.STATUS_UPDATE, actor, data, timestamp)
    return TransitionOutcome(updated_order=updated, event=event)


@returns_result(OrderStatusError)
def add_note(
    order: OrderModel,
    note: str,
    actor: Actor,
    now: Optional[datetime] = None,
) -> OrderEventModel:
    """Attach a free-text note to an order; the status does not change"""
    if actor.actor_type == ActorType.DRIVER and order.driver_id != actor.actor_id:
        raise OrderStatusError(
            "Order is not assigned to this driver",
            "ORDER_NOT_ASSIGNED_TO_ACTOR",
            {"order_id": order.id, "driver_id": actor.actor_id},
            status_code=http.HTTPStatus.FORBIDDEN,
        )

    if not note or not note.strip():
        raise OrderStatusError(
            "Note cannot be empty",
            "EMPTY_NOTE",
            status_code=http.HTTPStatus.BAD_REQUEST,
        )

    return build_event(
        order.id,
        OrderEventType.NOTE_ADDED,
        actor,
        {"note": note.strip(), "status": order.status.value},
        now,
    )
