from datetime import datetime

import pytest
import pytz

from modules.orders.order_schema import (
    Actor,
    ActorType,
    DriverModel,
    OrderEventType,
    OrderModel,
    OrderStatus,
    ServiceModel,
)
from modules.orders.order_state_machine import (
    ACTOR_ALLOWED_TARGETS,
    ALLOWED_TRANSITIONS,
    ASSIGNABLE_STATUSES,
    add_note,
    assign_driver,
    can_transition,
    is_terminal,
    transition_status,
)

NOW = datetime(2024, 5, 1, 8, 30, tzinfo=pytz.UTC)
MITRA = Actor(actor_type=ActorType.MITRA_ADMIN, actor_id="mitra-1")


def make_order(status=OrderStatus.PENDING, driver_id=None):
    return OrderModel(
        id="order-1",
        service_id="service-1",
        mitra_id="mitra-1",
        driver_id=driver_id,
        status=status,
        orderer_identifier="081234567890",
        estimated_cost=50000,
    )


def make_driver(**overrides):
    data = {"id": "driver-1", "mitra_id": "mitra-1", "name": "Budi", "is_active": True}
    data.update(overrides)
    return DriverModel(**data)


SERVICE = ServiceModel(id="service-1", mitra_id="mitra-1", name="Kurir Motor")


def driver_actor(driver_id="driver-1"):
    return Actor(actor_type=ActorType.DRIVER, actor_id=driver_id)


# ============================================
# ASSIGNMENT
# ============================================


@pytest.mark.parametrize("status", sorted(ASSIGNABLE_STATUSES, key=lambda s: s.value))
def test_assign_driver_from_assignable_statuses(status):
    order = make_order(status=status)

    outcome = assign_driver(order, make_driver(), SERVICE, ["service-1"], reason="closest", now=NOW).unwrap()

    assert outcome.updated_order.status == OrderStatus.DRIVER_ASSIGNED
    assert outcome.updated_order.driver_id == "driver-1"
    assert outcome.updated_order.updated_at == NOW
    assert outcome.event.event_type == OrderEventType.ASSIGNMENT_CHANGED
    assert outcome.event.data["old_driver_id"] is None
    assert outcome.event.data["new_driver_id"] == "driver-1"
    assert outcome.event.data["reason"] == "closest"
    assert outcome.event.actor_type == ActorType.MITRA_ADMIN
    assert outcome.event.actor_id == "mitra-1"
    # input snapshot is untouched
    assert order.status == status


def test_assigning_an_assigned_order_conflicts():
    assigned = make_order(status=OrderStatus.DRIVER_ASSIGNED, driver_id="driver-1")

    result = assign_driver(assigned, make_driver(id="driver-2"), SERVICE, ["service-1"])

    assert result.code == "ORDER_NOT_ASSIGNABLE"
    assert result.error.category == "CONFLICT"
    assert result.error.status_code == 409


def test_double_assignment_second_call_fails():
    order = make_order()

    first = assign_driver(order, make_driver(), SERVICE, ["service-1"]).unwrap()
    second = assign_driver(first.updated_order, make_driver(id="driver-2"), SERVICE, ["service-1"])

    assert not second.is_success
    assert second.code == "ORDER_NOT_ASSIGNABLE"


@pytest.mark.parametrize(
    "driver, eligible, code, status_code",
    [
        (make_driver(mitra_id="mitra-2"), ["service-1"], "DRIVER_NOT_IN_MITRA", 404),
        (make_driver(is_active=False), ["service-1"], "DRIVER_INACTIVE", 400),
        (make_driver(), ["service-9"], "DRIVER_NOT_QUALIFIED", 400),
        (make_driver(), [], "DRIVER_NOT_QUALIFIED", 400),
    ],
)
def test_assignment_preconditions(driver, eligible, code, status_code):
    result = assign_driver(make_order(), driver, SERVICE, eligible)

    assert result.code == code
    assert result.error.status_code == status_code


def test_assignment_with_foreign_service_fails():
    other_service = ServiceModel(id="service-2", mitra_id="mitra-1")

    assert assign_driver(make_order(), make_driver(), other_service, ["service-2"]).code == "SERVICE_MISMATCH"


def test_reassignment_after_rejection_records_previous_driver():
    rejected = make_order(status=OrderStatus.REJECTED_BY_DRIVER, driver_id=None)

    outcome = assign_driver(rejected, make_driver(id="driver-2"), SERVICE, ["service-1"]).unwrap()

    assert outcome.updated_order.driver_id == "driver-2"
    assert outcome.event.data["previous_status"] == "REJECTED_BY_DRIVER"


# ============================================
# STATUS TRANSITIONS
# ============================================


def test_happy_path_to_delivered():
    order = assign_driver(make_order(), make_driver(), SERVICE, ["service-1"]).unwrap().updated_order
    path = [
        OrderStatus.ACCEPTED_BY_DRIVER,
        OrderStatus.DRIVER_AT_PICKUP,
        OrderStatus.PICKED_UP,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DRIVER_AT_DROPOFF,
        OrderStatus.DELIVERED,
    ]

    events = []
    for status in path:
        outcome = transition_status(order, status, driver_actor()).unwrap()
        order = outcome.updated_order
        events.append(outcome.event)

    assert order.status == OrderStatus.DELIVERED
    assert is_terminal(OrderStatus.DELIVERED)
    assert len(events) == len(path)
    assert all(event.event_type == OrderEventType.STATUS_UPDATE for event in events)
    assert events[0].data["old_status"] == "DRIVER_ASSIGNED"
    assert events[-1].data["new_status"] == "DELIVERED"


def test_illegal_transition_fails_with_allowed_list():
    result = transition_status(make_order(), OrderStatus.DELIVERED, MITRA)

    assert result.code == "INVALID_STATUS_TRANSITION"
    assert result.error.details["current_status"] == "PENDING"
    assert result.error.details["target_status"] == "DELIVERED"
    assert result.error.details["allowed"] == sorted(
        s.value for s in ALLOWED_TRANSITIONS[OrderStatus.PENDING]
    )


def test_driver_assigned_only_reachable_through_assignment():
    for status in OrderStatus:
        assert not can_transition(status, OrderStatus.DRIVER_ASSIGNED)


@pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.REFUNDED])
def test_terminal_statuses_reject_everything(status):
    order = make_order(status=status, driver_id="driver-1")

    for target in OrderStatus:
        assert not transition_status(order, target, MITRA).is_success


def test_refund_after_cancellation_and_failed_delivery():
    for status in (OrderStatus.CANCELLED_BY_USER, OrderStatus.CANCELLED_BY_DRIVER, OrderStatus.FAILED_DELIVERY):
        outcome = transition_status(make_order(status=status), OrderStatus.REFUNDED, MITRA).unwrap()
        assert outcome.updated_order.status == OrderStatus.REFUNDED


def test_driver_rejection_clears_driver():
    order = make_order(status=OrderStatus.DRIVER_ASSIGNED, driver_id="driver-1")

    outcome = transition_status(
        order, OrderStatus.REJECTED_BY_DRIVER, driver_actor(), reason="Ban bocor"
    ).unwrap()

    assert outcome.updated_order.driver_id is None
    assert outcome.event.data["previous_driver_id"] == "driver-1"
    assert outcome.event.data["reason"] == "Ban bocor"
    assert can_transition(outcome.updated_order.status, OrderStatus.PENDING_DRIVER_ASSIGNMENT)


def test_other_driver_cannot_move_order():
    order = make_order(status=OrderStatus.DRIVER_ASSIGNED, driver_id="driver-1")

    result = transition_status(order, OrderStatus.ACCEPTED_BY_DRIVER, driver_actor("driver-2"))

    assert result.code == "ORDER_NOT_ASSIGNED_TO_ACTOR"
    assert result.error.status_code == 403


@pytest.mark.parametrize(
    "status, target, actor",
    [
        (OrderStatus.DRIVER_ASSIGNED, OrderStatus.CANCELLED_BY_MITRA, "driver"),
        (OrderStatus.CANCELLED_BY_DRIVER, OrderStatus.REFUNDED, "driver"),
        (OrderStatus.DRIVER_ASSIGNED, OrderStatus.ACCEPTED_BY_DRIVER, "mitra"),
        (OrderStatus.DRIVER_ASSIGNED, OrderStatus.REJECTED_BY_DRIVER, "mitra"),
        (OrderStatus.DRIVER_AT_DROPOFF, OrderStatus.DELIVERED, "mitra"),
        (OrderStatus.PENDING, OrderStatus.CANCELLED_BY_MITRA, "user"),
    ],
)
def test_actor_cannot_set_another_roles_status(status, target, actor):
    order = make_order(status=status, driver_id="driver-1")
    actors = {
        "driver": driver_actor(),
        "mitra": MITRA,
        "user": Actor(actor_type=ActorType.USER, actor_id="081234567890"),
    }

    result = transition_status(order, target, actors[actor])

    assert result.code == "STATUS_NOT_ALLOWED_FOR_ACTOR"
    assert result.error.status_code == 403
    assert result.error.details["target_status"] == target.value


def test_each_actor_keeps_its_own_moves():
    user = Actor(actor_type=ActorType.USER, actor_id="081234567890")
    system = Actor(actor_type=ActorType.SYSTEM, actor_id="scheduler")

    assert transition_status(make_order(), OrderStatus.CANCELLED_BY_USER, user).is_success
    assert transition_status(make_order(), OrderStatus.ACCEPTED_BY_MITRA, MITRA).is_success
    assigned = make_order(status=OrderStatus.DRIVER_ASSIGNED, driver_id="driver-1")
    assert transition_status(assigned, OrderStatus.CANCELLED_BY_DRIVER, driver_actor()).is_success
    assert transition_status(assigned, OrderStatus.CANCELLED_BY_MITRA, MITRA).is_success
    delivered = make_order(status=OrderStatus.DRIVER_AT_DROPOFF, driver_id="driver-1")
    assert transition_status(delivered, OrderStatus.DELIVERED, system).is_success


def test_every_target_belongs_to_some_non_system_actor():
    targets = set().union(*ALLOWED_TRANSITIONS.values())
    for target in targets:
        assert any(
            target in ACTOR_ALLOWED_TARGETS[actor_type]
            for actor_type in (ActorType.USER, ActorType.MITRA_ADMIN, ActorType.DRIVER)
        )


def test_photo_and_location_are_recorded_on_the_status_event():
    order = make_order(status=OrderStatus.DRIVER_AT_PICKUP, driver_id="driver-1")

    outcome = transition_status(
        order,
        OrderStatus.PICKED_UP,
        driver_actor(),
        payload={"photo_key": "proofs/order-1/pickup.jpg", "location": {"lat": -6.2, "lon": 106.8}},
        now=NOW,
    ).unwrap()

    assert outcome.event.data["photo_key"] == "proofs/order-1/pickup.jpg"
    assert outcome.event.data["location"] == {"lat": -6.2, "lon": 106.8}
    assert outcome.event.timestamp == NOW


def test_add_note():
    order = make_order(status=OrderStatus.IN_TRANSIT, driver_id="driver-1")

    event = add_note(order, "  Macet di tol  ", driver_actor()).unwrap()

    assert event.event_type == OrderEventType.NOTE_ADDED
    assert event.data == {"note": "Macet di tol", "status": "IN_TRANSIT"}
    assert add_note(order, "   ", driver_actor()).code == "EMPTY_NOTE"
    assert add_note(order, "hi", driver_actor("driver-2")).code == "ORDER_NOT_ASSIGNED_TO_ACTOR"
