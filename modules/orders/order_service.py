import http
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from context_manager.context import get_actor_data, get_db_session, mark_rollback
from logger import logger

# models
from models import Driver, Order, OrderEvent, Service

# schema
from schema.base import GenericResponseModel

# engine
from modules.service_config import (
    validate_public_service_access,
    validate_service_config,
)
from modules.trust import format_trust_summary, tracking_url
from utils.metrics import MetricsSink, NullMetricsSink
from utils.response_handler import build_error_response
from utils.result import EngineError, Failure, Result, Success

from .order_schema import (
    Actor,
    ActorType,
    OrderDetails,
    OrderPlacementRequest,
    OrderStatus,
)
from .order_state_machine import (
    ACTIVE_ASSIGNMENT_STATUSES,
    DriverAssignmentError,
    TransitionOutcome,
    add_note,
    assign_driver,
    transition_status,
)
from .services import estimate_cost, place_order


class OrderServiceError(EngineError):
    def __init__(self, message: str, code: str, details: dict = None, status_code: int = None):
        super().__init__(
            message, code, details, status_code=status_code or http.HTTPStatus.NOT_FOUND
        )


def internal_error_response(message: str) -> GenericResponseModel:
    return GenericResponseModel(
        status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
        message=message,
    )


class OrderService:
    """
    Persistence boundary around the order engine.

    Loads orders, drivers and services, runs the pure engine operations and
    writes the outcome back: status / driver changes with a compare-and-swap
    on the current status, events as append-only rows. Usage counters go to
    the injected metrics sink.
    """

    def __init__(self, db: Optional[Session] = None, metrics: Optional[MetricsSink] = None):
        self.db = db if db is not None else get_db_session()
        self.metrics = metrics or NullMetricsSink()

    # ============================================
    # LOADERS
    # ============================================

    def load_service(self, service_id: str) -> Result:
        """Returns Success((Service, ServiceConfig)) or a Failure"""
        service = Service.get_by_id(service_id, db=self.db)
        if service is None:
            return Failure(
                OrderServiceError(
                    "Service not found", "SERVICE_NOT_FOUND", {"service_id": service_id}
                )
            )

        config_result = validate_service_config(service.config, service_id=service.id)
        if not config_result.is_success:
            return config_result

        return Success((service, config_result.value))

    def load_public_service(self, service_id: str) -> Result:
        result = self.load_service(service_id)
        if not result.is_success:
            return result

        service, config = result.value
        access = validate_public_service_access(service.is_active, config)
        if not access.is_success:
            return access
        return result

    def _get_order(self, order_id: str, mitra_id: Optional[str] = None) -> Optional[Order]:
        query = self.db.query(Order).filter(Order.id == order_id, Order.is_deleted.is_(False))
        if mitra_id is not None:
            query = query.filter(Order.mitra_id == mitra_id)
        # always read the committed status, not a cached one
        return query.execution_options(populate_existing=True).first()

    def _order_not_found(self, order_id: str) -> Failure:
        return Failure(
            OrderServiceError("Order not found", "ORDER_NOT_FOUND", {"order_id": order_id})
        )

    # ============================================
    # WRITES
    # ============================================

    def persist_transition(
        self, expected_status: OrderStatus, outcome: TransitionOutcome
    ) -> Result:
        """
        Write an engine transition: conditional UPDATE on (id, expected status),
        then the event. Zero updated rows means someone else moved the order
        first; nothing is written in that case.
        """
        updated = outcome.updated_order

        with self.db.begin_nested():
            row_count = (
                self.db.query(Order)
                .filter(
                    Order.id == updated.id,
                    Order.status == OrderStatus(expected_status).value,
                )
                .update(
                    {
                        Order.status: updated.status.value,
                        Order.driver_id: updated.driver_id,
                        Order.updated_at: updated.updated_at,
                    },
                    synchronize_session=False,
                )
            )

            if row_count == 0:
                logger.warning(
                    extra=get_actor_data(),
                    msg=f"Order {updated.id} changed concurrently, expected status {expected_status}",
                )
                self.metrics.increment("order.conflict")
                return Failure(
                    OrderServiceError(
                        "Order was modified by another request",
                        "CONCURRENT_UPDATE",
                        {"order_id": updated.id, "expected_status": OrderStatus(expected_status).value},
                        status_code=http.HTTPStatus.CONFLICT,
                    )
                )

            self.db.add(OrderEvent.from_model(outcome.event))

        return Success(outcome)

    def _failure_response(self, error: EngineError, metric: str) -> GenericResponseModel:
        mark_rollback()
        self.metrics.increment(metric, tags={"code": error.code})
        logger.info(
            extra=get_actor_data(),
            msg=f"{metric}: {error.to_dict()}",
        )
        return build_error_response(error)

    # ============================================
    # PUBLIC ORDERS
    # ============================================

    def create_order(
        self, service_id: str, request: OrderPlacementRequest
    ) -> GenericResponseModel:
        try:
            service_result = self.load_public_service(service_id)
            if not service_result.is_success:
                return self._failure_response(service_result.error, "order.placement_failed")
            service, config = service_result.value

            placement = place_order(config, request, service_id=service.id, mitra_id=service.mitra_id)
            if not placement.is_success:
                return self._failure_response(placement.error, "order.placement_failed")
            outcome = placement.value

            with self.db.begin_nested():
                self.db.add(Order.from_model(outcome.order))
                self.db.flush()
                self.db.add(OrderEvent.from_model(outcome.event))

            breakdown = outcome.cost_breakdown.model_dump(mode="json")
            self.metrics.increment(
                "order.placed", tags={"trust_level": outcome.trust_result.level.value}
            )
            logger.info(
                extra=get_actor_data(),
                msg=f"Order {outcome.order.id} placed for service {service.id}, total {outcome.cost_breakdown.total}",
            )

            return GenericResponseModel(
                status_code=http.HTTPStatus.CREATED,
                status=True,
                message="Order placed successfully",
                data={
                    "order_id": outcome.order.id,
                    "status": outcome.order.status.value,
                    "estimated_cost": breakdown["total"],
                    "cost_breakdown": breakdown,
                    "trust": format_trust_summary(outcome.trust_result).model_dump(),
                    "receiver_notification_link": outcome.trust_result.receiver_notification_link,
                    "tracking_url": tracking_url(outcome.order.id),
                },
            )

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(extra=get_actor_data(), msg=f"Error creating Order: {e}")
            return internal_error_response("An error occurred while creating the Order.")

    def estimate(self, service_id: str, details: OrderDetails) -> GenericResponseModel:
        service_result = self.load_public_service(service_id)
        if not service_result.is_success:
            return self._failure_response(service_result.error, "order.estimate_failed")
        _, config = service_result.value

        result = estimate_cost(config, details)
        if not result.is_success:
            return self._failure_response(result.error, "order.estimate_failed")

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message="Cost estimated successfully",
            data=result.value.model_dump(mode="json"),
        )

    def get_tracking(self, order_id: str) -> GenericResponseModel:
        order = self._get_order(order_id)
        if order is None:
            return build_error_response(self._order_not_found(order_id).error)

        events = self.list_events(order.id)
        snapshot = order.to_model()

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message="Order fetched successfully",
            data={
                "order_id": snapshot.id,
                "status": snapshot.status.value,
                "driver_id": snapshot.driver_id,
                "estimated_cost": float(snapshot.estimated_cost),
                "pickup_address": snapshot.details.get("pickup_address", {}).get("text"),
                "dropoff_address": snapshot.details.get("dropoff_address", {}).get("text"),
                "events": [event.to_model().model_dump(mode="json") for event in events],
            },
        )

    def list_events(self, order_id: str) -> List[OrderEvent]:
        return (
            self.db.query(OrderEvent)
            .filter(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.timestamp.asc())
            .all()
        )

    # ============================================
    # MITRA & DRIVER READS
    # ============================================

    @staticmethod
    def _order_summary(order: Order) -> dict:
        return order.to_model().model_dump(
            mode="json",
            include={
                "id",
                "service_id",
                "driver_id",
                "status",
                "orderer_identifier",
                "receiver_wa_number",
                "estimated_cost",
                "trust_level",
                "created_at",
                "updated_at",
            },
        )

    def list_orders(
        self,
        mitra_id: str,
        status: Optional[OrderStatus] = None,
        service_id: Optional[str] = None,
        driver_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> GenericResponseModel:
        """Newest first; one extra row is fetched to tell whether another page exists"""
        query = self.db.query(Order).filter(
            Order.mitra_id == mitra_id, Order.is_deleted.is_(False)
        )
        if status is not None:
            query = query.filter(Order.status == OrderStatus(status).value)
        if service_id is not None:
            query = query.filter(Order.service_id == service_id)
        if driver_id is not None:
            query = query.filter(Order.driver_id == driver_id)

        orders = (
            query.order_by(Order.created_at.desc())
            .execution_options(populate_existing=True)
            .offset((page - 1) * page_size)
            .limit(page_size + 1)
            .all()
        )

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message="Orders fetched successfully",
            data={
                "orders": [self._order_summary(order) for order in orders[:page_size]],
                "page": page,
                "page_size": page_size,
                "has_more": len(orders) > page_size,
            },
        )

    def get_order_detail(self, mitra_id: str, order_id: str) -> GenericResponseModel:
        order = self._get_order(order_id, mitra_id=mitra_id)
        if order is None:
            return build_error_response(self._order_not_found(order_id).error)

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message="Order fetched successfully",
            data={
                "order": order.to_model().model_dump(mode="json"),
                "events": [
                    event.to_model().model_dump(mode="json")
                    for event in self.list_events(order.id)
                ],
            },
        )

    def list_assigned_orders(self, driver_id: str) -> GenericResponseModel:
        """Orders the driver currently has to work on, most recently touched first"""
        driver = Driver.get_by_id(driver_id, db=self.db)
        if driver is None:
            return build_error_response(
                OrderServiceError(
                    "Driver not found", "DRIVER_NOT_FOUND", {"driver_id": driver_id}
                )
            )

        orders = (
            self.db.query(Order)
            .filter(
                Order.driver_id == driver_id,
                Order.status.in_([s.value for s in ACTIVE_ASSIGNMENT_STATUSES]),
                Order.is_deleted.is_(False),
            )
            .order_by(Order.updated_at.desc())
            .execution_options(populate_existing=True)
            .all()
        )

        assigned = []
        for order in orders:
            details = order.details or {}
            summary = self._order_summary(order)
            summary.update(
                {
                    "pickup_address": details.get("pickup_address"),
                    "dropoff_address": details.get("dropoff_address"),
                    "notes": details.get("notes"),
                    "driver_instructions": details.get("driver_instructions"),
                    "advance_payment_amount": (
                        float(order.advance_payment_amount)
                        if order.advance_payment_amount is not None
                        else None
                    ),
                }
            )
            assigned.append(summary)

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message="Assigned orders fetched successfully",
            data={"orders": assigned},
        )

    # ============================================
    # MITRA OPERATIONS
    # ============================================

    def assign_driver(
        self,
        mitra_id: str,
        order_id: str,
        driver_id: str,
        reason: Optional[str] = None,
    ) -> GenericResponseModel:
        try:
            order = self._get_order(order_id, mitra_id=mitra_id)
            if order is None:
                return self._failure_response(
                    self._order_not_found(order_id).error, "order.assignment_failed"
                )

            driver = Driver.get_by_id(driver_id, db=self.db)
            if driver is None:
                return self._failure_response(
                    DriverAssignmentError(
                        "Driver not found or does not belong to this mitra",
                        "DRIVER_NOT_IN_MITRA",
                        {"driver_id": driver_id, "mitra_id": mitra_id},
                        status_code=http.HTTPStatus.NOT_FOUND,
                    ),
                    "order.assignment_failed",
                )

            service = Service.get_by_id(order.service_id, db=self.db)
            if service is None:
                return self._failure_response(
                    OrderServiceError(
                        "Service not found",
                        "SERVICE_NOT_FOUND",
                        {"service_id": order.service_id},
                    ),
                    "order.assignment_failed",
                )
            snapshot = order.to_model()

            result = assign_driver(
                snapshot,
                driver.to_model(),
                service.to_model(),
                driver.eligible_service_ids,
                actor=Actor(actor_type=ActorType.MITRA_ADMIN, actor_id=mitra_id),
                reason=reason,
            )
            if result.is_success:
                result = self.persist_transition(snapshot.status, result.value)
            if not result.is_success:
                return self._failure_response(result.error, "order.assignment_failed")

            self.metrics.increment("order.driver_assigned")
            logger.info(
                extra=get_actor_data(),
                msg=f"Driver {driver_id} assigned to order {order_id}",
            )
            return self._transition_response(result.value, "Driver assigned successfully")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(extra=get_actor_data(), msg=f"Error assigning driver: {e}")
            return internal_error_response("An error occurred while assigning the driver.")

    # ============================================
    # STATUS UPDATES
    # ============================================

    def update_status(
        self,
        actor: Actor,
        order_id: str,
        new_status: OrderStatus,
        reason: Optional[str] = None,
        photo_key: Optional[str] = None,
        location: Optional[Tuple[float, float]] = None,
        mitra_id: Optional[str] = None,
    ) -> GenericResponseModel:
        try:
            order = self._get_order(order_id, mitra_id=mitra_id)
            if order is None:
                return self._failure_response(
                    self._order_not_found(order_id).error, "order.transition_failed"
                )

            payload = {}
            if photo_key:
                payload["photo_key"] = photo_key
            if location is not None:
                payload["location"] = {"lat": location[0], "lon": location[1]}

            snapshot = order.to_model()
            result = transition_status(snapshot, new_status, actor, reason=reason, payload=payload)
            if result.is_success:
                result = self.persist_transition(snapshot.status, result.value)
            if not result.is_success:
                return self._failure_response(result.error, "order.transition_failed")

            self.metrics.increment(
                "order.status_updated", tags={"status": OrderStatus(new_status).value}
            )
            return self._transition_response(result.value, "Order status updated successfully")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(extra=get_actor_data(), msg=f"Error updating order status: {e}")
            return internal_error_response("An error occurred while updating the order.")

    def accept_order(self, driver_id: str, order_id: str) -> GenericResponseModel:
        return self.update_status(
            Actor(actor_type=ActorType.DRIVER, actor_id=driver_id),
            order_id,
            OrderStatus.ACCEPTED_BY_DRIVER,
            reason="Accepted by driver",
        )

    def reject_order(
        self, driver_id: str, order_id: str, reason: Optional[str] = None
    ) -> GenericResponseModel:
        return self.update_status(
            Actor(actor_type=ActorType.DRIVER, actor_id=driver_id),
            order_id,
            OrderStatus.REJECTED_BY_DRIVER,
            reason=reason or "Rejected by driver",
        )

    def add_note(self, actor: Actor, order_id: str, note: str) -> GenericResponseModel:
        try:
            order = self._get_order(order_id)
            if order is None:
                return self._failure_response(
                    self._order_not_found(order_id).error, "order.note_failed"
                )

            result = add_note(order.to_model(), note, actor)
            if not result.is_success:
                return self._failure_response(result.error, "order.note_failed")

            with self.db.begin_nested():
                self.db.add(OrderEvent.from_model(result.value))

            return GenericResponseModel(
                status_code=http.HTTPStatus.OK,
                status=True,
                message="Note added successfully",
                data={"event": result.value.model_dump(mode="json")},
            )

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(extra=get_actor_data(), msg=f"Error adding order note: {e}")
            return internal_error_response("An error occurred while adding the note.")

    @staticmethod
    def _transition_response(outcome: TransitionOutcome, message: str) -> GenericResponseModel:
        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            message=message,
            data={
                "order": outcome.updated_order.model_dump(
                    mode="json", include={"id", "status", "driver_id", "updated_at"}
                ),
                "event": outcome.event.model_dump(mode="json"),
            },
        )
