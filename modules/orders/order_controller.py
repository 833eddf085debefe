import http
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from context_manager.context import build_request_context, set_actor
from database.db import get_db

# schema
from schema.base import GenericResponseModel
from modules.orders.order_schema import (
    Actor,
    ActorType,
    AddNoteRequestModel,
    AssignDriverRequestModel,
    EstimateCostRequestModel,
    OrderStatus,
    PlaceOrderRequestModel,
    RejectOrderRequestModel,
    UpdateStatusRequestModel,
)

# utils
from utils.metrics import MetricsSink, get_metrics_sink
from utils.response_handler import build_api_response

# limiter
from limiter import PLACEMENT_RATE_LIMIT, limiter

# services
from .order_service import OrderService


public_orders_router = APIRouter(prefix="/public/orders", tags=["public-orders"])
mitra_orders_router = APIRouter(prefix="/mitra/{mitra_id}/orders", tags=["mitra-orders"])
driver_orders_router = APIRouter(prefix="/driver/{driver_id}/orders", tags=["driver-orders"])


def internal_error(message: str, e: Exception):
    return build_api_response(
        GenericResponseModel(
            status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
            data=str(e),
            message=message,
        )
    )


def location_of(body: UpdateStatusRequestModel):
    if body.lat is None or body.lon is None:
        return None
    return body.lat, body.lon


# ============================================
# PUBLIC
# ============================================


# place a new order
@public_orders_router.post(
    "",
    status_code=http.HTTPStatus.CREATED,
    response_model=GenericResponseModel,
)
@limiter.limit(PLACEMENT_RATE_LIMIT)
async def place_order(
    order_data: PlaceOrderRequestModel,
    request: Request,  # required by slowapi
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.USER.value, order_data.orderer_identifier)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).create_order(
            service_id=order_data.service_id, request=order_data
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while placing the order.", e)


# cost preview
@public_orders_router.post(
    "/estimate",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def estimate_order_cost(
    estimate_data: EstimateCostRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).estimate(
            service_id=estimate_data.service_id, details=estimate_data.details
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while estimating the order cost.", e)


@public_orders_router.get(
    "/{order_id}/tracking",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def track_order(
    order_id: str,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
):
    try:
        response: GenericResponseModel = OrderService(db=db).get_tracking(order_id=order_id)
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while fetching the order.", e)


# ============================================
# MITRA
# ============================================


@mitra_orders_router.get(
    "",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def list_mitra_orders(
    mitra_id: str,
    status: Optional[OrderStatus] = Query(default=None, description="Filter by order status"),
    service_id: Optional[str] = Query(default=None),
    driver_id: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Number of items per page"),
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
):
    try:
        set_actor(ActorType.MITRA_ADMIN.value, mitra_id)
        response: GenericResponseModel = OrderService(db=db).list_orders(
            mitra_id=mitra_id,
            status=status,
            service_id=service_id,
            driver_id=driver_id,
            page=page,
            page_size=page_size,
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while fetching orders.", e)


@mitra_orders_router.get(
    "/{order_id}",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def get_mitra_order(
    mitra_id: str,
    order_id: str,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
):
    try:
        set_actor(ActorType.MITRA_ADMIN.value, mitra_id)
        response: GenericResponseModel = OrderService(db=db).get_order_detail(
            mitra_id=mitra_id, order_id=order_id
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while fetching the order.", e)



@mitra_orders_router.post(
    "/{order_id}/assign-driver",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def assign_driver(
    mitra_id: str,
    order_id: str,
    assign_data: AssignDriverRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.MITRA_ADMIN.value, mitra_id)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).assign_driver(
            mitra_id=mitra_id,
            order_id=order_id,
            driver_id=assign_data.driver_id,
            reason=assign_data.reason,
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while assigning the driver.", e)


@mitra_orders_router.post(
    "/{order_id}/update-status",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def mitra_update_status(
    mitra_id: str,
    order_id: str,
    status_data: UpdateStatusRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.MITRA_ADMIN.value, mitra_id)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).update_status(
            actor=Actor(actor_type=ActorType.MITRA_ADMIN, actor_id=mitra_id),
            order_id=order_id,
            new_status=status_data.new_status,
            reason=status_data.notes,
            photo_key=status_data.photo_key,
            location=location_of(status_data),
            mitra_id=mitra_id,
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while updating the order.", e)


# ============================================
# DRIVER
# ============================================


@driver_orders_router.get(
    "/assigned",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def list_assigned_orders(
    driver_id: str,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
):
    try:
        set_actor(ActorType.DRIVER.value, driver_id)
        response: GenericResponseModel = OrderService(db=db).list_assigned_orders(
            driver_id=driver_id
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while fetching assigned orders.", e)



@driver_orders_router.post(
    "/{order_id}/accept",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def accept_order(
    driver_id: str,
    order_id: str,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.DRIVER.value, driver_id)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).accept_order(
            driver_id=driver_id, order_id=order_id
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while accepting the order.", e)


@driver_orders_router.post(
    "/{order_id}/reject",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def reject_order(
    driver_id: str,
    order_id: str,
    reject_data: RejectOrderRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.DRIVER.value, driver_id)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).reject_order(
            driver_id=driver_id, order_id=order_id, reason=reject_data.reason
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while rejecting the order.", e)


@driver_orders_router.post(
    "/{order_id}/update-status",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def driver_update_status(
    driver_id: str,
    order_id: str,
    status_data: UpdateStatusRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
    metrics: MetricsSink = Depends(get_metrics_sink),
):
    try:
        set_actor(ActorType.DRIVER.value, driver_id)
        response: GenericResponseModel = OrderService(db=db, metrics=metrics).update_status(
            actor=Actor(actor_type=ActorType.DRIVER, actor_id=driver_id),
            order_id=order_id,
            new_status=status_data.new_status,
            reason=status_data.notes,
            photo_key=status_data.photo_key,
            location=location_of(status_data),
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while updating the order.", e)


@driver_orders_router.post(
    "/{order_id}/notes",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def add_order_note(
    driver_id: str,
    order_id: str,
    note_data: AddNoteRequestModel,
    _=Depends(build_request_context),
    db: Session = Depends(get_db),
):
    try:
        set_actor(ActorType.DRIVER.value, driver_id)
        response: GenericResponseModel = OrderService(db=db).add_note(
            actor=Actor(actor_type=ActorType.DRIVER, actor_id=driver_id),
            order_id=order_id,
            note=note_data.note,
        )
        return build_api_response(response)

    except Exception as e:
        return internal_error("An error occurred while adding the note.", e)
