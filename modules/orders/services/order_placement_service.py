"""
Order Placement Service

Composes the engine for a new public order:

1. Orderer identifier check
2. Talangan (advance payment) limits
3. Cargo / facility selections
4. Cost calculation
5. Trust evaluation (needs the order id for the tracking link)
6. PENDING order snapshot + ORDER_CREATED event

The first failing step is returned as a Failure; nothing is built after it.
Persistence happens in OrderService.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from modules.geo import DistanceCalculator
from modules.pricing import (
    CostBreakdown,
    ZoneResolver,
    compute_cost,
    validate_advance_payment,
    validate_selected_cargo,
    validate_selected_facilities,
)
from modules.service_config import ServiceConfig
from modules.trust import (
    TrustEvaluationResult,
    evaluate_trust,
    trust_event_data,
    validate_orderer_identifier,
)
from utils.result import Result, Success

from ..order_schema import (
    Actor,
    ActorType,
    OrderDetails,
    OrderEventModel,
    OrderEventType,
    OrderModel,
    OrderPlacementRequest,
    OrderStatus,
)
from ..order_state_machine import build_event


@dataclass(frozen=True)
class PlacementOutcome:
    order: OrderModel
    cost_breakdown: CostBreakdown
    trust_result: TrustEvaluationResult
    event: OrderEventModel


def new_order_id() -> str:
    return str(uuid.uuid4())


def estimate_cost(
    service_config: ServiceConfig,
    details: OrderDetails,
    zone_resolver: Optional[ZoneResolver] = None,
    distance_calculator: Optional[DistanceCalculator] = None,
) -> Result:
    """Cost preview for the order form: selections + cost, no trust checks"""
    for check in (
        validate_selected_cargo(service_config, details.selected_cargo_id),
        validate_selected_facilities(service_config, details.selected_facility_ids),
    ):
        if not check.is_success:
            return check

    return compute_cost(service_config, details, zone_resolver, distance_calculator)


def place_order(
    service_config: ServiceConfig,
    request: OrderPlacementRequest,
    service_id: str,
    mitra_id: str,
    order_id: Optional[str] = None,
    now: Optional[datetime] = None,
    zone_resolver: Optional[ZoneResolver] = None,
    distance_calculator: Optional[DistanceCalculator] = None,
    tracking_base_url: Optional[str] = None,
) -> Result:
    """
    Returns:
        Success(PlacementOutcome) or the Failure of the first step that rejected the order
    """
    checks = (
        lambda: validate_orderer_identifier(request.orderer_identifier),
        lambda: validate_advance_payment(service_config, request.advance_payment_amount),
    )
    for check in checks:
        result = check()
        if not result.is_success:
            return result

    cost_result = estimate_cost(
        service_config, request.details, zone_resolver, distance_calculator
    )
    if not cost_result.is_success:
        return cost_result
    breakdown: CostBreakdown = cost_result.value

    order_id = order_id or new_order_id()
    trust_result = evaluate_trust(service_config, request, order_id, tracking_base_url)
    if not trust_result.is_success:
        return trust_result
    trust: TrustEvaluationResult = trust_result.value

    timestamp = now or datetime.now(pytz.UTC)
    order = OrderModel(
        id=order_id,
        service_id=service_id,
        mitra_id=mitra_id,
        status=OrderStatus.PENDING,
        orderer_identifier=request.orderer_identifier.strip(),
        receiver_wa_number=request.receiver_wa_number,
        details=request.details.model_dump(mode="json"),
        estimated_cost=breakdown.total,
        cost_breakdown=breakdown.model_dump(mode="json"),
        advance_payment_amount=request.advance_payment_amount,
        trust_level=trust.level.value,
        created_at=timestamp,
        updated_at=timestamp,
    )

    event = build_event(
        order_id,
        OrderEventType.ORDER_CREATED,
        Actor(actor_type=ActorType.USER, actor_id=order.orderer_identifier),
        {
            "status": OrderStatus.PENDING.value,
            "estimated_cost": float(breakdown.total),
            "advance_payment_amount": request.advance_payment_amount,
            "contains_valuables": request.contains_valuables,
            **trust_event_data(trust),
        },
        timestamp,
    )

    return Success(
        PlacementOutcome(
            order=order, cost_breakdown=breakdown, trust_result=trust, event=event
        )
    )


