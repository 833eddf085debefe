"""
Trust Evaluator

Classifies an order by how much the orderer is trusting the platform with:

- STANDARD    plain delivery
- SENSITIVE   talangan (driver fronts money) OR valuable items
- HIGH_RISK   talangan AND valuable items

Sensitive orders must name a receiver WhatsApp number; the orderer gets a
deep link to warn the receiver that the delivery is coming.
"""

from typing import Any, Dict, Optional

from logger import logger
from modules.orders.order_schema import (
    PHONE_NUMBER_REGEX,
    OrderPlacementRequest,
    normalize_phone_number,
)
from modules.service_config import ServiceConfig
from utils.result import Result, returns_result

from .notification_link import format_amount, generate_receiver_notification_link
from .trust_errors import TrustMechanismError
from .trust_schema import TrustEvaluationResult, TrustLevel, TrustSummary


def has_valuables(service_config: ServiceConfig, request: OrderPlacementRequest) -> bool:
    return bool(service_config.is_valuable_by_default or request.contains_valuables)


def requires_enhanced_verification(
    service_config: ServiceConfig, request: OrderPlacementRequest
) -> bool:
    return request.has_advance_payment or has_valuables(service_config, request)


@returns_result(TrustMechanismError)
def evaluate_trust(
    service_config: ServiceConfig,
    request: OrderPlacementRequest,
    order_id: str,
    tracking_base_url: Optional[str] = None,
) -> TrustEvaluationResult:
    """
    Returns:
        Success(TrustEvaluationResult) or Failure(TrustMechanismError RECEIVER_WA_REQUIRED)
    """
    level = TrustLevel.STANDARD
    reasons = []

    has_talangan = request.has_advance_payment
    valuable = has_valuables(service_config, request)

    if has_talangan:
        level = TrustLevel.SENSITIVE
        reasons.append(f"Talangan amount: Rp {format_amount(request.advance_payment_amount)}")

    if valuable:
        level = TrustLevel.HIGH_RISK if level == TrustLevel.SENSITIVE else TrustLevel.SENSITIVE
        reasons.append("Order contains valuable/important items")

    if level == TrustLevel.STANDARD:
        return TrustEvaluationResult()

    if not request.receiver_wa_number:
        raise TrustMechanismError(
            "Receiver WhatsApp number is required for orders with talangan or valuable items",
            "RECEIVER_WA_REQUIRED",
            {
                "has_talangan": has_talangan,
                "contains_valuables": valuable,
                "advance_payment_amount": request.advance_payment_amount,
            },
        )

    link = generate_receiver_notification_link(
        request, order_id, service_config.service_type_alias, tracking_base_url
    )

    requirements = ["Orderer must notify receiver using the provided WhatsApp link"]
    if has_talangan:
        requirements.append(
            "Driver will collect advance payment (talangan) on behalf of orderer"
        )
    if valuable:
        requirements.append("Extra care required for valuable items during transport")

    return TrustEvaluationResult(
        level=level,
        reasons=reasons,
        requires_receiver_notification=True,
        receiver_notification_link=link,
        verification_requirements=requirements,
    )


@returns_result(TrustMechanismError)
def validate_orderer_identifier(orderer_identifier: Optional[str]) -> None:
    if not orderer_identifier or not orderer_identifier.strip():
        raise TrustMechanismError(
            "Orderer identifier is required", "MISSING_ORDERER_IDENTIFIER"
        )

    # Non-phone identifiers are allowed, only flagged
    if not PHONE_NUMBER_REGEX.match(normalize_phone_number(orderer_identifier)):
        logger.warning(
            msg=f"[Trust] Orderer identifier '{orderer_identifier}' does not match expected phone format"
        )


def trust_event_data(result: TrustEvaluationResult) -> Dict[str, Any]:
    """Trust fields stored on the ORDER_CREATED event"""
    return {
        "trust_level": result.level.value,
        "requires_receiver_notification": result.requires_receiver_notification,
        "trust_reasons": list(result.reasons),
        "verification_requirements": list(result.verification_requirements),
        "notification_link_generated": bool(result.receiver_notification_link),
    }


def format_trust_summary(result: TrustEvaluationResult) -> TrustSummary:
    return TrustSummary(
        level=result.level.value.lower(),
        required_actions=list(result.verification_requirements),
        notification_required=result.requires_receiver_notification,
    )
