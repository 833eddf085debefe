from .trust_errors import TrustMechanismError
from .trust_schema import TrustEvaluationResult, TrustLevel, TrustSummary
from .notification_link import (
    WhatsAppMessageTemplates,
    WhatsAppMessageType,
    build_contact_link,
    generate_receiver_notification_link,
    tracking_url,
)
from .trust_evaluator import (
    evaluate_trust,
    format_trust_summary,
    requires_enhanced_verification,
    trust_event_data,
    validate_orderer_identifier,
)

__all__ = [
    "TrustMechanismError",
    "TrustEvaluationResult",
    "TrustLevel",
    "TrustSummary",
    "WhatsAppMessageTemplates",
    "WhatsAppMessageType",
    "build_contact_link",
    "generate_receiver_notification_link",
    "tracking_url",
    "evaluate_trust",
    "format_trust_summary",
    "requires_enhanced_verification",
    "trust_event_data",
    "validate_orderer_identifier",
]
