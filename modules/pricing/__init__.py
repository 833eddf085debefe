from .pricing_schema import CostBreakdown, CostLine, CostMetadata
from .zone_resolver import (
    UNKNOWN_ZONE,
    KeywordZoneResolver,
    ZoneResolver,
    default_zone_resolver,
)
from .cost_calculator import (
    CostCalculationError,
    CostCalculator,
    compute_cost,
    validate_advance_payment,
    validate_selected_cargo,
    validate_selected_facilities,
)

__all__ = [
    "CostBreakdown",
    "CostLine",
    "CostMetadata",
    "UNKNOWN_ZONE",
    "KeywordZoneResolver",
    "ZoneResolver",
    "default_zone_resolver",
    "CostCalculationError",
    "CostCalculator",
    "compute_cost",
    "validate_advance_payment",
    "validate_selected_cargo",
    "validate_selected_facilities",
]
