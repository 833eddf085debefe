from .service_config_schema import (
    AdvancePaymentConfig,
    BusinessModel,
    CargoType,
    CoverageConfig,
    Facility,
    PerKmPricing,
    PricingStrategy,
    ServiceConfig,
    ZonePairPricing,
    ZonePrice,
)
from .service_config_validator import (
    ServiceConfigError,
    pricing_issues,
    validate_public_service_access,
    validate_service_config,
)

__all__ = [
    "AdvancePaymentConfig",
    "BusinessModel",
    "CargoType",
    "CoverageConfig",
    "Facility",
    "PerKmPricing",
    "PricingStrategy",
    "ServiceConfig",
    "ZonePairPricing",
    "ZonePrice",
    "ServiceConfigError",
    "pricing_issues",
    "validate_public_service_access",
    "validate_service_config",
]
