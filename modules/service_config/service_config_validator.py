"""
Service Config Validator

Validates a service's stored configuration once, where it enters the system
(service load / config edit), and turns it into a ServiceConfig. Two input
shapes are accepted:

1. the snake_case shape of ServiceConfig itself
2. the legacy camelCase JSON blob written by the Mitra admin app
   (biayaAdminPerOrder, modelHargaJarak, zonaHarga, fiturTalangan, ...)
"""

import http
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from logger import logger
from utils.result import EngineError, Failure, Result, Success, returns_result

from .service_config_schema import PricingStrategy, ServiceConfig


LEGACY_ZONE_STRATEGY = "ZONA_ASAL_TUJUAN"


class ServiceConfigError(EngineError):
    def __init__(self, message: str, code: str = "INVALID_CONFIG", details: dict = None):
        super().__init__(
            message, code, details, status_code=http.HTTPStatus.UNPROCESSABLE_ENTITY
        )


def is_legacy_config(raw: Dict[str, Any]) -> bool:
    pricing = raw.get("pricing") or {}
    return isinstance(pricing, dict) and "modelHargaJarak" in pricing


def convert_legacy_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map the camelCase admin-app blob onto ServiceConfig field names"""
    pricing = raw.get("pricing") or {}
    strategy = pricing.get("modelHargaJarak")

    if strategy == LEGACY_ZONE_STRATEGY:
        strategy = PricingStrategy.ZONE_PAIR.value

    if strategy == PricingStrategy.ZONE_PAIR.value:
        pricing_config = {
            "strategy": strategy,
            "zones": [
                {
                    "origin_zone": zone.get("asalZona"),
                    "destination_zone": zone.get("tujuanZona"),
                    "price": zone.get("harga"),
                }
                for zone in pricing.get("zonaHarga") or []
            ],
        }
    else:
        pricing_config = {"strategy": strategy, "rate_per_km": pricing.get("biayaPerKm")}

    per_item_rate = None
    if pricing.get("modelHargaMuatanPcs") == "PER_PCS":
        per_item_rate = pricing.get("biayaPerPcs")

    coverage = raw.get("jangkauanLayanan") or {}
    talangan = raw.get("fiturTalangan") or {}

    converted = {
        "admin_fee": pricing.get("biayaAdminPerOrder", 0),
        "pricing": pricing_config,
        "per_item_rate": per_item_rate,
        "coverage": {
            "max_distance_km": coverage.get("maxDistanceKm"),
            "cities": coverage.get("kotaCoverage") or [],
        },
        "allowed_cargo": [
            {
                "cargo_id": muatan.get("muatanId"),
                "display_name": muatan.get("namaTampil"),
                "handling_fee": muatan.get("biayaHandlingTambahan"),
            }
            for muatan in raw.get("allowedMuatan") or []
        ],
        "available_facilities": [
            {
                "facility_id": fasilitas.get("fasilitasId"),
                "display_name": fasilitas.get("namaTampil"),
                "fee": fasilitas.get("biayaFasilitasTambahan"),
            }
            for fasilitas in raw.get("availableFasilitas") or []
        ],
        "advance_payment": {
            "enabled": bool(talangan.get("enabled", False)),
            "max_amount": talangan.get("maxAmount"),
        },
        "is_valuable_by_default": bool(raw.get("isBarangPentingDefault", False)),
    }

    if raw.get("serviceTypeAlias"):
        converted["service_type_alias"] = raw["serviceTypeAlias"]
    if raw.get("modelBisnis"):
        converted["business_model"] = raw["modelBisnis"]

    return converted


def pricing_issues(config: ServiceConfig) -> List[str]:
    """Strategy-specific requirements that the schema alone cannot express"""
    issues = []
    if config.strategy == PricingStrategy.PER_KM and not config.pricing.rate_per_km:
        issues.append("PER_KM pricing requires rate_per_km")
    if config.strategy == PricingStrategy.ZONE_PAIR and not config.pricing.zones:
        issues.append("ZONE_PAIR pricing requires at least one zone price")
    return issues


@returns_result(ServiceConfigError)
def validate_service_config(raw: Any, service_id: Optional[str] = None) -> ServiceConfig:
    """
    Validate a stored configuration and build the ServiceConfig.

    Returns:
        Success(ServiceConfig) or Failure(ServiceConfigError INVALID_CONFIG)
    """
    if isinstance(raw, ServiceConfig):
        config = raw
    else:
        if not isinstance(raw, dict):
            raise ServiceConfigError(
                "Service configuration is invalid.",
                details={"issues": ["configuration must be a JSON object"]},
            )

        data = convert_legacy_config(raw) if is_legacy_config(raw) else raw
        try:
            config = ServiceConfig.model_validate(data)
        except ValidationError as e:
            logger.error(
                f"[Service Config Validation] Invalid config for service {service_id}: {e.errors()}"
            )
            raise ServiceConfigError(
                "Service configuration is invalid.",
                details={
                    "issues": [
                        {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
                    ]
                },
            )

    issues = pricing_issues(config)
    if issues:
        logger.error(
            f"[Service Config Validation] Incomplete pricing for service {service_id}: {issues}"
        )
        raise ServiceConfigError(
            "Service configuration is invalid.", details={"issues": issues}
        )

    return config


def validate_public_service_access(is_active: bool, config: ServiceConfig) -> Result:
    """A service can take public orders only when it is active and public"""
    reason = None
    if not is_active:
        reason = "Service is not active"
    elif not config.is_public:
        reason = "Service is not public"

    if reason:
        return Failure(
            ServiceConfigError(
                reason,
                code="SERVICE_NOT_AVAILABLE",
                details={"reason": reason},
            )
        )
    return Success(None)
