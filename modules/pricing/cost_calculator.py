"""
Order Cost Calculator

Computes the itemised cost of an order from a service's configuration.

All calculations are done server-side - the client only ever sees the result.

Calculation order:
1. Admin fee (always applied)
2. Distance fee (PER_KM) or zone fee (ZONE_PAIR)
3. Per-item fee, when the service charges per item
4. Cargo handling fee for the selected cargo type
5. One fee per selected facility
6. Subtotal / total
"""

import http
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from logger import logger
from modules.geo import (
    DistanceCalculator,
    InvalidCoordinate,
    default_distance_calculator,
    has_valid_coordinates,
    order_distance,
)
from modules.orders.order_schema import OrderDetails
from modules.service_config import PricingStrategy, ServiceConfig, pricing_issues
from utils.result import EngineError, Failure, Result, Success, returns_result

from .pricing_schema import CostBreakdown, CostLine, CostMetadata
from .zone_resolver import ZoneResolver, default_zone_resolver


class CostCalculationError(EngineError):
    def __init__(self, message: str, code: str, details: dict = None, status_code: int = None):
        super().__init__(
            message,
            code,
            details,
            status_code=status_code or http.HTTPStatus.BAD_REQUEST,
        )


def format_rupiah(amount: Any) -> str:
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"Rp {value:,.0f}"
    return f"Rp {value:,.2f}"


class CostCalculator:
    """
    Cost calculation for a single service configuration.

    All monetary values are rounded half-up to 2 decimal places. The distance
    itself is kept at full precision in the metadata.

    Usage:
        calculator = CostCalculator(service_config)
        breakdown = calculator.calculate(order_details)
    """

    def __init__(
        self,
        service_config: ServiceConfig,
        zone_resolver: Optional[ZoneResolver] = None,
        distance_calculator: Optional[DistanceCalculator] = None,
    ):
        self.config = service_config
        self.zone_resolver = zone_resolver or default_zone_resolver
        self.distance_calculator = distance_calculator or default_distance_calculator

    # ============================================
    # MAIN CALCULATION
    # ============================================

    def calculate(self, details: OrderDetails) -> CostBreakdown:
        """
        Calculate the full cost breakdown.

        Raises:
            CostCalculationError: on any pricing rule violation
        """
        issues = pricing_issues(self.config)
        if issues:
            raise CostCalculationError(
                f"Pricing is not configured correctly: {'; '.join(issues)}",
                "INVALID_PRICING_CONFIG",
                {"issues": issues},
                status_code=http.HTTPStatus.UNPROCESSABLE_ENTITY,
            )

        self.check_cargo_selection(details.selected_cargo_id)
        self.check_facility_selection(details.selected_facility_ids)

        lines: List[CostLine] = []
        fees: Dict[str, Decimal] = {}

        # Admin fee is the one line that is always present
        fees["admin_fee"] = self._round_price(self.config.admin_fee)
        lines.append(CostLine(description="Admin fee", amount=fees["admin_fee"]))

        if self.config.strategy == PricingStrategy.PER_KM:
            distance_km, fees["distance_cost"], line = self.calculate_distance_cost(details)
            metadata = {"method": "per_km", "distance_km": distance_km}
        else:
            applied_zone, fees["zone_cost"], line = self.calculate_zone_cost(details)
            metadata = {"method": "zone_based", "applied_zone": applied_zone}
        if line:
            lines.append(line)

        item_count, fees["per_item_cost"], line = self.calculate_per_item_cost(details)
        if item_count is not None:
            metadata["item_count"] = item_count
            if self.config.per_item_rate:
                metadata["method"] = f"{metadata['method']}+per_item"
        if line:
            lines.append(line)

        fees["cargo_handling_fee"], line = self.calculate_cargo_handling_fee(details)
        if line:
            lines.append(line)

        fees["facility_fees"], facility_lines = self.calculate_facility_fees(details)
        lines.extend(facility_lines)

        subtotal = self._round_price(sum(fees.values(), Decimal("0")))

        return CostBreakdown(
            admin_fee=fees["admin_fee"],
            distance_cost=fees.get("distance_cost", Decimal("0")),
            zone_cost=fees.get("zone_cost", Decimal("0")),
            per_item_cost=fees["per_item_cost"],
            cargo_handling_fee=fees["cargo_handling_fee"],
            facility_fees=fees["facility_fees"],
            lines=lines,
            subtotal=subtotal,
            total=subtotal,
            metadata=CostMetadata(**metadata),
        )

    # ============================================
    # LOCATION BASED FEES
    # ============================================

    def calculate_distance_cost(self, details: OrderDetails):
        rate = self.config.pricing.rate_per_km
        try:
            result = order_distance(
                details.pickup_address, details.dropoff_address, self.distance_calculator
            )
        except InvalidCoordinate as e:
            raise CostCalculationError(e.message, e.code, e.details) from e

        if result is None:
            raise CostCalculationError(
                "Distance pricing requires valid coordinates for both pickup and dropoff addresses",
                "MISSING_COORDINATES",
                {
                    "pickup_has_coordinates": has_valid_coordinates(details.pickup_address),
                    "dropoff_has_coordinates": has_valid_coordinates(details.dropoff_address),
                },
            )

        distance_km = result.distance_km
        max_distance = self.config.coverage.max_distance_km
        if max_distance and distance_km > max_distance:
            raise CostCalculationError(
                f"Distance {distance_km:.2f} km exceeds service coverage limit of {max_distance} km",
                "DISTANCE_EXCEEDS_COVERAGE",
                {"calculated_distance_km": distance_km, "max_distance_km": max_distance},
            )

        cost = self._round_price(Decimal(str(distance_km)) * Decimal(str(rate)))
        line = None
        if cost > 0:
            line = CostLine(
                description=f"Distance fee ({distance_km:.2f} km × {format_rupiah(rate)})",
                amount=cost,
            )
        return distance_km, cost, line

    def calculate_zone_cost(self, details: OrderDetails):
        pickup_zone = self.zone_resolver.zone_of(details.pickup_address)
        dropoff_zone = self.zone_resolver.zone_of(details.dropoff_address)

        zone_price = next(
            (
                zone
                for zone in self.config.pricing.zones
                if zone.origin_zone.lower() == pickup_zone.lower()
                and zone.destination_zone.lower() == dropoff_zone.lower()
            ),
            None,
        )

        if zone_price is None:
            raise CostCalculationError(
                f"No zone pricing found for route: {pickup_zone} -> {dropoff_zone}",
                "ZONE_PRICE_NOT_FOUND",
                {
                    "pickup_zone": pickup_zone,
                    "dropoff_zone": dropoff_zone,
                    "available_zones": [zone.label for zone in self.config.pricing.zones],
                },
            )

        applied_zone = f"{pickup_zone} -> {dropoff_zone}"
        cost = self._round_price(zone_price.price)
        line = None
        if cost > 0:
            line = CostLine(description=f"Zone fee ({applied_zone})", amount=cost)
        return applied_zone, cost, line

    # ============================================
    # ADD-ON FEES
    # ============================================

    def calculate_per_item_cost(self, details: OrderDetails):
        rate = self.config.per_item_rate
        if not rate:
            return None, Decimal("0"), None

        item_count = 1 if details.quantity is None else details.quantity
        if item_count <= 0:
            return item_count, Decimal("0"), None

        cost = self._round_price(Decimal(item_count) * Decimal(str(rate)))
        line = CostLine(
            description=f"Per item fee ({item_count} × {format_rupiah(rate)})",
            amount=cost,
        )
        return item_count, cost, line

    def calculate_cargo_handling_fee(self, details: OrderDetails):
        if not details.selected_cargo_id:
            return Decimal("0"), None

        cargo = self.config.find_cargo(details.selected_cargo_id)
        fee = self._round_price(cargo.handling_fee or 0)
        if fee <= 0:
            return Decimal("0"), None

        return fee, CostLine(
            description=f"Handling fee {cargo.display_name}", amount=fee
        )

    def calculate_facility_fees(self, details: OrderDetails):
        total = Decimal("0")
        lines = []

        for facility_id in details.selected_facility_ids or []:
            facility = self.config.find_facility(facility_id)
            fee = self._round_price(facility.fee or 0)
            if fee <= 0:
                continue
            total += fee
            lines.append(
                CostLine(description=f"Facility {facility.display_name}", amount=fee)
            )

        return self._round_price(total), lines

    # ============================================
    # SELECTION CHECKS
    # ============================================

    def check_cargo_selection(self, cargo_id: Optional[str]) -> None:
        if not cargo_id:
            return

        if not self.config.allowed_cargo:
            raise CostCalculationError(
                "This service does not support cargo selection",
                "MUATAN_NOT_SUPPORTED",
                {"selected_cargo": cargo_id},
            )

        if self.config.find_cargo(cargo_id) is None:
            raise CostCalculationError(
                f"Selected cargo '{cargo_id}' is not available for this service",
                "INVALID_MUATAN_SELECTION",
                {
                    "selected_cargo": cargo_id,
                    "available_cargo": [c.cargo_id for c in self.config.allowed_cargo],
                },
            )

    def check_facility_selection(self, facility_ids: Optional[List[str]]) -> None:
        if not facility_ids:
            return

        if not self.config.available_facilities:
            raise CostCalculationError(
                "This service does not support facility selection",
                "FASILITAS_NOT_SUPPORTED",
                {"selected_facilities": facility_ids},
            )

        available = [f.facility_id for f in self.config.available_facilities]
        invalid = [facility_id for facility_id in facility_ids if facility_id not in available]
        if invalid:
            raise CostCalculationError(
                f"Selected facilities not available for this service: {', '.join(invalid)}",
                "INVALID_FASILITAS_SELECTION",
                {
                    "invalid_facilities": invalid,
                    "selected_facilities": facility_ids,
                    "available_facilities": available,
                },
            )

    def check_advance_payment(self, amount: Optional[float]) -> None:
        if not amount or amount <= 0:
            return

        talangan = self.config.advance_payment
        if not talangan.enabled:
            raise CostCalculationError(
                "Talangan feature is not enabled for this service",
                "TALANGAN_NOT_ENABLED",
                {"requested_amount": amount},
            )

        if talangan.max_amount and amount > talangan.max_amount:
            raise CostCalculationError(
                f"Talangan amount {format_rupiah(amount)} exceeds maximum limit of "
                f"{format_rupiah(talangan.max_amount)}",
                "TALANGAN_EXCEEDS_LIMIT",
                {"requested_amount": amount, "max_amount": talangan.max_amount},
            )

    # ============================================
    # HELPERS
    # ============================================

    def _round_price(self, value: Any) -> Decimal:
        """Round a monetary value to 2 decimal places"""
        return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# ============================================
# PUBLIC OPERATIONS
# ============================================


def compute_cost(
    service_config: ServiceConfig,
    order_details: OrderDetails,
    zone_resolver: Optional[ZoneResolver] = None,
    distance_calculator: Optional[DistanceCalculator] = None,
) -> Result:
    """
    Returns:
        Success(CostBreakdown) or Failure(CostCalculationError)
    """
    calculator = CostCalculator(service_config, zone_resolver, distance_calculator)
    try:
        return Success(calculator.calculate(order_details))
    except CostCalculationError as e:
        logger.info(msg=f"Cost calculation rejected: {e.code} {e.details}")
        return Failure(e)


@returns_result(CostCalculationError)
def validate_advance_payment(service_config: ServiceConfig, amount: Optional[float]) -> None:
    CostCalculator(service_config).check_advance_payment(amount)


@returns_result(CostCalculationError)
def validate_selected_cargo(service_config: ServiceConfig, cargo_id: Optional[str]) -> None:
    CostCalculator(service_config).check_cargo_selection(cargo_id)


@returns_result(CostCalculationError)
def validate_selected_facilities(
    service_config: ServiceConfig, facility_ids: Optional[List[str]]
) -> None:
    CostCalculator(service_config).check_facility_selection(facility_ids)
