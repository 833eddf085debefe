from decimal import Decimal

import pytest

from modules.geo import DistanceCalculator, DistanceResult, InvalidCoordinate
from modules.orders.order_schema import OrderDetails
from modules.pricing import (
    CostCalculationError,
    ZoneResolver,
    compute_cost,
    validate_advance_payment,
    validate_selected_cargo,
    validate_selected_facilities,
)
from modules.service_config import ServiceConfig, validate_service_config

from .factories import per_km_config_data, zone_config_data


class FixedDistanceCalculator(DistanceCalculator):
    def __init__(self, distance):
        self.distance = distance

    def calculate(self, point_a, point_b):
        return DistanceResult(distance_km=self.distance, method="fixed")


def details(data, **overrides):
    return OrderDetails.model_validate({**data, **overrides})


def assert_consistent(breakdown):
    fee_sum = (
        breakdown.admin_fee
        + breakdown.distance_cost
        + breakdown.zone_cost
        + breakdown.per_item_cost
        + breakdown.cargo_handling_fee
        + breakdown.facility_fees
    )
    assert breakdown.total == fee_sum
    assert breakdown.subtotal == breakdown.total
    assert sum(line.amount for line in breakdown.lines) == breakdown.total


# ============================================
# PER_KM
# ============================================


def test_jakarta_to_bandung_per_km(per_km_config, order_details_data):
    result = compute_cost(per_km_config, details(order_details_data))

    assert result.is_success
    breakdown = result.value
    assert breakdown.metadata.method == "per_km"
    assert breakdown.metadata.distance_km == pytest.approx(116.24, abs=0.5)
    assert float(breakdown.distance_cost) == pytest.approx(581200, rel=0.005)
    assert float(breakdown.distance_cost) == pytest.approx(
        breakdown.metadata.distance_km * 5000, abs=0.01
    )
    assert breakdown.total == 2000 + breakdown.distance_cost
    assert [line.description for line in breakdown.lines][0] == "Admin fee"
    assert breakdown.lines[1].description.startswith("Distance fee (116.")
    assert "Rp 5,000" in breakdown.lines[1].description
    assert_consistent(breakdown)


def test_missing_coordinates(per_km_config, order_details_data):
    data = dict(order_details_data)
    data["dropoff_address"] = {"text": "Bandung"}

    result = compute_cost(per_km_config, details(data))

    assert not result.is_success
    assert result.code == "MISSING_COORDINATES"
    assert result.error.details == {
        "pickup_has_coordinates": True,
        "dropoff_has_coordinates": False,
    }


def test_distance_over_coverage_fails(order_details_data):
    config = validate_service_config(
        per_km_config_data(coverage={"max_distance_km": 100})
    ).unwrap()

    result = compute_cost(config, details(order_details_data))

    assert result.code == "DISTANCE_EXCEEDS_COVERAGE"
    assert result.error.details["max_distance_km"] == 100
    assert result.error.details["calculated_distance_km"] > 100


def test_coverage_boundary_is_inclusive(order_details_data):
    config = validate_service_config(
        per_km_config_data(coverage={"max_distance_km": 50})
    ).unwrap()

    at_limit = compute_cost(config, details(order_details_data), distance_calculator=FixedDistanceCalculator(50.0))
    over_limit = compute_cost(config, details(order_details_data), distance_calculator=FixedDistanceCalculator(50.01))

    assert at_limit.is_success
    assert at_limit.value.distance_cost == 250000
    assert over_limit.code == "DISTANCE_EXCEEDS_COVERAGE"


def test_distance_calculator_rejecting_coordinates_is_a_failure(per_km_config, order_details_data):
    class StrictCalculator(DistanceCalculator):
        def calculate(self, point_a, point_b):
            raise InvalidCoordinate("Point outside routing area", {"lat": point_a.lat})

    result = compute_cost(
        per_km_config, details(order_details_data), distance_calculator=StrictCalculator()
    )

    assert not result.is_success
    assert result.code == "INVALID_COORDINATE"
    assert result.error.details == {"lat": order_details_data["pickup_address"]["lat"]}
    assert isinstance(result.error, CostCalculationError)


def test_zero_distance_emits_no_distance_line(per_km_config, order_details_data):
    data = dict(order_details_data)
    data["dropoff_address"] = dict(data["pickup_address"])

    breakdown = compute_cost(per_km_config, details(data)).unwrap()

    assert breakdown.distance_cost == 0
    assert [line.description for line in breakdown.lines] == ["Admin fee"]
    assert breakdown.total == 2000


def test_per_km_without_rate_is_invalid_pricing(order_details_data):
    config = ServiceConfig.model_validate(
        per_km_config_data(pricing={"strategy": "PER_KM"})
    )

    result = compute_cost(config, details(order_details_data))

    assert result.code == "INVALID_PRICING_CONFIG"


def test_money_is_rounded_half_up(order_details_data):
    config = validate_service_config(
        per_km_config_data(pricing={"strategy": "PER_KM", "rate_per_km": 0.5})
    ).unwrap()

    breakdown = compute_cost(
        config, details(order_details_data), distance_calculator=FixedDistanceCalculator(0.01)
    ).unwrap()

    # 0.005 rounds up
    assert breakdown.distance_cost == Decimal("0.01")


def test_fractional_fees_add_up_exactly(order_details_data):
    config = validate_service_config(per_km_config_data(admin_fee=0.1, per_item_rate=0.2)).unwrap()

    breakdown = compute_cost(
        config, details(order_details_data), distance_calculator=FixedDistanceCalculator(0)
    ).unwrap()

    assert [line.amount for line in breakdown.lines] == [Decimal("0.10"), Decimal("0.20")]
    assert breakdown.total == Decimal("0.30")
    assert_consistent(breakdown)


def test_breakdown_serialises_money_as_numbers(order_details_data):
    config = validate_service_config(per_km_config_data(admin_fee=0.1, per_item_rate=0.2)).unwrap()
    breakdown = compute_cost(
        config, details(order_details_data), distance_calculator=FixedDistanceCalculator(0)
    ).unwrap()

    data = breakdown.model_dump(mode="json")

    assert data["total"] == 0.3
    assert data["lines"][0] == {"description": "Admin fee", "amount": 0.1}


# ============================================
# ZONE_PAIR
# ============================================


def test_zone_pair_pricing(zone_config):
    data = {
        "pickup_address": {"text": "Jl. Ijen, Kota Malang"},
        "dropoff_address": {"text": "Jl. Diponegoro, Batu"},
    }

    breakdown = compute_cost(zone_config, details(data)).unwrap()

    assert breakdown.zone_cost == 25000
    assert breakdown.total == 26500
    assert breakdown.metadata.method == "zone_based"
    assert breakdown.metadata.applied_zone == "MALANG_KOTA -> KOTA_BATU"
    assert breakdown.lines[1].description == "Zone fee (MALANG_KOTA -> KOTA_BATU)"
    assert_consistent(breakdown)


def test_zone_lookup_is_case_insensitive():
    config = validate_service_config(
        zone_config_data(
            pricing={
                "strategy": "ZONE_PAIR",
                "zones": [{"origin_zone": "jakarta", "destination_zone": "Bandung", "price": 90000}],
            }
        )
    ).unwrap()
    data = {"pickup_address": {"text": "Jakarta"}, "dropoff_address": {"text": "Bandung"}}

    assert compute_cost(config, details(data)).unwrap().zone_cost == 90000


def test_zone_pair_is_ordered(zone_config):
    data = {
        "pickup_address": {"text": "Jl. Diponegoro, Batu"},
        "dropoff_address": {"text": "Jl. Ijen, Kota Malang"},
    }

    result = compute_cost(zone_config, details(data))

    assert result.code == "ZONE_PRICE_NOT_FOUND"
    assert result.error.details["pickup_zone"] == "KOTA_BATU"
    assert result.error.details["dropoff_zone"] == "MALANG_KOTA"
    assert result.error.details["available_zones"] == [
        "MALANG_KOTA -> KOTA_BATU",
        "KAB_MALANG -> MALANG_KOTA",
    ]


def test_zone_pair_with_empty_table_is_invalid_pricing():
    config = ServiceConfig.model_validate(
        zone_config_data(pricing={"strategy": "ZONE_PAIR", "zones": []})
    )
    data = {"pickup_address": {"text": "Jakarta"}, "dropoff_address": {"text": "Bandung"}}

    assert compute_cost(config, details(data)).code == "INVALID_PRICING_CONFIG"


def test_custom_zone_resolver(zone_config):
    class AlwaysMalangToBatu(ZoneResolver):
        def zone_of(self, address):
            return "MALANG_KOTA" if "start" in address.text else "KOTA_BATU"

    data = {"pickup_address": {"text": "start"}, "dropoff_address": {"text": "end"}}

    result = compute_cost(zone_config, details(data), zone_resolver=AlwaysMalangToBatu())

    assert result.unwrap().zone_cost == 25000


# ============================================
# ADD-ONS
# ============================================


def test_per_item_defaults_to_one_item(order_details_data):
    config = validate_service_config(per_km_config_data(per_item_rate=1500)).unwrap()

    breakdown = compute_cost(
        config, details(order_details_data), distance_calculator=FixedDistanceCalculator(10)
    ).unwrap()

    assert breakdown.per_item_cost == 1500
    assert breakdown.metadata.item_count == 1
    assert breakdown.metadata.method == "per_km+per_item"
    assert_consistent(breakdown)


def test_per_item_with_quantity(order_details_data):
    config = validate_service_config(per_km_config_data(per_item_rate=1500)).unwrap()

    breakdown = compute_cost(
        config,
        details(order_details_data, quantity=4),
        distance_calculator=FixedDistanceCalculator(10),
    ).unwrap()

    assert breakdown.per_item_cost == 6000
    assert breakdown.lines[2].description == "Per item fee (4 × Rp 1,500)"
    assert breakdown.total == 2000 + 50000 + 6000


def test_zero_quantity_emits_no_per_item_line(order_details_data):
    config = validate_service_config(per_km_config_data(per_item_rate=1500)).unwrap()

    breakdown = compute_cost(
        config,
        details(order_details_data, quantity=0),
        distance_calculator=FixedDistanceCalculator(10),
    ).unwrap()

    assert breakdown.per_item_cost == 0
    assert len(breakdown.lines) == 2


def test_cargo_and_facility_fees(per_km_config, order_details_data):
    breakdown = compute_cost(
        per_km_config,
        details(
            order_details_data,
            selected_cargo_id="FRAGILE",
            selected_facility_ids=["HELMET", "COOLER", "BAG"],
        ),
        distance_calculator=FixedDistanceCalculator(10),
    ).unwrap()

    assert breakdown.cargo_handling_fee == 3000
    assert breakdown.facility_fees == 3500
    assert [line.description for line in breakdown.lines] == [
        "Admin fee",
        "Distance fee (10.00 km × Rp 5,000)",
        "Handling fee Barang Pecah Belah",
        "Facility Helm",
        "Facility Cooler Box",
    ]
    assert breakdown.total == 2000 + 50000 + 3000 + 3500
    assert_consistent(breakdown)


def test_cargo_without_handling_fee_adds_no_line(per_km_config, order_details_data):
    breakdown = compute_cost(
        per_km_config,
        details(order_details_data, selected_cargo_id="DOCS"),
        distance_calculator=FixedDistanceCalculator(10),
    ).unwrap()

    assert breakdown.cargo_handling_fee == 0
    assert all(line.amount > 0 for line in breakdown.lines)


def test_unknown_cargo_is_rejected(per_km_config, order_details_data):
    result = compute_cost(per_km_config, details(order_details_data, selected_cargo_id="LIVESTOCK"))

    assert result.code == "INVALID_MUATAN_SELECTION"
    assert result.error.details["available_cargo"] == ["FRAGILE", "DOCS"]


def test_unknown_facility_is_rejected(per_km_config, order_details_data):
    result = compute_cost(
        per_km_config, details(order_details_data, selected_facility_ids=["HELMET", "JACKET"])
    )

    assert result.code == "INVALID_FASILITAS_SELECTION"
    assert result.error.details["invalid_facilities"] == ["JACKET"]


def test_selection_validators(per_km_config, zone_config):
    assert validate_selected_cargo(per_km_config, None).is_success
    assert validate_selected_cargo(per_km_config, "DOCS").is_success
    assert validate_selected_cargo(zone_config, "DOCS").code == "MUATAN_NOT_SUPPORTED"
    assert validate_selected_facilities(per_km_config, []).is_success
    assert validate_selected_facilities(zone_config, ["HELMET"]).code == "FASILITAS_NOT_SUPPORTED"


# ============================================
# TALANGAN
# ============================================


def test_advance_payment_within_limit(per_km_config):
    assert validate_advance_payment(per_km_config, 25000).is_success
    assert validate_advance_payment(per_km_config, 50000).is_success


def test_advance_payment_over_limit(per_km_config):
    result = validate_advance_payment(per_km_config, 60000)

    assert result.code == "TALANGAN_EXCEEDS_LIMIT"
    assert result.error.details == {"requested_amount": 60000, "max_amount": 50000}
    assert isinstance(result.error, CostCalculationError)


def test_advance_payment_feature_disabled(zone_config):
    assert validate_advance_payment(zone_config, 0).is_success
    assert validate_advance_payment(zone_config, None).is_success
    assert validate_advance_payment(zone_config, 10000).code == "TALANGAN_NOT_ENABLED"
