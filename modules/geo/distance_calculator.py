"""
Distance Calculator

Straight-line (great-circle) distance between two coordinates using the
haversine formula:

    a = sin²(Δφ/2) + cos φ1 · cos φ2 · sin²(Δλ/2)
    c = 2 · atan2(√a, √(1−a))
    d = R · c        (R = 6371 km)

Road routing is not attempted. HaversineDistanceCalculator is the only
implementation of the DistanceCalculator interface; a routing-engine backed
one can be passed to the cost calculator instead.
"""

import math
from numbers import Real
from typing import Any, Mapping, Optional, Union

from utils.result import EngineError, returns_result

from .geo_schema import AddressDetail, DistanceResult, Point


EARTH_RADIUS_KM = 6371

PointLike = Union[Point, Mapping[str, Any]]


class InvalidCoordinate(EngineError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "INVALID_COORDINATE", details)


def _coordinates(point: PointLike):
    if isinstance(point, Point):
        return point.lat, point.lon
    if isinstance(point, Mapping):
        return point.get("lat"), point.get("lon")
    return getattr(point, "lat", None), getattr(point, "lon", None)


def is_valid_coordinate(lat: Any, lon: Any) -> bool:
    """Latitude in [-90, 90], longitude in [-180, 180], both real numbers"""
    for value in (lat, lon):
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if math.isnan(value):
            return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def distance_km(point_a: PointLike, point_b: PointLike) -> float:
    """
    Great-circle distance in kilometres between two points.

    Raises:
        InvalidCoordinate: if either point is out of range or non-numeric
    """
    lat1, lon1 = _coordinates(point_a)
    lat2, lon2 = _coordinates(point_b)

    if not is_valid_coordinate(lat1, lon1) or not is_valid_coordinate(lat2, lon2):
        raise InvalidCoordinate(
            "Invalid coordinates provided",
            {
                "point_a": {"lat": lat1, "lon": lon1},
                "point_b": {"lat": lat2, "lon": lon2},
            },
        )

    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


@returns_result(InvalidCoordinate)
def compute_distance(point_a: PointLike, point_b: PointLike) -> float:
    """distance_km as a Result: Success(km) or Failure(InvalidCoordinate)"""
    return distance_km(point_a, point_b)


class DistanceCalculator:
    """Interface for distance calculation implementations"""

    def calculate(self, point_a: PointLike, point_b: PointLike) -> DistanceResult:
        raise NotImplementedError


class HaversineDistanceCalculator(DistanceCalculator):
    def calculate(self, point_a: PointLike, point_b: PointLike) -> DistanceResult:
        return DistanceResult(
            distance_km=distance_km(point_a, point_b),
            method="haversine",
            metadata={
                "note": "Straight-line distance, not actual route distance",
                "earth_radius_km": EARTH_RADIUS_KM,
            },
        )


default_distance_calculator = HaversineDistanceCalculator()


def has_valid_coordinates(address: AddressDetail) -> bool:
    return (
        address.lat is not None
        and address.lon is not None
        and is_valid_coordinate(address.lat, address.lon)
    )


def order_distance(
    pickup: AddressDetail,
    dropoff: AddressDetail,
    calculator: Optional[DistanceCalculator] = None,
) -> Optional[DistanceResult]:
    """
    Distance between the pickup and dropoff of an order.

    Returns None (distance unknown) when either address lacks valid coordinates.
    """
    if not has_valid_coordinates(pickup) or not has_valid_coordinates(dropoff):
        return None

    calculator = calculator or default_distance_calculator
    return calculator.calculate(
        Point(lat=pickup.lat, lon=pickup.lon),
        Point(lat=dropoff.lat, lon=dropoff.lon),
    )
