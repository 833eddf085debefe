from .geo_schema import AddressDetail, DistanceResult, Point
from .distance_calculator import (
    DistanceCalculator,
    HaversineDistanceCalculator,
    InvalidCoordinate,
    compute_distance,
    default_distance_calculator,
    distance_km,
    has_valid_coordinates,
    is_valid_coordinate,
    order_distance,
)

__all__ = [
    "AddressDetail",
    "DistanceResult",
    "Point",
    "DistanceCalculator",
    "HaversineDistanceCalculator",
    "InvalidCoordinate",
    "compute_distance",
    "default_distance_calculator",
    "distance_km",
    "has_valid_coordinates",
    "is_valid_coordinate",
    "order_distance",
]
