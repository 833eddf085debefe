"""
Order Services Module

- order_placement_service: composes cost + trust checks into a new order
"""

from .order_placement_service import (
    PlacementOutcome,
    estimate_cost,
    new_order_id,
    place_order,
)

__all__ = [
    "PlacementOutcome",
    "estimate_cost",
    "new_order_id",
    "place_order",
]
