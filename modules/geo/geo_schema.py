from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Point(BaseModel):
    lat: float
    lon: float


class AddressDetail(BaseModel):
    """Pickup or dropoff address: free text plus optional coordinates"""

    text: str = Field(..., min_length=1)
    lat: Optional[float] = None
    lon: Optional[float] = None
    notes: Optional[str] = None


class DistanceResult(BaseModel):
    distance_km: float
    method: str = "haversine"
    metadata: Dict[str, Any] = {}
