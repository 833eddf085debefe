"""
Service Configuration Schemas

A Mitra authors one ServiceConfig per service. Pricing is a closed tagged
union on `strategy`:

- PER_KM     distance × rate_per_km
- ZONE_PAIR  fixed price per (origin zone, destination zone)

`per_item_rate` is an optional add-on on top of either strategy.
"""

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated


class PricingStrategy(str, Enum):
    PER_KM = "PER_KM"
    ZONE_PAIR = "ZONE_PAIR"


class BusinessModel(str, Enum):
    USAHA_SENDIRI = "USAHA_SENDIRI"
    PUBLIC_3RD_PARTY = "PUBLIC_3RD_PARTY"


class ZonePrice(BaseModel):
    origin_zone: str = Field(..., min_length=1)
    destination_zone: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)

    @property
    def label(self) -> str:
        return f"{self.origin_zone} -> {self.destination_zone}"


class PerKmPricing(BaseModel):
    strategy: Literal["PER_KM"] = "PER_KM"
    rate_per_km: Optional[float] = Field(None, ge=0)


class ZonePairPricing(BaseModel):
    strategy: Literal["ZONE_PAIR"] = "ZONE_PAIR"
    zones: List[ZonePrice] = []


PricingConfig = Annotated[
    Union[PerKmPricing, ZonePairPricing], Field(discriminator="strategy")
]


class CoverageConfig(BaseModel):
    max_distance_km: Optional[float] = Field(None, ge=0)
    cities: List[str] = []


class CargoType(BaseModel):
    """Muatan: a kind of load the service accepts"""

    cargo_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    handling_fee: Optional[float] = Field(None, ge=0)


class Facility(BaseModel):
    """Fasilitas: optional equipment the orderer can add"""

    facility_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    fee: Optional[float] = Field(None, ge=0)


class AdvancePaymentConfig(BaseModel):
    """Talangan: the driver fronts money on behalf of the orderer"""

    enabled: bool = False
    max_amount: Optional[float] = Field(None, ge=0)


class ServiceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    service_type_alias: str = "Layanan"
    business_model: BusinessModel = BusinessModel.PUBLIC_3RD_PARTY
    admin_fee: float = Field(0, ge=0)
    pricing: PricingConfig
    per_item_rate: Optional[float] = Field(None, ge=0)
    coverage: CoverageConfig = CoverageConfig()
    allowed_cargo: List[CargoType] = []
    available_facilities: List[Facility] = []
    advance_payment: AdvancePaymentConfig = AdvancePaymentConfig()
    is_valuable_by_default: bool = False

    @property
    def strategy(self) -> PricingStrategy:
        return PricingStrategy(self.pricing.strategy)

    @property
    def is_public(self) -> bool:
        return self.business_model == BusinessModel.PUBLIC_3RD_PARTY

    def find_cargo(self, cargo_id: str) -> Optional[CargoType]:
        return next((c for c in self.allowed_cargo if c.cargo_id == cargo_id), None)

    def find_facility(self, facility_id: str) -> Optional[Facility]:
        return next(
            (f for f in self.available_facilities if f.facility_id == facility_id),
            None,
        )
