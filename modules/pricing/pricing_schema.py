from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from schema.base import Money


class CostLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    amount: Money


class CostMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    distance_km: Optional[float] = None
    applied_zone: Optional[str] = None
    item_count: Optional[int] = None


class CostBreakdown(BaseModel):
    """
    Itemised order cost. `total` equals `subtotal` and the sum of the fee
    fields; `lines` lists only the non-zero fees, in the order applied.
    Amounts stay Decimal so the line items add up to the total exactly.
    """

    model_config = ConfigDict(frozen=True)

    admin_fee: Money = Decimal("0")
    distance_cost: Money = Decimal("0")
    zone_cost: Money = Decimal("0")
    per_item_cost: Money = Decimal("0")
    cargo_handling_fee: Money = Decimal("0")
    facility_fees: Money = Decimal("0")
    lines: List[CostLine] = []
    subtotal: Money = Decimal("0")
    total: Money = Decimal("0")
    metadata: CostMetadata
