from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class TrustLevel(str, Enum):
    STANDARD = "STANDARD"
    SENSITIVE = "SENSITIVE"
    HIGH_RISK = "HIGH_RISK"


class TrustEvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: TrustLevel = TrustLevel.STANDARD
    reasons: List[str] = []
    requires_receiver_notification: bool = False
    receiver_notification_link: Optional[str] = None
    verification_requirements: List[str] = []


class TrustSummary(BaseModel):
    level: str
    required_actions: List[str]
    notification_required: bool
