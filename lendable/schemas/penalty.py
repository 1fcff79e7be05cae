from typing import Optional
from pydantic import BaseModel
from lendable.core.penalties import PenaltyType


class Penalty(BaseModel):
    type: PenaltyType
    amount: float
    reason: Optional[str] = None
    days_late: int = 0
    blacklist_days: int = 0
    is_overridden: bool = False

    class Config:
        from_attributes = True
