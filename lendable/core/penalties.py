#!/usr/bin/env python

"""
    Penalty & blacklist calculation for Lendable.

    `assess` is a pure function of the due date, the return time, the
    declared condition and the tenant policy. Callers persist its result.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
import datetime
from typing import Optional
from pydantic import BaseModel
from lendable.core.models import Condition
from lendable.core.policy import Policy

BLACKLIST_DAYS_PER_LATE_DAY = 3
MAX_LATE_BLACKLIST_DAYS = 30
LOST_BLACKLIST_DAYS = 30
DAMAGED_BLACKLIST_DAYS = 14


class PenaltyType(str, enum.Enum):
    NONE = 'none'
    LATE = 'late'
    LOST = 'lost'
    DAMAGED = 'damaged'


class Assessment(BaseModel):
    type: PenaltyType = PenaltyType.NONE
    amount: float = 0.0
    reason: Optional[str] = None
    days_late: int = 0
    blacklist_days: int = 0
    is_overridden: bool = False


def days_late(due_date: datetime.datetime, returned_at: datetime.datetime) -> int:
    return max(0, (returned_at - due_date) // datetime.timedelta(days=1))


def assess(due_date: datetime.datetime, returned_at: datetime.datetime,
           policy: Policy, condition: Optional[Condition] = None) -> Assessment:
    late = days_late(due_date, returned_at)
    if condition is Condition.LOST:
        return Assessment(
            type=PenaltyType.LOST,
            amount=policy.lost_item_fee,
            reason="Lost item",
            days_late=late,
            blacklist_days=LOST_BLACKLIST_DAYS,
        )
    if condition is Condition.DAMAGED:
        return Assessment(
            type=PenaltyType.DAMAGED,
            amount=policy.damaged_item_fee,
            reason="Damaged item",
            days_late=late,
            blacklist_days=DAMAGED_BLACKLIST_DAYS,
        )
    if late > 0:
        return Assessment(
            type=PenaltyType.LATE,
            amount=round(late * policy.late_penalty_per_day, 2),
            reason=f"Late return: {late} days",
            days_late=late,
            blacklist_days=min(late * BLACKLIST_DAYS_PER_LATE_DAY, MAX_LATE_BLACKLIST_DAYS),
        )
    return Assessment()
