#!/usr/bin/env python
"""
    Lending Schemas for Lendable,
    the lending as returned by the API and the bodies that change it.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from lendable.core.models import LendingStatus, Condition


class Lending(BaseModel):

    id: str
    item_id: str
    borrower_id: str
    org_id: int
    instance_id: Optional[int] = None
    status: LendingStatus
    quantity: int = 1
    borrowed_at: datetime
    due_date: datetime
    returned_at: Optional[datetime] = None
    renewal_count: int = 0
    return_condition: Optional[Condition] = None
    penalty_amount: Optional[float] = None
    penalty_reason: Optional[str] = None
    penalty_overridden: bool = False
    notes: Optional[str] = None
    overdue: bool = False

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "2f1c6f0e-0c59-4c57-9a77-5a0b6f0f4e1d",
                "item_id": "6b0d1c3a-8f8e-4f36-9d7b-3f6a2f0c7a10",
                "borrower_id": "patron-42",
                "org_id": 1,
                "instance_id": None,
                "status": "active",
                "quantity": 1,
                "borrowed_at": "2026-03-01T10:00:00",
                "due_date": "2026-03-15T10:00:00",
                "renewal_count": 0,
                "overdue": False
            }
        }


class CheckoutRequest(BaseModel):
    item_id: str
    borrower_id: Optional[str] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    quantity: int = Field(1, ge=1)


class ReturnRequest(BaseModel):
    condition: Optional[Condition] = None
    notes: Optional[str] = None


class RenewRequest(BaseModel):
    due_date: Optional[datetime] = None


class PenaltyOverrideRequest(BaseModel):
    amount: float = Field(..., ge=0)
    reason: str
