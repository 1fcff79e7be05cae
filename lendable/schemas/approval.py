#!/usr/bin/env python
"""
    Approval Schemas for Lendable.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from lendable.core.models import ApprovalStatus, ApprovalType
from lendable.schemas.lending import Lending


class Approval(BaseModel):

    id: str
    item_id: str
    requester_id: str
    org_id: int
    instance_id: Optional[int] = None
    type: ApprovalType
    status: ApprovalStatus
    request_data: Dict[str, Any] = {}
    approver_id: Optional[str] = None
    approver_notes: Optional[str] = None
    lending_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApprovalSubmitRequest(BaseModel):
    item_id: Optional[str] = None
    type: ApprovalType = ApprovalType.LENDING
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    quantity: int = Field(1, ge=1)
    lending_id: Optional[str] = None
    requester_id: Optional[str] = None


class DecisionRequest(BaseModel):
    decision: ApprovalStatus
    notes: Optional[str] = None


class SubmissionResult(BaseModel):
    """Either the lending created straight away or the pending request."""
    lending: Optional[Lending] = None
    approval: Optional[Approval] = None
