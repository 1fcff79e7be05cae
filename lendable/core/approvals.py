#!/usr/bin/env python

"""
    Approval gate for Lendable.

    When a tenant's policy requires approval, checkout (and extension)
    requests are parked as PENDING approval requests and only reach the
    lending state machine once staff approve them. Reservations are always
    parked; approving one holds the unit by opening the lending. Nothing is reserved
    while a request is pending: competing requests for the last unit are
    settled at approval time, first approved first served.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from typing import NamedTuple, Optional
from lendable.core import history
from lendable.core.db import transaction
from lendable.core.lending import Lendings
from lendable.core.policy import Policies
from lendable.core.tenancy import Principal, TenantGuard
from lendable.core.models import (
    ApprovalRequest,
    ApprovalStatus,
    ApprovalType,
    Item,
    Lending,
)
from lendable.core.utils import utcnow, parse_datetime
from lendable.core.exceptions import InvalidDueDate, NotFound, Unauthorized

logger = logging.getLogger(__name__)

DECISIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)


class Submission(NamedTuple):
    lending: Optional[Lending] = None
    approval: Optional[ApprovalRequest] = None

    @property
    def is_pending(self):
        return self.approval is not None


class Approvals:

    @classmethod
    def load(cls, db, principal: Principal, request_id: str) -> ApprovalRequest:
        approval = ApprovalRequest.get(request_id, db=db)
        if not approval:
            raise NotFound(f"Approval request {request_id} not found.")
        return TenantGuard.check(principal, approval)

    @classmethod
    def submit(cls, principal: Principal, item_id: Optional[str] = None,
               due_date=None, notes=None, type=ApprovalType.LENDING,
               quantity=1, lending_id=None, requester_id=None,
               db=None, now=None) -> Submission:
        """Entry point for checkout and extension requests.

        Without `require_approval` a lending request checks out straight
        away and an extension renews straight away; no approval request is
        stored. Otherwise a PENDING request is created, and for
        reservations one is always created.
        """
        now = now or utcnow()
        type = ApprovalType(type)
        requester_id = requester_id or principal.user_id
        due_date = parse_datetime(due_date)
        with transaction(db) as db:
            if type is ApprovalType.EXTENSION:
                lending = Lendings.load(db, principal, lending_id)
                if lending.borrower_id != requester_id:
                    raise Unauthorized(f"Lending {lending_id} belongs to another borrower.")
                item_id = lending.item_id

            item = Item.get(item_id, db=db)
            if not item:
                raise NotFound(f"Item {item_id} not found.")
            TenantGuard.check(principal, item)
            policy = Policies.get(db, item.org_id, item.instance_id)

            if not policy.require_approval:
                if type is ApprovalType.LENDING:
                    return Submission(lending=Lendings.open(
                        db, principal, item_id, requester_id, due_date=due_date,
                        notes=notes, quantity=quantity, now=now))
                if type is ApprovalType.EXTENSION:
                    return Submission(lending=Lendings.extend(
                        db, principal, lending_id, due_date=due_date, now=now, policy=policy))

            if due_date is not None and due_date < now:
                raise InvalidDueDate(f"Due date {due_date.isoformat()} is in the past.")

            approval = ApprovalRequest(
                item_id=item_id,
                requester_id=requester_id,
                org_id=item.org_id,
                instance_id=item.instance_id,
                type=type,
                status=ApprovalStatus.PENDING,
                request_data={
                    'due_date': due_date.isoformat() if due_date else None,
                    'notes': notes,
                    'quantity': quantity,
                    'lending_id': lending_id,
                },
                created_at=now,
                updated_at=now,
            )
            db.add(approval)
            db.flush()
            history.record(
                db, item_id, requester_id, history.REQUESTED,
                approval_id=approval.id, type=type.value)
            logger.info(f"Approval request {approval.id} ({type.value}) for item {item_id} by {requester_id}")
            return Submission(approval=approval)

    @classmethod
    def decide(cls, principal: Principal, request_id: str, decision,
               notes=None, db=None, now=None) -> ApprovalRequest:
        """Approves or rejects a PENDING request, exactly once.

        Approving a lending or reservation request checks the item out in
        the same transaction. If that checkout fails the decision is rolled back and
        the request stays PENDING for the approver to retry or reject.
        """
        now = now or utcnow()
        decision = ApprovalStatus(decision)
        if decision not in DECISIONS:
            raise ValueError(f"decision must be APPROVED or REJECTED, not {decision.value}")
        with transaction(db) as db:
            approval = cls.load(db, principal, request_id)
            approval.transition(
                db, decision,
                approver_id=principal.user_id,
                approver_notes=notes,
                decided_at=now,
                updated_at=now,
            )
            data = approval.request_data or {}
            if decision is ApprovalStatus.APPROVED:
                if approval.type in (ApprovalType.LENDING, ApprovalType.RESERVATION):
                    lending = Lendings.open(
                        db, principal, approval.item_id, approval.requester_id,
                        due_date=data.get('due_date'), notes=data.get('notes'),
                        quantity=data.get('quantity') or 1, now=now)
                    approval.lending_id = lending.id
                elif approval.type is ApprovalType.EXTENSION:
                    lending = Lendings.extend(
                        db, principal, data['lending_id'],
                        due_date=data.get('due_date'), now=now)
                    approval.lending_id = lending.id
            history.record(
                db, approval.item_id, principal.user_id,
                history.APPROVED if decision is ApprovalStatus.APPROVED else history.REJECTED,
                approval_id=request_id, requester_id=approval.requester_id)
            logger.info(f"Approval request {request_id} {decision.value} by {principal.user_id}")
        return approval

    @classmethod
    def cancel(cls, principal: Principal, request_id: str, db=None, now=None) -> ApprovalRequest:
        """Withdraws a PENDING request; only its requester or staff may."""
        now = now or utcnow()
        with transaction(db) as db:
            approval = cls.load(db, principal, request_id)
            if approval.requester_id != principal.user_id and not principal.is_staff:
                raise Unauthorized(f"Only the requester may cancel approval request {request_id}.")
            approval.transition(db, ApprovalStatus.CANCELLED, updated_at=now)
            history.record(
                db, approval.item_id, principal.user_id, history.CANCELLED,
                approval_id=request_id)
            logger.info(f"Approval request {request_id} cancelled by {principal.user_id}")
        return approval

    @classmethod
    def get(cls, principal: Principal, request_id: str, db=None) -> ApprovalRequest:
        with transaction(db) as db:
            approval = cls.load(db, principal, request_id)
            if approval.requester_id != principal.user_id and not principal.is_staff:
                raise Unauthorized(f"Approval request {request_id} belongs to another user.")
            return approval
