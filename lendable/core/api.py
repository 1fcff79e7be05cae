#!/usr/bin/env python

"""
    Lendable API,
    the single entry point the routes call. Role checks live here; tenant
    checks and state changes live in the components it delegates to.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

from typing import Optional
from lendable.core import history
from lendable.core.db import transaction
from lendable.core.lending import Lendings
from lendable.core.approvals import Approvals, Submission
from lendable.core.blacklist import Blacklist
from lendable.core.policy import Policies, Policy
from lendable.core.tenancy import Principal, STAFF_ROLES, requires_role
from lendable.core.models import ApprovalType
from lendable.core.exceptions import Unauthorized


class LendableAPI:

    HISTORY_LIMIT = 100

    @classmethod
    def _owns(cls, principal: Principal, user_id: str):
        if not principal.is_staff and principal.user_id != user_id:
            raise Unauthorized(f"User {principal.user_id} may not act for {user_id}.")

    @classmethod
    def checkout(cls, principal: Principal, item_id: str, borrower_id: Optional[str] = None,
                 due_date=None, notes=None, quantity=1, db=None, now=None) -> Submission:
        """Staff check items out directly; borrowers go through the approval gate."""
        borrower_id = borrower_id or principal.user_id
        cls._owns(principal, borrower_id)
        if principal.is_staff:
            return Submission(lending=Lendings.checkout(
                principal, item_id, borrower_id, due_date=due_date,
                notes=notes, quantity=quantity, db=db, now=now))
        return Approvals.submit(
            principal, item_id, due_date=due_date, notes=notes,
            type=ApprovalType.LENDING, quantity=quantity,
            requester_id=borrower_id, db=db, now=now)

    @classmethod
    def return_item(cls, principal: Principal, lending_id: str, condition=None,
                    notes=None, db=None, now=None):
        requires_role(principal, *STAFF_ROLES)
        return Lendings.return_item(
            principal, lending_id, condition=condition, notes=notes, db=db, now=now)

    @classmethod
    def get_lending(cls, principal: Principal, lending_id: str, db=None):
        lending = Lendings.get(principal, lending_id, db=db)
        cls._owns(principal, lending.borrower_id)
        return lending

    @classmethod
    def calculate_penalty(cls, principal: Principal, lending_id: str, condition=None,
                          db=None, now=None):
        cls.get_lending(principal, lending_id, db=db)
        return Lendings.calculate_penalty(
            principal, lending_id, condition=condition, db=db, now=now)

    @classmethod
    def override_penalty(cls, principal: Principal, lending_id: str, amount: float,
                         reason: str, db=None):
        requires_role(principal, *STAFF_ROLES)
        return Lendings.override_penalty(principal, lending_id, amount, reason, db=db)

    @classmethod
    def renew(cls, principal: Principal, lending_id: str, due_date=None,
              db=None, now=None) -> Submission:
        """Staff renew directly; a borrower's renewal is an extension request."""
        if principal.is_staff:
            return Submission(lending=Lendings.renew(
                principal, lending_id, due_date=due_date, db=db, now=now))
        return Approvals.submit(
            principal, due_date=due_date, type=ApprovalType.EXTENSION,
            lending_id=lending_id, db=db, now=now)

    @classmethod
    def submit_approval(cls, principal: Principal, item_id: Optional[str] = None,
                        due_date=None, notes=None, type=ApprovalType.LENDING,
                        quantity=1, lending_id=None, requester_id=None,
                        db=None, now=None) -> Submission:
        requester_id = requester_id or principal.user_id
        cls._owns(principal, requester_id)
        return Approvals.submit(
            principal, item_id, due_date=due_date, notes=notes, type=type,
            quantity=quantity, lending_id=lending_id, requester_id=requester_id,
            db=db, now=now)

    @classmethod
    def decide_approval(cls, principal: Principal, request_id: str, decision,
                        notes=None, db=None, now=None):
        requires_role(principal, *STAFF_ROLES)
        return Approvals.decide(principal, request_id, decision, notes=notes, db=db, now=now)

    @classmethod
    def cancel_approval(cls, principal: Principal, request_id: str, db=None, now=None):
        return Approvals.cancel(principal, request_id, db=db, now=now)

    @classmethod
    def get_approval(cls, principal: Principal, request_id: str, db=None):
        return Approvals.get(principal, request_id, db=db)

    @classmethod
    def blacklist_add(cls, principal: Principal, user_id: str, reason: str, days: int,
                      db=None, now=None):
        requires_role(principal, *STAFF_ROLES)
        if days < 1:
            raise ValueError("blacklist duration must be at least one day")
        return Blacklist.add(principal, user_id, reason, days, db=db, now=now)

    @classmethod
    def blacklist_remove(cls, principal: Principal, entry_id: str, db=None, now=None):
        requires_role(principal, *STAFF_ROLES)
        return Blacklist.remove(principal, entry_id, db=db, now=now)

    @classmethod
    def blacklist_status(cls, principal: Principal, user_id: str, db=None, now=None):
        cls._owns(principal, user_id)
        return Blacklist.status(principal, user_id, db=db, now=now)

    @classmethod
    def get_policy(cls, principal: Principal, db=None) -> Policy:
        with transaction(db) as db:
            return Policies.for_principal(db, principal)

    @classmethod
    def item_history(cls, principal: Principal, item_id: str, limit: Optional[int] = None, db=None):
        requires_role(principal, *STAFF_ROLES)
        return history.for_item(principal, item_id, limit=limit or cls.HISTORY_LIMIT, db=db)
