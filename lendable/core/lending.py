#!/usr/bin/env python

"""
    Lending state machine for Lendable.

    A lending is created ACTIVE by a committed checkout and moves exactly
    once to RETURNED. Overdue is never stored; it is derived from
    `returned_at` and `due_date` when read.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import datetime
from typing import Optional
from sqlalchemy import select, update, func
from lendable.core import history
from lendable.core.db import transaction
from lendable.core.ledger import Ledger
from lendable.core.blacklist import Blacklist
from lendable.core.policy import Policies, Policy
from lendable.core.penalties import assess, Assessment
from lendable.core.tenancy import Principal, TenantGuard
from lendable.core.models import Lending, LendingStatus, Condition
from lendable.core.utils import utcnow, parse_datetime
from lendable.core.exceptions import (
    AlreadyReturned,
    InvalidDueDate,
    InvalidTransition,
    LoanLimitExceeded,
    NotFound,
    RenewalLimitExceeded,
)

logger = logging.getLogger(__name__)


def as_condition(value) -> Optional[Condition]:
    if value is None or isinstance(value, Condition):
        return value
    return Condition(value)


class Lendings:

    @classmethod
    def load(cls, db, principal: Principal, lending_id: str) -> Lending:
        lending = Lending.get(lending_id, db=db)
        if not lending:
            raise NotFound(f"Lending {lending_id} not found.")
        return TenantGuard.check(principal, lending)

    @classmethod
    def units_on_loan(cls, db, borrower_id, org_id) -> int:
        return db.execute(
            select(func.coalesce(func.sum(Lending.quantity), 0)).where(
                Lending.borrower_id == borrower_id,
                Lending.org_id == org_id,
                Lending.status == LendingStatus.ACTIVE,
            )
        ).scalar_one()

    @classmethod
    def lock_borrower(cls, db, borrower_id, org_id):
        """Serializes checkouts by one borrower until the transaction ends.

        PostgreSQL takes a transaction-scoped advisory lock; SQLite already
        serializes writers once the ledger UPDATE has run.
        """
        if db.get_bind().dialect.name == 'postgresql':
            db.execute(select(func.pg_advisory_xact_lock(
                func.hashtext(f"lendable:{org_id}:{borrower_id}"))))

    @classmethod
    def open(cls, db, principal: Principal, item_id: str, borrower_id: str,
             due_date=None, notes=None, quantity=1, now=None) -> Lending:
        """Checks out `item_id` inside the caller's transaction.

        Any failure leaves the caller to roll back, so the ledger and the
        new lending are committed together or not at all.
        """
        now = now or utcnow()
        item = TenantGuard.check(principal, Ledger.lock(db, item_id))
        policy = Policies.get(db, item.org_id, item.instance_id)

        due_date = parse_datetime(due_date) or now + datetime.timedelta(days=policy.lending_duration_days)
        if due_date < now:
            raise InvalidDueDate(f"Due date {due_date.isoformat()} is in the past.")

        Blacklist.ensure_not_blacklisted(db, borrower_id, item.org_id, item.instance_id, now=now)

        Ledger.reserve(db, item_id, quantity)

        # counted after the write lock so concurrent checkouts of other items see each other
        cls.lock_borrower(db, borrower_id, item.org_id)
        on_loan = cls.units_on_loan(db, borrower_id, item.org_id)
        if on_loan + quantity > policy.max_items_per_user:
            raise LoanLimitExceeded(
                f"User {borrower_id} already has {on_loan} item(s) on loan "
                f"(limit {policy.max_items_per_user}).")

        lending = Lending(
            item_id=item_id,
            borrower_id=borrower_id,
            org_id=item.org_id,
            instance_id=item.instance_id,
            quantity=quantity,
            borrowed_at=now,
            due_date=due_date,
            notes=notes,
        )
        db.add(lending)
        db.flush()
        history.record(
            db, item_id, borrower_id, history.BORROWED,
            lending_id=lending.id, due_date=due_date.isoformat(), quantity=quantity)
        logger.info(f"Lending {lending.id}: item {item_id} checked out to {borrower_id} until {due_date}")
        return lending

    @classmethod
    def checkout(cls, principal: Principal, item_id: str, borrower_id: str,
                 due_date=None, notes=None, quantity=1, db=None, now=None) -> Lending:
        with transaction(db) as db:
            return cls.open(
                db, principal, item_id, borrower_id,
                due_date=due_date, notes=notes, quantity=quantity, now=now)

    @classmethod
    def return_item(cls, principal: Principal, lending_id: str, condition=None,
                    notes=None, db=None, now=None) -> Lending:
        now = now or utcnow()
        condition = as_condition(condition)
        with transaction(db) as db:
            lending = cls.load(db, principal, lending_id)
            if lending.status is LendingStatus.RETURNED:
                raise AlreadyReturned(f"Lending {lending_id} was already returned.")
            policy = Policies.get(db, lending.org_id, lending.instance_id)
            assessment = assess(lending.due_date, now, policy, condition)

            item_id, borrower_id, quantity = lending.item_id, lending.borrower_id, lending.quantity
            org_id, instance_id = lending.org_id, lending.instance_id
            if notes:
                notes = f"{lending.notes}\n{notes}" if lending.notes else notes
            else:
                notes = lending.notes

            lending.transition(
                db, LendingStatus.RETURNED,
                returned_at=now,
                return_condition=condition,
                penalty_amount=assessment.amount,
                penalty_reason=assessment.reason,
                notes=notes,
            )
            Ledger.release(db, item_id, quantity)

            if assessment.blacklist_days > 0 and policy.auto_blacklist_enabled:
                Blacklist.apply_automatic(
                    db, borrower_id, org_id, instance_id,
                    f"Automatic blacklist: {assessment.reason}",
                    assessment.blacklist_days, now=now)

            history.record(
                db, item_id, borrower_id, history.RETURNED,
                lending_id=lending_id, penalty=assessment.amount,
                penalty_reason=assessment.reason, days_late=assessment.days_late,
                quantity=quantity)
            logger.info(f"Lending {lending_id} returned, penalty {assessment.amount} ({assessment.reason})")
        return lending

    @classmethod
    def calculate_penalty(cls, principal: Principal, lending_id: str, condition=None,
                          db=None, now=None) -> Assessment:
        """Previews the penalty without changing anything.

        A returned lending reports what was charged, overrides included;
        an active one reports what returning it at `now` would charge.
        """
        with transaction(db) as db:
            lending = cls.load(db, principal, lending_id)
            policy = Policies.get(db, lending.org_id, lending.instance_id)
            if lending.status is LendingStatus.RETURNED:
                charged = assess(lending.due_date, lending.returned_at, policy, lending.return_condition)
                return charged.model_copy(update={
                    'amount': lending.penalty_amount or 0.0,
                    'reason': lending.penalty_reason,
                    'is_overridden': lending.penalty_overridden,
                })
            return assess(lending.due_date, now or utcnow(), policy, as_condition(condition))

    @classmethod
    def override_penalty(cls, principal: Principal, lending_id: str, amount: float,
                         reason: str, db=None) -> Lending:
        """Replaces the charged penalty; the blacklist is left alone."""
        if amount < 0:
            raise ValueError("penalty amount cannot be negative")
        with transaction(db) as db:
            lending = cls.load(db, principal, lending_id)
            if lending.status is not LendingStatus.RETURNED:
                raise InvalidTransition(f"Cannot override penalty for unreturned lending {lending_id}.")
            previous = lending.penalty_amount
            lending.penalty_amount = amount
            lending.penalty_reason = reason
            lending.penalty_overridden = True
            history.record(
                db, lending.item_id, principal.user_id, history.PENALTY_OVERRIDDEN,
                lending_id=lending_id, previous=previous, penalty=amount, reason=reason)
            logger.info(f"Penalty on lending {lending_id} overridden by {principal.user_id}: {previous} -> {amount}")
        return lending

    @classmethod
    def extend(cls, db, principal: Principal, lending_id: str, due_date=None,
               now=None, policy: Optional[Policy] = None) -> Lending:
        now = now or utcnow()
        lending = cls.load(db, principal, lending_id)
        if lending.status is LendingStatus.RETURNED:
            raise AlreadyReturned(f"Lending {lending_id} was already returned.")
        policy = policy or Policies.get(db, lending.org_id, lending.instance_id)
        renewals = lending.renewal_count
        if renewals >= policy.max_renewals:
            raise RenewalLimitExceeded(
                f"Lending {lending_id} was already renewed {renewals} time(s) "
                f"(limit {policy.max_renewals}).")
        Blacklist.ensure_not_blacklisted(
            db, lending.borrower_id, lending.org_id, lending.instance_id, now=now)

        due_date = parse_datetime(due_date) or lending.due_date + datetime.timedelta(days=policy.lending_duration_days)
        if due_date <= lending.due_date or due_date < now:
            raise InvalidDueDate(f"Due date {due_date.isoformat()} does not extend lending {lending_id}.")

        result = db.execute(
            update(Lending)
            .where(
                Lending.id == lending_id,
                Lending.status == LendingStatus.ACTIVE,
                Lending.renewal_count == renewals,
            )
            .values(due_date=due_date, renewal_count=renewals + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition(f"Lending {lending_id} changed while being renewed.")
        db.expire(lending)
        history.record(
            db, lending.item_id, lending.borrower_id, history.RENEWED,
            lending_id=lending_id, due_date=due_date.isoformat(), renewal=renewals + 1)
        logger.info(f"Lending {lending_id} renewed until {due_date}")
        return lending

    @classmethod
    def renew(cls, principal: Principal, lending_id: str, due_date=None,
              db=None, now=None) -> Lending:
        with transaction(db) as db:
            return cls.extend(db, principal, lending_id, due_date=due_date, now=now)

    @classmethod
    def get(cls, principal: Principal, lending_id: str, db=None) -> Lending:
        with transaction(db) as db:
            return cls.load(db, principal, lending_id)
