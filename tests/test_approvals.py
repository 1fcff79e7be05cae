#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_approvals
    ~~~~~~~~~~~~~~~~~~~~

    The approval gate: submit, decide exactly once, cancel.

    :copyright: (c) 2026 by Authors.
    :license: see LICENSE for more details.
"""

import datetime
import pytest
from lendable.core.approvals import Approvals
from lendable.core.lending import Lendings
from lendable.core.models import (
    ApprovalRequest,
    ApprovalStatus,
    ApprovalType,
    Lending,
    LendingStatus,
)
from lendable.core.exceptions import (
    InsufficientAvailability,
    InvalidDueDate,
    InvalidTransition,
    TenantMismatch,
    Unauthorized,
)

NOW = datetime.datetime(2026, 3, 1, 12, 0, 0)
DAY = datetime.timedelta(days=1)


@pytest.fixture
def gated(set_policy):
    set_policy(require_approval=True)


def submit(db, principal, item, **kwargs):
    kwargs.setdefault("now", NOW)
    return Approvals.submit(principal, item.id, db=db, **kwargs)


def test_submit_without_approval_checks_out_directly(db_session, borrower, item):
    result = submit(db_session, borrower, item, due_date=NOW + 5 * DAY)
    assert not result.is_pending
    assert result.lending.status is LendingStatus.ACTIVE
    assert result.lending.borrower_id == "patron-1"
    assert item.available_count == 0
    assert db_session.query(ApprovalRequest).count() == 0


def test_submit_with_approval_leaves_catalog_alone(db_session, borrower, item, gated):
    result = submit(db_session, borrower, item, due_date=NOW + 5 * DAY, notes="for the workshop")
    assert result.is_pending
    approval = result.approval
    assert approval.status is ApprovalStatus.PENDING
    assert approval.type is ApprovalType.LENDING
    assert approval.requester_id == "patron-1"
    assert approval.request_data["due_date"] == (NOW + 5 * DAY).isoformat()
    assert approval.request_data["notes"] == "for the workshop"
    assert item.available_count == 1
    assert db_session.query(Lending).count() == 0


def test_submit_past_due_date(db_session, borrower, item, gated):
    with pytest.raises(InvalidDueDate):
        submit(db_session, borrower, item, due_date=NOW - DAY)


def test_submit_other_tenant(db_session, item, gated, other_org_staff):
    with pytest.raises(TenantMismatch):
        submit(db_session, other_org_staff, item)


def test_reservation_is_always_pending(db_session, borrower, item):
    result = submit(db_session, borrower, item, type="reservation")
    assert result.approval.type is ApprovalType.RESERVATION
    assert item.available_count == 1


def test_approved_reservation_holds_the_unit(db_session, borrower, staff, item):
    approval = submit(
        db_session, borrower, item, type="reservation", due_date=NOW + 3 * DAY).approval
    decided = Approvals.decide(staff, approval.id, "APPROVED", db=db_session, now=NOW + DAY)
    assert decided.lending_id is not None
    assert decided.lending.status is LendingStatus.ACTIVE
    assert decided.lending.due_date == NOW + 3 * DAY
    assert item.available_count == 0


def test_rejected_reservation_holds_nothing(db_session, borrower, staff, item):
    approval = submit(db_session, borrower, item, type="reservation").approval
    Approvals.decide(staff, approval.id, "REJECTED", db=db_session, now=NOW)
    assert item.available_count == 1
    assert db_session.query(Lending).count() == 0


def test_approval_round_trip(db_session, borrower, staff, item, gated):
    approval = submit(db_session, borrower, item, due_date=NOW + 5 * DAY).approval
    decided = Approvals.decide(
        staff, approval.id, "APPROVED", notes="ok", db=db_session, now=NOW + DAY)
    assert decided.status is ApprovalStatus.APPROVED
    assert decided.approver_id == "staff-1"
    assert decided.approver_notes == "ok"
    assert decided.decided_at == NOW + DAY

    lending = decided.lending
    assert lending.status is LendingStatus.ACTIVE
    assert lending.borrower_id == "patron-1"
    assert lending.due_date == NOW + 5 * DAY
    assert item.available_count == 0


def test_reject_has_no_catalog_effect(db_session, borrower, staff, item, gated):
    approval = submit(db_session, borrower, item).approval
    decided = Approvals.decide(staff, approval.id, ApprovalStatus.REJECTED, db=db_session, now=NOW)
    assert decided.status is ApprovalStatus.REJECTED
    assert decided.lending_id is None
    assert item.available_count == 1


def test_decide_twice(db_session, borrower, staff, item, gated):
    approval = submit(db_session, borrower, item).approval
    Approvals.decide(staff, approval.id, "REJECTED", db=db_session, now=NOW)
    with pytest.raises(InvalidTransition):
        Approvals.decide(staff, approval.id, "APPROVED", db=db_session, now=NOW)
    assert db_session.query(Lending).count() == 0
    assert item.available_count == 1


def test_decide_only_approves_or_rejects(db_session, borrower, staff, item, gated):
    approval = submit(db_session, borrower, item).approval
    with pytest.raises(ValueError):
        Approvals.decide(staff, approval.id, "CANCELLED", db=db_session, now=NOW)


def test_failed_approval_stays_pending(db_session, borrower, staff, item, gated):
    """Of two requests for the last unit, the second approval fails cleanly."""
    first = submit(db_session, borrower, item).approval
    second = Approvals.submit(
        staff, item.id, requester_id="patron-2", db=db_session, now=NOW).approval

    Approvals.decide(staff, first.id, "APPROVED", db=db_session, now=NOW)
    with pytest.raises(InsufficientAvailability):
        Approvals.decide(staff, second.id, "APPROVED", db=db_session, now=NOW)

    assert Approvals.get(staff, second.id, db=db_session).status is ApprovalStatus.PENDING
    assert item.available_count == 0
    assert db_session.query(Lending).count() == 1


def test_cancel_by_requester(db_session, borrower, item, gated):
    approval = submit(db_session, borrower, item).approval
    cancelled = Approvals.cancel(borrower, approval.id, db=db_session, now=NOW)
    assert cancelled.status is ApprovalStatus.CANCELLED


def test_cancel_by_someone_else(db_session, borrower, item, gated):
    approval = submit(db_session, borrower, item).approval
    stranger = borrower.model_copy(update={"user_id": "patron-2"})
    with pytest.raises(Unauthorized):
        Approvals.cancel(stranger, approval.id, db=db_session, now=NOW)


def test_cancel_after_decision(db_session, borrower, staff, item, gated):
    approval = submit(db_session, borrower, item).approval
    Approvals.decide(staff, approval.id, "APPROVED", db=db_session, now=NOW)
    with pytest.raises(InvalidTransition):
        Approvals.cancel(borrower, approval.id, db=db_session, now=NOW)


def test_extension_request_renews_on_approval(db_session, borrower, staff, item, gated):
    lending = Lendings.checkout(
        staff, item.id, "patron-1", due_date=NOW + 7 * DAY, db=db_session, now=NOW)
    approval = Approvals.submit(
        borrower, type="extension", lending_id=lending.id, db=db_session, now=NOW).approval
    assert approval.item_id == item.id

    Approvals.decide(staff, approval.id, "APPROVED", db=db_session, now=NOW + DAY)
    renewed = Lendings.get(staff, lending.id, db=db_session)
    assert renewed.due_date == NOW + 21 * DAY
    assert renewed.renewal_count == 1


def test_extension_without_approval_renews_directly(db_session, borrower, staff, item):
    lending = Lendings.checkout(
        staff, item.id, "patron-1", due_date=NOW + 7 * DAY, db=db_session, now=NOW)
    result = Approvals.submit(
        borrower, type="extension", lending_id=lending.id,
        due_date=NOW + 10 * DAY, db=db_session, now=NOW)
    assert not result.is_pending
    assert result.lending.due_date == NOW + 10 * DAY


def test_extension_for_someone_elses_lending(db_session, borrower, staff, item):
    lending = Lendings.checkout(staff, item.id, "patron-2", db=db_session, now=NOW)
    with pytest.raises(Unauthorized):
        Approvals.submit(borrower, type="extension", lending_id=lending.id, db=db_session, now=NOW)


def test_borrower_cannot_read_others_request(db_session, borrower, item, gated):
    approval = submit(db_session, borrower, item).approval
    stranger = borrower.model_copy(update={"user_id": "patron-2"})
    with pytest.raises(Unauthorized):
        Approvals.get(stranger, approval.id, db=db_session)
