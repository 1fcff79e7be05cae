#!/usr/bin/env python

"""
    Models for Lendable,
    the catalog item, the loan, the approval request, the blacklist entry,
    the per-tenant policy row and the item history trail.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
from sqlalchemy import (
    Column, String, Boolean, Integer, Float, DateTime, Text, JSON,
    ForeignKey, Index, CheckConstraint, Enum as SQLAlchemyEnum, update, text, func
)
from sqlalchemy.orm import relationship
from lendable.core.db import Base
from lendable.core.utils import new_id, utcnow
from lendable.core.exceptions import InvalidTransition, AlreadyReturned


class LendingStatus(enum.Enum):
    ACTIVE = 'active'
    RETURNED = 'returned'


class ApprovalStatus(enum.Enum):
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    CANCELLED = 'CANCELLED'


class ApprovalType(enum.Enum):
    LENDING = 'lending'
    EXTENSION = 'extension'
    RESERVATION = 'reservation'


class Condition(enum.Enum):
    GOOD = 'good'
    LOST = 'lost'
    DAMAGED = 'damaged'


class TenantMixin:
    org_id = Column(Integer, nullable=False, index=True)
    instance_id = Column(Integer, nullable=True)


class StateMachineMixin:
    """Explicit transition table for a `status` column.

    Transitions are applied with a conditional UPDATE on the current
    status, so of two concurrent transitions from the same state exactly
    one takes effect.
    """
    TRANSITIONS = {}
    TransitionError = InvalidTransition

    @classmethod
    def can_transition(cls, current, target):
        return target in cls.TRANSITIONS.get(current, set())

    def transition(self, db, target, **values):
        current = self.status
        if not self.can_transition(current, target):
            raise self.TransitionError(
                f"{type(self).__name__} {self.id} cannot go from "
                f"{current.value} to {target.value}.")
        cls = type(self)
        result = db.execute(
            update(cls)
            .where(cls.id == self.id, cls.status == current)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # lost the race to another transition from `current`
            db.expire(self)
            raise self.TransitionError(
                f"{type(self).__name__} {self.id} is no longer {current.value}.")
        db.expire(self)
        return self


class Item(TenantMixin, Base):
    __tablename__ = 'items'
    __table_args__ = (
        CheckConstraint('available_count >= 0', name='ck_items_available_nonneg'),
        CheckConstraint('available_count <= total_count', name='ck_items_available_le_total'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, default='')
    total_count = Column(Integer, nullable=False, default=1)
    available_count = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    lendings = relationship('Lending', back_populates='item')


class Lending(TenantMixin, StateMachineMixin, Base):
    __tablename__ = 'lendings'
    __table_args__ = (
        Index('ix_lendings_borrower_status', 'borrower_id', 'org_id', 'status'),
    )

    TRANSITIONS = {LendingStatus.ACTIVE: {LendingStatus.RETURNED}}
    TransitionError = AlreadyReturned

    id = Column(String(36), primary_key=True, default=new_id)
    item_id = Column(String(36), ForeignKey('items.id'), nullable=False, index=True)
    borrower_id = Column(String(64), nullable=False)
    status = Column(SQLAlchemyEnum(LendingStatus), nullable=False, default=LendingStatus.ACTIVE)
    quantity = Column(Integer, nullable=False, default=1)
    borrowed_at = Column(DateTime, nullable=False, default=utcnow)
    due_date = Column(DateTime, nullable=False)
    returned_at = Column(DateTime, nullable=True)
    renewal_count = Column(Integer, nullable=False, default=0)
    return_condition = Column(SQLAlchemyEnum(Condition), nullable=True)
    penalty_amount = Column(Float, nullable=True)
    penalty_reason = Column(String(255), nullable=True)
    penalty_overridden = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    item = relationship('Item', back_populates='lendings')

    def is_overdue(self, now=None):
        return self.returned_at is None and (now or utcnow()) > self.due_date

    @property
    def overdue(self):
        return self.is_overdue()


class ApprovalRequest(TenantMixin, StateMachineMixin, Base):
    __tablename__ = 'approval_requests'

    TRANSITIONS = {
        ApprovalStatus.PENDING: {
            ApprovalStatus.APPROVED,
            ApprovalStatus.REJECTED,
            ApprovalStatus.CANCELLED,
        },
    }

    id = Column(String(36), primary_key=True, default=new_id)
    item_id = Column(String(36), ForeignKey('items.id'), nullable=False, index=True)
    requester_id = Column(String(64), nullable=False)
    type = Column(SQLAlchemyEnum(ApprovalType), nullable=False, default=ApprovalType.LENDING)
    status = Column(SQLAlchemyEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    request_data = Column(JSON, nullable=False, default=dict)
    approver_id = Column(String(64), nullable=True)
    approver_notes = Column(Text, nullable=True)
    lending_id = Column(String(36), ForeignKey('lendings.id'), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    decided_at = Column(DateTime, nullable=True)

    item = relationship('Item')
    lending = relationship('Lending')


class BlacklistEntry(TenantMixin, Base):
    __tablename__ = 'blacklist_entries'
    __table_args__ = (
        Index('ix_blacklist_user_tenant', 'user_id', 'org_id', 'instance_id', 'is_active'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False)
    reason = Column(String(255), nullable=False)
    blocked_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    overridden_by = Column(String(64), nullable=True)
    overridden_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def is_in_effect(self, now=None):
        """Expiry is evaluated lazily, `is_active` alone is not enough."""
        return bool(self.is_active) and self.blocked_until > (now or utcnow())


# one active suspension per user per scope; a NULL instance is the organization-wide scope
Index(
    'uq_blacklist_active_user',
    BlacklistEntry.user_id,
    BlacklistEntry.org_id,
    func.coalesce(BlacklistEntry.instance_id, 0),
    unique=True,
    sqlite_where=text('is_active = 1'),
    postgresql_where=text('is_active'),
)


class OrgPolicy(TenantMixin, Base):
    __tablename__ = 'org_policies'
    __table_args__ = (
        Index('ix_org_policies_tenant', 'org_id', 'instance_id', unique=True),
    )

    id = Column(Integer, primary_key=True)
    lending_duration_days = Column(Integer, nullable=True)
    max_renewals = Column(Integer, nullable=True)
    late_penalty_per_day = Column(Float, nullable=True)
    lost_item_fee = Column(Float, nullable=True)
    damaged_item_fee = Column(Float, nullable=True)
    max_items_per_user = Column(Integer, nullable=True)
    require_approval = Column(Boolean, nullable=True)
    auto_blacklist_enabled = Column(Boolean, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ItemHistory(Base):
    __tablename__ = 'item_history'

    id = Column(Integer, primary_key=True)
    item_id = Column(String(36), ForeignKey('items.id'), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    action = Column(String(32), nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
