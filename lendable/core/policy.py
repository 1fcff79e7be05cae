#!/usr/bin/env python

"""
    Per-tenant lending policy for Lendable.

    A `Policy` is fetched once per request and passed explicitly into the
    lending, approval and penalty code. Values come from the tenant's
    `org_policies` row (instance row first, then the organization row),
    falling back to `DEFAULT_POLICY` for anything unset.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import time
import logging
from typing import Optional
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from lendable.configs import DEFAULT_POLICY, POLICY_TTL
from lendable.core.models import OrgPolicy

logger = logging.getLogger(__name__)


class Policy(BaseModel):
    model_config = ConfigDict(frozen=True)

    lending_duration_days: int = DEFAULT_POLICY['lending_duration_days']
    max_renewals: int = DEFAULT_POLICY['max_renewals']
    late_penalty_per_day: float = DEFAULT_POLICY['late_penalty_per_day']
    lost_item_fee: float = DEFAULT_POLICY['lost_item_fee']
    damaged_item_fee: float = DEFAULT_POLICY['damaged_item_fee']
    max_items_per_user: int = DEFAULT_POLICY['max_items_per_user']
    require_approval: bool = DEFAULT_POLICY['require_approval']
    auto_blacklist_enabled: bool = DEFAULT_POLICY['auto_blacklist_enabled']


FIELDS = tuple(Policy.model_fields)


class Policies:

    _cache = {}

    @classmethod
    def get(cls, db, org_id: int, instance_id: Optional[int] = None) -> Policy:
        key = (org_id, instance_id)
        now = time.time()
        cached = cls._cache.get(key)
        if cached and now - cached[0] < POLICY_TTL:
            return cached[1]
        policy = cls.load(db, org_id, instance_id)
        cls._cache[key] = (now, policy)
        return policy

    @classmethod
    def load(cls, db, org_id: int, instance_id: Optional[int] = None) -> Policy:
        scope = OrgPolicy.instance_id.is_(None)
        if instance_id is not None:
            scope = scope | (OrgPolicy.instance_id == instance_id)
        rows = db.execute(
            select(OrgPolicy).where(OrgPolicy.org_id == org_id, scope)
        ).scalars().all()
        values = {}
        # organization row first so the instance row overrides it
        for row in sorted(rows, key=lambda row: row.instance_id is not None):
            values.update({
                field: getattr(row, field) for field in FIELDS
                if getattr(row, field) is not None
            })
        logger.debug(f"Loaded policy for org={org_id} instance={instance_id}: {values}")
        return Policy(**values)

    @classmethod
    def for_principal(cls, db, principal) -> Policy:
        return cls.get(db, principal.org_id, principal.instance_id)

    @classmethod
    def invalidate(cls, org_id: Optional[int] = None):
        if org_id is None:
            cls._cache.clear()
            return
        for key in [k for k in cls._cache if k[0] == org_id]:
            del cls._cache[key]
