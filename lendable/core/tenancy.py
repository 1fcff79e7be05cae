#!/usr/bin/env python

"""
    Tenant scoping for Lendable.

    Every entity carries an `org_id` and an optional `instance_id`. A
    principal scoped to an instance may only touch that instance's
    entities; a principal without an instance sees its whole organization.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
from typing import Optional
from pydantic import BaseModel
from lendable.core.exceptions import TenantMismatch, Unauthorized


class Role(str, enum.Enum):
    ADMIN = 'ADMIN'
    STAFF = 'STAFF'
    BORROWER = 'BORROWER'


STAFF_ROLES = (Role.ADMIN, Role.STAFF)


class Principal(BaseModel):
    user_id: str
    role: Role = Role.BORROWER
    org_id: int
    instance_id: Optional[int] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class TenantGuard:

    @classmethod
    def allows(cls, principal: Principal, entity) -> bool:
        if entity.org_id != principal.org_id:
            return False
        if principal.instance_id is not None:
            return entity.instance_id == principal.instance_id
        return True

    @classmethod
    def check(cls, principal: Principal, entity):
        """Returns `entity` if it lies inside the principal's tenant."""
        if not cls.allows(principal, entity):
            raise TenantMismatch(
                f"{type(entity).__name__} {getattr(entity, 'id', '')} "
                f"is outside tenant org={principal.org_id} "
                f"instance={principal.instance_id}.")
        return entity


def requires_role(principal: Principal, *roles: Role):
    if principal.role not in roles:
        raise Unauthorized(
            f"Role {principal.role.value} may not perform this action.")
    return principal
