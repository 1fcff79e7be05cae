import logging
import datetime
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from lendable.core.db import transaction
from lendable.core.models import BlacklistEntry
from lendable.core.tenancy import TenantGuard
from lendable.core.utils import utcnow
from lendable.core.exceptions import (
    BlacklistConflict,
    BorrowerBlacklisted,
    InvalidTransition,
    NotFound,
)

logger = logging.getLogger(__name__)


class Blacklist:

    @classmethod
    def active_entries(cls, db, user_id, org_id, instance_id=None):
        """Entries flagged active that apply to the (org, instance) scope.

        Organization-wide entries (NULL instance) apply to every instance;
        an instance's entries never apply to its siblings or to the
        organization-wide scope.
        """
        query = select(BlacklistEntry).where(
            BlacklistEntry.user_id == user_id,
            BlacklistEntry.org_id == org_id,
            BlacklistEntry.is_active.is_(True),
        )
        if instance_id is None:
            query = query.where(BlacklistEntry.instance_id.is_(None))
        else:
            query = query.where(or_(
                BlacklistEntry.instance_id == instance_id,
                BlacklistEntry.instance_id.is_(None),
            ))
        return db.execute(query.order_by(BlacklistEntry.blocked_until.desc())).scalars().all()

    @classmethod
    def active_entry(cls, db, user_id, org_id, instance_id=None, now=None):
        """The entry currently suspending `user_id`, if any."""
        now = now or utcnow()
        for entry in cls.active_entries(db, user_id, org_id, instance_id):
            if entry.is_in_effect(now):
                return entry
        return None

    @classmethod
    def ensure_not_blacklisted(cls, db, user_id, org_id, instance_id=None, now=None):
        if entry := cls.active_entry(db, user_id, org_id, instance_id, now=now):
            raise BorrowerBlacklisted(
                f"User {user_id} is blacklisted until {entry.blocked_until.isoformat()}.",
                blocked_until=entry.blocked_until,
            )

    @classmethod
    def create(cls, db, user_id, org_id, instance_id, reason, days, now=None):
        """Adds an entry inside the caller's transaction.

        Expired entries still flagged active are retired first; an entry
        that is still in effect makes this a `BlacklistConflict`.
        """
        now = now or utcnow()
        for entry in cls.active_entries(db, user_id, org_id, instance_id):
            if entry.is_in_effect(now):
                raise BlacklistConflict(
                    f"User {user_id} already has an active blacklist entry {entry.id}.")
            entry.is_active = False
        entry = BlacklistEntry(
            user_id=user_id,
            org_id=org_id,
            instance_id=instance_id,
            reason=reason,
            blocked_until=now + datetime.timedelta(days=days),
            created_at=now,
        )
        db.add(entry)
        try:
            db.flush()
        except IntegrityError as e:
            raise BlacklistConflict(f"Concurrent blacklist entry for user {user_id}.") from e
        logger.info(f"Blacklisted user {user_id} until {entry.blocked_until} ({reason})")
        return entry

    @classmethod
    def apply_automatic(cls, db, user_id, org_id, instance_id, reason, days, now=None):
        """Suspends a borrower after a penalised return.

        When a suspension is already in effect it is extended rather than
        duplicated, so a user never holds two active entries.
        """
        now = now or utcnow()
        blocked_until = now + datetime.timedelta(days=days)
        if current := cls.active_entry(db, user_id, org_id, instance_id, now=now):
            if blocked_until > current.blocked_until:
                current.blocked_until = blocked_until
                current.reason = reason
                logger.info(f"Extended blacklist {current.id} for user {user_id} to {blocked_until}")
            return current
        return cls.create(db, user_id, org_id, instance_id, reason, days, now=now)

    @classmethod
    def add(cls, principal, user_id, reason, days, db=None, now=None):
        with transaction(db) as db:
            return cls.create(
                db, user_id, principal.org_id, principal.instance_id,
                reason, days, now=now)

    @classmethod
    def remove(cls, principal, entry_id, db=None, now=None):
        """Staff override: deactivates the entry and stamps who did it."""
        with transaction(db) as db:
            entry = BlacklistEntry.get(entry_id, db=db)
            if not entry:
                raise NotFound(f"Blacklist entry {entry_id} not found.")
            TenantGuard.check(principal, entry)
            if not entry.is_active:
                raise InvalidTransition(
                    f"Blacklist entry {entry_id} is no longer active.")
            entry.is_active = False
            entry.overridden_by = principal.user_id
            entry.overridden_at = now or utcnow()
            logger.info(f"Blacklist {entry_id} overridden by {principal.user_id}")
        return entry

    @classmethod
    def status(cls, principal, user_id, db=None, now=None):
        with transaction(db) as db:
            return cls.active_entry(
                db, user_id, principal.org_id, principal.instance_id, now=now)
