import logging
from sqlalchemy import select
from lendable.core.db import transaction
from lendable.core.models import Item, ItemHistory
from lendable.core.tenancy import TenantGuard
from lendable.core.exceptions import NotFound

logger = logging.getLogger(__name__)

BORROWED = 'borrowed'
RETURNED = 'returned'
RENEWED = 'renewed'
PENALTY_OVERRIDDEN = 'penalty_overridden'
REQUESTED = 'requested'
APPROVED = 'approved'
REJECTED = 'rejected'
CANCELLED = 'cancelled'


def record(db, item_id, user_id, action, **details):
    """Appends an audit row in the caller's transaction."""
    db.add(ItemHistory(item_id=item_id, user_id=user_id, action=action, details=details or None))
    logger.debug(f"History {action} on item {item_id} by {user_id}: {details}")


def for_item(principal, item_id, limit=100, db=None):
    with transaction(db) as db:
        item = Item.get(item_id, db=db)
        if not item:
            raise NotFound(f"Item {item_id} not found.")
        TenantGuard.check(principal, item)
        return db.execute(
            select(ItemHistory)
            .where(ItemHistory.item_id == item_id)
            .order_by(ItemHistory.created_at.desc(), ItemHistory.id.desc())
            .limit(limit)
        ).scalars().all()
