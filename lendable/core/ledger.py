#!/usr/bin/env python

"""
    Catalog availability ledger for Lendable.

    `Item.available_count` is the only counter contended across requests.
    Both operations run inside the caller's transaction and mutate the row
    with a single conditional UPDATE, so two callers racing for the last
    unit cannot both win, whether they run in one process or many.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from sqlalchemy import select, update, case
from lendable.core.models import Item
from lendable.core.exceptions import InsufficientAvailability, NotFound

logger = logging.getLogger(__name__)


class Ledger:

    @classmethod
    def lock(cls, db, item_id):
        """Loads the item row, locking it on backends that support it."""
        item = db.execute(
            select(Item).where(Item.id == item_id).with_for_update()
        ).scalar_one_or_none()
        if not item:
            raise NotFound(f"Item {item_id} not found.")
        return item

    @classmethod
    def reserve(cls, db, item_id, quantity=1):
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        result = db.execute(
            update(Item)
            .where(Item.id == item_id, Item.available_count >= quantity)
            .values(available_count=Item.available_count - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            item = db.get(Item, item_id, populate_existing=True)
            if not item:
                raise NotFound(f"Item {item_id} not found.")
            raise InsufficientAvailability(
                f"Not enough units of item {item_id} available. "
                f"Available: {item.available_count}, requested: {quantity}.")
        cls._expire(db, item_id)
        logger.info(f"Reserved {quantity} unit(s) of item {item_id}")

    @classmethod
    def release(cls, db, item_id, quantity=1):
        item = cls.lock(db, item_id)
        if item.available_count + quantity > item.total_count:
            logger.warning(
                f"Release of {quantity} unit(s) would push item {item_id} "
                f"past its total ({item.available_count}/{item.total_count}); "
                f"clamping to total")
        raised = Item.available_count + quantity
        db.execute(
            update(Item)
            .where(Item.id == item_id)
            .values(available_count=case(
                (raised > Item.total_count, Item.total_count),
                else_=raised,
            ))
            .execution_options(synchronize_session=False)
        )
        cls._expire(db, item_id)
        logger.info(f"Released {quantity} unit(s) of item {item_id}")

    @classmethod
    def _expire(cls, db, item_id):
        if item := db.identity_map.get(db.identity_key(Item, item_id)):
            db.expire(item, ['available_count'])
