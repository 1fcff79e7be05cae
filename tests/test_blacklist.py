import datetime
import pytest
from lendable.core.blacklist import Blacklist
from lendable.core.models import BlacklistEntry
from lendable.core.tenancy import Principal, Role
from lendable.core.exceptions import (
    BlacklistConflict,
    BorrowerBlacklisted,
    InvalidTransition,
    NotFound,
    TenantMismatch,
)

NOW = datetime.datetime(2026, 3, 1, 12, 0, 0)
DAY = datetime.timedelta(days=1)


def test_add_and_status(db_session, staff):
    entry = Blacklist.add(staff, "patron-1", "Repeated damage", 10, db=db_session, now=NOW)
    assert entry.blocked_until == NOW + 10 * DAY
    assert entry.is_active
    assert Blacklist.status(staff, "patron-1", db=db_session, now=NOW).id == entry.id
    assert Blacklist.status(staff, "patron-2", db=db_session, now=NOW) is None


def test_expiry_is_lazy(db_session, staff):
    entry = Blacklist.add(staff, "patron-1", "Late", 2, db=db_session, now=NOW)
    assert Blacklist.status(staff, "patron-1", db=db_session, now=NOW + 3 * DAY) is None
    # nothing rewrites the row until a new entry is needed
    assert db_session.get(BlacklistEntry, entry.id).is_active


def test_add_while_active_conflicts(db_session, staff):
    Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    with pytest.raises(BlacklistConflict):
        Blacklist.add(staff, "patron-1", "Again", 5, db=db_session, now=NOW + DAY)
    assert db_session.query(BlacklistEntry).count() == 1


def test_add_after_expiry_retires_old_entry(db_session, staff):
    old = Blacklist.add(staff, "patron-1", "Late", 1, db=db_session, now=NOW)
    new = Blacklist.add(staff, "patron-1", "Again", 5, db=db_session, now=NOW + 2 * DAY)
    assert not db_session.get(BlacklistEntry, old.id).is_active
    assert new.is_active


def test_remove_stamps_override(db_session, staff):
    entry = Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    removed = Blacklist.remove(staff, entry.id, db=db_session, now=NOW + DAY)
    assert not removed.is_active
    assert removed.overridden_by == "staff-1"
    assert removed.overridden_at == NOW + DAY
    Blacklist.ensure_not_blacklisted(db_session, "patron-1", 1, now=NOW + DAY)


def test_remove_unknown(db_session, staff):
    with pytest.raises(NotFound):
        Blacklist.remove(staff, "missing", db=db_session)


def test_remove_other_tenant(db_session, staff, other_org_staff):
    entry = Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    with pytest.raises(TenantMismatch):
        Blacklist.remove(other_org_staff, entry.id, db=db_session)


def test_blacklist_is_per_organization(db_session, staff, other_org_staff):
    Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    Blacklist.ensure_not_blacklisted(db_session, "patron-1", 2, now=NOW)
    with pytest.raises(BorrowerBlacklisted):
        Blacklist.ensure_not_blacklisted(db_session, "patron-1", 1, now=NOW)


def test_org_wide_entry_applies_to_instances(db_session, staff):
    Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    with pytest.raises(BorrowerBlacklisted):
        Blacklist.ensure_not_blacklisted(db_session, "patron-1", 1, instance_id=3, now=NOW)


def test_instance_entry_does_not_apply_elsewhere(db_session):
    branch = Principal(user_id="staff-3", role=Role.STAFF, org_id=1, instance_id=3)
    Blacklist.add(branch, "patron-1", "Late", 5, db=db_session, now=NOW)
    Blacklist.ensure_not_blacklisted(db_session, "patron-1", 1, instance_id=4, now=NOW)
    with pytest.raises(BorrowerBlacklisted):
        Blacklist.ensure_not_blacklisted(db_session, "patron-1", 1, instance_id=3, now=NOW)


def test_remove_twice_keeps_first_override(db_session, staff, admin):
    entry = Blacklist.add(staff, "patron-1", "Late", 5, db=db_session, now=NOW)
    Blacklist.remove(staff, entry.id, db=db_session, now=NOW + DAY)
    with pytest.raises(InvalidTransition):
        Blacklist.remove(admin, entry.id, db=db_session, now=NOW + 2 * DAY)
    entry = db_session.get(BlacklistEntry, entry.id)
    assert entry.overridden_by == "staff-1"
    assert entry.overridden_at == NOW + DAY


def test_add_beside_expired_sibling_instance_entry(db_session):
    east = Principal(user_id="staff-3", role=Role.STAFF, org_id=1, instance_id=3)
    west = Principal(user_id="staff-4", role=Role.STAFF, org_id=1, instance_id=4)
    old = Blacklist.add(west, "patron-1", "Late", 1, db=db_session, now=NOW - 10 * DAY)
    entry = Blacklist.add(east, "patron-1", "Damage", 5, db=db_session, now=NOW)
    assert entry.instance_id == 3
    assert entry.is_active
    # the sibling's expired row is not in this scope and is left alone
    assert db_session.get(BlacklistEntry, old.id).is_active


def test_add_beside_sibling_instance_entry_in_effect(db_session):
    east = Principal(user_id="staff-3", role=Role.STAFF, org_id=1, instance_id=3)
    west = Principal(user_id="staff-4", role=Role.STAFF, org_id=1, instance_id=4)
    Blacklist.add(west, "patron-1", "Late", 10, db=db_session, now=NOW)
    Blacklist.add(east, "patron-1", "Damage", 5, db=db_session, now=NOW)
    assert db_session.query(BlacklistEntry).filter_by(is_active=True).count() == 2
    assert Blacklist.status(east, "patron-1", db=db_session, now=NOW).instance_id == 3
    assert Blacklist.status(west, "patron-1", db=db_session, now=NOW).instance_id == 4


def test_org_wide_add_ignores_instance_entries(db_session, staff):
    branch = Principal(user_id="staff-3", role=Role.STAFF, org_id=1, instance_id=3)
    Blacklist.add(branch, "patron-1", "Late", 10, db=db_session, now=NOW)
    assert Blacklist.status(staff, "patron-1", db=db_session, now=NOW) is None
    entry = Blacklist.add(staff, "patron-1", "Repeated damage", 5, db=db_session, now=NOW)
    assert entry.instance_id is None
