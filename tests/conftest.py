#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.conftest
    ~~~~~~~~~~~~~~

    Shared fixtures: an in-memory database, principals for two tenants
    and a few catalog items.

    :copyright: (c) 2026 by Authors.
    :license: see LICENSE for more details.
"""

import os
os.environ.setdefault("TESTING", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from lendable.core.db import Base
from lendable.core import models  # noqa: F401
from lendable.core.models import Item, OrgPolicy
from lendable.core.policy import Policies
from lendable.core.tenancy import Principal, Role


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fresh_policies():
    Policies.invalidate()
    yield
    Policies.invalidate()


@pytest.fixture
def admin():
    return Principal(user_id="admin-1", role=Role.ADMIN, org_id=1)


@pytest.fixture
def staff():
    return Principal(user_id="staff-1", role=Role.STAFF, org_id=1)


@pytest.fixture
def borrower():
    return Principal(user_id="patron-1", role=Role.BORROWER, org_id=1)


@pytest.fixture
def other_org_staff():
    return Principal(user_id="staff-9", role=Role.STAFF, org_id=2)


def _make_item(db, total=1, org_id=1, instance_id=None, name="Projector", available=None):
    item = Item(
        name=name,
        org_id=org_id,
        instance_id=instance_id,
        total_count=total,
        available_count=total if available is None else available,
    )
    db.add(item)
    db.commit()
    return item


def _set_policy(db, org_id=1, instance_id=None, **values):
    db.add(OrgPolicy(org_id=org_id, instance_id=instance_id, **values))
    db.commit()
    Policies.invalidate(org_id)


@pytest.fixture
def make_item(db_session):
    return lambda **kwargs: _make_item(db_session, **kwargs)


@pytest.fixture
def set_policy(db_session):
    return lambda **values: _set_policy(db_session, **values)


@pytest.fixture
def item(db_session):
    return _make_item(db_session, total=1)


@pytest.fixture
def stocked_item(db_session):
    return _make_item(db_session, total=3, name="Camera")
