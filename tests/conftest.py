"""Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database. Each test gets a session
bound to an outer transaction that is rolled back afterwards; ``commit()``
inside services and routers only releases a SAVEPOINT.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OUTBOX_DISPATCH_ENABLED", "false")
os.environ.setdefault("INTERNAL_API_SECRET", "test-internal-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from agencyflow.core.security import create_access_token
from agencyflow.db.base import Base
from agencyflow.db import models  # noqa: F401

from tests import factories

INTERNAL_SECRET = os.environ["INTERNAL_API_SECRET"]


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    """Session whose work is rolled back after each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    """FastAPI test client sharing the test session."""
    from agencyflow.api.deps import get_db
    from agencyflow.api.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def world(db_session):
    """A fully wired agency: see ``factories.build_world``."""
    return factories.build_world(db_session)


def auth_headers(user=None, *, contact=None, agency=None) -> dict:
    """Bearer headers for a user (optionally selecting an agency) or a portal contact."""
    if contact is not None:
        return {"Authorization": f"Bearer {create_access_token(contact.id, 'contact')}"}
    headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
    if agency is not None:
        headers["X-Agency-ID"] = str(agency.id)
    return headers


def internal_headers() -> dict:
    return {"X-Internal-Secret": INTERNAL_SECRET}
