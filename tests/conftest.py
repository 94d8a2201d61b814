"""
Shared test fixtures for OrderHub tests

Provides database setup, client creation, and actor/token fixtures
"""
import os

# Point the application at SQLite before anything imports the settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderhub.api.v1.deps import get_store
from orderhub.core.pricing_config import invalidate_margin_config
from orderhub.core.security import create_access_token
from orderhub.db.base import Base
from orderhub.db.session import get_db
from orderhub.integrations.blob_store import LocalBlobStore
from orderhub.main import app
from tests.factories import actor_for, create_test_client, create_test_manufacturer, create_test_user


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _sqlite_on_connect(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so savepoints work, and enforce foreign keys
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine, "begin")
def _sqlite_on_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import orderhub.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fresh_margin_config():
    """Margin config is cached per process; start every test from a cold cache."""
    invalidate_margin_config()
    yield
    invalidate_margin_config()


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "media"), "http://testserver/media")


@pytest.fixture
def client(db_session, blob_store):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# PARTIES
# =============================================================================

@pytest.fixture
def acme_client(db_session):
    """The client orders are placed for"""
    party = create_test_client(db_session, name="Acme Apparel")
    db_session.commit()
    return party


@pytest.fixture
def maker(db_session):
    """The manufacturer orders are placed with"""
    party = create_test_manufacturer(db_session, name="Shenzhen Stitch Works")
    db_session.commit()
    return party


# =============================================================================
# USERS & ACTORS
# =============================================================================

@pytest.fixture
def super_admin_user(db_session):
    user = create_test_user(db_session, role="super_admin", email="root@orderhub.test", name="Root")
    db_session.commit()
    return user


@pytest.fixture
def admin_user(db_session):
    user = create_test_user(db_session, role="admin", email="admin@orderhub.test", name="Ada Admin")
    db_session.commit()
    return user


@pytest.fixture
def creator_user(db_session):
    user = create_test_user(db_session, role="order_creator", email="creator@orderhub.test", name="Cora Creator")
    db_session.commit()
    return user


@pytest.fixture
def approver_user(db_session):
    user = create_test_user(db_session, role="order_approver", email="approver@orderhub.test")
    db_session.commit()
    return user


@pytest.fixture
def manufacturer_user(db_session, maker):
    user = create_test_user(
        db_session, role="manufacturer", email="factory@orderhub.test", manufacturer=maker
    )
    db_session.commit()
    return user


@pytest.fixture
def client_user(db_session, acme_client):
    user = create_test_user(db_session, role="client", email="buyer@orderhub.test", client=acme_client)
    db_session.commit()
    return user


@pytest.fixture
def super_admin(super_admin_user):
    return actor_for(super_admin_user)


@pytest.fixture
def admin(admin_user):
    return actor_for(admin_user)


@pytest.fixture
def creator(creator_user):
    return actor_for(creator_user)


@pytest.fixture
def approver(approver_user):
    return actor_for(approver_user)


@pytest.fixture
def manufacturer(manufacturer_user):
    return actor_for(manufacturer_user)


@pytest.fixture
def client_actor(client_user):
    return actor_for(client_user)


# =============================================================================
# AUTH HEADERS
# =============================================================================

def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user):
    return _headers(super_admin_user)


@pytest.fixture
def creator_headers(creator_user):
    return _headers(creator_user)


@pytest.fixture
def manufacturer_headers(manufacturer_user):
    return _headers(manufacturer_user)


@pytest.fixture
def client_headers(client_user):
    return _headers(client_user)
