"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; point them at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-approval-tests")
os.environ.setdefault("APP_ENV", "local")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from leave_approval.main import app
from leave_approval.db.base import Base
from leave_approval.core.deps import get_db
from leave_approval.core.security import create_access_token

# Import all models to ensure they're registered with Base.metadata
from leave_approval.models import (  # noqa: F401
    User,
    Role,
    AuditLog,
    Notification,
    LeaveRequest,
    LeaveApproval,
    LeaveBalance,
    LeaveTransaction,
)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, name, role=Role.EMPLOYEE, manager=None, active=True):
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role.value,
        manager_id=manager.id if manager else None,
        active=active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db):
    return make_user(db, "Admin", role=Role.ADMIN)


@pytest.fixture
def manager_user(db, admin_user):
    return make_user(db, "Manager", role=Role.MANAGER, manager=admin_user)


@pytest.fixture
def employee_user(db, manager_user):
    return make_user(db, "Employee", role=Role.EMPLOYEE, manager=manager_user)


@pytest.fixture
def other_manager(db, admin_user):
    """A manager outside the employee's reporting line"""
    return make_user(db, "Other Manager", role=Role.MANAGER, manager=admin_user)


class RecordingNotifier:
    """Notifier that keeps every notification in memory"""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, kind, payload):
        self.sent.append((user_id, kind, payload))

    def kinds_for(self, user_id):
        return [kind for uid, kind, _ in self.sent if uid == user_id]


@pytest.fixture
def notifier():
    return RecordingNotifier()
