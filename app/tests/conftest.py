"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-engine-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.core.leave_policy import LeavePolicy  # noqa: E402
from app.core.security import create_user_token  # noqa: E402
from app.services.allocation_service import SemiAnnualPeriod  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from app.models import (  # noqa: E402
    Team,
    User,
    Role,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    SemiAnnualBalance,
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


@pytest.fixture
def policy():
    """Default leave policy: 12 vacation days, 2 weekend leaves, 5-day ceiling, 49% capacity"""
    return LeavePolicy()


@pytest.fixture
def team(db):
    team = Team(name="Engineering", active=True)
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


@pytest.fixture
def make_user(db):
    """Factory for directory users"""
    counter = {"n": 0}

    def _make_user(role: Role = Role.EMPLOYEE, team: Optional[Team] = None, name: Optional[str] = None) -> User:
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            name=name or f"User {counter['n']}",
            role=role.value,
            team_id=team.id if team else None,
            active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def teammates(make_user, team):
    """Two colleagues so that one member on leave stays under the capacity ratio"""
    return [make_user(Role.EMPLOYEE, team) for _ in range(2)]


@pytest.fixture
def employee(make_user, team, teammates):
    return make_user(Role.EMPLOYEE, team, name="Test Employee")


@pytest.fixture
def admin_user(make_user):
    return make_user(Role.ADMIN, name="Test Admin")


@pytest.fixture
def management_user(make_user):
    return make_user(Role.MANAGEMENT, name="Test Manager")


@pytest.fixture
def make_leave(db):
    """Insert a leave request directly, bypassing validation"""
    def _make_leave(
        user: User,
        start: date,
        end: date,
        status: LeaveStatus = LeaveStatus.APPROVED,
        leave_type: LeaveType = LeaveType.VACATION,
        business_days: int = 1,
    ) -> LeaveRequest:
        leave = LeaveRequest(
            user_id=user.id,
            team_id=user.team_id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            status=status,
            semi_annual_period=SemiAnnualPeriod.for_date(start).label,
            business_days=business_days,
        )
        db.add(leave)
        db.commit()
        db.refresh(leave)
        return leave

    return _make_leave


@pytest.fixture
def set_usage(db):
    """Seed semi-annual usage counters for a user"""
    def _set_usage(user: User, label: str, vacation_days_used: int = 0, weekend_leaves_used: int = 0):
        period = SemiAnnualPeriod.from_label(label)
        balance = SemiAnnualBalance(
            user_id=user.id,
            year=period.year,
            period=period.half,
            vacation_days_used=vacation_days_used,
            weekend_leaves_used=weekend_leaves_used,
        )
        db.add(balance)
        db.commit()
        return balance

    return _set_usage


@pytest.fixture
def auth_headers():
    """Bearer headers for a user"""
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user.id)}"}

    return _auth_headers
