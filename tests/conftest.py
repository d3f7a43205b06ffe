"""
Pytest configuration and shared fixtures for testing.

Provides reusable test fixtures:
- test_db: In-memory SQLite database for isolated testing
- test_client: FastAPI TestClient for API integration tests
- team, employee, team_lead: Members of one team
- auth_headers / lead_headers: Bearer tokens for employee and team lead
- make_interval: Factory for work intervals
- rules: Default calendar rules (Europe/Bucharest, night 22-06, anchor 06:00)
"""

import datetime
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from timetrack.auth.auth import create_access_token
from timetrack.core.models import CalendarRules
from timetrack.core.storage import clear_calendar_cache
from timetrack.database.database import Base, Employee, EmployeeRole, Team, WorkInterval, get_db
from timetrack.main import app


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    StaticPool keeps a single connection so the TestClient thread sees
    the same database as the test.

    Yields:
        SQLAlchemy Session: Database session for test use
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def test_client(test_db):
    """
    Create FastAPI TestClient with test database dependency override.

    Args:
        test_db: Test database session fixture

    Yields:
        TestClient: FastAPI test client for API testing
    """

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _fresh_calendar_rules():
    clear_calendar_cache()
    yield
    clear_calendar_cache()


@pytest.fixture
def rules():
    return CalendarRules()


@pytest.fixture(scope="function")
def team(test_db):
    team = Team(id=1, name="Echipa Nord")
    test_db.add(team)
    test_db.commit()
    return team


@pytest.fixture(scope="function")
def employee(test_db, team):
    """Regular employee: username "ion", role EMPLOYEE, member of team 1."""
    employee = Employee(id=1, username="ion", name="Ion Popescu", role=EmployeeRole.EMPLOYEE, team_id=team.id)
    test_db.add(employee)
    test_db.commit()
    test_db.refresh(employee)
    return employee


@pytest.fixture(scope="function")
def team_lead(test_db, team):
    """Team lead: username "maria", role TEAM_LEAD, member of team 1."""
    lead = Employee(id=2, username="maria", name="Maria Ionescu", role=EmployeeRole.TEAM_LEAD, team_id=team.id)
    test_db.add(lead)
    test_db.commit()
    test_db.refresh(lead)
    return lead


@pytest.fixture(scope="function")
def auth_headers(employee):
    token = create_access_token(data={"sub": employee.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def lead_headers(team_lead):
    token = create_access_token(data={"sub": team_lead.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_interval(test_db, employee):
    """
    Factory for work intervals.

    Usage:
        interval = make_interval("2026-10-12 08:00", "2026-10-12 16:00", notes="Tip: Condus")
    """

    def _make(clock_in: str, clock_out: str | None, employee_id: int | None = None, notes: str | None = None):
        interval = WorkInterval(
            employee_id=employee_id or employee.id,
            clock_in_time=datetime.datetime.fromisoformat(clock_in),
            clock_out_time=datetime.datetime.fromisoformat(clock_out) if clock_out else None,
            notes=notes,
        )
        test_db.add(interval)
        test_db.commit()
        test_db.refresh(interval)
        return interval

    return _make


class FlakySegmentService:
    """
    Segment service double that fails a fixed number of times before
    delegating to the in-process service.
    """

    def __init__(self, session, failures: int, rules=None):
        from timetrack.core.recalculation import LocalSegmentService

        self.delegate = LocalSegmentService(session, rules)
        self.failures = failures
        self.calls = 0

    def compute(self, request):
        from timetrack.core.exceptions import SegmentServiceError

        self.calls += 1
        if self.calls <= self.failures:
            raise SegmentServiceError(f"simulated outage {self.calls}")
        return self.delegate.compute(request)


@pytest.fixture
def flaky_service(test_db, rules):
    """Factory: flaky_service(failures) -> FlakySegmentService."""

    def _make(failures: int):
        return FlakySegmentService(test_db, failures, rules)

    return _make
