import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

# Tests run against an in-memory SQLite database; set before app settings load
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Load environment variables from .env files without overriding the ones above
backend_dir = Path(__file__).parent.parent
for env_file in (backend_dir / ".env", backend_dir.parent / ".env"):
    if env_file.exists():
        load_dotenv(env_file, override=False)

from app.core.auth import create_team_access_token  # noqa: E402
from app.core.db.deps import get_db  # noqa: E402
from app.core.db.session import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Team, User  # noqa: E402
from app.modules.tracker.models import Customer, TrackerProject  # noqa: E402
from app.modules.tracker.services import TrackerEntryService  # noqa: E402
from tests.helpers import NOW  # noqa: E402


@pytest.fixture(scope="function")
def engine():
    """Create a fresh in-memory database with every table for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a database session bound to the test database."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def clock():
    """Mutable clock; tests move ``clock.now`` to simulate elapsed time."""

    class Clock:
        now = NOW

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def service(db_session, clock):
    """Create TrackerEntryService using the fixed test clock."""
    return TrackerEntryService(db_session, now=clock)


@pytest.fixture
def test_team(db_session):
    """Create a test team."""
    team = Team(name="Test Team")
    db_session.add(team)
    db_session.commit()
    return team


@pytest.fixture
def other_team(db_session):
    """Create a second team to check isolation against."""
    team = Team(name="Other Team")
    db_session.add(team)
    db_session.commit()
    return team


@pytest.fixture
def test_user(db_session, test_team):
    """Create a test user in the test team."""
    user = User(
        team_id=test_team.id,
        email=f"test-{uuid4().hex[:8]}@example.com",
        full_name="Test User",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def second_user(db_session, test_team):
    """Create another user in the test team."""
    user = User(
        team_id=test_team.id,
        email=f"second-{uuid4().hex[:8]}@example.com",
        full_name="Second User",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def outsider(db_session, other_team):
    """Create a user that belongs to the other team."""
    user = User(
        team_id=other_team.id,
        email=f"outsider-{uuid4().hex[:8]}@example.com",
        full_name="Outsider",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def test_customer(db_session, test_team):
    """Create a customer of the test team."""
    customer = Customer(team_id=test_team.id, name="Acme", website="https://acme.test")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def test_project(db_session, test_team, test_customer):
    """Create a billable project (50 per hour) of the test team."""
    project = TrackerProject(
        team_id=test_team.id,
        customer_id=test_customer.id,
        name="Website",
        rate=Decimal("50.00"),
        currency="EUR",
    )
    db_session.add(project)
    db_session.commit()
    return project


@pytest.fixture
def other_project(db_session, other_team):
    """Create a project that belongs to the other team."""
    project = TrackerProject(team_id=other_team.id, name="Foreign", rate=Decimal("80.00"))
    db_session.add(project)
    db_session.commit()
    return project


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_user):
    """Create authentication headers for the test user in the test team."""
    token = create_team_access_token(test_user.id, test_user.team_id)
    return {"Authorization": f"Bearer {token}"}
