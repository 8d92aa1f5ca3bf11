import pytest
import os
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from performance_analytics.database import Base, get_db
from performance_analytics.main import app
from performance_analytics.models import (
    Department, Feedback, KeyResult, Objective, Team, User, UserRole,
)
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

def _user(db_session, email, role, **kwargs):
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, is_active=True, **kwargs)
    db_session.add(user)
    db_session.flush()
    return user

def _objective(db_session, owner, scores, created_at=datetime(2024, 1, 10)):
    objective = Objective(title=f"Objective for {owner.email}", owner_id=owner.id, created_at=created_at)
    objective.key_results = [
        KeyResult(title=f"KR {position}", position=position, score=score)
        for position, score in enumerate(scores)
    ]
    db_session.add(objective)
    return objective

def _feedback(db_session, giver, receiver, rating, sentiment, created_at):
    item = Feedback(
        giver_id=giver.id,
        receiver_id=receiver.id,
        content="Feedback",
        rating=rating,
        sentiment=sentiment,
        created_at=created_at,
    )
    db_session.add(item)
    return item

@pytest.fixture(scope="function")
def org(db_session):
    """
    Two departments with one team each.

    Alpha (Engineering, managed by alpha_manager): ann and ben.
      objectives [8, 6] and [9, 7]; feedback ratings 9/7/8 with
      sentiments positive/absent/positive over Jan and Feb 2024.
    Beta (Sales, managed by beta_manager): cat.
      one objective without key results; one unrated negative feedback.
    """
    engineering = Department(name="Engineering")
    sales = Department(name="Sales")
    db_session.add_all([engineering, sales])
    db_session.flush()

    admin = _user(db_session, "admin@example.com", UserRole.ADMIN)
    hr = _user(db_session, "hr@example.com", UserRole.HR)
    alpha_manager = _user(db_session, "alpha.lead@example.com", UserRole.MANAGER, department_id=engineering.id)
    beta_manager = _user(db_session, "beta.lead@example.com", UserRole.MANAGER, department_id=sales.id)

    alpha = Team(name="Alpha", department_id=engineering.id, manager_id=alpha_manager.id)
    beta = Team(name="Beta", department_id=sales.id, manager_id=beta_manager.id)
    db_session.add_all([alpha, beta])
    db_session.flush()

    ann = _user(db_session, "ann@example.com", UserRole.EMPLOYEE,
                department_id=engineering.id, team_id=alpha.id, manager_id=alpha_manager.id)
    ben = _user(db_session, "ben@example.com", UserRole.EMPLOYEE,
                department_id=engineering.id, team_id=alpha.id, manager_id=alpha_manager.id)
    cat = _user(db_session, "cat@example.com", UserRole.EMPLOYEE,
                department_id=sales.id, team_id=beta.id, manager_id=beta_manager.id)

    _objective(db_session, ann, [8, 6])
    _objective(db_session, ben, [9, 7])
    _objective(db_session, cat, [])

    _feedback(db_session, ben, ann, 9, "positive", datetime(2024, 1, 15, 9, 30))
    _feedback(db_session, ann, ben, 7, None, datetime(2024, 1, 20, 14, 0))
    _feedback(db_session, alpha_manager, ann, 8, "positive", datetime(2024, 2, 10, 11, 0))
    _feedback(db_session, beta_manager, cat, None, "negative", datetime(2024, 3, 5, 16, 45))
    db_session.flush()

    return {
        "engineering": engineering,
        "sales": sales,
        "alpha": alpha,
        "beta": beta,
        "admin": admin,
        "hr": hr,
        "alpha_manager": alpha_manager,
        "beta_manager": beta_manager,
        "ann": ann,
        "ben": ben,
        "cat": cat,
    }

@pytest.fixture(scope="function")
def as_user():
    """Headers the gateway would forward for a verified caller."""
    def _as_user(user):
        return {"X-User-Id": str(user.id)}
    return _as_user

@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
