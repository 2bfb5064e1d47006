"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database. The application's
session factory is swapped for one bound to it, so background jobs that
open their own session see the same data.
"""
import os
import tempfile

os.environ.setdefault("LIFEOS_DATABASE_URL", "sqlite://")
os.environ.setdefault("LIFEOS_SCHEDULER_ENABLED", "false")
os.environ.setdefault("LIFEOS_LOG_DIR", os.path.join(tempfile.gettempdir(), "lifeos-tests"))

import pytest
from datetime import date, datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifeos import database
from lifeos import models  # noqa: F401  (registers tables)
from lifeos.database import Base
from lifeos.models import FinancialGoal, FitnessGoal, Habit, LifeSystem
from lifeos.services.date_service import DateService

FROZEN_NOW = datetime(2026, 1, 15, 10, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(database, "SessionLocal", factory)
    return factory


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin DateService.now() (and therefore today()) to FROZEN_NOW"""
    monkeypatch.setattr(DateService, "now", staticmethod(lambda: FROZEN_NOW))
    return FROZEN_NOW


@pytest.fixture
def today(frozen_now):
    return frozen_now.date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def make_financial_goal(db_session):
    def _make(user_id=1, target_amount=10000.0, current_amount=0.0, **kwargs):
        goal = FinancialGoal(
            user_id=user_id,
            name=kwargs.pop("name", "Emergency fund"),
            target_amount=target_amount,
            current_amount=current_amount,
            start_date=kwargs.pop("start_date", date(2026, 1, 1)),
            target_date=kwargs.pop("target_date", date(2026, 12, 31)),
            **kwargs
        )
        db_session.add(goal)
        db_session.commit()
        db_session.refresh(goal)
        return goal
    return _make


@pytest.fixture
def make_fitness_goal(db_session):
    def _make(user_id=1, start_value=90.0, current_value=90.0, target_value=80.0, **kwargs):
        goal = FitnessGoal(
            user_id=user_id,
            name=kwargs.pop("name", "Lose weight"),
            start_value=start_value,
            current_value=current_value,
            target_value=target_value,
            **kwargs
        )
        db_session.add(goal)
        db_session.commit()
        db_session.refresh(goal)
        return goal
    return _make


@pytest.fixture
def make_habit(db_session):
    def _make(user_id=1, **kwargs):
        habit = Habit(user_id=user_id, name=kwargs.pop("name", "Read"), **kwargs)
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit
    return _make


@pytest.fixture
def make_system(db_session):
    def _make(user_id=1, **kwargs):
        system = LifeSystem(user_id=user_id, name=kwargs.pop("name", "Morning routine"), **kwargs)
        db_session.add(system)
        db_session.commit()
        db_session.refresh(system)
        return system
    return _make


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient
    from lifeos.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[database.get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
