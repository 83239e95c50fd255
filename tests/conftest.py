"""Shared test fixtures."""

from datetime import datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel
from sqlmodel.pool import StaticPool

from planner.core.database import build_engine, get_session
from planner.main import app
from planner.models import Event, EventGuest
from planner.recurrence.rule import EndsAfter, Frequency, RecurrenceRule, RepeatUnit


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database with foreign keys enforced."""
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="single_event")
def single_event_fixture(session: Session) -> Event:
    """Create a one-off event on 2024-03-05 14:00-15:00."""
    event = Event(
        id=uuid4(),
        title="Dentist",
        description="Annual checkup",
        start_time=datetime(2024, 3, 5, 14, 0),
        end_time=datetime(2024, 3, 5, 15, 0),
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="weekly_series")
def weekly_series_fixture(session: Session) -> Event:
    """Create a 10-week standup series on Mondays from 2024-01-01 09:00, with two guests."""
    event = Event(
        id=uuid4(),
        title="Standup",
        start_time=datetime(2024, 1, 1, 9, 0),
        end_time=datetime(2024, 1, 1, 9, 30),
    )
    event.set_rule(RecurrenceRule(Frequency.WEEKLY, end=EndsAfter(10)))
    session.add(event)
    session.add(EventGuest(event_id=event.id, email="ada@example.com", name="Ada"))
    session.add(EventGuest(event_id=event.id, email="grace@example.com", name="Grace"))
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="daily_series")
def daily_series_fixture(session: Session) -> Event:
    """Create an open-ended daily series from 2024-01-01 08:00-08:15."""
    event = Event(
        id=uuid4(),
        title="Journal",
        start_time=datetime(2024, 1, 1, 8, 0),
        end_time=datetime(2024, 1, 1, 8, 15),
    )
    event.set_rule(RecurrenceRule(Frequency.DAILY))
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="biweekly_rule")
def biweekly_rule_fixture() -> RecurrenceRule:
    """Every second week on Monday and Wednesday."""
    return RecurrenceRule(
        Frequency.CUSTOM,
        interval=2,
        unit=RepeatUnit.WEEK,
        days_of_week=frozenset({1, 3}),
    )
