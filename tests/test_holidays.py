"""Tests for public holidays."""

from datetime import date, datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from planner.calendar.holidays import (
    create_holiday,
    delete_holiday,
    holidays_in_range,
    update_holiday,
)
from planner.calendar.schemas import HolidayCreate, HolidayUpdate
from planner.calendar.service import list_occurrences
from planner.models import Event, PublicHoliday
from planner.recurrence.errors import HolidayNotFound


@pytest.fixture(name="new_year")
def new_year_fixture(session: Session) -> PublicHoliday:
    """New Year's Day, every year from 2020, everywhere."""
    return create_holiday(
        session,
        HolidayCreate(title="New Year's Day", holiday_date=date(2020, 1, 1), is_recurring=True),
    )


@pytest.fixture(name="thanksgiving")
def thanksgiving_fixture(session: Session) -> PublicHoliday:
    """US Thanksgiving 2024 only."""
    return create_holiday(
        session,
        HolidayCreate(title="Thanksgiving", holiday_date=date(2024, 11, 28), countries=["us"]),
    )


class TestHolidayRange:
    """Listing holidays that fall within a date range."""

    def test_recurring_appears_every_year(self, session: Session, new_year: PublicHoliday):
        views = holidays_in_range(session, date(2024, 6, 1), date(2027, 6, 1))
        assert [view.date for view in views] == [date(2025, 1, 1), date(2026, 1, 1), date(2027, 1, 1)]
        assert {view.id for view in views} == {new_year.id}

    def test_one_off_only_in_range(self, session: Session, thanksgiving: PublicHoliday):
        assert holidays_in_range(session, date(2024, 11, 1), date(2024, 11, 30))[0].date == date(2024, 11, 28)
        assert holidays_in_range(session, date(2025, 11, 1), date(2025, 11, 30)) == []

    def test_ordered_by_date(
        self, session: Session, new_year: PublicHoliday, thanksgiving: PublicHoliday
    ):
        views = holidays_in_range(session, date(2024, 1, 1), date(2025, 12, 31))
        assert [view.title for view in views] == ["New Year's Day", "Thanksgiving", "New Year's Day"]

    def test_country_filter_keeps_global(
        self, session: Session, new_year: PublicHoliday, thanksgiving: PublicHoliday
    ):
        window = (date(2024, 1, 1), date(2024, 12, 31))
        assert len(holidays_in_range(session, *window, country="US")) == 2
        assert [view.title for view in holidays_in_range(session, *window, country="de")] == ["New Year's Day"]


class TestHolidayChanges:
    """Creating, updating and deactivating holidays."""

    def test_country_codes_normalised(self, thanksgiving: PublicHoliday):
        assert thanksgiving.countries == ["US"]
        assert thanksgiving.is_active

    def test_update(self, session: Session, thanksgiving: PublicHoliday):
        updated = update_holiday(
            session, thanksgiving.id, HolidayUpdate(holiday_date=date(2024, 11, 29), countries=None)
        )
        assert updated.holiday_date == date(2024, 11, 29)
        assert updated.countries is None
        assert updated.title == "Thanksgiving"

    def test_delete_deactivates(self, session: Session, thanksgiving: PublicHoliday):
        delete_holiday(session, thanksgiving.id)

        session.refresh(thanksgiving)
        assert thanksgiving.is_active is False
        assert holidays_in_range(session, date(2024, 1, 1), date(2024, 12, 31)) == []
        with pytest.raises(HolidayNotFound):
            update_holiday(session, thanksgiving.id, HolidayUpdate(title="Again"))

    def test_unknown_holiday(self, session: Session):
        with pytest.raises(HolidayNotFound):
            delete_holiday(session, uuid4())


class TestCalendarMerge:
    """Event listings carry the holidays of their window."""

    def test_listing_includes_holidays(
        self, session: Session, new_year: PublicHoliday, weekly_series: Event
    ):
        listing = list_occurrences(session, datetime(2024, 1, 1), datetime(2024, 3, 31))
        assert len(listing.occurrences) == 10
        assert [view.date for view in listing.public_holidays] == [date(2024, 1, 1)]

    def test_listing_without_holidays(self, session: Session, new_year: PublicHoliday):
        listing = list_occurrences(
            session, datetime(2024, 1, 1), datetime(2024, 3, 31), include_holidays=False
        )
        assert listing.public_holidays == []


class TestHolidayRoutes:
    """Tests for the public holiday endpoints."""

    def test_create_and_list(self, client: TestClient):
        """Test adding a holiday and listing it by range."""
        response = client.post(
            "/public-holidays",
            json={"title": "Labour Day", "holiday_date": "2024-05-01", "is_recurring": True},
        )
        assert response.status_code == 201
        assert response.json()["is_active"] is True

        response = client.get("/public-holidays", params={"start": "2025-01-01", "end": "2025-12-31"})
        assert response.status_code == 200
        assert [h["date"] for h in response.json()] == ["2025-05-01"]

    def test_update_and_delete(self, client: TestClient, thanksgiving: PublicHoliday):
        """Test changing and then removing a holiday."""
        response = client.put(f"/public-holidays/{thanksgiving.id}", json={"title": "Thanksgiving Day"})
        assert response.status_code == 200
        assert response.json()["title"] == "Thanksgiving Day"

        assert client.delete(f"/public-holidays/{thanksgiving.id}").status_code == 204
        assert client.delete(f"/public-holidays/{thanksgiving.id}").status_code == 404

    def test_inverted_range(self, client: TestClient):
        """Test 400 when end is before start."""
        response = client.get("/public-holidays", params={"start": "2024-12-31", "end": "2024-01-01"})
        assert response.status_code == 400

    def test_event_listing_carries_holidays(self, client: TestClient, new_year: PublicHoliday):
        """Test that the events listing includes the window's holidays."""
        data = client.get(
            "/events", params={"start": "2024-12-01T00:00:00", "end": "2025-01-31T00:00:00"}
        ).json()
        assert [h["title"] for h in data["public_holidays"]] == ["New Year's Day"]
        assert data["public_holidays"][0]["date"] == "2025-01-01"
