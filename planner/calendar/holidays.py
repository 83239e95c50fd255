"""Public holiday service.

Recurring holidays are stored once and placed on each year of a requested
range when listed. Deleting a holiday only deactivates it.
"""
import logging
from datetime import date
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from planner.calendar.audit import record_audit
from planner.calendar.schemas import HolidayCreate, HolidayUpdate, HolidayView
from planner.core.dates import utcnow
from planner.models import AuditAction, PublicHoliday
from planner.recurrence.errors import HolidayNotFound

logger = logging.getLogger(__name__)


def _load_holiday(session: Session, holiday_id: UUID) -> PublicHoliday:
    holiday = session.get(PublicHoliday, holiday_id)
    if holiday is None or not holiday.is_active:
        raise HolidayNotFound(holiday_id)
    return holiday


def holidays_in_range(
    session: Session, start: date, end: date, country: str | None = None
) -> list[HolidayView]:
    """
    Active holidays falling within ``[start, end]``, in date order.

    With ``country``, only holidays for that country and global ones are
    returned.
    """
    statement = (
        select(PublicHoliday)
        .where(PublicHoliday.is_active == True)  # noqa: E712
        .where(PublicHoliday.holiday_date <= end)
        .where(
            or_(
                PublicHoliday.is_recurring == True,  # noqa: E712
                PublicHoliday.holiday_date >= start,
            )
        )
    )

    views = []
    for holiday in session.exec(statement).all():
        if country and holiday.countries and country.upper() not in holiday.countries:
            continue
        for year in range(start.year, end.year + 1):
            day = holiday.falls_in(year)
            if day is None or not start <= day <= end:
                continue
            views.append(
                HolidayView(
                    id=holiday.id,
                    title=holiday.title,
                    description=holiday.description,
                    date=day,
                    is_recurring=holiday.is_recurring,
                    countries=holiday.countries,
                )
            )

    views.sort(key=lambda view: (view.date, view.title))
    return views


def _country_codes(countries: list[str] | None) -> list[str] | None:
    if not countries:
        return None
    return sorted({code.strip().upper() for code in countries if code.strip()}) or None


def create_holiday(session: Session, draft: HolidayCreate, user_id: int = 1) -> PublicHoliday:
    holiday = PublicHoliday(
        title=draft.title.strip(),
        description=draft.description,
        holiday_date=draft.holiday_date,
        is_recurring=draft.is_recurring,
        countries=_country_codes(draft.countries),
        created_by=user_id,
    )
    session.add(holiday)
    record_audit(
        session,
        AuditAction.HOLIDAY_CREATED,
        "public_holiday",
        holiday.id,
        {"title": holiday.title, "holiday_date": holiday.holiday_date.isoformat()},
        user_id=user_id,
    )
    session.commit()
    session.refresh(holiday)
    logger.info(f"Created public holiday {holiday.id} '{holiday.title}'")
    return holiday


def update_holiday(
    session: Session, holiday_id: UUID, update_data: HolidayUpdate, user_id: int = 1
) -> PublicHoliday:
    holiday = _load_holiday(session, holiday_id)
    changes = update_data.model_dump(exclude_unset=True)
    for name, value in changes.items():
        if value is None and name not in ("countries", "description"):
            continue
        if name == "countries":
            value = _country_codes(value)
        setattr(holiday, name, value)
    holiday.updated_at = utcnow()
    session.add(holiday)
    record_audit(
        session,
        AuditAction.HOLIDAY_UPDATED,
        "public_holiday",
        holiday.id,
        {"fields": sorted(changes)},
        user_id=user_id,
    )
    session.commit()
    session.refresh(holiday)
    logger.info(f"Updated public holiday {holiday.id} (fields: {sorted(changes)})")
    return holiday


def delete_holiday(session: Session, holiday_id: UUID, user_id: int = 1) -> None:
    holiday = _load_holiday(session, holiday_id)
    holiday.is_active = False
    holiday.updated_at = utcnow()
    session.add(holiday)
    record_audit(
        session,
        AuditAction.HOLIDAY_DELETED,
        "public_holiday",
        holiday.id,
        {"title": holiday.title},
        user_id=user_id,
    )
    session.commit()
    logger.info(f"Deactivated public holiday {holiday.id}")
