"""Public holiday routes."""
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from planner.calendar import holidays
from planner.calendar.schemas import HolidayCreate, HolidayRead, HolidayUpdate, HolidayView
from planner.core.database import get_session

router = APIRouter(prefix="/public-holidays", tags=["public holidays"])


@router.get("", response_model=list[HolidayView])
async def list_holidays(
    start: date,
    end: date,
    country: str | None = None,
    session: Session = Depends(get_session),
):
    """
    List public holidays between ``start`` and ``end`` inclusive.

    Recurring holidays appear once per year of the range. ``country``
    limits the list to that country's holidays and global ones.
    """
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    return holidays.holidays_in_range(session, start, end, country)


@router.post("", response_model=HolidayRead, status_code=201)
async def create_holiday(draft: HolidayCreate, session: Session = Depends(get_session)):
    """Add a public holiday."""
    return holidays.create_holiday(session, draft)


@router.put("/{holiday_id}", response_model=HolidayRead)
async def update_holiday(
    holiday_id: UUID,
    update_data: HolidayUpdate,
    session: Session = Depends(get_session),
):
    """Change a public holiday."""
    return holidays.update_holiday(session, holiday_id, update_data)


@router.delete("/{holiday_id}", status_code=204)
async def delete_holiday(holiday_id: UUID, session: Session = Depends(get_session)):
    """Deactivate a public holiday. It stays in the audit trail."""
    holidays.delete_holiday(session, holiday_id)
    return Response(status_code=204)
