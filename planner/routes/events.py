"""Event routes for listing, creating and editing events and series."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlmodel import Session

from planner.calendar import service
from planner.calendar.schemas import (
    EventCreate,
    EventRead,
    EventUpdate,
    OccurrenceList,
    OccurrenceView,
    UpdateResult,
)
from planner.core.database import get_session
from planner.recurrence.resolver import MutationScope

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=OccurrenceList)
async def list_events(
    start: datetime,
    end: datetime,
    include_recurring: bool = True,
    include_holidays: bool = True,
    session: Session = Depends(get_session),
):
    """
    List events and occurrences starting within ``[start, end]``.

    Recurring series are expanded into virtual occurrences whose ids have
    the form ``{series_id}::instance::{n}``. ``truncated`` is true when a
    series produced more occurrences than the per-series cap; request a
    narrower window to see the rest. Public holidays in the window come
    back in ``public_holidays``.
    """
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    return service.list_occurrences(
        session, start, end, include_recurring, include_holidays=include_holidays
    )


@router.post("", response_model=EventRead, status_code=201)
async def create_event(draft: EventCreate, session: Session = Depends(get_session)):
    """
    Create an event, optionally recurring.

    The recurrence rule is validated against the event's start; an invalid
    rule is rejected with 400 and nothing is stored.
    """
    return service.create_event(session, draft)


@router.get("/{event_id}", response_model=OccurrenceView)
async def event_detail(event_id: str, session: Session = Depends(get_session)):
    """Show one event or one occurrence of a series."""
    return service.get_occurrence(session, event_id)


@router.put("/{event_id}", response_model=UpdateResult)
async def update_event(
    event_id: str,
    update_data: EventUpdate,
    scope: MutationScope = Query(MutationScope.SINGLE),
    session: Session = Depends(get_session),
):
    """
    Update an event or occurrence.

    With an occurrence id, ``scope`` picks what changes: only that
    occurrence (``single``), it and every later one (``thisAndFuture``,
    which splits the series), or the whole series (``all``). Returns the
    row that now holds the edited occurrence. Returns 409 if the series
    was modified concurrently.
    """
    patch = service.patch_from_update(update_data)
    event = service.update_event(session, event_id, patch, scope)
    return UpdateResult(
        event=EventRead.model_validate(event) if event else None,
        scope=scope.value,
    )


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    scope: MutationScope = Query(MutationScope.SINGLE),
    session: Session = Depends(get_session),
):
    """
    Delete an event or occurrence.

    ``single`` removes one occurrence, ``thisAndFuture`` ends the series
    before the occurrence, and ``all`` removes the whole series together
    with its guests, reminders and split-off rows.
    """
    service.delete_event(session, event_id, scope)
    return Response(status_code=204)
