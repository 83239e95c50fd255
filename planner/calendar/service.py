"""Event service: listing, creating and scoped mutation of events.

Functions here take a database session, mirror the operations exposed by
the HTTP layer, and raise the exceptions in ``planner.recurrence.errors``.
Virtual occurrences are generated on every listing; only series rows,
split continuations and edited single occurrences are stored.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from planner.calendar.audit import audit_entry, record_audit
from planner.calendar.holidays import holidays_in_range
from planner.calendar.invitations import queue_invitation
from planner.calendar.reminders import schedule_reminder
from planner.calendar.schemas import (
    EventCreate,
    EventUpdate,
    OccurrenceList,
    OccurrenceView,
    recurrence_payload,
)
from planner.core.config import settings
from planner.core.dates import to_utc_naive, utcnow
from planner.models import AuditAction, Event, EventGuest, EventStatus
from planner.recurrence.errors import ConcurrentMutationConflict, EventNotFound
from planner.recurrence.generator import Occurrence, OccurrenceGenerator, expand_occurrences
from planner.recurrence.identity import decode_instance_id, encode_instance_id
from planner.recurrence.resolver import (
    EventPatch,
    MutationScope,
    SeriesMutationResolver,
    WritePlan,
)
from planner.recurrence.rule import parse_rule

logger = logging.getLogger(__name__)

# Fields that may be cleared with an explicit null
NULLABLE_FIELDS = {"description", "location", "notification_settings", "recurrence"}


def _load_event(session: Session, event_id: str) -> Event:
    """Fetch a live (not soft-deleted) event by its string id."""
    try:
        key = UUID(event_id)
    except ValueError:
        raise EventNotFound(event_id) from None
    event = session.get(Event, key)
    if event is None or event.deleted_at is not None:
        raise EventNotFound(event_id)
    return event


def _event_view(event: Event) -> OccurrenceView:
    return OccurrenceView(
        id=str(event.id),
        parent_id=str(event.parent_event_id) if event.parent_event_id else None,
        start_time=event.start_time,
        end_time=event.end_time,
        title=event.title,
        label=event.label,
        all_day=event.all_day,
        is_recurring_instance=False,
        recurrence_summary=event.rule.describe() if event.is_recurring_parent else None,
    )


def _instance_view(event: Event, occurrence: Occurrence, summary: str) -> OccurrenceView:
    return OccurrenceView(
        id=encode_instance_id(event.id, occurrence.index),
        parent_id=str(event.id),
        start_time=occurrence.start,
        end_time=occurrence.end,
        title=event.title,
        label=event.label,
        all_day=event.all_day,
        is_recurring_instance=True,
        recurrence_summary=summary,
    )


def list_occurrences(
    session: Session,
    start: datetime,
    end: datetime,
    include_recurring: bool = True,
    cap: int | None = None,
    include_holidays: bool = True,
) -> OccurrenceList:
    """
    List everything that starts within ``[start, end]``, in start order.

    Series rows are fetched whenever they start before ``end``, since a
    series anchored long ago can still produce occurrences inside the
    window. Each series is expanded independently and the results merged.
    With ``include_recurring=False`` series rows are listed as stored rows
    instead of being expanded. Public holidays in the window are listed
    alongside.
    """
    start, end = to_utc_naive(start), to_utc_naive(end)
    cap = cap or settings.max_occurrences
    statement = (
        select(Event)
        .where(Event.deleted_at == None)  # noqa: E711
        .where(Event.status != EventStatus.CANCELLED)
        .where(Event.start_time <= end)
        .order_by(Event.start_time)
    )
    events = session.exec(statement).all()

    views: list[OccurrenceView] = []
    truncated = False
    for event in events:
        if include_recurring and event.is_recurring_parent:
            rule = event.rule
            expansion = expand_occurrences(
                event.start_time, event.end_time, rule, start, end, cap
            )
            truncated = truncated or expansion.truncated
            summary = rule.describe()
            views.extend(_instance_view(event, occ, summary) for occ in expansion.occurrences)
        elif event.start_time >= start:
            views.append(_event_view(event))

    views.sort(key=lambda view: (view.start_time, view.id))
    logger.debug(f"Listed {len(views)} occurrences between {start} and {end}")
    holidays = holidays_in_range(session, start.date(), end.date()) if include_holidays else []
    return OccurrenceList(occurrences=views, truncated=truncated, public_holidays=holidays)


def get_occurrence(session: Session, occurrence_id: str) -> OccurrenceView:
    """Look up a concrete event or one virtual occurrence by id."""
    ref = decode_instance_id(occurrence_id)
    event = _load_event(session, ref.parent_id)
    if ref.index is None or (not event.is_recurring_parent and ref.index == 0):
        return _event_view(event)
    if not event.is_recurring_parent:
        raise EventNotFound(occurrence_id)

    rule = event.rule
    occurrence = OccurrenceGenerator(event.start_time, event.end_time, rule).occurrence_at(ref.index)
    if occurrence is None:
        raise EventNotFound(occurrence_id)
    return _instance_view(event, occurrence, rule.describe())


def create_event(session: Session, draft: EventCreate) -> Event:
    """Validate and store a new event or series, with its guests and first reminder."""
    start = to_utc_naive(draft.start_time)
    rule = parse_rule(recurrence_payload(draft.recurrence), anchor=start)

    event = Event(
        title=draft.title,
        description=draft.description,
        location=draft.location,
        start_time=start,
        end_time=to_utc_naive(draft.end_time),
        all_day=draft.all_day,
        timezone=draft.timezone,
        label=draft.label,
        notification_settings=(
            draft.notification_settings.model_dump() if draft.notification_settings else None
        ),
    )
    event.set_rule(rule)
    session.add(event)
    for guest_in in draft.guests:
        guest = EventGuest(event_id=event.id, email=guest_in.email.strip(), name=guest_in.name.strip())
        session.add(guest)
        if draft.send_invitations or guest_in.send_invitation:
            queue_invitation(session, guest)
    record_audit(
        session,
        AuditAction.EVENT_CREATED,
        "event",
        event.id,
        {"title": event.title, "recurrence": rule.kind.value},
        user_id=event.user_id,
    )
    session.commit()
    session.refresh(event)

    if schedule_reminder(session, event):
        session.commit()
        session.refresh(event)

    logger.info(
        f"Created event {event.id} '{event.title}' "
        f"(recurrence: {rule.kind.value}, guests: {len(draft.guests)})"
    )
    return event


def patch_from_update(update_data: EventUpdate) -> EventPatch:
    """Convert a partial update body into an EventPatch."""
    values = {}
    for name in update_data.model_fields_set:
        value = getattr(update_data, name)
        if value is None and name not in NULLABLE_FIELDS:
            continue
        if name == "recurrence":
            value = recurrence_payload(value)
        elif name == "notification_settings" and value is not None:
            value = value.model_dump()
        elif name in ("start_time", "end_time"):
            value = to_utc_naive(value)
        values[name] = value
    return EventPatch(values)


def apply_write_plan(session: Session, plan: WritePlan) -> None:
    """
    Apply a resolver plan in a single transaction.

    The first statement bumps the target's ``updated_at`` only if it still
    holds the value read before planning. If another request got there
    first nothing matches, the transaction is rolled back and
    ConcurrentMutationConflict is raised. Any other failure also rolls back
    everything.
    """
    try:
        result = session.connection().execute(
            update(Event)
            .where(Event.id == plan.target_id)
            .where(Event.updated_at == plan.expected_updated_at)
            .values(updated_at=utcnow())
        )
        if result.rowcount != 1:
            logger.warning(f"Concurrent modification of event {plan.target_id}")
            raise ConcurrentMutationConflict(str(plan.target_id))

        for event_id, values in plan.updates.items():
            event = session.get(Event, event_id)
            for name, value in values.items():
                setattr(event, name, value)
            session.add(event)

        for row in plan.inserts:
            session.add(row)

        for event_id in plan.deletes:
            event = session.get(Event, event_id)
            if event is not None:
                session.delete(event)

        session.commit()
    except Exception:
        session.rollback()
        raise


def _apply_and_follow_up(session: Session, plan: WritePlan) -> None:
    apply_write_plan(session, plan)
    new_events = [row for row in plan.inserts if isinstance(row, Event)]
    scheduled = False
    for event in new_events:
        scheduled = bool(schedule_reminder(session, event)) or scheduled
    if scheduled:
        session.commit()


def update_event(
    session: Session,
    occurrence_id: str,
    patch: EventPatch,
    scope: MutationScope = MutationScope.SINGLE,
) -> Event | None:
    """
    Edit an event, one occurrence of a series, or a series from an
    occurrence onwards.

    Returns the row that holds the edited occurrence afterwards: the series
    row itself, a materialised single occurrence, or a new continuation
    series.
    """
    ref = decode_instance_id(occurrence_id)
    event = _load_event(session, ref.parent_id)
    plan = SeriesMutationResolver().resolve(event, ref.index, scope, patch)
    plan.inserts.append(
        audit_entry(
            AuditAction.EVENT_UPDATED,
            "event",
            event.id,
            {"occurrence_id": occurrence_id, "scope": scope.value, "fields": sorted(patch.values)},
            user_id=event.user_id,
        )
    )
    _apply_and_follow_up(session, plan)

    logger.info(f"Updated {occurrence_id} (scope: {scope.value}, fields: {sorted(patch.values)})")
    if plan.result_id is None:
        return None
    return session.get(Event, plan.result_id)


def delete_event(
    session: Session,
    occurrence_id: str,
    scope: MutationScope = MutationScope.SINGLE,
) -> None:
    """Delete an event, one occurrence, a series tail, or a whole series."""
    ref = decode_instance_id(occurrence_id)
    event = _load_event(session, ref.parent_id)
    plan = SeriesMutationResolver().resolve(event, ref.index, scope)
    plan.inserts.append(
        audit_entry(
            AuditAction.EVENT_DELETED,
            "event",
            event.id,
            {"occurrence_id": occurrence_id, "scope": scope.value},
            user_id=event.user_id,
        )
    )
    apply_write_plan(session, plan)
    logger.info(f"Deleted {occurrence_id} (scope: {scope.value})")


def list_guests(session: Session, event_id: str) -> list[EventGuest]:
    event = _concrete_event(session, event_id)
    return list(event.guests)


def add_guest(
    session: Session, event_id: str, email: str, name: str = "", send_invitation: bool = False
) -> EventGuest:
    event = _concrete_event(session, event_id)
    guest = EventGuest(event_id=event.id, email=email.strip(), name=name.strip())
    session.add(guest)
    if send_invitation:
        queue_invitation(session, guest)
    session.commit()
    session.refresh(guest)
    logger.info(f"Added guest {guest.email} to event {event.id}")
    return guest


def remove_guest(session: Session, event_id: str, guest_id: UUID) -> None:
    event = _concrete_event(session, event_id)
    guest = session.get(EventGuest, guest_id)
    if guest is None or guest.event_id != event.id:
        raise EventNotFound(f"{event_id} guest {guest_id}")
    session.delete(guest)
    session.commit()


def _concrete_event(session: Session, event_id: str) -> Event:
    """Guests hang off stored rows only, never off a virtual occurrence."""
    if decode_instance_id(event_id).is_instance:
        raise EventNotFound(event_id)
    return _load_event(session, event_id)
