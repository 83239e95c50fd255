"""Reminder scheduling and dispatch.

An event's ``notification_settings`` say how long before each occurrence
to remind its owner. Only the next pending reminder of a series is stored;
when the background job delivers it, the reminder for the following
occurrence is scheduled. Delivery itself (email, push, SMS) is handled by
an external service, so dispatch here records the reminder as sent and
logs it.
"""
import logging
from datetime import datetime, timedelta

from sqlmodel import Session, select

from planner.calendar.audit import record_audit
from planner.core.config import settings
from planner.core.dates import utcnow
from planner.models import AuditAction, Event, EventReminder, EventStatus
from planner.recurrence.generator import OccurrenceGenerator

logger = logging.getLogger(__name__)

TIME_UNITS = {
    "Minute": "minutes",
    "Hour": "hours",
    "Day": "days",
}


def reminder_offset(notification_settings: dict | None) -> timedelta | None:
    """How long before an occurrence to remind, or None for no reminder."""
    if not notification_settings or notification_settings.get("type") == "Snooze":
        return None
    interval = notification_settings.get("interval")
    if not interval:
        return None
    unit = TIME_UNITS.get(notification_settings.get("time_unit") or "")
    if unit is None:
        return timedelta(minutes=settings.default_reminder_minutes)
    return timedelta(**{unit: interval})


def schedule_reminder(
    session: Session, event: Event, after: datetime | None = None
) -> EventReminder | None:
    """
    Add a reminder for the first occurrence of ``event`` starting after
    ``after`` (default: now). The caller commits.

    Returns None when the event has no reminder settings or no further
    occurrences.
    """
    offset = reminder_offset(event.notification_settings)
    if offset is None:
        return None

    generator = OccurrenceGenerator(event.start_time, event.end_time, event.rule)
    occurrence = generator.first_after(after or utcnow())
    if occurrence is None:
        return None

    reminder = EventReminder(
        event_id=event.id,
        user_id=event.user_id,
        remind_at=occurrence.start - offset,
        occurrence_start=occurrence.start,
    )
    session.add(reminder)
    logger.debug(f"Scheduled reminder for event {event.id} at {reminder.remind_at}")
    return reminder


def _still_scheduled(event: Event, occurrence_start: datetime) -> bool:
    """Whether the occurrence a reminder was made for still exists."""
    if event.deleted_at is not None or event.status == EventStatus.CANCELLED:
        return False
    generator = OccurrenceGenerator(event.start_time, event.end_time, event.rule)
    return any(True for _ in generator.between(occurrence_start, occurrence_start, 1))


def dispatch_due_reminders(session: Session, now: datetime | None = None) -> dict:
    """
    Deliver every reminder that has come due.

    Reminders whose occurrence has since been excluded, cancelled or moved
    are marked sent without being delivered. For series, the next
    occurrence's reminder is scheduled either way.

    Returns dict with dispatch statistics.
    """
    now = now or utcnow()
    statement = (
        select(EventReminder)
        .where(EventReminder.sent == False)  # noqa: E712
        .where(EventReminder.remind_at <= now)
        .order_by(EventReminder.remind_at)
    )
    stats = {"sent": 0, "skipped": 0, "rescheduled": 0}

    for reminder in session.exec(statement).all():
        event = reminder.event
        reminder.sent = True
        reminder.sent_at = now
        session.add(reminder)

        if _still_scheduled(event, reminder.occurrence_start):
            logger.info(
                f"Reminder ({reminder.reminder_type.value}) to user {reminder.user_id}: "
                f"'{event.title}' starts at {reminder.occurrence_start.isoformat()}"
            )
            record_audit(
                session,
                AuditAction.REMINDER_SENT,
                "event",
                event.id,
                {"occurrence_start": reminder.occurrence_start.isoformat()},
                user_id=reminder.user_id,
            )
            stats["sent"] += 1
        else:
            stats["skipped"] += 1

        if event.is_recurring_parent and event.deleted_at is None:
            if schedule_reminder(session, event, after=reminder.occurrence_start):
                stats["rescheduled"] += 1

    session.commit()
    return stats
