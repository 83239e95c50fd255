"""Background job scheduler for event reminders and invitations."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from planner.calendar.invitations import dispatch_pending_invitations
from planner.calendar.reminders import dispatch_due_reminders
from planner.core.config import settings
from planner.core.database import engine

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def reminder_job():
    """Deliver reminders that have come due since the last run."""
    try:
        with Session(engine) as session:
            stats = dispatch_due_reminders(session)
    except Exception:
        logger.exception("Reminder dispatch failed")
        return
    if stats["sent"] or stats["skipped"]:
        logger.info(f"Reminder dispatch completed: {stats}")


def invitation_job():
    """Send queued guest invitations."""
    try:
        with Session(engine) as session:
            stats = dispatch_pending_invitations(session)
    except Exception:
        logger.exception("Invitation dispatch failed")
        return
    if stats["sent"] or stats["dropped"]:
        logger.info(f"Invitation dispatch completed: {stats}")


def start_scheduler():
    """Register the reminder and invitation jobs and start the scheduler."""
    scheduler.add_job(
        reminder_job,
        trigger=IntervalTrigger(minutes=settings.reminder_interval_minutes),
        id="event_reminders",
        replace_existing=True,
        # One dispatch at a time
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        invitation_job,
        trigger=IntervalTrigger(minutes=settings.invitation_interval_minutes),
        id="event_invitations",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started (reminders every {settings.reminder_interval_minutes} min, "
        f"invitations every {settings.invitation_interval_minutes} min)"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
