"""Guest invitation queue.

Asking for invitations marks guests as pending; the background job picks
them up and sends them. Sending is handled by an external mail service,
so dispatch here records the invitation as sent and logs it.
"""
import logging
from datetime import datetime

from sqlmodel import Session, select

from planner.calendar.audit import record_audit
from planner.core.dates import utcnow
from planner.models import AuditAction, EventGuest, EventStatus

logger = logging.getLogger(__name__)


def queue_invitation(session: Session, guest: EventGuest) -> None:
    """Mark ``guest`` for the next dispatch. The caller commits."""
    if guest.invitation_sent or guest.invitation_pending:
        return
    guest.invitation_pending = True
    session.add(guest)
    record_audit(
        session,
        AuditAction.INVITATION_QUEUED,
        "event_guest",
        guest.id,
        {"event_id": str(guest.event_id), "email": guest.email},
    )
    logger.debug(f"Queued invitation for {guest.email} to event {guest.event_id}")


def dispatch_pending_invitations(session: Session, now: datetime | None = None) -> dict:
    """
    Send every queued invitation.

    Invitations to events deleted or cancelled since they were queued are
    dropped without being sent.

    Returns dict with dispatch statistics.
    """
    now = now or utcnow()
    statement = (
        select(EventGuest)
        .where(EventGuest.invitation_pending == True)  # noqa: E712
        .order_by(EventGuest.created_at)
    )
    stats = {"sent": 0, "dropped": 0}

    for guest in session.exec(statement).all():
        event = guest.event
        guest.invitation_pending = False
        session.add(guest)

        if event.deleted_at is not None or event.status == EventStatus.CANCELLED:
            stats["dropped"] += 1
            continue

        guest.invitation_sent = True
        record_audit(
            session,
            AuditAction.INVITATION_SENT,
            "event_guest",
            guest.id,
            {"event_id": str(event.id), "email": guest.email, "sent_at": now.isoformat()},
            user_id=event.user_id,
        )
        logger.info(f"Invitation to '{event.title}' sent to {guest.email}")
        stats["sent"] += 1

    session.commit()
    return stats
