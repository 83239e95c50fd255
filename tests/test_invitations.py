"""Tests for queued guest invitations."""

from datetime import datetime

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from planner.calendar.invitations import dispatch_pending_invitations, queue_invitation
from planner.calendar.service import add_guest, delete_event, update_event
from planner.models import AuditAction, AuditLog, Event, EventGuest
from planner.recurrence.identity import encode_instance_id
from planner.recurrence.resolver import EventPatch, MutationScope

NOW = datetime(2024, 1, 1, 12, 0)


def guests(session: Session) -> list[EventGuest]:
    return session.exec(select(EventGuest).order_by(EventGuest.email)).all()


class TestQueue:
    """Marking guests for the next dispatch."""

    def test_queue_marks_pending(self, session: Session, weekly_series: Event):
        for guest in weekly_series.guests:
            queue_invitation(session, guest)
        session.commit()

        assert [g.invitation_pending for g in guests(session)] == [True, True]
        assert [g.invitation_sent for g in guests(session)] == [False, False]

    def test_queue_is_idempotent(self, session: Session, weekly_series: Event):
        guest = weekly_series.guests[0]
        queue_invitation(session, guest)
        queue_invitation(session, guest)
        session.commit()

        queued = session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.INVITATION_QUEUED)
        ).all()
        assert len(queued) == 1

    def test_add_guest_with_invitation(self, session: Session, single_event: Event):
        guest = add_guest(session, str(single_event.id), "carol@example.com", "Carol", send_invitation=True)
        assert guest.invitation_pending is True

    def test_add_guest_without_invitation(self, session: Session, single_event: Event):
        guest = add_guest(session, str(single_event.id), "carol@example.com")
        assert guest.invitation_pending is False


class TestDispatch:
    """The background job that sends queued invitations."""

    def test_sends_pending(self, session: Session, weekly_series: Event):
        for guest in weekly_series.guests:
            queue_invitation(session, guest)
        session.commit()

        stats = dispatch_pending_invitations(session, now=NOW)

        assert stats == {"sent": 2, "dropped": 0}
        assert [(g.invitation_sent, g.invitation_pending) for g in guests(session)] == [
            (True, False),
            (True, False),
        ]
        sent = session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.INVITATION_SENT)
        ).all()
        assert {entry.details["email"] for entry in sent} == {"ada@example.com", "grace@example.com"}

    def test_nothing_pending(self, session: Session, weekly_series: Event):
        assert dispatch_pending_invitations(session, now=NOW) == {"sent": 0, "dropped": 0}

    def test_cancelled_event_dropped(self, session: Session, single_event: Event):
        add_guest(session, str(single_event.id), "carol@example.com", send_invitation=True)
        delete_event(session, str(single_event.id))

        stats = dispatch_pending_invitations(session, now=NOW)

        assert stats == {"sent": 0, "dropped": 1}
        [guest] = guests(session)
        assert guest.invitation_sent is False
        assert guest.invitation_pending is False

    def test_split_does_not_requeue(self, session: Session, weekly_series: Event):
        for guest in weekly_series.guests:
            queue_invitation(session, guest)
        session.commit()
        update_event(
            session,
            encode_instance_id(weekly_series.id, 4),
            EventPatch({"title": "Sync"}),
            MutationScope.THIS_AND_FUTURE,
        )

        stats = dispatch_pending_invitations(session, now=NOW)

        assert stats["sent"] == 2


class TestInvitationRoutes:
    """Invitations requested through the API."""

    def test_add_guest_route(self, client: TestClient, single_event: Event):
        """Test that send_invitation queues the invitation."""
        response = client.post(
            f"/events/{single_event.id}/guests",
            json={"email": "carol@example.com", "send_invitation": True},
        )
        assert response.status_code == 201
        assert response.json()["invitation_pending"] is True
        assert response.json()["invitation_sent"] is False
