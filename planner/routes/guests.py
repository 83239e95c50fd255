"""Guest routes for managing who is invited to an event."""
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from planner.calendar import service
from planner.calendar.schemas import GuestIn, GuestRead
from planner.core.database import get_session

router = APIRouter(prefix="/events/{event_id}/guests", tags=["guests"])


@router.get("", response_model=list[GuestRead])
async def list_guests(event_id: str, session: Session = Depends(get_session)):
    """List the guests of a stored event or series."""
    return service.list_guests(session, event_id)


@router.post("", response_model=GuestRead, status_code=201)
async def add_guest(
    event_id: str,
    guest: GuestIn,
    session: Session = Depends(get_session),
):
    """
    Invite a guest.

    Guests belong to stored rows. Occurrence ids (``...::instance::n``)
    are rejected with 404; edit the occurrence first to give it a row of
    its own, or add the guest to the series. With ``send_invitation`` the
    invitation is queued for the background job.
    """
    return service.add_guest(session, event_id, guest.email, guest.name, guest.send_invitation)


@router.delete("/{guest_id}", status_code=204)
async def remove_guest(
    event_id: str,
    guest_id: UUID,
    session: Session = Depends(get_session),
):
    """Remove a guest from an event."""
    service.remove_guest(session, event_id, guest_id)
    return Response(status_code=204)
