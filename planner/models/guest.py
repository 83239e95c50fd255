"""Guest model for people invited to an event.

Guests belong to a concrete Event row. A virtual occurrence has no guests
of its own: it shows those of its series, and when an occurrence or the
tail of a series is split off into its own row the guests are copied over.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from planner.core.dates import utcnow

if TYPE_CHECKING:
    from planner.models.event import Event


class GuestResponse(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MAYBE = "maybe"


class EventGuest(SQLModel, table=True):
    """A person invited to an event.

    Attributes:
        id: Unique identifier (UUID).
        event_id: Foreign key to the owning Event; removed with it.
        email: Email address of the guest.
        name: Display name.
        invitation_sent: Whether an invitation has gone out.
        invitation_pending: Whether an invitation is queued for the
            background job to send.
        response_status: pending, accepted, declined or maybe.
        created_at: When the guest was added.
        event: Reference to the owning Event object.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", ondelete="CASCADE", index=True)
    email: str
    name: str = ""
    invitation_sent: bool = Field(default=False)
    invitation_pending: bool = Field(default=False, index=True)
    response_status: GuestResponse = Field(default=GuestResponse.PENDING)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="guests")
