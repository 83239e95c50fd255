"""Reminder model for upcoming-event notifications.

A reminder row is created when an event with notification settings is
created, and is marked sent by the background reminder job. For recurring
series the job schedules the reminder of the next occurrence after each
delivery.
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


class ReminderType(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class EventReminder(SQLModel, table=True):
    """A scheduled notification for an event occurrence.

    Attributes:
        id: Unique identifier (UUID).
        event_id: Foreign key to the Event; removed with it.
        user_id: User to notify.
        remind_at: When the reminder is due (naive UTC).
        occurrence_start: Start of the occurrence the reminder is for.
        sent: Whether the reminder has been delivered.
        sent_at: Delivery time.
        reminder_type: Delivery channel.
        created_at: When the reminder was scheduled.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", ondelete="CASCADE", index=True)
    user_id: int = Field(default=1)
    remind_at: datetime = Field(sa_type=DateTime, index=True)
    occurrence_start: datetime = Field(sa_type=DateTime)
    sent: bool = Field(default=False)
    sent_at: datetime | None = Field(default=None, sa_type=DateTime)
    reminder_type: ReminderType = Field(default=ReminderType.EMAIL)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="reminders")
