"""Event model for calendar events and recurring series.

This module defines the Event model. A row is either a single concrete
event or the parent of a recurring series, whose occurrences are generated
on demand from ``recurrence_rule`` and never stored individually. Rows
created by splitting a series or by editing one occurrence point back at
the series root through ``parent_event_id``.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

from planner.core.dates import utcnow
from planner.recurrence.rule import RecurrenceRule, parse_rule

if TYPE_CHECKING:
    from planner.models.guest import EventGuest
    from planner.models.reminder import EventReminder


class EventStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EventLabel(str, Enum):
    INDIGO = "indigo"
    GREY = "grey"
    GREEN = "green"
    BLUE = "blue"
    RED = "red"
    PURPLE = "purple"


class Event(SQLModel, table=True):
    """A calendar event, possibly the parent of a recurring series.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Owner of this event (single user for now).
        title: Event title.
        description: Free-form description.
        location: Where the event takes place.
        start_time: When the event (or the series' first occurrence) starts,
            naive UTC.
        end_time: When it ends; ``end_time - start_time`` is the duration of
            every occurrence.
        all_day: Whether the event spans whole days.
        timezone: Time zone label recorded at creation. Only a label, no
            offset arithmetic is done with it.
        label: Display colour.
        notification_settings: Reminder preferences as JSON, e.g.
            ``{"type": "Email", "interval": 15, "time_unit": "Minute"}``.
        recurrence_kind: The rule's kind, "none" for single events.
        recurrence_rule: The rule as JSON, see ``planner.recurrence.rule``.
        parent_event_id: Series root this row was split or materialised from.
            Always the root, never another child, so the chain is one level
            deep.
        is_recurring_parent: True when the row carries a non-none rule.
        status: active, cancelled or completed.
        created_at: When the row was created.
        updated_at: Bumped on every write; used as the optimistic
            concurrency precondition for series mutations.
        deleted_at: Soft-delete marker.
        guests: People invited to this event.
        reminders: Pending and sent reminders.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: int = Field(default=1, index=True)
    title: str
    description: str | None = None
    location: str | None = None
    # Stored naive, always UTC
    start_time: datetime = Field(sa_type=DateTime, index=True)
    end_time: datetime = Field(sa_type=DateTime)
    all_day: bool = Field(default=False)
    timezone: str = Field(default="UTC")
    label: EventLabel = Field(default=EventLabel.INDIGO)
    notification_settings: dict | None = Field(default=None, sa_column=Column(JSON))
    recurrence_kind: str = Field(default="none")
    recurrence_rule: dict | None = Field(default=None, sa_column=Column(JSON))
    parent_event_id: UUID | None = Field(
        default=None, foreign_key="event.id", ondelete="CASCADE", index=True
    )
    is_recurring_parent: bool = Field(default=False)
    status: EventStatus = Field(default=EventStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    deleted_at: datetime | None = Field(default=None, sa_type=DateTime)

    # Relationships
    guests: list["EventGuest"] = Relationship(back_populates="event", cascade_delete=True)
    reminders: list["EventReminder"] = Relationship(
        back_populates="event", cascade_delete=True
    )

    @property
    def rule(self) -> RecurrenceRule:
        """The stored rule, or a ``none`` rule for single events."""
        return parse_rule(self.recurrence_rule)

    def set_rule(self, rule: RecurrenceRule) -> None:
        self.recurrence_kind = rule.kind.value
        self.recurrence_rule = rule.to_dict() if rule.is_recurring else None
        self.is_recurring_parent = rule.is_recurring

    @property
    def series_root_id(self) -> UUID:
        """Id that rows derived from this one should point at."""
        return self.parent_event_id or self.id
