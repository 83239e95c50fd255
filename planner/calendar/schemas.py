"""Request and response bodies for the events API."""

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from planner.core.dates import to_utc_naive
from planner.models import AuditAction, EventLabel, EventStatus, GuestResponse
from planner.recurrence.rule import Frequency, RepeatUnit


class RecurrenceEndIn(BaseModel):
    type: Literal["never", "on", "after"] = "never"
    date: dt.date | None = None
    count: int | None = None


class RecurrenceIn(BaseModel):
    """Recurrence as sent by clients. Checked by ``parse_rule``, so bad
    combinations come back as 400 with the rule's own message."""
    kind: Frequency
    interval: int | None = None
    unit: RepeatUnit | None = None
    days_of_week: list[int] = []
    end: RecurrenceEndIn | None = None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


def recurrence_payload(value: Frequency | RecurrenceIn | None) -> str | dict | None:
    if isinstance(value, RecurrenceIn):
        return value.to_payload()
    return value


class NotificationSettingsIn(BaseModel):
    type: Literal["Email", "Number", "Snooze"] = "Email"
    interval: int | None = None
    time_unit: Literal["Minute", "Hour", "Day"] | None = None
    email: str | None = None
    phone: str | None = None


class GuestIn(BaseModel):
    email: str
    name: str = ""
    send_invitation: bool = False


class GuestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_id: UUID
    email: str
    name: str
    invitation_sent: bool
    invitation_pending: bool
    response_status: GuestResponse


class EventCreate(BaseModel):
    title: str
    description: str | None = None
    location: str | None = None
    start_time: dt.datetime
    end_time: dt.datetime
    all_day: bool = False
    timezone: str = "UTC"
    label: EventLabel = EventLabel.INDIGO
    notification_settings: NotificationSettingsIn | None = None
    recurrence: Frequency | RecurrenceIn | None = None
    guests: list[GuestIn] = []
    send_invitations: bool = False

    @model_validator(mode="after")
    def check_times(self):
        if to_utc_naive(self.end_time) < to_utc_naive(self.start_time):
            raise ValueError("end_time must not be before start_time")
        return self


class EventUpdate(BaseModel):
    """Partial update; only fields present in the request are changed."""
    title: str | None = None
    description: str | None = None
    location: str | None = None
    start_time: dt.datetime | None = None
    end_time: dt.datetime | None = None
    all_day: bool | None = None
    timezone: str | None = None
    label: EventLabel | None = None
    status: EventStatus | None = None
    notification_settings: NotificationSettingsIn | None = None
    recurrence: Frequency | RecurrenceIn | None = None

    @model_validator(mode="after")
    def check_times(self):
        if (
            self.start_time and self.end_time
            and to_utc_naive(self.end_time) < to_utc_naive(self.start_time)
        ):
            raise ValueError("end_time must not be before start_time")
        return self


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None
    location: str | None
    start_time: dt.datetime
    end_time: dt.datetime
    all_day: bool
    timezone: str
    label: EventLabel
    notification_settings: dict | None
    recurrence_kind: str
    recurrence_rule: dict | None
    parent_event_id: UUID | None
    is_recurring_parent: bool
    status: EventStatus
    updated_at: dt.datetime


class OccurrenceView(BaseModel):
    """One entry of a listing: a concrete event or a virtual occurrence."""
    id: str
    parent_id: str | None
    start_time: dt.datetime
    end_time: dt.datetime
    title: str
    label: EventLabel
    all_day: bool
    is_recurring_instance: bool
    recurrence_summary: str | None = None


class HolidayView(BaseModel):
    """A public holiday on one concrete date."""
    id: UUID
    title: str
    description: str | None
    date: dt.date
    is_recurring: bool
    countries: list[str] | None


class OccurrenceList(BaseModel):
    occurrences: list[OccurrenceView]
    truncated: bool = False
    public_holidays: list[HolidayView] = []


class UpdateResult(BaseModel):
    event: EventRead | None
    scope: str


class HolidayCreate(BaseModel):
    title: str
    description: str | None = None
    holiday_date: dt.date
    is_recurring: bool = False
    countries: list[str] | None = None


class HolidayUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    holiday_date: dt.date | None = None
    is_recurring: bool | None = None
    countries: list[str] | None = None


class HolidayRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None
    holiday_date: dt.date
    is_recurring: bool
    countries: list[str] | None
    created_by: int
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: int
    action: AuditAction
    entity_type: str
    entity_id: str
    details: dict | None
    risk_level: str
    created_at: dt.datetime
