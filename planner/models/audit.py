"""Audit trail of calendar changes."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from planner.core.dates import utcnow


class AuditAction(str, Enum):
    EVENT_CREATED = "calendar_event_created"
    EVENT_UPDATED = "calendar_event_updated"
    EVENT_DELETED = "calendar_event_deleted"
    INVITATION_QUEUED = "event_invitation_queued"
    INVITATION_SENT = "event_invitation_sent"
    REMINDER_SENT = "event_reminder_sent"
    HOLIDAY_CREATED = "public_holiday_created"
    HOLIDAY_UPDATED = "public_holiday_updated"
    HOLIDAY_DELETED = "public_holiday_deleted"


class AuditLog(SQLModel, table=True):
    """One recorded change.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Who made the change.
        action: What happened.
        entity_type: "event", "event_guest" or "public_holiday".
        entity_id: Id of the changed row (or occurrence id) as a string.
        details: Extra context as JSON, e.g. the edit scope and fields.
        risk_level: Severity label; calendar changes are "low".
        created_at: When the change was recorded.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: int = Field(default=1, index=True)
    action: AuditAction = Field(index=True)
    entity_type: str
    entity_id: str = Field(index=True)
    details: dict | None = Field(default=None, sa_column=Column(JSON))
    risk_level: str = "low"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)
