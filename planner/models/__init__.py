from planner.models.audit import AuditAction, AuditLog
from planner.models.event import Event, EventLabel, EventStatus
from planner.models.guest import EventGuest, GuestResponse
from planner.models.holiday import PublicHoliday
from planner.models.reminder import EventReminder, ReminderType

__all__ = [
    "AuditAction",
    "AuditLog",
    "Event",
    "EventLabel",
    "EventStatus",
    "EventGuest",
    "GuestResponse",
    "PublicHoliday",
    "EventReminder",
    "ReminderType",
]
