"""Exceptions raised by the recurrence engine and the calendar services."""


class RecurrenceError(Exception):
    """Base class for recurring-event failures."""


class EventValidationError(RecurrenceError, ValueError):
    """A requested event change is invalid. The message is shown to the caller."""


class RuleValidationError(EventValidationError):
    """A recurrence rule is malformed."""


class NotFoundError(RecurrenceError):
    """Base class for ids that resolve to nothing."""


class EventNotFound(NotFoundError):
    """The event (or occurrence) an id refers to does not exist."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class HolidayNotFound(NotFoundError):
    def __init__(self, holiday_id):
        super().__init__(f"Public holiday not found: {holiday_id}")
        self.holiday_id = holiday_id


class ConcurrentMutationConflict(RecurrenceError):
    """The parent row changed between read and write. Safe to retry."""

    def __init__(self, event_id: str):
        super().__init__(
            f"Event {event_id} was modified concurrently, reload and retry"
        )
        self.event_id = event_id
