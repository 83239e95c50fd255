"""Public holiday model.

Holidays are shown alongside events in calendar listings but are not
events themselves: they have no times, guests or reminders. A recurring
holiday falls on the same month and day every year, starting from the
year of ``holiday_date``.
"""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from planner.core.dates import utcnow


class PublicHoliday(SQLModel, table=True):
    """A public holiday.

    Attributes:
        id: Unique identifier (UUID).
        title: Holiday name.
        description: Optional notes.
        holiday_date: The date, or for recurring holidays the first year's
            date.
        is_recurring: Repeats on the same month and day every year.
            Feb 29 only appears in leap years.
        countries: Country codes the holiday applies to; ``None`` means
            everywhere.
        created_by: User who added the holiday.
        is_active: False once deleted; holidays are never removed.
        created_at: When the holiday was added.
        updated_at: When it was last changed.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str | None = None
    holiday_date: date = Field(index=True)
    is_recurring: bool = False
    countries: list[str] | None = Field(default=None, sa_column=Column(JSON))
    created_by: int = 1
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def falls_in(self, year: int) -> date | None:
        """The holiday's date in ``year``, or None if it has none that year."""
        if not self.is_recurring:
            return self.holiday_date if self.holiday_date.year == year else None
        if year < self.holiday_date.year:
            return None
        try:
            return self.holiday_date.replace(year=year)
        except ValueError:
            return None
