"""Recurrence rule value objects.

A rule is stored inside its Event row as JSON and turned into a
``RecurrenceRule`` at the edges of the system. The JSON shape is::

    {
        "kind": "custom",
        "interval": 2,
        "unit": "week",
        "days_of_week": [1, 3],
        "end": {"type": "after", "count": 10},
        "exclusions": ["2024-02-05"]
    }

``kind`` alone is enough for the fixed frequencies, so ``parse_rule`` also
accepts a bare string such as ``"monthly"``. Weekday indices run from
0 (Sunday) to 6 (Saturday).
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

from planner.recurrence.errors import RuleValidationError

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class Frequency(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUALLY = "annually"
    WEEKDAYS = "weekdays"
    CUSTOM = "custom"


class RepeatUnit(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Never:
    """The series has no end; only the query window bounds it."""

    def to_dict(self) -> dict:
        return {"type": "never"}


@dataclass(frozen=True)
class EndsOn:
    """The series ends on ``until`` (inclusive)."""
    until: date | None

    def __post_init__(self):
        if self.until is None:
            raise RuleValidationError("End type 'on' requires an end date")
        if isinstance(self.until, datetime):
            object.__setattr__(self, "until", self.until.date())

    def to_dict(self) -> dict:
        return {"type": "on", "date": self.until.isoformat()}


@dataclass(frozen=True)
class EndsAfter:
    """The series ends after ``count`` occurrences."""
    count: int | None

    def __post_init__(self):
        if (
            self.count is None
            or isinstance(self.count, bool)
            or not isinstance(self.count, int)
            or self.count < 1
        ):
            raise RuleValidationError(
                "End type 'after' requires a positive occurrence count"
            )

    def to_dict(self) -> dict:
        return {"type": "after", "count": self.count}


RuleEnd = Never | EndsOn | EndsAfter

# Fixed frequencies expressed as (interval, unit) for rebasing and summaries
FIXED_STEPS = {
    Frequency.DAILY: RepeatUnit.DAY,
    Frequency.WEEKDAYS: RepeatUnit.DAY,
    Frequency.WEEKLY: RepeatUnit.WEEK,
    Frequency.MONTHLY: RepeatUnit.MONTH,
    Frequency.ANNUALLY: RepeatUnit.YEAR,
}


@dataclass(frozen=True)
class RecurrenceRule:
    """An immutable, validated recurrence pattern.

    Attributes:
        kind: Which recurrence pattern applies.
        interval: Step multiplier; only meaningful for ``custom`` rules and
            always 1 otherwise.
        unit: Step unit for ``custom`` rules, ``None`` for every other kind.
        days_of_week: Weekday indices (0 = Sunday) for ``custom`` weekly
            rules.
        end: When the series stops.
        exclusions: Occurrence dates the generator must skip.
        month_day: Day of the month that monthly and yearly steps aim for,
            clamped to the month's length. ``None`` means the anchor's own
            day. Set when a series is split at a clamped occurrence so the
            continuation keeps returning to the 31st.
    """
    kind: Frequency
    interval: int = 1
    unit: RepeatUnit | None = None
    days_of_week: frozenset[int] = frozenset()
    end: RuleEnd = field(default_factory=Never)
    exclusions: frozenset[date] = frozenset()
    month_day: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "kind", Frequency(self.kind))
        if self.unit is not None:
            object.__setattr__(self, "unit", RepeatUnit(self.unit))
        object.__setattr__(self, "days_of_week", frozenset(self.days_of_week))
        object.__setattr__(self, "exclusions", frozenset(self.exclusions))

        if (
            isinstance(self.interval, bool)
            or not isinstance(self.interval, int)
            or self.interval < 1
        ):
            raise RuleValidationError("Interval must be a whole number of at least 1")
        if self.kind == Frequency.CUSTOM:
            if self.unit is None:
                raise RuleValidationError("Custom recurrence requires a repeat unit")
            if self.unit == RepeatUnit.WEEK and not self.days_of_week:
                raise RuleValidationError(
                    "Weekly custom recurrence requires at least one day of the week"
                )
        elif self.interval != 1 or self.unit is not None:
            raise RuleValidationError(
                f"Interval and unit only apply to custom recurrence, not '{self.kind.value}'"
            )
        if any(day not in range(7) for day in self.days_of_week):
            raise RuleValidationError("Days of week must be between 0 (Sunday) and 6 (Saturday)")
        if not isinstance(self.end, (Never, EndsOn, EndsAfter)):
            raise RuleValidationError("Unknown end condition")
        if self.month_day is not None and (
            isinstance(self.month_day, bool)
            or not isinstance(self.month_day, int)
            or not 1 <= self.month_day <= 31
        ):
            raise RuleValidationError("Month day must be between 1 and 31")

    @property
    def is_recurring(self) -> bool:
        return self.kind != Frequency.NONE

    @property
    def step_unit(self) -> RepeatUnit:
        """The calendar unit one step of the rule advances by."""
        if self.kind == Frequency.CUSTOM:
            return self.unit
        return FIXED_STEPS.get(self.kind, RepeatUnit.DAY)

    def validate_anchor(self, anchor: datetime) -> "RecurrenceRule":
        """Reject an end date that falls before the anchor's own date."""
        if isinstance(self.end, EndsOn) and self.end.until < anchor.date():
            raise RuleValidationError(
                f"End date {self.end.until.isoformat()} is before the event start "
                f"{anchor.date().isoformat()}"
            )
        return self

    def with_end(self, end: RuleEnd) -> "RecurrenceRule":
        return replace(self, end=end)

    def with_exclusion(self, day: date) -> "RecurrenceRule":
        return replace(self, exclusions=self.exclusions | {day})

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"kind": self.kind.value, "end": self.end.to_dict()}
        if self.kind == Frequency.CUSTOM:
            data["interval"] = self.interval
            data["unit"] = self.unit.value
            data["days_of_week"] = sorted(self.days_of_week)
        if self.exclusions:
            data["exclusions"] = [d.isoformat() for d in sorted(self.exclusions)]
        if self.month_day is not None:
            data["month_day"] = self.month_day
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        """Rebuild a rule from its stored JSON shape."""
        return parse_rule(data)

    def describe(self) -> str:
        """Human-readable summary, e.g. ``"Every 2 weeks on Mon, Wed, 5 times"``."""
        if self.kind == Frequency.NONE:
            return "Does not repeat"

        if self.kind == Frequency.WEEKDAYS:
            text = "Every weekday (Monday to Friday)"
        elif self.kind != Frequency.CUSTOM:
            text = self.kind.value.capitalize()
        else:
            unit = self.unit.value
            if self.interval == 1:
                text = {"day": "Daily", "week": "Weekly", "month": "Monthly", "year": "Annually"}[unit]
            else:
                text = f"Every {self.interval} {unit}s"
            if self.unit == RepeatUnit.WEEK:
                text += " on " + ", ".join(DAY_NAMES[d] for d in sorted(self.days_of_week))

        if isinstance(self.end, EndsOn):
            text += f" until {self.end.until.strftime('%b')} {self.end.until.day}, {self.end.until.year}"
        elif isinstance(self.end, EndsAfter):
            text += f", {self.end.count} times"
        return text


def _parse_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise RuleValidationError(f"Invalid date: {value!r}") from None


def _parse_end(data: dict | None) -> RuleEnd:
    if not data:
        return Never()
    end_type = data.get("type", "never")
    if end_type == "never":
        return Never()
    if end_type == "on":
        return EndsOn(_parse_date(data.get("date")))
    if end_type == "after":
        return EndsAfter(data.get("count"))
    raise RuleValidationError(f"Unknown end type: {end_type!r}")


def parse_rule(payload: str | dict | None, anchor: datetime | None = None) -> RecurrenceRule:
    """Build a validated rule from its wire or storage representation.

    Args:
        payload: A bare kind string (``"daily"``) or the JSON dict shape.
            ``None`` means the event does not repeat.
        anchor: The series start. When given, an end date earlier than the
            anchor's date is rejected.

    Raises:
        RuleValidationError: If any part of the rule is malformed.
    """
    if payload is None:
        return RecurrenceRule(Frequency.NONE)
    if isinstance(payload, str):
        payload = {"kind": payload}

    try:
        kind = Frequency(payload.get("kind", "none"))
    except ValueError:
        raise RuleValidationError(f"Unknown recurrence kind: {payload.get('kind')!r}") from None

    if kind == Frequency.CUSTOM:
        try:
            unit = RepeatUnit(payload.get("unit") or "")
        except ValueError:
            raise RuleValidationError(
                f"Unknown repeat unit: {payload.get('unit')!r}"
            ) from None
        interval = payload.get("interval")
        days = payload.get("days_of_week") or []
    else:
        # Fixed frequencies carry no interval/unit of their own
        unit, interval, days = None, 1, []

    rule = RecurrenceRule(
        kind=kind,
        interval=interval if interval is not None else 0,
        unit=unit,
        days_of_week=frozenset(days),
        end=_parse_end(payload.get("end")),
        exclusions=frozenset(
            _parse_date(d) for d in payload.get("exclusions") or []
        ),
        month_day=payload.get("month_day"),
    )
    if anchor is not None:
        rule.validate_anchor(anchor)
    return rule
