"""Expand a recurrence rule into concrete occurrences.

Everything here is a pure function of (anchor start, anchor end, rule):
nothing touches the database, and the same inputs always produce the same
sequence, which is what makes ``expand_occurrences`` safe to memoise.

Occurrence start times keep the anchor's time of day and only the calendar
date moves. Monthly and yearly steps are computed from the anchor rather
than from the previous occurrence, so a series anchored on the 31st clamps
to the last day of short months and returns to the 31st afterwards
(Jan 31 -> Feb 29 -> Mar 31 in 2024).

Sequence indices map to dates arithmetically, so a window or an index far
from the anchor is reached by seeking, not by walking every earlier
occurrence. A sequence ends where its dates would pass ``datetime.max``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from itertools import count
from typing import Iterator

from dateutil.relativedelta import relativedelta

from planner.core.config import settings
from planner.recurrence.rule import EndsAfter, EndsOn, Frequency, RecurrenceRule, RepeatUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    """One instance of a series: its start/end and position in the series."""
    start: datetime
    end: datetime
    index: int

    @property
    def day(self) -> date:
        return self.start.date()


@dataclass(frozen=True)
class Expansion:
    """Occurrences inside a window, plus whether the cap cut the list short."""
    occurrences: tuple[Occurrence, ...]
    truncated: bool = False


def sunday_index(day: date) -> int:
    """Weekday index with 0 = Sunday, matching ``days_of_week``."""
    return (day.weekday() + 1) % 7


def _week_layout(anchor: datetime, rule: RecurrenceRule) -> tuple[datetime, list[int], int]:
    """Sunday of the anchor's week, the rule's days, and how many of them
    fall on or after the anchor in that first week."""
    days = sorted(rule.days_of_week)
    week_start = anchor - timedelta(days=sunday_index(anchor.date()))
    first_week = sum(1 for day in days if day >= sunday_index(anchor.date()))
    return week_start, days, first_week


def _step(anchor: datetime, rule: RecurrenceRule, n: int) -> datetime:
    """Start of the ``n``-th step of a fixed-step rule."""
    step = n * rule.interval
    unit = rule.step_unit
    if unit == RepeatUnit.DAY:
        return anchor + timedelta(days=step)
    if unit == RepeatUnit.WEEK:
        return anchor + timedelta(weeks=step)
    if unit == RepeatUnit.MONTH:
        return anchor + relativedelta(months=step, day=rule.month_day)
    return anchor + relativedelta(years=step, day=rule.month_day)


def _candidate_starts(
    anchor: datetime, rule: RecurrenceRule, skip: int = 0
) -> Iterator[tuple[int, datetime]]:
    """
    Every ``(index, start)`` matching the rule's pattern, ignoring its end
    and exclusions.

    Starts at or shortly before index ``skip``, never after it. Stops
    quietly once a start would fall outside the ``datetime`` range.
    """
    try:
        if rule.kind == Frequency.NONE:
            yield 0, anchor
            return

        if rule.kind == Frequency.WEEKDAYS:
            # Every 7 days from the anchor hold exactly 5 weekdays
            weeks = skip // 5
            index, current = weeks * 5, anchor + timedelta(weeks=weeks)
            while True:
                if current.weekday() < 5:
                    yield index, current
                    index += 1
                current += timedelta(days=1)

        if rule.kind == Frequency.CUSTOM and rule.unit == RepeatUnit.WEEK:
            week_start, days, first_week = _week_layout(anchor, rule)
            if skip < first_week:
                period, index = 0, 0
            else:
                period = 1 + (skip - first_week) // len(days)
                index = first_week + (period - 1) * len(days)
            for week in count(period * rule.interval, rule.interval):
                base = week_start + timedelta(weeks=week)
                for day in days:
                    candidate = base + timedelta(days=day)
                    if candidate.date() >= anchor.date():
                        yield index, candidate
                        index += 1

        for n in count(skip):
            yield n, _step(anchor, rule, n)
    except (OverflowError, ValueError):
        return


def _index_floor(anchor: datetime, rule: RecurrenceRule, instant: datetime) -> int:
    """An index that every candidate starting at or after ``instant`` is at
    or beyond. Candidates before it all start before ``instant``."""
    if instant <= anchor or rule.kind == Frequency.NONE:
        return 0

    if rule.kind == Frequency.WEEKDAYS:
        return (instant.date() - anchor.date()).days // 7 * 5

    if rule.kind == Frequency.CUSTOM and rule.unit == RepeatUnit.WEEK:
        week_start, days, first_week = _week_layout(anchor, rule)
        period = (instant.date() - week_start.date()).days // 7 // rule.interval
        if period == 0:
            return 0
        return first_week + (period - 1) * len(days)

    unit = rule.step_unit
    if unit == RepeatUnit.DAY:
        return (instant - anchor) // timedelta(days=rule.interval)
    if unit == RepeatUnit.WEEK:
        return (instant - anchor) // timedelta(weeks=rule.interval)
    # A step landing in an earlier calendar month starts before instant
    if unit == RepeatUnit.MONTH:
        months = (instant.year - anchor.year) * 12 + instant.month - anchor.month
        return max(0, months - 1) // rule.interval
    return max(0, instant.year - anchor.year - 1) // rule.interval


class OccurrenceGenerator:
    """Iterable over the occurrences of one series.

    Iterating yields every occurrence from the anchor onwards in ascending
    order, honouring the rule's end condition and skipping exclusions. A rule
    that never ends yields until the calendar runs out, so callers bound it
    with ``between``. Each ``iter()`` starts again from the anchor.

    Excluded dates still consume a sequence index, so the index of every
    later occurrence is unaffected by exclusions, and they count toward an
    ``EndsAfter`` limit.
    """

    def __init__(self, anchor_start: datetime, anchor_end: datetime, rule: RecurrenceRule):
        self.anchor_start = anchor_start
        self.duration = anchor_end - anchor_start
        self.rule = rule

    def _indexed(self, skip: int = 0) -> Iterator[tuple[Occurrence, bool]]:
        end = self.rule.end
        for index, start in _candidate_starts(self.anchor_start, self.rule, skip):
            if isinstance(end, EndsAfter) and index >= end.count:
                return
            if isinstance(end, EndsOn) and start.date() > end.until:
                return
            try:
                occurrence = Occurrence(start, start + self.duration, index)
            except OverflowError:
                return
            yield occurrence, start.date() in self.rule.exclusions

    def __iter__(self) -> Iterator[Occurrence]:
        return self.starting_at(self.anchor_start)

    def starting_at(self, instant: datetime) -> Iterator[Occurrence]:
        """Occurrences starting at or after ``instant``, without generating
        the earlier ones."""
        skip = _index_floor(self.anchor_start, self.rule, instant)
        for occurrence, excluded in self._indexed(skip):
            if not excluded and occurrence.start >= instant:
                yield occurrence

    def between(
        self, range_start: datetime, range_end: datetime, cap: int | None = None
    ) -> "OccurrenceWindow":
        return OccurrenceWindow(self, range_start, range_end, cap or settings.max_occurrences)

    def occurrence_at(self, index: int) -> Occurrence | None:
        """The occurrence at ``index``, or None if excluded or past the end."""
        if index < 0:
            return None
        for occurrence, excluded in self._indexed(index):
            if occurrence.index == index:
                return None if excluded else occurrence
            if occurrence.index > index:
                break
        return None

    def first_after(self, instant: datetime) -> Occurrence | None:
        """The first occurrence starting strictly after ``instant``."""
        for occurrence in self.starting_at(instant):
            if occurrence.start > instant:
                return occurrence
        return None


class OccurrenceWindow:
    """A generator clipped to ``[range_start, range_end]`` and a size cap."""

    def __init__(self, generator: OccurrenceGenerator, range_start: datetime,
                 range_end: datetime, cap: int):
        self.generator = generator
        self.range_start = range_start
        self.range_end = range_end
        self.cap = cap

    def __iter__(self) -> Iterator[Occurrence]:
        emitted = 0
        for occurrence in self.generator.starting_at(self.range_start):
            if occurrence.start > self.range_end or emitted == self.cap:
                return
            emitted += 1
            yield occurrence

    def expand(self) -> Expansion:
        occurrences: list[Occurrence] = []
        truncated = False
        for occurrence in self.generator.starting_at(self.range_start):
            if occurrence.start > self.range_end:
                break
            if len(occurrences) == self.cap:
                truncated = True
                break
            occurrences.append(occurrence)

        if truncated:
            logger.warning(
                f"Occurrence cap of {self.cap} reached for series anchored at "
                f"{self.generator.anchor_start.isoformat()}; narrow the window"
            )
        return Expansion(tuple(occurrences), truncated)


@lru_cache(maxsize=settings.occurrence_cache_size)
def expand_occurrences(
    anchor_start: datetime,
    anchor_end: datetime,
    rule: RecurrenceRule,
    range_start: datetime,
    range_end: datetime,
    cap: int | None = None,
) -> Expansion:
    """Memoised expansion of one series over one window."""
    return OccurrenceGenerator(anchor_start, anchor_end, rule).between(
        range_start, range_end, cap
    ).expand()
