"""Plan the writes for scoped edits and deletes of recurring events.

The resolver looks at an already-loaded Event row and a mutation request
and returns a ``WritePlan``. It never writes. The caller applies the plan in
one transaction, guarded by the ``updated_at`` value the row had when it was
read, so a split is never half-applied and two concurrent splits of the same
series cannot both succeed.

Scopes:
    single: Edit or drop one occurrence. The occurrence's date goes into the
        series' exclusions and, for an edit, a standalone row replaces it.
    thisAndFuture: End the series the day before the occurrence and, for an
        edit, start a new series at the occurrence with the patch applied.
    all: Edit the series row itself, or delete the whole series family.

For a row without a recurrence rule every scope edits the row itself;
deleting with single/thisAndFuture soft-deletes it. A bare series id with
scope single addresses the first live occurrence, and with thisAndFuture
the series from its start.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping
from uuid import UUID, uuid4

from sqlmodel import SQLModel

from planner.core.dates import utcnow
from planner.models import Event, EventGuest, EventStatus
from planner.recurrence.errors import EventNotFound, EventValidationError, RuleValidationError
from planner.recurrence.generator import Occurrence, OccurrenceGenerator
from planner.recurrence.identity import encode_instance_id
from planner.recurrence.rule import EndsAfter, EndsOn, RecurrenceRule, RepeatUnit, parse_rule

logger = logging.getLogger(__name__)

# Columns copied onto rows split off from a series
COPIED_FIELDS = (
    "user_id",
    "title",
    "description",
    "location",
    "all_day",
    "timezone",
    "label",
    "notification_settings",
    "status",
)


class MutationScope(str, Enum):
    SINGLE = "single"
    THIS_AND_FUTURE = "thisAndFuture"
    ALL = "all"


@dataclass(frozen=True)
class EventPatch:
    """Field changes requested for an event or occurrence.

    ``values`` maps Event attribute names to new values. The special key
    ``recurrence`` carries a rule payload (see ``parse_rule``); its presence,
    even with ``None``, means the rule is being replaced.
    """
    values: Mapping[str, Any] = field(default_factory=dict)

    @property
    def fields(self) -> dict[str, Any]:
        return {k: v for k, v in self.values.items() if k != "recurrence"}

    @property
    def touches_recurrence(self) -> bool:
        return "recurrence" in self.values

    def rule_for(self, anchor: datetime) -> RecurrenceRule:
        return parse_rule(self.values["recurrence"], anchor=anchor)


@dataclass
class WritePlan:
    """Writes that must be applied together, all or nothing.

    Attributes:
        target_id: Row whose ``updated_at`` guards the plan.
        expected_updated_at: ``updated_at`` of the target when it was read.
        updates: Column values to set, per Event id.
        inserts: New rows (events first, then their guests).
        deletes: Event ids to delete; the store cascades to dependents.
        result_id: Row holding the edited occurrence afterwards, if any.
    """
    target_id: UUID
    expected_updated_at: datetime
    updates: dict[UUID, dict[str, Any]] = field(default_factory=dict)
    inserts: list[SQLModel] = field(default_factory=list)
    deletes: list[UUID] = field(default_factory=list)
    result_id: UUID | None = None


def _rule_columns(rule: RecurrenceRule) -> dict[str, Any]:
    return {
        "recurrence_kind": rule.kind.value,
        "recurrence_rule": rule.to_dict() if rule.is_recurring else None,
        "is_recurring_parent": rule.is_recurring,
    }


def _check_times(start: datetime, end: datetime) -> None:
    if end < start:
        raise EventValidationError("end_time must not be before start_time")


class SeriesMutationResolver:
    """Turns ``(row, occurrence index, scope, patch | delete)`` into a WritePlan."""

    def resolve(
        self,
        event: Event,
        index: int | None,
        scope: MutationScope,
        patch: EventPatch | None = None,
    ) -> WritePlan:
        """Plan an edit (``patch`` given) or a delete (``patch`` is None).

        Raises:
            EventNotFound: ``index`` names no occurrence of the series.
            RuleValidationError: The patch carries an invalid rule, or tries
                to change the rule of a single occurrence.
            EventValidationError: The edit would end before it starts.
        """
        plan = WritePlan(target_id=event.id, expected_updated_at=event.updated_at)
        rule = event.rule
        occurrence = self._find_occurrence(event, rule, index, scope)

        if occurrence is None or scope == MutationScope.ALL:
            return self._plan_all(plan, event, rule, patch, scope)

        if scope == MutationScope.SINGLE:
            return self._plan_single(plan, event, rule, occurrence, patch)
        if occurrence.index == 0:
            # Cutting before the first occurrence leaves nothing of this row
            return self._plan_all(plan, event, rule, patch, MutationScope.THIS_AND_FUTURE)
        return self._plan_this_and_future(plan, event, rule, occurrence, patch)

    def _find_occurrence(
        self, event: Event, rule: RecurrenceRule, index: int | None, scope: MutationScope
    ) -> Occurrence | None:
        generator = OccurrenceGenerator(event.start_time, event.end_time, rule)
        if index is None:
            if not rule.is_recurring or scope != MutationScope.SINGLE:
                return None
            first = next(iter(generator), None)
            if first is None:
                raise EventNotFound(str(event.id))
            return first
        if not rule.is_recurring:
            if index == 0:
                return None
            raise EventNotFound(encode_instance_id(event.id, index))
        occurrence = generator.occurrence_at(index)
        if occurrence is None:
            raise EventNotFound(encode_instance_id(event.id, index))
        return occurrence

    def _plan_all(
        self,
        plan: WritePlan,
        event: Event,
        rule: RecurrenceRule,
        patch: EventPatch | None,
        scope: MutationScope,
    ) -> WritePlan:
        if patch is None:
            if scope == MutationScope.ALL:
                plan.deletes.append(event.series_root_id)
            elif rule.is_recurring:
                plan.deletes.append(event.id)
            else:
                plan.updates[event.id] = {
                    "deleted_at": utcnow(),
                    "status": EventStatus.CANCELLED,
                }
            return plan

        values = patch.fields
        anchor = values.get("start_time", event.start_time)
        _check_times(anchor, values.get("end_time", event.end_time))
        if patch.touches_recurrence:
            values.update(_rule_columns(patch.rule_for(anchor)))
        elif rule.is_recurring:
            rule.validate_anchor(anchor)
            if "start_time" in values and rule.month_day is not None:
                # A moved anchor sets the day of the month again
                values.update(_rule_columns(replace(rule, month_day=None)))
        plan.updates[event.id] = values
        plan.result_id = event.id
        return plan

    def _plan_single(
        self,
        plan: WritePlan,
        event: Event,
        rule: RecurrenceRule,
        occurrence: Occurrence,
        patch: EventPatch | None,
    ) -> WritePlan:
        if patch is not None and patch.touches_recurrence:
            raise RuleValidationError(
                "Recurrence cannot be changed for a single occurrence; "
                "use scope 'thisAndFuture' or 'all'"
            )

        plan.updates[event.id] = _rule_columns(rule.with_exclusion(occurrence.day))
        if patch is not None:
            _check_times(*self._patched_times(occurrence, patch))
            replacement = self._derive_row(event, occurrence, RecurrenceRule("none"), patch)
            plan.inserts.extend(self._with_guests(event, replacement))
            plan.result_id = replacement.id
        return plan

    def _plan_this_and_future(
        self,
        plan: WritePlan,
        event: Event,
        rule: RecurrenceRule,
        occurrence: Occurrence,
        patch: EventPatch | None,
    ) -> WritePlan:
        cutover = occurrence.day
        truncated = replace(
            rule,
            end=EndsOn(cutover - timedelta(days=1)),
            exclusions=frozenset(d for d in rule.exclusions if d < cutover),
        )
        plan.updates[event.id] = _rule_columns(truncated)
        if patch is None:
            return plan

        end = rule.end
        if isinstance(end, EndsAfter):
            end = EndsAfter(end.count - occurrence.index)
        continuation_rule = replace(
            rule,
            end=end,
            exclusions=frozenset(d for d in rule.exclusions if d >= cutover),
        )
        anchor, anchor_end = self._patched_times(occurrence, patch)
        _check_times(anchor, anchor_end)
        if patch.touches_recurrence:
            continuation_rule = patch.rule_for(anchor)
        else:
            continuation_rule.validate_anchor(anchor)
            if "start_time" in patch.values:
                continuation_rule = replace(continuation_rule, month_day=None)
            elif (
                rule.month_day is None
                and rule.step_unit in (RepeatUnit.MONTH, RepeatUnit.YEAR)
                and occurrence.start.day != event.start_time.day
            ):
                # The cutover fell on a clamped day; keep aiming for the original
                continuation_rule = replace(continuation_rule, month_day=event.start_time.day)

        continuation = self._derive_row(event, occurrence, continuation_rule, patch)
        plan.inserts.extend(self._with_guests(event, continuation))
        plan.result_id = continuation.id
        logger.info(
            f"Splitting series {event.id} at {cutover.isoformat()} "
            f"into new series {continuation.id}"
        )
        return plan

    def _patched_times(self, occurrence: Occurrence, patch: EventPatch) -> tuple[datetime, datetime]:
        values = patch.values
        return values.get("start_time", occurrence.start), values.get("end_time", occurrence.end)

    def _derive_row(
        self,
        event: Event,
        occurrence: Occurrence,
        rule: RecurrenceRule,
        patch: EventPatch,
    ) -> Event:
        """A new row starting at ``occurrence`` that belongs to ``event``'s series."""
        row = Event(
            id=uuid4(),
            start_time=occurrence.start,
            end_time=occurrence.end,
            parent_event_id=event.series_root_id,
            **{name: getattr(event, name) for name in COPIED_FIELDS},
        )
        row.set_rule(rule)
        for name, value in patch.fields.items():
            setattr(row, name, value)
        return row

    def _with_guests(self, source: Event, row: Event) -> list[SQLModel]:
        guests = [
            EventGuest(
                event_id=row.id,
                email=guest.email,
                name=guest.name,
                invitation_sent=guest.invitation_sent,
                response_status=guest.response_status,
            )
            for guest in source.guests
        ]
        return [row, *guests]
