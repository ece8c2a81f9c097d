"""Recurrence expansion.

Turns an anchor window plus a :class:`RecurrenceRule` into the ordered,
finite list of occurrence windows for a series. Expansion happens once, when
the series is created or re-generated by a "this and all future" edit; it is
not a live iterator.

Calendar arithmetic is done on wall time in the anchor's tzinfo, so the
time-of-day is preserved across DST changes when the anchor carries a zone.

Monthly rules always step from the anchor's day-of-month. When the target
month is shorter the occurrence lands on that month's last day, so an anchor
on Jan 31 yields Feb 28 (or 29), Mar 31, Apr 30, ...
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, WEEKLY, rrule, weekdays

from jobdock.config import settings
from jobdock.errors.exceptions import ValidationError
from jobdock.models.enums import RecurrenceFrequency
from jobdock.models.job import RecurrenceRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anchor:
    """First occurrence of a series: its start and its duration."""

    start: datetime
    duration_minutes: float

    @classmethod
    def from_window(cls, start: datetime, end: datetime) -> "Anchor":
        return cls(start=start, duration_minutes=(end - start) / timedelta(minutes=1))

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class OccurrenceWindow:
    start_time: datetime
    end_time: datetime


def validate_rule(rule: RecurrenceRule, anchor_date: date) -> None:
    """Raise ValidationError when the rule cannot produce a finite series."""
    if rule.interval < 1:
        raise ValidationError("Recurrence interval must be at least 1", {"field": "interval"})
    if rule.count is None and rule.until_date is None:
        raise ValidationError(
            "Recurring jobs need an end: set either count or until_date",
            {"field": "recurrence"},
        )
    if rule.count is not None and rule.count < 1:
        raise ValidationError("Recurrence count must be at least 1", {"field": "count"})
    if rule.count is None and rule.until_date < anchor_date:
        raise ValidationError(
            "Recurrence until_date is before the first occurrence",
            {"field": "until_date"},
        )
    if rule.frequency == RecurrenceFrequency.CUSTOM:
        if not rule.days_of_week:
            raise ValidationError(
                "Custom recurrence requires at least one day of the week",
                {"field": "days_of_week"},
            )
        bad = [d for d in rule.days_of_week if not 0 <= d <= 6]
        if bad:
            raise ValidationError(
                "days_of_week values must be between 0 (Sunday) and 6 (Saturday)",
                {"field": "days_of_week", "invalid": bad},
            )


def _candidate_starts(anchor: Anchor, rule: RecurrenceRule):
    """Yield candidate start instants in ascending order, unbounded."""
    start = anchor.start
    if rule.frequency == RecurrenceFrequency.MONTHLY:
        # relativedelta clamps to the last day of shorter months; rrule would skip them
        step = 0
        while True:
            yield start + relativedelta(months=step * rule.interval)
            step += 1
    elif rule.frequency == RecurrenceFrequency.CUSTOM:
        # days_of_week counts from Sunday, dateutil from Monday
        byweekday = [weekdays[(d - 1) % 7] for d in sorted(set(rule.days_of_week))]
        yield from rrule(DAILY, dtstart=start, byweekday=byweekday)
    else:
        freq = WEEKLY if rule.frequency == RecurrenceFrequency.WEEKLY else DAILY
        yield from rrule(freq, dtstart=start, interval=rule.interval)


def expand(
    anchor: Anchor,
    rule: RecurrenceRule,
    max_occurrences: int | None = None,
    max_months: int | None = None,
) -> list[OccurrenceWindow]:
    """Materialize the occurrences of ``rule`` starting at ``anchor``.

    ``count`` takes precedence over ``until_date``; ``until_date`` is inclusive
    on the occurrence's local date. The result never exceeds
    ``max_occurrences`` entries nor reaches past ``max_months`` after the
    anchor; hitting either cap truncates the series rather than failing.

    Raises:
        ValidationError: the rule is malformed or unbounded.
    """
    validate_rule(rule, anchor.start.date())

    max_occurrences = max_occurrences or settings.max_occurrences
    max_months = max_months or settings.max_recurrence_months
    limit = min(rule.count, max_occurrences) if rule.count is not None else max_occurrences
    horizon = anchor.start + relativedelta(months=max_months)
    until = rule.until_date if rule.count is None else None

    duration = anchor.duration
    windows: list[OccurrenceWindow] = []
    for candidate in _candidate_starts(anchor, rule):
        if len(windows) >= limit:
            break
        if candidate > horizon:
            break
        if until is not None and candidate.date() > until:
            break
        windows.append(OccurrenceWindow(start_time=candidate, end_time=candidate + duration))

    if rule.count is not None and len(windows) < rule.count:
        logger.info(
            "Recurrence truncated to %d of %d occurrences by safety caps",
            len(windows), rule.count,
        )
    return windows
