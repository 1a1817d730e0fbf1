"""Recurring reservations: rule model and bounded occurrence expansion.

Occurrence ``k`` of a series is always computed from the anchor, never from
occurrence ``k - 1``, so monthly clamping does not drift (an anchor on the
31st yields Jan 31, Feb 28, Mar 31, ...).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterator

from .intervals import Interval


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class InvalidRecurrenceRule(ValueError):
    pass


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    step_count: int
    series_end: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "step_count": self.step_count,
            "series_end": self.series_end.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RecurrenceRule":
        try:
            frequency = Frequency(str(data["frequency"]).strip().lower())
        except ValueError as error:
            raise InvalidRecurrenceRule(f"Unsupported recurrence frequency: {data['frequency']!r}") from error
        return RecurrenceRule(
            frequency=frequency,
            step_count=int(data["step_count"]),
            series_end=date.fromisoformat(str(data["series_end"])),
        )


def check_rule(rule: RecurrenceRule, anchor: Interval) -> None:
    """Raise InvalidRecurrenceRule unless the rule can be stored for this anchor."""
    _require_positive_step(rule)
    if rule.series_end < anchor.start.date():
        raise InvalidRecurrenceRule("Recurrence end date must not be before the first occurrence.")


def occurrence_at(anchor: Interval, rule: RecurrenceRule, index: int) -> Interval:
    if index < 0:
        raise ValueError("index must not be negative")
    if rule.frequency is Frequency.MONTHLY:
        start = _add_months(anchor.start, index * rule.step_count)
        return anchor.shifted(start - anchor.start)
    return anchor.shifted(timedelta(days=index * _step_days(rule)))


def occurrence_count(anchor: Interval, rule: RecurrenceRule) -> int:
    """Number of occurrences whose start date is on or before ``series_end``.

    A series ending before its anchor still holds the anchor itself.
    """
    _require_positive_step(rule)
    first_day = anchor.start.date()
    if rule.series_end < first_day:
        return 1

    if rule.frequency is Frequency.MONTHLY:
        months = (rule.series_end.year - first_day.year) * 12 + (rule.series_end.month - first_day.month)
        last_index = months // rule.step_count
        if occurrence_at(anchor, rule, last_index).start.date() > rule.series_end:
            last_index -= 1
        return last_index + 1

    return (rule.series_end - first_day).days // _step_days(rule) + 1


def iter_occurrences(
    anchor: Interval,
    rule: RecurrenceRule,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
) -> Iterator[Interval]:
    """Yield occurrences in start order, limited to those overlapping the window when one is given."""
    count = occurrence_count(anchor, rule)
    index = 0 if window_start is None else _first_candidate_index(anchor, rule, window_start)

    while index < count:
        occurrence = occurrence_at(anchor, rule, index)
        index += 1
        if window_end is not None and occurrence.start >= window_end:
            return
        if window_start is not None and occurrence.end <= window_start:
            continue
        yield occurrence


def occurrences_overlapping(
    rule: RecurrenceRule,
    anchor: Interval,
    window_start: datetime,
    window_end: datetime,
) -> bool:
    if window_start >= window_end:
        raise ValueError("window_start must be earlier than window_end.")
    return next(iter_occurrences(anchor, rule, window_start, window_end), None) is not None


def series_span(anchor: Interval, rule: RecurrenceRule) -> Interval:
    """From the anchor start to the end of the last occurrence."""
    last = occurrence_at(anchor, rule, occurrence_count(anchor, rule) - 1)
    return Interval(anchor.start, last.end)


def _first_candidate_index(anchor: Interval, rule: RecurrenceRule, window_start: datetime) -> int:
    # One step of slack absorbs DST shifts and month-end clamping.
    lag = window_start - anchor.end
    if lag <= timedelta(0):
        return 0
    if rule.frequency is Frequency.MONTHLY:
        months = (window_start.year - anchor.end.year) * 12 + (window_start.month - anchor.end.month)
        return max(0, months // rule.step_count - 1)
    return max(0, lag // timedelta(days=_step_days(rule)) - 1)


def _step_days(rule: RecurrenceRule) -> int:
    if rule.frequency is Frequency.WEEKLY:
        return 7 * rule.step_count
    return rule.step_count


def _require_positive_step(rule: RecurrenceRule) -> None:
    if rule.step_count <= 0:
        raise InvalidRecurrenceRule("Recurrence step count must be a positive integer.")


def _add_months(moment: datetime, months: int) -> datetime:
    total = moment.month - 1 + months
    year = moment.year + total // 12
    month = total % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
