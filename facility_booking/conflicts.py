"""Collision detection between a candidate reservation and a room's existing ones."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .intervals import Interval, overlaps
from .models import Reservation
from .recurrence import RecurrenceRule, iter_occurrences, occurrences_overlapping, series_span


@dataclass(frozen=True)
class ConflictResult:
    conflict: bool
    with_reservation: Reservation | None = None


def has_conflict(candidate: Reservation, existing: Iterable[Reservation]) -> ConflictResult:
    """Return the first reservation, in input order, that collides with the candidate."""
    for reservation in existing:
        if reservation.resource_id != candidate.resource_id:
            continue
        if reservations_collide(candidate, reservation):
            return ConflictResult(conflict=True, with_reservation=reservation)
    return ConflictResult(conflict=False)


def find_conflicts(candidate: Reservation, existing: Iterable[Reservation]) -> list[Reservation]:
    return [
        reservation
        for reservation in existing
        if reservation.resource_id == candidate.resource_id and reservations_collide(candidate, reservation)
    ]


def reservations_collide(first: Reservation, second: Reservation) -> bool:
    if first.recurrence is None:
        if second.recurrence is None:
            return overlaps(first.anchor, second.anchor)
        return occurrences_overlapping(second.recurrence, second.anchor, first.anchor.start, first.anchor.end)
    if second.recurrence is None:
        return occurrences_overlapping(first.recurrence, first.anchor, second.anchor.start, second.anchor.end)
    return _series_collide(first.anchor, first.recurrence, second.anchor, second.recurrence)


def _series_collide(
    first_anchor: Interval,
    first_rule: RecurrenceRule,
    second_anchor: Interval,
    second_rule: RecurrenceRule,
) -> bool:
    first_span = series_span(first_anchor, first_rule)
    second_span = series_span(second_anchor, second_rule)
    window_start = max(first_span.start, second_span.start)
    window_end = min(first_span.end, second_span.end)
    if window_start >= window_end:
        return False

    # Both streams are sorted by start and, with a fixed duration per series, by end.
    others = iter_occurrences(second_anchor, second_rule, window_start, window_end)
    current = next(others, None)
    for occurrence in iter_occurrences(first_anchor, first_rule, window_start, window_end):
        while current is not None and current.end <= occurrence.start:
            current = next(others, None)
        if current is None:
            return False
        if overlaps(occurrence, current):
            return True
    return False
