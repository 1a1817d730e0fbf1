"""Read-side views over a room's reservations: day agenda, availability and blocked days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

import holidays as pyholidays

from .intervals import Interval
from .models import Reservation
from .recurrence import iter_occurrences

_HOLIDAY_CACHE: dict[tuple[str, int], dict[date, str]] = {}


@dataclass(frozen=True)
class Occurrence:
    reservation: Reservation
    interval: Interval

    def to_dict(self) -> dict[str, object]:
        return {
            "reservation_id": self.reservation.reservation_id,
            "resource_id": self.reservation.resource_id,
            "title": self.reservation.title,
            "attendees": self.reservation.attendees,
            "is_recurring": self.reservation.is_recurring,
            **self.interval.to_dict(),
        }


def expand_within(reservation: Reservation, window: Interval) -> list[Interval]:
    if reservation.recurrence is None:
        anchor = reservation.anchor
        if anchor.start < window.end and anchor.end > window.start:
            return [anchor]
        return []
    return list(iter_occurrences(reservation.anchor, reservation.recurrence, window.start, window.end))


def day_agenda(reservations: Iterable[Reservation], resource_id: str, day: date) -> list[Occurrence]:
    """Occurrences of the room's reservations that touch ``day``, ordered by start."""
    reservations = [reservation for reservation in reservations if reservation.resource_id == resource_id]
    window = _day_window(day, reservations)
    agenda = [
        Occurrence(reservation, interval)
        for reservation in reservations
        for interval in expand_within(reservation, window)
    ]
    agenda.sort(key=lambda item: (item.interval.start, item.reservation.reservation_id))
    return agenda


def is_available_at(reservations: Iterable[Reservation], resource_id: str, moment: datetime) -> bool:
    instant = Interval(moment, moment + timedelta(microseconds=1))
    for reservation in reservations:
        if reservation.resource_id != resource_id:
            continue
        if expand_within(reservation, instant):
            return False
    return True


def blocked_day_reason(day: date, country: str) -> str | None:
    """Return why ``day`` is not a business day (weekend or holiday name), or None."""
    if day.weekday() >= 5:
        return "weekend"
    if not country:
        return None
    return _holidays_for(country, day.year).get(day)


def _holidays_for(country: str, year: int) -> dict[date, str]:
    key = (country, year)
    if key not in _HOLIDAY_CACHE:
        holiday_map = pyholidays.country_holidays(country, years=[year])
        _HOLIDAY_CACHE[key] = dict(holiday_map.items())
    return _HOLIDAY_CACHE[key]


def _day_window(day: date, reservations: list[Reservation]) -> Interval:
    # Follow the stored timestamps: aware reservations get an aware window.
    tzinfo = None
    for reservation in reservations:
        tzinfo = reservation.anchor.start.tzinfo
        break
    start = datetime.combine(day, time.min, tzinfo=tzinfo)
    return Interval(start, start + timedelta(days=1))
