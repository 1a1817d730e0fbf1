from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo


@dataclass(frozen=True)
class Interval:
    """Half-open time range ``[start, end)``.

    Construction does not reject ``start >= end`` so that a malformed booking
    request can reach the validator and be rejected there. The overlap
    primitive treats such an interval as a defect.
    """

    start: datetime
    end: datetime

    @property
    def is_well_formed(self) -> bool:
        return is_aware(self.start) == is_aware(self.end) and self.start < self.end

    @property
    def has_offset(self) -> bool:
        return is_aware(self.start)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def shifted(self, delta: timedelta) -> "Interval":
        return Interval(self.start + delta, self.end + delta)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> dict[str, str]:
        return {
            "start": self.start.isoformat(timespec="minutes"),
            "end": self.end.isoformat(timespec="minutes"),
        }


def has_time_overlap(new_start: datetime, new_end: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    """Return True when two time intervals overlap by even one minute.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    if new_start >= new_end:
        raise ValueError("new_start must be earlier than new_end.")
    if exist_start >= exist_end:
        raise ValueError("exist_start must be earlier than exist_end.")
    if is_aware(new_start) != is_aware(exist_start):
        raise ValueError("Cannot compare times with and without a UTC offset.")

    return new_start < exist_end and new_end > exist_start


def overlaps(first: Interval, second: Interval) -> bool:
    return has_time_overlap(first.start, first.end, second.start, second.end)


def is_aware(moment: datetime) -> bool:
    return moment.utcoffset() is not None


def as_wall_clock(moment: datetime, zone: tzinfo | None = None) -> datetime:
    """Offset-free wall-clock time in ``zone`` (the host zone when None).

    Offset-free input is returned unchanged.
    """
    if not is_aware(moment):
        return moment
    return moment.astimezone(zone).replace(tzinfo=None)
