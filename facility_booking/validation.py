"""Single entry point for booking requests: structural checks, then collision detection.

Business rejections are returned as values so callers can show the reason and
let the user adjust the request. Only caller defects (a candidate validated
against the wrong room, malformed stored reservations) raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .conflicts import has_conflict
from .models import Reservation, Resource
from .recurrence import InvalidRecurrenceRule, check_rule

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    INVALID_INTERVAL = "invalid_interval"
    INVALID_RECURRENCE_RULE = "invalid_recurrence_rule"
    INVALID_ATTENDEES = "invalid_attendees"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TIME_CONFLICT = "time_conflict"


@dataclass(frozen=True)
class Accepted:
    reservation: Reservation

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    message: str
    conflict_with: Reservation | None = None

    @property
    def ok(self) -> bool:
        return False


ValidationResult = Accepted | Rejected


class BookingValidator:
    def validate(
        self,
        candidate: Reservation,
        resource: Resource,
        existing: Iterable[Reservation],
    ) -> ValidationResult:
        if candidate.resource_id != resource.resource_id:
            raise ValueError(
                f"Candidate is for resource {candidate.resource_id!r}, not {resource.resource_id!r}."
            )

        snapshot: Sequence[Reservation] = list(existing)
        result = self._check(candidate, resource, snapshot)
        if isinstance(result, Rejected):
            logger.debug(
                "booking rejected resource=%s reason=%s start=%s",
                candidate.resource_id,
                result.reason.value,
                candidate.anchor.start.isoformat(timespec="minutes"),
            )
        return result

    def _check(
        self,
        candidate: Reservation,
        resource: Resource,
        existing: Sequence[Reservation],
    ) -> ValidationResult:
        if not candidate.anchor.is_well_formed:
            return Rejected(RejectionReason.INVALID_INTERVAL, "End time must be after start time.")
        if any(
            record.resource_id == candidate.resource_id and record.anchor.has_offset != candidate.anchor.has_offset
            for record in existing
        ):
            return Rejected(
                RejectionReason.INVALID_INTERVAL,
                "Times must all carry a UTC offset or all omit it, matching this room's existing bookings.",
            )

        if candidate.recurrence is not None:
            try:
                check_rule(candidate.recurrence, candidate.anchor)
            except InvalidRecurrenceRule as error:
                return Rejected(RejectionReason.INVALID_RECURRENCE_RULE, str(error))

        if candidate.attendees < 1:
            return Rejected(RejectionReason.INVALID_ATTENDEES, "Number of attendees must be at least 1.")
        if candidate.attendees > resource.capacity:
            return Rejected(
                RejectionReason.CAPACITY_EXCEEDED,
                f"Number of attendees exceeds room capacity ({candidate.attendees} > {resource.capacity}).",
            )

        collision = has_conflict(candidate, existing)
        if collision.conflict:
            return Rejected(
                RejectionReason.TIME_CONFLICT,
                "This time slot is already booked.",
                conflict_with=collision.with_reservation,
            )

        return Accepted(candidate)
