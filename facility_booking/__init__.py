from .intervals import Interval, has_time_overlap, overlaps
from .recurrence import (
    Frequency,
    InvalidRecurrenceRule,
    RecurrenceRule,
    iter_occurrences,
    occurrence_count,
    occurrences_overlapping,
    series_span,
)
from .models import Reservation, Resource, draft_reservation
from .conflicts import ConflictResult, find_conflicts, has_conflict
from .validation import Accepted, BookingValidator, Rejected, RejectionReason, ValidationResult
from .catalog import DEFAULT_ROOMS, search_rooms
from .yaml_store import ReservationStorageError, ReservationYamlRepository

__all__ = [
    "Interval",
    "has_time_overlap",
    "overlaps",
    "Frequency",
    "InvalidRecurrenceRule",
    "RecurrenceRule",
    "iter_occurrences",
    "occurrence_count",
    "occurrences_overlapping",
    "series_span",
    "Reservation",
    "Resource",
    "draft_reservation",
    "ConflictResult",
    "find_conflicts",
    "has_conflict",
    "Accepted",
    "BookingValidator",
    "Rejected",
    "RejectionReason",
    "ValidationResult",
    "DEFAULT_ROOMS",
    "search_rooms",
    "ReservationStorageError",
    "ReservationYamlRepository",
]
