from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable
from uuid import uuid4

import yaml

from .catalog import DEFAULT_ROOMS
from .intervals import Interval
from .models import Reservation, Resource
from .recurrence import RecurrenceRule, series_span
from .validation import BookingValidator, Rejected, ValidationResult

logger = logging.getLogger(__name__)


class ReservationStorageError(RuntimeError):
    pass


class ReservationYamlRepository:
    """YAML-backed room catalog and reservation store.

    Booking runs "read existing, validate, write" under a per-room lock so two
    requests for the same room in one process cannot both pass against a stale
    snapshot. File rewrites are additionally serialized by a store-wide lock.
    """

    def __init__(
        self,
        base_dir: str | Path = "data",
        time_step_minutes: int = 0,
        validator: BookingValidator | None = None,
    ) -> None:
        if time_step_minutes < 0 or (time_step_minutes and 60 % time_step_minutes):
            raise ValueError("time_step_minutes must be 0 or a divisor of 60")

        self.base_dir = Path(base_dir)
        self.rooms_file = self.base_dir / "rooms.yaml"
        self.active_file = self.base_dir / "active_reservations.yaml"
        self.closed_file = self.base_dir / "closed_reservations.yaml"
        self.cancelled_file = self.base_dir / "cancelled_reservations.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self.time_step_minutes = time_step_minutes
        self._validator = validator or BookingValidator()
        self._file_lock = threading.RLock()
        self._room_locks: dict[str, threading.Lock] = {}
        self._room_locks_guard = threading.Lock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.rooms_file, self.active_file, self.closed_file, self.cancelled_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _rows(self, path: Path) -> list[dict[str, Any]]:
        """Mapping rows of a YAML list file; an unreadable file is quarantined and reads as empty."""
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8")) if path.exists() else None
            if payload is not None and not isinstance(payload, list):
                raise ValueError("top-level YAML is not a list")
        except (OSError, ValueError, yaml.YAMLError) as error:
            self._quarantine(path, error)
            return []

        rows = [row for row in payload or [] if isinstance(row, dict)]
        skipped = len(payload or []) - len(rows)
        if skipped and path != self.log_file:
            self._log_event("YAML_ROW_SKIPPED", {"file": path.name, "skipped": skipped})
        return rows

    def _save(self, path: Path, rows: list[dict[str, Any]]) -> None:
        staging = path.with_name(path.name + ".tmp")
        try:
            staging.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            staging.replace(path)
        except OSError as error:
            staging.unlink(missing_ok=True)
            raise ReservationStorageError(f"Could not save {path.name}") from error

    def _append(self, path: Path, rows: list[dict[str, Any]]) -> None:
        with self._file_lock:
            self._save(path, self._rows(path) + rows)

    def _quarantine(self, path: Path, error: Exception) -> None:
        backup = path.with_name(f"{path.stem}.corrupt.{datetime.now():%Y%m%d%H%M%S}{path.suffix}")
        with self._file_lock:
            try:
                path.replace(backup)
            except OSError as move_error:
                logger.warning("could not move unreadable %s aside: %s", path.name, move_error)
            path.write_text("[]\n", encoding="utf-8")
        logger.warning("reset unreadable %s, kept as %s (%s)", path.name, backup.name, error)
        if path != self.log_file:
            self._log_event("YAML_RECOVERED", {"file": path.name, "backup": backup.name, "reason": str(error)})

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        self._append(self.log_file, [{"event_time": timestamp, "event_type": event_type, "payload": payload}])

    def _room_lock(self, resource_id: str) -> threading.Lock:
        with self._room_locks_guard:
            lock = self._room_locks.get(resource_id)
            if lock is None:
                lock = threading.Lock()
                self._room_locks[resource_id] = lock
            return lock

    def get_rooms(self) -> list[Resource]:
        rows = self._rows(self.rooms_file)
        return [Resource.from_dict(row) for row in rows]

    def get_room(self, resource_id: str) -> Resource | None:
        for room in self.get_rooms():
            if room.resource_id == resource_id:
                return room
        return None

    def seed_rooms(
        self,
        rooms: Iterable[Resource] | None = None,
        overwrite: bool = False,
        now: datetime | None = None,
    ) -> list[Resource]:
        """Write the room catalog; without ``overwrite`` an existing catalog is kept."""
        with self._file_lock:
            current = self.get_rooms()
            if current and not overwrite:
                return current

            seeded = list(rooms if rooms is not None else DEFAULT_ROOMS)
            ids = [room.resource_id for room in seeded]
            if len(ids) != len(set(ids)):
                raise ValueError("Room ids must be unique.")
            self._save(self.rooms_file, [room.to_dict() for room in seeded])

        self._log_event("ROOMS_SEEDED", {"count": len(seeded), "overwrite": overwrite}, now)
        return seeded

    def get_active_reservations(self, resource_id: str | None = None) -> list[Reservation]:
        rows = self._rows(self.active_file)
        records = [Reservation.from_dict(row) for row in rows]
        if resource_id is None:
            return records
        return [record for record in records if record.resource_id == resource_id]

    def get_active_reservation(self, reservation_id: str) -> Reservation | None:
        for record in self.get_active_reservations():
            if record.reservation_id == reservation_id:
                return record
        return None

    def get_closed_reservations(self) -> list[Reservation]:
        rows = self._rows(self.closed_file)
        return [Reservation.from_dict(row) for row in rows]

    def get_cancelled_reservations(self) -> list[Reservation]:
        rows = self._rows(self.cancelled_file)
        return [Reservation.from_dict(row) for row in rows]

    def check(self, candidate: Reservation) -> ValidationResult:
        """Validate against the current snapshot without writing anything."""
        room = self._require_room(candidate.resource_id)
        candidate = self._normalize(candidate)
        return self._validator.validate(candidate, room, self.get_active_reservations(room.resource_id))

    def book(self, candidate: Reservation, now: datetime | None = None) -> ValidationResult:
        effective_now = now or datetime.now()
        room = self._require_room(candidate.resource_id)
        candidate = self._normalize(candidate)

        with self._room_lock(room.resource_id):
            existing = self.get_active_reservations(room.resource_id)
            result = self._validator.validate(candidate, room, existing)
            if isinstance(result, Rejected):
                self._log_rejection(candidate, result, effective_now)
                return result

            self._append(self.active_file, [candidate.to_dict()])

        self._log_event("RESERVATION_CREATED", _event_payload(candidate), effective_now)
        logger.info("booked %s on room %s", candidate.reservation_id, candidate.resource_id)
        return result

    def cancel_reservation(self, reservation_id: str, now: datetime | None = None) -> Reservation:
        effective_now = now or datetime.now()
        with self._file_lock:
            rows = self._rows(self.active_file)
            found_index = _find_row(rows, reservation_id)
            if found_index < 0:
                raise ValueError("reservation_id not found in active reservations")

            cancelled = Reservation.from_dict(rows.pop(found_index))
            self._save(self.active_file, rows)
            self._append(self.cancelled_file, [cancelled.to_dict()])

        self._log_event(
            "RESERVATION_CANCELLED",
            {"reservation_id": reservation_id, "resource_id": cancelled.resource_id},
            effective_now,
        )
        return cancelled

    def reschedule(
        self,
        reservation_id: str,
        *,
        resource_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        recurrence: RecurrenceRule | None = None,
        clear_recurrence: bool = False,
        attendees: int | None = None,
        now: datetime | None = None,
    ) -> ValidationResult:
        """Cancel the reservation and create its replacement as one step.

        The replacement gets a new id. When it is rejected the original stays
        active and untouched.
        """
        effective_now = now or datetime.now()
        current = self.get_active_reservation(reservation_id)
        if current is None:
            raise ValueError("reservation_id not found in active reservations")

        target_room = self._require_room(resource_id.strip() if resource_id is not None else current.resource_id)
        new_recurrence = None if clear_recurrence else (recurrence or current.recurrence)
        replacement = self._normalize(
            Reservation(
                reservation_id=str(uuid4()),
                resource_id=target_room.resource_id,
                title=current.title,
                anchor=Interval(start or current.anchor.start, end or current.anchor.end),
                recurrence=new_recurrence,
                attendees=current.attendees if attendees is None else attendees,
                description=current.description,
            )
        )

        lock_ids = sorted({current.resource_id, target_room.resource_id})
        with ExitStack() as stack:
            for lock_id in lock_ids:
                stack.enter_context(self._room_lock(lock_id))

            existing = [
                record
                for record in self.get_active_reservations(target_room.resource_id)
                if record.reservation_id != reservation_id
            ]
            result = self._validator.validate(replacement, target_room, existing)
            if isinstance(result, Rejected):
                self._log_rejection(replacement, result, effective_now)
                return result

            with self._file_lock:
                rows = self._rows(self.active_file)
                found_index = _find_row(rows, reservation_id)
                if found_index < 0:
                    raise ValueError("reservation_id not found in active reservations")
                original = rows.pop(found_index)
                rows.append(replacement.to_dict())
                self._save(self.active_file, rows)
                self._append(self.cancelled_file, [original])

        self._log_event(
            "RESERVATION_CANCELLED",
            {"reservation_id": reservation_id, "resource_id": current.resource_id, "replaced_by": replacement.reservation_id},
            effective_now,
        )
        self._log_event("RESERVATION_CREATED", _event_payload(replacement), effective_now)
        return result

    def close_finished(self, now: datetime | None = None) -> int:
        """Move reservations whose last occurrence has ended to the closed file."""
        effective_now = now or datetime.now()

        with self._file_lock:
            active_rows = self._rows(self.active_file)
            remaining_active: list[dict[str, Any]] = []
            closed_now: list[dict[str, Any]] = []

            for row in active_rows:
                record = Reservation.from_dict(row)
                if _last_end(record) <= effective_now:
                    closed_now.append(record.to_dict())
                else:
                    remaining_active.append(record.to_dict())

            if not closed_now:
                return 0

            self._save(self.active_file, remaining_active)
            self._append(self.closed_file, closed_now)

        for row in closed_now:
            self._log_event(
                "RESERVATION_CLOSED",
                {
                    "reservation_id": row["reservation_id"],
                    "resource_id": row["resource_id"],
                    "end": row["end"],
                },
                effective_now,
            )

        return len(closed_now)

    def _require_room(self, resource_id: str) -> Resource:
        room = self.get_room(resource_id)
        if room is None:
            raise ValueError(f"Unknown room: {resource_id}")
        return room

    def _normalize(self, candidate: Reservation) -> Reservation:
        if not self.time_step_minutes or not candidate.anchor.is_well_formed:
            return candidate
        anchor = Interval(
            _floor_to_step(candidate.anchor.start, self.time_step_minutes),
            _ceil_to_step(candidate.anchor.end, self.time_step_minutes),
        )
        return replace(candidate, anchor=anchor)

    def _log_rejection(self, candidate: Reservation, result: Rejected, event_time: datetime) -> None:
        payload = _event_payload(candidate)
        payload["reason"] = result.reason.value
        if result.conflict_with is not None:
            payload["conflict_with"] = result.conflict_with.reservation_id
        self._log_event("RESERVATION_REJECTED", payload, event_time)


def _event_payload(record: Reservation) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "reservation_id": record.reservation_id,
        "resource_id": record.resource_id,
        "title": record.title,
        "start": record.anchor.start.isoformat(timespec="minutes"),
        "end": record.anchor.end.isoformat(timespec="minutes"),
    }
    if record.recurrence is not None:
        payload["recurrence"] = record.recurrence.to_dict()
    return payload


def _find_row(rows: list[dict[str, Any]], reservation_id: str) -> int:
    for index, row in enumerate(rows):
        if str(row.get("reservation_id")) == reservation_id:
            return index
    return -1


def _last_end(record: Reservation) -> datetime:
    if record.recurrence is None:
        return record.anchor.end
    return series_span(record.anchor, record.recurrence).end


def _floor_to_step(value: datetime, step: int) -> datetime:
    return value.replace(minute=(value.minute // step) * step, second=0, microsecond=0)


def _ceil_to_step(value: datetime, step: int) -> datetime:
    normalized = value.replace(second=0, microsecond=0)
    minute_remainder = normalized.minute % step
    has_sub_minute = value.second > 0 or value.microsecond > 0
    if minute_remainder == 0 and not has_sub_minute:
        return normalized

    minutes_to_add = (step - minute_remainder) % step
    if minutes_to_add == 0:
        minutes_to_add = step
    return normalized + timedelta(minutes=minutes_to_add)
