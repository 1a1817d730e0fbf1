from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .catalog import search_rooms
from .config import PortalSettings, get_settings
from .intervals import as_wall_clock
from .log import configure_logging
from .models import Reservation, draft_reservation
from .recurrence import RecurrenceRule
from .schedule import blocked_day_reason, day_agenda, is_available_at
from .validation import Accepted, RejectionReason, ValidationResult
from .yaml_store import ReservationStorageError, ReservationYamlRepository

logger = logging.getLogger(__name__)


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    settings: PortalSettings | None = None,
) -> Flask:
    config = settings or get_settings()
    configure_logging(config.log_level)
    zone = config.zone()
    app = Flask(__name__)
    repository = ReservationYamlRepository(
        data_dir if data_dir is not None else config.data_dir,
        time_step_minutes=config.time_step_minutes,
    )
    repository.seed_rooms()
    clock: Callable[[], datetime] = now_provider or datetime.now

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(ReservationStorageError)
    def storage_failed(error: ReservationStorageError) -> Any:
        logger.error("storage failure: %s", error)
        return jsonify({"ok": False, "message": "Reservation storage is unavailable."}), 500

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        rooms = search_rooms(repository.get_rooms(), request.args.get("q"))
        return jsonify({"ok": True, "rooms": [room.to_dict() for room in rooms]})

    @app.get("/api/rooms/<room_id>/schedule")
    def room_schedule(room_id: str) -> Any:
        room = repository.get_room(room_id)
        if room is None:
            return jsonify({"ok": False, "message": "Room not found."}), 404

        now = as_wall_clock(clock(), zone)
        raw_date = str(request.args.get("date", "")).strip()
        try:
            target_day = date.fromisoformat(raw_date) if raw_date else now.date()
        except ValueError:
            return jsonify({"ok": False, "message": "date must be formatted as YYYY-MM-DD."}), 400

        active = repository.get_active_reservations(room_id)
        return jsonify(
            {
                "ok": True,
                "room": room.to_dict(),
                "date": target_day.isoformat(),
                "blocked_reason": blocked_day_reason(target_day, config.holiday_country),
                "is_available_now": is_available_at(active, room_id, now),
                "bookings": [item.to_dict() for item in day_agenda(active, room_id, target_day)],
            }
        )

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        room_id = str(request.args.get("room_id", "")).strip() or None
        records = repository.get_active_reservations(room_id)
        records.sort(key=lambda record: (record.anchor.start, record.resource_id))
        return jsonify({"ok": True, "bookings": [record.to_dict() for record in records]})

    @app.post("/api/bookings/check")
    def check_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        try:
            candidate = _parse_candidate(payload, zone)
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        if repository.get_room(candidate.resource_id) is None:
            return jsonify({"ok": False, "message": "Room not found."}), 404
        return _verdict_response(repository.check(candidate), status_on_accept=200)

    @app.post("/api/bookings")
    def create_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        try:
            candidate = _parse_candidate(payload, zone)
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        if repository.get_room(candidate.resource_id) is None:
            return jsonify({"ok": False, "message": "Room not found."}), 404
        return _verdict_response(repository.book(candidate, now=clock()), status_on_accept=201)

    @app.post("/api/bookings/reschedule")
    def reschedule_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        reservation_id = str(payload.get("reservation_id", "")).strip()
        if not reservation_id:
            return jsonify({"ok": False, "message": "reservation_id is required."}), 400
        if repository.get_active_reservation(reservation_id) is None:
            return jsonify({"ok": False, "message": "Reservation not found."}), 404

        room_id = str(payload["room_id"]).strip() if payload.get("room_id") else None
        if room_id is not None and repository.get_room(room_id) is None:
            return jsonify({"ok": False, "message": "Room not found."}), 404

        try:
            start = _parse_datetime(payload["start"], "start", zone) if payload.get("start") else None
            end = _parse_datetime(payload["end"], "end", zone) if payload.get("end") else None
            recurrence = _parse_recurrence(payload.get("recurrence"))
            attendees = _parse_attendees(payload["attendees"]) if "attendees" in payload else None
            result = repository.reschedule(
                reservation_id,
                resource_id=room_id,
                start=start,
                end=end,
                recurrence=recurrence,
                clear_recurrence="recurrence" in payload and payload["recurrence"] is None,
                attendees=attendees,
                now=clock(),
            )
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        return _verdict_response(result, status_on_accept=200)

    @app.post("/api/bookings/cancel")
    def cancel_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        reservation_id = str(payload.get("reservation_id", "")).strip()
        if not reservation_id:
            return jsonify({"ok": False, "message": "reservation_id is required."}), 400

        try:
            cancelled = repository.cancel_reservation(reservation_id, now=clock())
        except ValueError:
            return jsonify({"ok": False, "message": "Reservation not found."}), 404
        return jsonify({"ok": True, "booking": cancelled.to_dict()})

    return app


def _verdict_response(result: ValidationResult, status_on_accept: int) -> Any:
    if isinstance(result, Accepted):
        return jsonify({"ok": True, "booking": result.reservation.to_dict()}), status_on_accept

    body: dict[str, Any] = {"ok": False, "reason": result.reason.value, "message": result.message}
    if result.conflict_with is not None:
        body["conflict_with"] = result.conflict_with.to_dict()
    status = 409 if result.reason is RejectionReason.TIME_CONFLICT else 400
    return jsonify(body), status


def _parse_candidate(payload: dict[str, Any], zone: tzinfo | None = None) -> Reservation:
    room_id = str(payload.get("room_id", "")).strip()
    if not room_id:
        raise ValueError("room_id is required.")
    title = str(payload.get("title", "")).strip()
    if not title:
        raise ValueError("title is required.")

    attendees = _parse_attendees(payload.get("attendees", 1))
    return draft_reservation(
        resource_id=room_id,
        title=title,
        start=_parse_datetime(payload.get("start"), "start", zone),
        end=_parse_datetime(payload.get("end"), "end", zone),
        recurrence=_parse_recurrence(payload.get("recurrence")),
        attendees=attendees,
        description=str(payload.get("description") or ""),
    )


def _parse_attendees(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise ValueError("attendees must be an integer.") from error


def _parse_datetime(value: Any, field_name: str, zone: tzinfo | None = None) -> datetime:
    """Parse an ISO timestamp; one with a UTC offset becomes wall-clock time in ``zone``."""
    try:
        parsed = datetime.fromisoformat(str(value))
    except (TypeError, ValueError) as error:
        raise ValueError(f"{field_name} must be an ISO 8601 timestamp.") from error
    return as_wall_clock(parsed, zone)


def _parse_recurrence(value: Any) -> RecurrenceRule | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("recurrence must be an object.")
    try:
        return RecurrenceRule.from_dict(value)
    except (KeyError, TypeError) as error:
        raise ValueError("recurrence needs frequency, step_count and series_end.") from error


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
