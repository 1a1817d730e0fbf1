from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any

from mcp.server.fastmcp import FastMCP

from facility_booking import Accepted, RecurrenceRule, ReservationYamlRepository, draft_reservation
from facility_booking.config import get_settings
from facility_booking.intervals import as_wall_clock
from facility_booking.log import configure_logging

mcp = FastMCP(
    "Facility Booking MCP Server",
    instructions="Expose room bookings and the booking conflict checks from the facility_booking project.",
    json_response=True,
)


@lru_cache(maxsize=1)
def repository() -> ReservationYamlRepository:
    settings = get_settings()
    store = ReservationYamlRepository(settings.data_dir, time_step_minutes=settings.time_step_minutes)
    store.seed_rooms()
    return store


@mcp.resource("facility://rooms")
async def list_rooms() -> list[dict[str, Any]]:
    """List bookable rooms with capacity, amenities and location."""
    return [room.to_dict() for room in repository().get_rooms()]


@mcp.tool()
def list_bookings(room_id: str | None = None) -> list[dict[str, Any]]:
    """Return active bookings, optionally filtered by room id."""
    return [record.to_dict() for record in repository().get_active_reservations(room_id)]


def _candidate(
    room_id: str,
    title: str,
    start_iso: str,
    end_iso: str,
    attendees: int,
    frequency: str | None,
    step_count: int,
    series_end: str | None,
):
    recurrence = None
    if frequency:
        if not series_end:
            raise ValueError("series_end is required for recurring bookings")
        recurrence = RecurrenceRule.from_dict(
            {"frequency": frequency, "step_count": step_count, "series_end": series_end}
        )
    zone = get_settings().zone()
    return draft_reservation(
        resource_id=room_id,
        title=title,
        start=as_wall_clock(datetime.fromisoformat(start_iso), zone),
        end=as_wall_clock(datetime.fromisoformat(end_iso), zone),
        recurrence=recurrence,
        attendees=attendees,
    )


def _verdict(result: Any) -> dict[str, Any]:
    if isinstance(result, Accepted):
        return {"ok": True, "booking": result.reservation.to_dict()}
    payload: dict[str, Any] = {"ok": False, "reason": result.reason.value, "message": result.message}
    if result.conflict_with is not None:
        payload["conflict_with"] = result.conflict_with.to_dict()
    return payload


@mcp.tool()
def check_booking(
    room_id: str,
    title: str,
    start_iso: str,
    end_iso: str,
    attendees: int = 1,
    frequency: str | None = None,
    step_count: int = 1,
    series_end: str | None = None,
) -> dict[str, Any]:
    """Dry-run a booking request (optionally recurring) without saving it."""
    candidate = _candidate(room_id, title, start_iso, end_iso, attendees, frequency, step_count, series_end)
    return _verdict(repository().check(candidate))


@mcp.tool()
def book_room(
    room_id: str,
    title: str,
    start_iso: str,
    end_iso: str,
    attendees: int = 1,
    frequency: str | None = None,
    step_count: int = 1,
    series_end: str | None = None,
) -> dict[str, Any]:
    """Book a room using ISO timestamps; recurring when frequency and series_end are given."""
    candidate = _candidate(room_id, title, start_iso, end_iso, attendees, frequency, step_count, series_end)
    return _verdict(repository().book(candidate))


@mcp.tool()
def cancel_booking(reservation_id: str) -> dict[str, Any]:
    """Cancel an active booking by id."""
    return repository().cancel_reservation(reservation_id).to_dict()


def main() -> None:
    configure_logging(get_settings().log_level)
    mcp.run()


if __name__ == "__main__":
    main()
