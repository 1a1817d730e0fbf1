from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from .intervals import Interval
from .recurrence import RecurrenceRule


@dataclass(frozen=True)
class Resource:
    resource_id: str
    name: str
    capacity: int
    amenities: frozenset[str] = field(default_factory=frozenset)
    description: str = ""
    location: str = ""

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("Resource capacity must be at least 1.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "capacity": self.capacity,
            "amenities": sorted(self.amenities),
            "description": self.description,
            "location": self.location,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Resource":
        return Resource(
            resource_id=str(data["resource_id"]),
            name=str(data["name"]),
            capacity=int(data["capacity"]),
            amenities=frozenset(str(item) for item in data.get("amenities") or []),
            description=str(data.get("description") or ""),
            location=str(data.get("location") or ""),
        )


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    resource_id: str
    title: str
    anchor: Interval
    recurrence: RecurrenceRule | None = None
    attendees: int = 1
    description: str = ""

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "title": self.title,
            "start": self.anchor.start.isoformat(timespec="minutes"),
            "end": self.anchor.end.isoformat(timespec="minutes"),
            "attendees": self.attendees,
        }
        if self.description:
            payload["description"] = self.description
        if self.recurrence is not None:
            payload["recurrence"] = self.recurrence.to_dict()
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        recurrence_data = data.get("recurrence")
        return Reservation(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            title=str(data.get("title") or ""),
            anchor=Interval(
                datetime.fromisoformat(str(data["start"])),
                datetime.fromisoformat(str(data["end"])),
            ),
            recurrence=(RecurrenceRule.from_dict(recurrence_data) if recurrence_data else None),
            attendees=int(data.get("attendees", 1)),
            description=str(data.get("description") or ""),
        )


def draft_reservation(
    resource_id: str,
    title: str,
    start: datetime,
    end: datetime,
    recurrence: RecurrenceRule | None = None,
    attendees: int = 1,
    description: str = "",
) -> Reservation:
    """Build a not-yet-validated reservation with a fresh id."""
    return Reservation(
        reservation_id=str(uuid4()),
        resource_id=_normalize_resource_id(resource_id),
        title=title.strip(),
        anchor=Interval(start, end),
        recurrence=recurrence,
        attendees=attendees,
        description=description.strip(),
    )


def _normalize_resource_id(resource_id: str | None) -> str:
    if resource_id is None:
        raise ValueError("resource_id must not be None")

    normalized = str(resource_id).strip()
    if not normalized:
        raise ValueError("resource_id must not be empty")
    return normalized
