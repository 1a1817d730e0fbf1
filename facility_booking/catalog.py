from __future__ import annotations

from typing import Iterable

from .models import Resource

DEFAULT_ROOMS: tuple[Resource, ...] = (
    Resource(
        resource_id="1",
        name="Conference Room A",
        capacity=20,
        amenities=frozenset({"Projector", "Whiteboard"}),
        description="Large conference room with modern amenities",
        location="Main Floor",
    ),
    Resource(
        resource_id="2",
        name="Meeting Room B",
        capacity=8,
        amenities=frozenset({"TV Screen", "Whiteboard"}),
        description="Medium-sized meeting room for small groups",
        location="Main Floor",
    ),
    Resource(
        resource_id="3",
        name="Training Room C",
        capacity=30,
        amenities=frozenset({"Projector", "Whiteboard", "Audio System", "Training PCs"}),
        description="Large training facility with computer workstations",
        location="Main Floor",
    ),
    Resource(
        resource_id="4",
        name="Huddle Room D",
        capacity=4,
        amenities=frozenset({"TV Screen", "Whiteboard"}),
        description="Small huddle space for quick meetings",
        location="Second Floor",
    ),
    Resource(
        resource_id="5",
        name="Board Room",
        capacity=16,
        amenities=frozenset({"Projector", "Video Conference System", "Premium Audio"}),
        description="Executive meeting room with premium amenities",
        location="Executive Floor",
    ),
)


def search_rooms(rooms: Iterable[Resource], term: str | None) -> list[Resource]:
    """Case-insensitive substring match on name, location and amenities."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(rooms)
    return [
        room
        for room in rooms
        if needle in room.name.lower()
        or needle in room.location.lower()
        or any(needle in amenity.lower() for amenity in room.amenities)
    ]
