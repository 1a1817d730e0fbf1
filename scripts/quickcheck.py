from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
import tempfile
import traceback

from facility_booking import Frequency, RecurrenceRule, ReservationYamlRepository, draft_reservation


def main() -> int:
    print("[INFO] Facility Booking Quick Check")

    with tempfile.TemporaryDirectory() as temp_dir:
        data_dir = Path(temp_dir) / "data"
        repo = ReservationYamlRepository(data_dir)
        rooms = repo.seed_rooms()
        print(f"[OK] Rooms seeded: {len(rooms)}")

        now = datetime(2026, 3, 2, 8, 0)
        standup = draft_reservation(
            "2",
            "Weekly standup",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 27)),
            attendees=6,
        )
        first = repo.book(standup, now=now)
        print(f"[OK] Recurring booking accepted: {first.ok}")

        clash = draft_reservation("2", "Interview", datetime(2026, 3, 16, 9, 30), datetime(2026, 3, 16, 10, 0))
        second = repo.book(clash, now=now)
        if second.ok:
            raise RuntimeError("third-Monday booking should have collided with the standup series")
        print(f"[OK] Colliding booking rejected: {second.reason.value}")

        print(f"[OK] Active reservations: {len(repo.get_active_reservations())}")
        print(f"[OK] Event Log YAML: {repo.log_file}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
