import unittest
from datetime import date, datetime

from facility_booking import (
    Frequency,
    Interval,
    RecurrenceRule,
    Reservation,
    find_conflicts,
    has_conflict,
)


def _booking(
    reservation_id: str,
    start: datetime,
    end: datetime,
    resource_id: str = "room-r",
    recurrence: RecurrenceRule | None = None,
) -> Reservation:
    return Reservation(
        reservation_id=reservation_id,
        resource_id=resource_id,
        title=f"booking {reservation_id}",
        anchor=Interval(start, end),
        recurrence=recurrence,
    )


class TestSingleBookings(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = _booking("morning", datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 0))

    def test_overlapping_single_bookings_conflict(self) -> None:
        candidate = _booking("new", datetime(2026, 3, 2, 9, 30), datetime(2026, 3, 2, 10, 30))

        result = has_conflict(candidate, [self.existing])

        self.assertTrue(result.conflict)
        self.assertIs(result.with_reservation, self.existing)

    def test_touching_endpoints_do_not_conflict(self) -> None:
        after = _booking("after", datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 11, 0))
        before = _booking("before", datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 9, 0))

        self.assertFalse(has_conflict(after, [self.existing]).conflict)
        self.assertFalse(has_conflict(before, [self.existing]).conflict)
        self.assertIsNone(has_conflict(after, [self.existing]).with_reservation)

    def test_other_resources_never_conflict(self) -> None:
        candidate = _booking(
            "elsewhere",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            resource_id="room-s",
            recurrence=RecurrenceRule(Frequency.DAILY, 1, date(2026, 12, 31)),
        )
        series = _booking(
            "series",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            recurrence=RecurrenceRule(Frequency.DAILY, 1, date(2026, 12, 31)),
        )

        self.assertFalse(has_conflict(candidate, [self.existing, series]).conflict)
        self.assertEqual(find_conflicts(candidate, [self.existing, series]), [])

    def test_first_match_in_input_order_wins(self) -> None:
        second = _booking("second", datetime(2026, 3, 2, 9, 45), datetime(2026, 3, 2, 11, 0))
        candidate = _booking("new", datetime(2026, 3, 2, 9, 30), datetime(2026, 3, 2, 10, 30))

        self.assertIs(has_conflict(candidate, [second, self.existing]).with_reservation, second)
        self.assertIs(has_conflict(candidate, [self.existing, second]).with_reservation, self.existing)
        self.assertEqual(find_conflicts(candidate, [self.existing, second]), [self.existing, second])

    def test_malformed_existing_reservation_raises(self) -> None:
        broken = _booking("broken", datetime(2026, 3, 2, 11, 0), datetime(2026, 3, 2, 10, 0))
        candidate = _booking("new", datetime(2026, 3, 2, 9, 30), datetime(2026, 3, 2, 10, 30))

        with self.assertRaises(ValueError):
            has_conflict(candidate, [broken])


class TestRecurringBookings(unittest.TestCase):
    def setUp(self) -> None:
        self.monday_series = _booking(
            "monday",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 27)),
        )
        self.tuesday_series = _booking(
            "tuesday",
            datetime(2026, 3, 3, 14, 0),
            datetime(2026, 3, 3, 15, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 3, 31)),
        )

    def test_single_booking_on_third_monday_conflicts(self) -> None:
        candidate = _booking("interview", datetime(2026, 3, 16, 9, 30), datetime(2026, 3, 16, 10, 0))

        result = has_conflict(candidate, [self.monday_series])

        self.assertTrue(result.conflict)
        self.assertIs(result.with_reservation, self.monday_series)

    def test_recurring_candidate_against_single_existing(self) -> None:
        single = _booking("offsite", datetime(2026, 3, 23, 9, 45), datetime(2026, 3, 23, 12, 0))
        candidate = _booking(
            "standup",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 27)),
        )

        self.assertTrue(has_conflict(candidate, [single]).conflict)

    def test_single_booking_after_series_end_is_free(self) -> None:
        candidate = _booking("late", datetime(2026, 5, 4, 9, 0), datetime(2026, 5, 4, 10, 0))

        self.assertFalse(has_conflict(candidate, [self.monday_series]).conflict)

    def test_overlapping_weekly_series_conflict(self) -> None:
        candidate = _booking(
            "review",
            datetime(2026, 3, 3, 14, 30),
            datetime(2026, 3, 3, 15, 30),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 3, 17)),
        )

        result = has_conflict(candidate, [self.tuesday_series])

        self.assertTrue(result.conflict)
        self.assertIs(result.with_reservation, self.tuesday_series)

    def test_series_on_different_weekdays_do_not_conflict(self) -> None:
        candidate = _booking(
            "wednesday",
            datetime(2026, 3, 4, 14, 0),
            datetime(2026, 3, 4, 15, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 29)),
        )

        self.assertFalse(has_conflict(candidate, [self.tuesday_series]).conflict)

    def test_series_with_disjoint_date_ranges_do_not_conflict(self) -> None:
        candidate = _booking(
            "april",
            datetime(2026, 4, 7, 14, 0),
            datetime(2026, 4, 7, 15, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 28)),
        )

        self.assertFalse(has_conflict(candidate, [self.tuesday_series]).conflict)

    def test_daily_series_meets_biweekly_series_later_in_range(self) -> None:
        biweekly = _booking(
            "biweekly",
            datetime(2026, 3, 6, 16, 0),
            datetime(2026, 3, 6, 17, 0),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 2, date(2026, 6, 30)),
        )
        candidate = _booking(
            "daily",
            datetime(2026, 3, 9, 16, 30),
            datetime(2026, 3, 9, 17, 30),
            recurrence=RecurrenceRule(Frequency.DAILY, 1, date(2026, 3, 31)),
        )

        self.assertTrue(has_conflict(candidate, [biweekly]).conflict)

    def test_interleaved_series_without_shared_slot(self) -> None:
        every_other_day = _booking(
            "odd",
            datetime(2026, 3, 1, 9, 0),
            datetime(2026, 3, 1, 10, 0),
            recurrence=RecurrenceRule(Frequency.DAILY, 2, date(2026, 3, 31)),
        )
        offset_days = _booking(
            "even",
            datetime(2026, 3, 2, 9, 0),
            datetime(2026, 3, 2, 10, 0),
            recurrence=RecurrenceRule(Frequency.DAILY, 2, date(2026, 3, 31)),
        )

        self.assertFalse(has_conflict(offset_days, [every_other_day]).conflict)

    def test_monthly_series_meets_weekly_series(self) -> None:
        monthly = _booking(
            "monthly",
            datetime(2026, 1, 31, 9, 0),
            datetime(2026, 1, 31, 10, 0),
            recurrence=RecurrenceRule(Frequency.MONTHLY, 1, date(2026, 12, 31)),
        )
        # 2026-03-31 is a Tuesday, the third occurrence of the monthly series.
        tuesdays = _booking(
            "tuesdays",
            datetime(2026, 3, 3, 9, 30),
            datetime(2026, 3, 3, 10, 30),
            recurrence=RecurrenceRule(Frequency.WEEKLY, 1, date(2026, 4, 7)),
        )

        self.assertTrue(has_conflict(tuesdays, [monthly]).conflict)

    def test_check_is_deterministic(self) -> None:
        candidate = _booking("interview", datetime(2026, 3, 16, 9, 30), datetime(2026, 3, 16, 10, 0))
        existing = [self.tuesday_series, self.monday_series]

        self.assertEqual(has_conflict(candidate, existing), has_conflict(candidate, existing))


if __name__ == "__main__":
    unittest.main()
