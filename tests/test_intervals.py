import unittest
from datetime import datetime, timedelta, timezone

from facility_booking import Interval, has_time_overlap, overlaps
from facility_booking.intervals import as_wall_clock


class TestTimeOverlap(unittest.TestCase):
    def setUp(self) -> None:
        self.exist_start = datetime(2026, 3, 2, 10, 0)
        self.exist_end = datetime(2026, 3, 2, 11, 0)

    def test_non_overlapping_before_passes(self) -> None:
        self.assertFalse(
            has_time_overlap(
                datetime(2026, 3, 2, 9, 0),
                datetime(2026, 3, 2, 9, 59),
                self.exist_start,
                self.exist_end,
            )
        )

    def test_exactly_touching_boundary_passes(self) -> None:
        self.assertFalse(
            has_time_overlap(
                datetime(2026, 3, 2, 11, 0),
                datetime(2026, 3, 2, 12, 0),
                self.exist_start,
                self.exist_end,
            )
        )
        self.assertFalse(
            has_time_overlap(
                datetime(2026, 3, 2, 9, 0),
                datetime(2026, 3, 2, 10, 0),
                self.exist_start,
                self.exist_end,
            )
        )

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(
            has_time_overlap(
                datetime(2026, 3, 2, 10, 30),
                datetime(2026, 3, 2, 11, 30),
                self.exist_start,
                self.exist_end,
            )
        )

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(
            has_time_overlap(
                datetime(2026, 3, 2, 10, 15),
                datetime(2026, 3, 2, 10, 45),
                self.exist_start,
                self.exist_end,
            )
        )

    def test_malformed_interval_is_a_defect(self) -> None:
        with self.assertRaises(ValueError):
            has_time_overlap(self.exist_end, self.exist_start, self.exist_start, self.exist_end)
        with self.assertRaises(ValueError):
            has_time_overlap(self.exist_start, self.exist_end, self.exist_start, self.exist_start)


class TestInterval(unittest.TestCase):
    def test_overlap_is_symmetric(self) -> None:
        base = datetime(2026, 3, 2, 9, 0)
        intervals = [
            Interval(base, base + timedelta(hours=1)),
            Interval(base + timedelta(minutes=30), base + timedelta(hours=2)),
            Interval(base + timedelta(hours=1), base + timedelta(hours=3)),
            Interval(base - timedelta(hours=2), base + timedelta(hours=5)),
            Interval(base + timedelta(hours=4), base + timedelta(hours=5)),
        ]
        for first in intervals:
            for second in intervals:
                with self.subTest(first=first, second=second):
                    self.assertEqual(overlaps(first, second), overlaps(second, first))

    def test_construction_accepts_malformed_range(self) -> None:
        interval = Interval(datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 9, 0))
        self.assertFalse(interval.is_well_formed)

    def test_contains_is_half_open(self) -> None:
        interval = Interval(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 0))
        self.assertTrue(interval.contains(datetime(2026, 3, 2, 9, 0)))
        self.assertFalse(interval.contains(datetime(2026, 3, 2, 10, 0)))

    def test_offsets_are_dropped_in_the_target_zone(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        aware = datetime(2026, 3, 2, 14, 0, tzinfo=plus_two)

        self.assertEqual(as_wall_clock(aware, timezone.utc), datetime(2026, 3, 2, 12, 0))
        self.assertEqual(as_wall_clock(datetime(2026, 3, 2, 9, 0), timezone.utc), datetime(2026, 3, 2, 9, 0))
        self.assertFalse(Interval(aware, datetime(2026, 3, 2, 15, 0)).is_well_formed)

    def test_mixed_offsets_are_a_defect(self) -> None:
        naive = Interval(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 0))
        aware = Interval(
            datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc), datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
        )
        with self.assertRaises(ValueError):
            overlaps(naive, aware)


if __name__ == "__main__":
    unittest.main()
