import unittest
from datetime import date

from campus_connect import Reservation, find_conflicts, has_time_overlap, is_available, parse_time_of_day
from campus_connect.booking import availability_by_resource, format_time_of_day


def _desk(resource_name: str, reservation_date: str, start: str, end: str) -> Reservation:
    return Reservation(resource_name=resource_name, date=reservation_date, start_time=start, end_time=end)


class TestParseTimeOfDay(unittest.TestCase):
    def test_parses_minutes_since_midnight(self) -> None:
        self.assertEqual(parse_time_of_day("00:00"), 0)
        self.assertEqual(parse_time_of_day("09:00"), 540)
        self.assertEqual(parse_time_of_day("9:30"), 570)
        self.assertEqual(parse_time_of_day("23:59"), 1439)

    def test_rejects_malformed_values(self) -> None:
        for value in ("0900", "24:00", "10:60", "ab:cd", "10:5", ""):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_time_of_day(value)

    def test_format_time_of_day(self) -> None:
        self.assertEqual(format_time_of_day(570), "09:30")
        with self.assertRaises(ValueError):
            format_time_of_day(24 * 60)


class TestTimeOverlap(unittest.TestCase):
    def setUp(self) -> None:
        self.exist_start = parse_time_of_day("10:00")
        self.exist_end = parse_time_of_day("11:00")

    def test_non_overlapping_before_passes(self) -> None:
        self.assertFalse(has_time_overlap(540, 599, self.exist_start, self.exist_end))

    def test_exactly_touching_boundary_passes(self) -> None:
        self.assertFalse(has_time_overlap(660, 720, self.exist_start, self.exist_end))
        self.assertFalse(has_time_overlap(540, 600, self.exist_start, self.exist_end))

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(has_time_overlap(630, 690, self.exist_start, self.exist_end))

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(has_time_overlap(615, 645, self.exist_start, self.exist_end))

    def test_fully_enclosing_fails(self) -> None:
        self.assertTrue(has_time_overlap(540, 720, self.exist_start, self.exist_end))


class TestIsAvailable(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [_desk("Desk A-12", "2025-12-25", "09:00", "11:00")]

    def test_empty_list_is_always_available(self) -> None:
        self.assertTrue(is_available([], "Desk A-12", "2025-12-25", "09:00", "11:00"))

    def test_overlapping_window_is_not_available(self) -> None:
        self.assertFalse(is_available(self.existing, "Desk A-12", "2025-12-25", "10:00", "12:00"))

    def test_abutting_window_is_available(self) -> None:
        existing = [_desk("Desk A-12", "2025-12-25", "10:00", "11:00")]
        self.assertTrue(is_available(existing, "Desk A-12", "2025-12-25", "11:00", "12:00"))

    def test_other_resource_never_conflicts(self) -> None:
        self.assertTrue(is_available(self.existing, "Desk A-13", "2025-12-25", "09:00", "11:00"))

    def test_other_date_never_conflicts(self) -> None:
        self.assertTrue(is_available(self.existing, "Desk A-12", "2025-12-26", "09:00", "11:00"))

    def test_accepts_date_objects(self) -> None:
        self.assertFalse(is_available(self.existing, "Desk A-12", date(2025, 12, 25), "08:00", "09:30"))

    def test_compares_times_numerically_not_lexically(self) -> None:
        existing = [_desk("Computer Lab 1", "2025-12-26", "9:30", "10:30")]
        self.assertFalse(is_available(existing, "Computer Lab 1", "2025-12-26", "10:00", "11:00"))
        self.assertTrue(is_available(existing, "Computer Lab 1", "2025-12-26", "08:00", "09:30"))

    def test_does_not_mutate_input(self) -> None:
        existing = list(self.existing)
        is_available(existing, "Desk A-12", "2025-12-25", "10:00", "12:00")
        self.assertEqual(existing, self.existing)


class TestFindConflicts(unittest.TestCase):
    def test_returns_every_overlapping_reservation(self) -> None:
        existing = [
            _desk("Meeting Room A", "2025-12-27", "09:00", "10:00"),
            _desk("Meeting Room A", "2025-12-27", "10:30", "11:30"),
            _desk("Meeting Room A", "2025-12-27", "13:00", "14:00"),
            _desk("Meeting Room B", "2025-12-27", "09:30", "10:30"),
        ]

        conflicts = find_conflicts(existing, "Meeting Room A", "2025-12-27", "09:30", "11:00")

        self.assertEqual([item.start_time for item in conflicts], ["09:00", "10:30"])

    def test_availability_by_resource(self) -> None:
        existing = [_desk("Desk A-12", "2025-12-25", "09:00", "11:00")]

        board = availability_by_resource(existing, ["Desk A-12", "Desk A-13"], "2025-12-25", "10:00", "12:00")

        self.assertEqual(board, {"Desk A-12": False, "Desk A-13": True})


if __name__ == "__main__":
    unittest.main()
