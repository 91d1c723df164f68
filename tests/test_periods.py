"""
Unit tests for the period calendar.

Default windows (inclusive, MM-DD):
    I 08-25..10-14, II 10-15..12-31, III 01-01..02-19,
    IV 02-20..04-14, V 04-15..05-24, Summer 05-25..08-24
Each period's "ends" window reaches one week past its end.
"""

import unittest
from datetime import date, timedelta

from helpers import make_course

from coursefilter.model import Period
from coursefilter.periods import (
    PeriodCalendar,
    academic_year_for,
    default_periods,
    month_day_key,
    parse_course_date,
)


class TestHelpers(unittest.TestCase):
    def test_academic_year_rolls_over_in_june(self) -> None:
        self.assertEqual(academic_year_for(date(2025, 3, 1)), 2024)
        self.assertEqual(academic_year_for(date(2025, 5, 31)), 2024)
        self.assertEqual(academic_year_for(date(2025, 6, 1)), 2025)
        self.assertEqual(academic_year_for(date(2025, 11, 1)), 2025)

    def test_parse_course_date_accepts_datetime_strings(self) -> None:
        self.assertEqual(parse_course_date("2024-09-02"), date(2024, 9, 2))
        self.assertEqual(parse_course_date("2024-09-02T00:00:00.000Z"), date(2024, 9, 2))
        self.assertIsNone(parse_course_date("02.09.2024"))
        self.assertIsNone(parse_course_date(""))

    def test_month_day_key(self) -> None:
        self.assertEqual(month_day_key(date(2024, 1, 7)), "0107")
        self.assertEqual(month_day_key("10-14"), "1014")


class TestInPeriod(unittest.TestCase):
    def setUp(self) -> None:
        self.cal = PeriodCalendar(catalog_year=2024)

    def test_starts_inclusive_bounds(self) -> None:
        self.assertTrue(self.cal.in_period("I", make_course("CS-A1", "2024-08-25")).starts)
        self.assertTrue(self.cal.in_period("I", make_course("CS-A1", "2024-10-14")).starts)
        self.assertFalse(self.cal.in_period("I", make_course("CS-A1", "2024-10-15")).starts)
        self.assertTrue(self.cal.in_period("II", make_course("CS-A1", "2024-10-15")).starts)

    def test_ends_uses_trailing_offset(self) -> None:
        course = make_course("CS-A1", "2024-09-01", "2024-10-21")
        self.assertTrue(self.cal.in_period("I", course).ends)
        course = make_course("CS-A1", "2024-09-01", "2024-10-22")
        self.assertFalse(self.cal.in_period("I", course).ends)

    def test_ends_window_wraps_into_january(self) -> None:
        course = make_course("CS-A1", "2024-10-20", "2025-01-05")
        self.assertTrue(self.cal.in_period("II", course).ends)

    def test_offset_respects_leap_year(self) -> None:
        # 02-19 + 10 days is 02-29 in a leap spring and 03-01 otherwise
        periods = [Period("III", "01-01", "02-19", timedelta(days=10), next_year=True)]
        leap = PeriodCalendar(periods, catalog_year=2023)
        plain = PeriodCalendar(periods, catalog_year=2024)
        course = make_course("CS-A1", "2025-01-10", "2025-03-01")
        self.assertFalse(leap.in_period("III", course).ends)
        self.assertTrue(plain.in_period("III", course).ends)

    def test_unknown_period_matches_nothing(self) -> None:
        match = self.cal.in_period("VII", make_course("CS-A1", "2024-09-02"))
        self.assertEqual((match.starts, match.ends), (False, False))

    def test_bad_dates_match_nothing(self) -> None:
        match = self.cal.in_period("I", make_course("CS-A1", "not a date", "2024-13-40"))
        self.assertEqual((match.starts, match.ends), (False, False))

    def test_invisible_characters_are_ignored(self) -> None:
        course = make_course("CS-A1", "\ufeff2024-09-02\u200b")
        self.assertTrue(self.cal.in_period("I", course).starts)


class TestPeriodRange(unittest.TestCase):
    def setUp(self) -> None:
        self.cal = PeriodCalendar(catalog_year=2024)

    def test_end_within_offset_stays_in_period(self) -> None:
        course = make_course("CS-E4580", "2024-08-30", "2024-10-20")
        self.assertEqual(self.cal.period_range(course), "I")

    def test_end_past_offset_spans_two_periods(self) -> None:
        course = make_course("CS-E4580", "2024-08-30", "2024-11-30")
        self.assertEqual(self.cal.period_range(course), "I-II")

    def test_span_over_new_year(self) -> None:
        course = make_course("CS-E4580", "2024-10-28", "2025-02-14")
        self.assertEqual(self.cal.period_range(course), "II-III")

    def test_no_period_gives_empty_label(self) -> None:
        self.assertEqual(self.cal.period_range(make_course("CS-A1", "", "")), "")

    def test_earlier_declared_period_wins(self) -> None:
        # both windows contain 09-01; the first declared one is reported
        periods = [
            Period("A", "08-01", "09-30"),
            Period("B", "09-01", "10-31"),
        ]
        cal = PeriodCalendar(periods, catalog_year=2024)
        self.assertEqual(cal.period_range(make_course("X-1", "2024-09-01", "2024-09-02")), "A")

    def test_summer(self) -> None:
        course = make_course("CS-A1", "2025-06-01", "2025-08-15")
        self.assertEqual(self.cal.period_range(course), "Summer")

    def test_catalog_year_defaults_from_today(self) -> None:
        cal = PeriodCalendar(today=date(2025, 2, 1))
        self.assertEqual(cal.catalog_year, 2024)

    def test_custom_offset(self) -> None:
        cal = PeriodCalendar(default_periods(timedelta(days=0)), catalog_year=2024)
        course = make_course("CS-E4580", "2024-08-30", "2024-10-20")
        self.assertEqual(cal.period_range(course), "I-II")

    def test_end_in_previous_offset_is_not_backwards(self) -> None:
        # 01-05 is also inside II's trailing week, but the course starts in III
        self.assertEqual(self.cal.period_range(make_course("CS-A1", "2025-01-02", "2025-01-05")), "III")
        self.assertEqual(self.cal.period_range(make_course("CS-A1", "2025-05-26", "2025-05-28")), "Summer")

    def test_end_label_wraps_past_last_period(self) -> None:
        course = make_course("CS-A1", "2025-06-01", "2025-09-10")
        self.assertEqual(self.cal.period_range(course), "Summer-I")


if __name__ == "__main__":
    unittest.main()
