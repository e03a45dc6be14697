import datetime
from datetime import date, timedelta

from django.test import SimpleTestCase

from .periods import (
    Frequency, UnknownFrequencyError, as_date, next_period_start, period_contains,
    period_end, period_label, period_start, previous_period_start,
)

ALL_FREQUENCIES = list(Frequency)


def days_between(first, last):
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


class FrequencyParseTests(SimpleTestCase):
    """Test cases for Frequency.parse"""

    def test_parse_known_values(self):
        """Test that every stored value maps to its member"""
        self.assertEqual(Frequency.parse('daily'), Frequency.DAILY)
        self.assertEqual(Frequency.parse('weekly'), Frequency.WEEKLY)
        self.assertEqual(Frequency.parse('bi-weekly'), Frequency.BI_WEEKLY)
        self.assertEqual(Frequency.parse('monthly'), Frequency.MONTHLY)
        self.assertEqual(Frequency.parse('quarterly'), Frequency.QUARTERLY)

    def test_parse_quarter_alias(self):
        self.assertEqual(Frequency.parse('quarter'), Frequency.QUARTERLY)

    def test_parse_normalizes_case_and_whitespace(self):
        self.assertEqual(Frequency.parse('  Weekly '), Frequency.WEEKLY)

    def test_parse_member_passes_through(self):
        self.assertIs(Frequency.parse(Frequency.MONTHLY), Frequency.MONTHLY)

    def test_unknown_frequency_raises(self):
        """Test that unknown cadences are rejected instead of treated as weekly"""
        for value in ['yearly', '', None, 7]:
            with self.subTest(value=value):
                with self.assertRaises(UnknownFrequencyError):
                    Frequency.parse(value)

    def test_unknown_frequency_is_value_error(self):
        with self.assertRaises(ValueError):
            period_start('fortnightly', date(2025, 11, 17))

    def test_choices(self):
        self.assertIn(('bi-weekly', 'Bi-weekly'), Frequency.choices())
        self.assertEqual(len(Frequency.choices()), 5)


class PeriodStartTests(SimpleTestCase):
    """Test cases for period_start and period_end"""

    def test_daily_period_is_the_day(self):
        day = date(2025, 11, 19)
        self.assertEqual(period_start('daily', day), day)
        self.assertEqual(period_end('daily', day), day)

    def test_weekly_starts_on_monday(self):
        # 2025-11-23 is a Sunday
        self.assertEqual(period_start('weekly', date(2025, 11, 23)), date(2025, 11, 17))
        self.assertEqual(period_start('weekly', date(2025, 11, 17)), date(2025, 11, 17))
        self.assertEqual(period_end('weekly', date(2025, 11, 17)), date(2025, 11, 23))

    def test_bi_weekly_spans_fourteen_days(self):
        self.assertEqual(period_start('bi-weekly', date(2025, 11, 20)), date(2025, 11, 17))
        self.assertEqual(period_end('bi-weekly', date(2025, 11, 17)), date(2025, 11, 30))

    def test_monthly_boundaries(self):
        self.assertEqual(period_start('monthly', date(2025, 2, 14)), date(2025, 2, 1))
        self.assertEqual(period_end('monthly', date(2025, 2, 1)), date(2025, 2, 28))
        self.assertEqual(period_end('monthly', date(2024, 2, 1)), date(2024, 2, 29))
        self.assertEqual(period_end('monthly', date(2025, 12, 1)), date(2025, 12, 31))

    def test_monthly_end_from_later_start(self):
        """Test that a start after the first still ends on the last day of that month"""
        self.assertEqual(period_end('monthly', date(2025, 2, 28)), date(2025, 2, 28))
        self.assertEqual(period_end('monthly', date(2025, 1, 31)), date(2025, 1, 31))

    def test_quarterly_boundaries(self):
        self.assertEqual(period_start('quarterly', date(2025, 5, 20)), date(2025, 4, 1))
        self.assertEqual(period_end('quarterly', date(2025, 4, 1)), date(2025, 6, 30))
        self.assertEqual(period_start('quarter', date(2025, 12, 31)), date(2025, 10, 1))
        self.assertEqual(period_end('quarterly', date(2025, 10, 1)), date(2025, 12, 31))
        self.assertEqual(period_end('quarterly', date(2025, 1, 1)), date(2025, 3, 31))

    def test_datetime_is_reduced_to_date(self):
        moment = datetime.datetime(2025, 11, 19, 23, 30)
        self.assertEqual(period_start('weekly', moment), date(2025, 11, 17))

    def test_as_date_rejects_strings(self):
        with self.assertRaises(TypeError):
            as_date('2025-11-17')


class NextPeriodStartTests(SimpleTestCase):
    """Test cases for next_period_start"""

    def test_steps(self):
        start = date(2025, 11, 17)
        self.assertEqual(next_period_start('daily', start), date(2025, 11, 18))
        self.assertEqual(next_period_start('weekly', start), date(2025, 11, 24))
        self.assertEqual(next_period_start('bi-weekly', start), date(2025, 12, 1))
        self.assertEqual(next_period_start('monthly', date(2025, 11, 1)), date(2025, 12, 1))
        self.assertEqual(next_period_start('quarterly', date(2025, 10, 1)), date(2026, 1, 1))

    def test_month_end_is_clamped(self):
        """Test that month steps land on the last valid day instead of overflowing"""
        self.assertEqual(next_period_start('monthly', date(2025, 1, 31)), date(2025, 2, 28))
        self.assertEqual(next_period_start('monthly', date(2024, 1, 31)), date(2024, 2, 29))
        self.assertEqual(next_period_start('quarterly', date(2025, 11, 30)), date(2026, 2, 28))

    def test_previous_period_start(self):
        self.assertEqual(previous_period_start('weekly', date(2025, 11, 17)), date(2025, 11, 10))
        self.assertEqual(previous_period_start('monthly', date(2025, 3, 31)), date(2025, 2, 28))

    def test_dst_weeks(self):
        """Test that weeks containing a daylight-saving change keep seven days"""
        # 2025-03-09 (US) and 2025-03-30 (EU) are DST start Sundays,
        # 2025-11-02 (US) and 2025-10-26 (EU) are DST end Sundays
        for sunday in [date(2025, 3, 9), date(2025, 3, 30), date(2025, 10, 26), date(2025, 11, 2)]:
            with self.subTest(sunday=sunday):
                start = period_start('weekly', sunday)
                self.assertEqual(start, sunday - timedelta(days=6))
                self.assertEqual(period_end('weekly', start), sunday)
                self.assertEqual(next_period_start('weekly', start), sunday + timedelta(days=1))


class PeriodPropertyTests(SimpleTestCase):
    """Invariants checked for every day of 2024 through 2026"""

    first_day = date(2024, 1, 1)
    last_day = date(2026, 12, 31)

    def test_start_is_idempotent(self):
        for frequency in ALL_FREQUENCIES:
            for day in days_between(self.first_day, self.last_day):
                start = period_start(frequency, day)
                self.assertEqual(period_start(frequency, start), start, (frequency, day))

    def test_period_contains_reference_day(self):
        for frequency in ALL_FREQUENCIES:
            for day in days_between(self.first_day, self.last_day):
                start = period_start(frequency, day)
                self.assertLessEqual(start, day)
                self.assertLessEqual(day, period_end(frequency, start))
                self.assertTrue(period_contains(frequency, start, day))

    def test_periods_leave_no_gaps(self):
        for frequency in ALL_FREQUENCIES:
            for day in days_between(self.first_day, self.last_day):
                start = period_start(frequency, day)
                following = period_end(frequency, start) + timedelta(days=1)
                self.assertEqual(next_period_start(frequency, start), following, (frequency, day))
                self.assertEqual(period_start(frequency, following), following, (frequency, day))

    def test_end_is_never_before_start(self):
        for frequency in ALL_FREQUENCIES:
            for day in days_between(self.first_day, self.last_day):
                self.assertGreaterEqual(period_end(frequency, day), day)


class PeriodLabelTests(SimpleTestCase):
    """Test cases for period_label"""

    def test_weekly_label(self):
        self.assertEqual(period_label('weekly', date(2025, 11, 17)), "Week 47 (11/17 - 11/23)")

    def test_bi_weekly_label(self):
        self.assertEqual(period_label('bi-weekly', date(2025, 11, 17)), "Bi-week 47 (11/17 - 11/30)")

    def test_daily_label(self):
        self.assertEqual(period_label('daily', date(2025, 11, 17)), "Day 11/17 (11/17 - 11/17)")

    def test_monthly_label(self):
        self.assertEqual(period_label('monthly', date(2025, 11, 1)), "November 2025 (11/1 - 11/30)")

    def test_monthly_label_uses_first_of_month(self):
        self.assertEqual(period_label('monthly', date(2025, 2, 28)), "February 2025 (2/1 - 2/28)")

    def test_quarterly_label(self):
        self.assertEqual(period_label('quarterly', date(2025, 10, 1)), "Quarter Q4 (10/1 - 12/31)")
        self.assertEqual(period_label('quarter', date(2026, 1, 1)), "Quarter Q1 (1/1 - 3/31)")

    def test_iso_week_number_at_year_boundary(self):
        # 2024-12-30 belongs to ISO week 1 of 2025
        self.assertEqual(period_label('weekly', date(2024, 12, 30)), "Week 1 (12/30 - 1/5)")
