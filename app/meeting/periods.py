"""
Meeting period arithmetic.

A meeting series has a cadence (its frequency) and every instance of the
series covers one period of that cadence. These helpers map a date to the
period that contains it, the period's inclusive end, the start of the
following period, and a display label.

All arithmetic is done on ``datetime.date`` values, so daylight-saving
transitions never move a period boundary.
"""
import datetime
from enum import Enum

from dateutil.relativedelta import relativedelta
from django.utils import timezone


class UnknownFrequencyError(ValueError):
    """Raised for a frequency outside the supported cadences."""


class Frequency(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    BI_WEEKLY = 'bi-weekly'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'

    @classmethod
    def parse(cls, value):
        """Return the Frequency for ``value``; 'quarter' is accepted for quarterly."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == 'quarter':
                return cls.QUARTERLY
            try:
                return cls(normalized)
            except ValueError:
                pass
        raise UnknownFrequencyError(f"Unknown meeting frequency: {value!r}")

    @classmethod
    def choices(cls):
        return [(member.value, member.label) for member in cls]

    @property
    def label(self):
        return {
            'daily': 'Daily',
            'weekly': 'Weekly',
            'bi-weekly': 'Bi-weekly',
            'monthly': 'Monthly',
            'quarterly': 'Quarterly',
        }[self.value]


STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.BI_WEEKLY: relativedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
}


def as_date(value):
    """Reduce a datetime to its local calendar date; dates pass through."""
    if isinstance(value, datetime.datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    raise TypeError(f"Expected a date or datetime, got {type(value).__name__}")


def monday_of(day):
    return day - datetime.timedelta(days=day.weekday())


def quarter_of(day):
    return (day.month - 1) // 3 + 1


def period_start(frequency, ref):
    """Canonical start of the period containing ``ref``."""
    frequency = Frequency.parse(frequency)
    day = as_date(ref)
    if frequency is Frequency.DAILY:
        return day
    if frequency in (Frequency.WEEKLY, Frequency.BI_WEEKLY):
        return monday_of(day)
    if frequency is Frequency.MONTHLY:
        return day.replace(day=1)
    return datetime.date(day.year, 3 * (quarter_of(day) - 1) + 1, 1)


def period_end(frequency, start):
    """Last day (inclusive) of the period beginning at ``start``."""
    frequency = Frequency.parse(frequency)
    start = as_date(start)
    if frequency is Frequency.DAILY:
        return start
    if frequency is Frequency.WEEKLY:
        return start + datetime.timedelta(days=6)
    if frequency is Frequency.BI_WEEKLY:
        return start + datetime.timedelta(days=13)
    if frequency is Frequency.MONTHLY:
        return start + relativedelta(day=31)
    quarter_first = period_start(Frequency.QUARTERLY, start)
    return quarter_first + relativedelta(months=2, day=31)


def next_period_start(frequency, current_start):
    """
    ``current_start`` advanced by one period.

    Month and quarter steps clamp to the last valid day, so 2025-01-31 plus
    one month is 2025-02-28.
    """
    frequency = Frequency.parse(frequency)
    return as_date(current_start) + STEPS[frequency]


def previous_period_start(frequency, current_start):
    frequency = Frequency.parse(frequency)
    return as_date(current_start) - STEPS[frequency]


def period_contains(frequency, start, day):
    start = as_date(start)
    return start <= as_date(day) <= period_end(frequency, start)


def short_date(day):
    return f"{day.month}/{day.day}"


def period_label(frequency, start):
    """
    Display label of a period, e.g. ``Week 47 (11/17 - 11/23)``.

    Weekly and bi-weekly periods use the ISO week number of their start.
    Monthly periods are labelled from the first of the month even when
    ``start`` is a later day.
    """
    frequency = Frequency.parse(frequency)
    start = as_date(start)
    if frequency is Frequency.MONTHLY:
        start = start.replace(day=1)
    date_range = f"{short_date(start)} - {short_date(period_end(frequency, start))}"

    if frequency is Frequency.DAILY:
        return f"Day {short_date(start)} ({date_range})"
    if frequency is Frequency.WEEKLY:
        return f"Week {start.isocalendar()[1]} ({date_range})"
    if frequency is Frequency.BI_WEEKLY:
        return f"Bi-week {start.isocalendar()[1]} ({date_range})"
    if frequency is Frequency.MONTHLY:
        return f"{start.strftime('%B %Y')} ({date_range})"
    return f"Quarter Q{quarter_of(start)} ({date_range})"
