"""
Period calendar.

Maps the start/end dates of a course to the named academic periods.

Dates are compared as "MMDD" keys so that the year drops out. A period window
may wrap around the year end (e.g. period II plus its trailing offset reaches
into January), so window checks are cyclic.

Annotation is best effort: unparseable or out-of-range dates simply match no
period, nothing here raises.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, NamedTuple, Optional, Sequence

from coursefilter.model import Period, course_end, course_start, find_period

logger = logging.getLogger(__name__)

# First month (1-based) that belongs to the new academic year
ACADEMIC_YEAR_ROLLOVER_MONTH = 6


def default_periods(offset: timedelta = timedelta(days=7)) -> tuple[Period, ...]:
    return (
        Period("I", "08-25", "10-14", offset),
        Period("II", "10-15", "12-31", offset),
        Period("III", "01-01", "02-19", offset, next_year=True),
        Period("IV", "02-20", "04-14", offset, next_year=True),
        Period("V", "04-15", "05-24", offset, next_year=True),
        Period("Summer", "05-25", "08-24", offset, next_year=True),
    )


DEFAULT_PERIODS = default_periods()


class PeriodMatch(NamedTuple):
    starts: bool
    ends: bool


def academic_year_for(day: date) -> int:
    """
    Return the calendar year in which the academic year containing `day` starts.

    January to May still belong to the academic year that started last autumn.
    """
    if day.month >= ACADEMIC_YEAR_ROLLOVER_MONTH:
        return day.year
    return day.year - 1


def parse_course_date(text: str) -> Optional[date]:
    """
    Parse the date part of an ISO date or datetime string ('2024-09-02',
    '2024-09-02T00:00:00.000Z'). Returns None if it is not a date.
    """
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def month_day_key(value: date | str) -> str:
    """'2024-09-02' / date(2024, 9, 2) / '09-02' -> '0902'."""
    if isinstance(value, date):
        return value.strftime("%m%d")
    return value.replace("-", "")[-4:]


def _in_window(key: str, lo: str, hi: str) -> bool:
    if lo <= hi:
        return lo <= key <= hi
    # window wraps around new year
    return key >= lo or key <= hi


class PeriodCalendar:
    def __init__(
        self,
        periods: Sequence[Period] = DEFAULT_PERIODS,
        catalog_year: Optional[int] = None,
        today: Optional[date] = None,
    ) -> None:
        self.periods = tuple(periods)
        if catalog_year is None:
            catalog_year = academic_year_for(today or date.today())
        self.catalog_year = catalog_year

    def _ends_limit(self, period: Period) -> str:
        """
        MMDD key of the period end shifted by its trailing offset.

        The shift is done on the concrete date of the current academic year
        so that month lengths and leap days are respected.
        """
        year = self.catalog_year + (1 if period.next_year else 0)
        month, day = (int(x) for x in period.end.split("-"))
        try:
            concrete = date(year, month, day)
        except ValueError:
            # e.g. a '02-29' end in a non-leap year
            logger.debug("Period %s end %s does not exist in %d", period.name, period.end, year)
            return month_day_key(period.end)
        return month_day_key(concrete + period.offset)

    def in_period(self, name: str, course: dict[str, Any]) -> PeriodMatch:
        period = find_period(self.periods, name)
        if period is None:
            return PeriodMatch(False, False)

        lo = month_day_key(period.start)
        start = parse_course_date(course_start(course))
        end = parse_course_date(course_end(course))

        starts = start is not None and _in_window(month_day_key(start), lo, month_day_key(period.end))
        ends = end is not None and _in_window(month_day_key(end), lo, self._ends_limit(period))
        return PeriodMatch(starts, ends)

    def starts_in(self, name: str, course: dict[str, Any]) -> bool:
        return self.in_period(name, course).starts

    def period_range(self, course: dict[str, Any]) -> str:
        """
        Label of the periods a course runs in: 'I', 'I-II' or '' if unknown.

        The start label is the first declared period the course starts in.
        The end label is searched from that period onwards, wrapping around
        the year, so an end date inside the previous period's trailing offset
        cannot produce a backwards range like 'III-II'.
        """
        start_index: Optional[int] = None
        for i, period in enumerate(self.periods):
            if self.in_period(period.name, course).starts:
                start_index = i
                break

        order = list(self.periods)
        if start_index is not None:
            order = order[start_index:] + order[:start_index]

        last: Optional[str] = None
        for period in order:
            if self.in_period(period.name, course).ends:
                last = period.name
                break

        first = self.periods[start_index].name if start_index is not None else None
        if first is None and last is None:
            return ""
        if first is None or last is None or first == last:
            return first or last or ""
        return f"{first}-{last}"
