"""
Filter rule evaluation.

A course survives an axis (prefix or period) if:
- the positive set is valid and the course matches at least one member, or
- the positive set is not valid, the negative set is valid and the course
  matches none of its members, or
- neither set is valid.

Positive always wins over negative. Prefix filtering runs before period
filtering; both only ever narrow the list and keep the input order.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Collection, Optional

from coursefilter.model import AxisSelection, FilterSelection, course_code
from coursefilter.periods import PeriodCalendar

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_MIN_LENGTH = 2
DEFAULT_PERIOD_MIN_LENGTH = 1

Course = dict[str, Any]
Matcher = Callable[[str, Course], bool]


def is_valid_filter_def(members: Collection[str], min_length: int = 1) -> bool:
    """A set only counts if it is non-empty and no member is too short."""
    return len(members) > 0 and all(len(m) >= min_length for m in members)


def matches_prefix(prefix: str, course: Course) -> bool:
    # Some codes carry a leading organisation letter, e.g. 'ACS-E4000'
    code = course_code(course)
    if not code:
        return False
    return code.startswith(prefix) or code[1:].startswith(prefix)


def _filter_axis(
    courses: list[Course],
    axis: AxisSelection,
    matcher: Matcher,
    min_length: int,
) -> list[Course]:
    if is_valid_filter_def(axis.positive, min_length):
        return [c for c in courses if any(matcher(m, c) for m in axis.positive)]
    if is_valid_filter_def(axis.negative, min_length):
        return [c for c in courses if not any(matcher(m, c) for m in axis.negative)]
    return list(courses)


def filter_courses(
    courses: list[Course],
    selection: FilterSelection,
    calendar: Optional[PeriodCalendar] = None,
    prefix_min_length: int = DEFAULT_PREFIX_MIN_LENGTH,
    period_min_length: int = DEFAULT_PERIOD_MIN_LENGTH,
) -> list[Course]:
    """
    Return the subsequence of `courses` that passes the selection.

    Course dicts are never modified; the result holds the same objects.
    """
    cal = calendar or PeriodCalendar()

    out = _filter_axis(courses, selection.prefixes, matches_prefix, prefix_min_length)
    out = _filter_axis(out, selection.periods, cal.starts_in, period_min_length)

    logger.debug("Filtered %d courses down to %d", len(courses), len(out))
    return out


def course_period_map(courses: list[Course], calendar: PeriodCalendar) -> dict[str, str]:
    """course code -> period range label, for every course with a code."""
    out: dict[str, str] = {}
    for c in courses:
        code = course_code(c)
        if code:
            out[code] = calendar.period_range(c)
    return out


def annotate_courses(courses: list[Course], calendar: PeriodCalendar, field_name: str) -> list[Course]:
    """
    Return shallow copies of the courses with the period range added under
    `field_name`. An empty field name returns the input list as-is.
    """
    if not field_name:
        return list(courses)
    return [{**c, field_name: calendar.period_range(c)} for c in courses]


def build_transform(
    selection: FilterSelection,
    calendar: PeriodCalendar,
    annotation_field: str = "",
    prefix_min_length: int = DEFAULT_PREFIX_MIN_LENGTH,
    period_min_length: int = DEFAULT_PERIOD_MIN_LENGTH,
    on_periods: Optional[Callable[[dict[str, str]], None]] = None,
) -> Callable[[list[Course]], list[Course]]:
    """
    Compose filtering and annotation into the course-array transform used by
    the envelope codec. `on_periods` receives the course -> period map of the
    surviving courses.
    """

    def transform(courses: list[Course]) -> list[Course]:
        kept = filter_courses(
            courses,
            selection,
            calendar,
            prefix_min_length=prefix_min_length,
            period_min_length=period_min_length,
        )
        logger.info("Kept %d of %d courses", len(kept), len(courses))
        if on_periods is not None:
            on_periods(course_period_map(kept, calendar))
        return annotate_courses(kept, calendar, annotation_field)

    return transform
