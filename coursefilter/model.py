"""
Central data model definitions used across the project.

Courses are kept as the raw dicts of the catalog backend so that every field
we do not understand passes through untouched. This module only defines:
- the accessors for the few course fields the filters read
- the Period definition used by the calendar
- the user's filter selection (two axes, each with a positive and negative set)
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, FrozenSet, Iterable, Optional

# Field names of the catalog backend (Salesforce HEDA objects)
COURSE_REF_FIELD = "hed__Course__r"
COURSE_CODE_FIELD = "CourseCode__c"
START_DATE_FIELD = "hed__Start_Date__c"
END_DATE_FIELD = "hed__End_Date__c"

PERIOD_NAMES = ("I", "II", "III", "IV", "V", "Summer")

# Ordered by the amount of courses that there are under each prefix
PREFIX_VALUES = (
    "ELEC", "CHEM", "ELO", "LC", "AXM", "CS", "ARK", "MUO", "TU", "MS",
    "ARTS", "MEC", "MLI", "PHYS", "MNGT", "AAE", "CIV", "MAR", "ABL", "ECON",
    "NBE", "ARTX", "BIZ", "ISM", "ENG", "GEO", "WAT", "GIS", "REC", "SCI",
    "JOIN", "COE", "KEY", "FIN", "KIG", "KON", "MARK",
)


def normalize_text(value: Any) -> str:
    """
    Strip whitespace and invisible characters from a source-reported string.

    Some course codes arrive with a BOM or zero-width characters around them,
    which would otherwise break prefix and date comparisons.
    """
    if value is None:
        return ""
    text = str(value)
    kept = [ch for ch in text if unicodedata.category(ch) not in ("Cf", "Cc")]
    return "".join(kept).strip()


def course_code(course: dict[str, Any]) -> str:
    ref = course.get(COURSE_REF_FIELD)
    if not isinstance(ref, dict):
        return ""
    return normalize_text(ref.get(COURSE_CODE_FIELD))


def course_start(course: dict[str, Any]) -> str:
    return normalize_text(course.get(START_DATE_FIELD))


def course_end(course: dict[str, Any]) -> str:
    return normalize_text(course.get(END_DATE_FIELD))


@dataclass(frozen=True)
class Period:
    """
    One named academic period.

    start/end are inclusive "MM-DD" strings. next_year marks periods that fall
    in the second calendar year of an academic year (spring and summer).
    """

    name: str
    start: str
    end: str
    offset: timedelta = timedelta(days=7)
    next_year: bool = False


@dataclass(frozen=True)
class AxisSelection:
    """Positive and negative sets of one filter axis."""

    positive: FrozenSet[str] = frozenset()
    negative: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, positive: Iterable[str] = (), negative: Iterable[str] = ()) -> "AxisSelection":
        return cls(frozenset(positive), frozenset(negative))


@dataclass(frozen=True)
class FilterSelection:
    prefixes: AxisSelection = field(default_factory=AxisSelection)
    periods: AxisSelection = field(default_factory=AxisSelection)

    def is_empty(self) -> bool:
        return not (
            self.prefixes.positive or self.prefixes.negative or self.periods.positive or self.periods.negative
        )


def find_period(periods: Iterable[Period], name: str) -> Optional[Period]:
    for p in periods:
        if p.name == name:
            return p
    return None
