"""
Glue between the stream interceptor and the filtering logic.

One CatalogPipeline is shared by all intercepted requests. It holds no
per-request state: the selection is read from the store for every response,
so a filter change is picked up on the next page load.
"""

from __future__ import annotations

import logging
from typing import Optional

from coursefilter.config import Settings
from coursefilter.envelope import rewrite_courses
from coursefilter.filters import build_transform
from coursefilter.periods import PeriodCalendar
from coursefilter.storage import JsonStore, Setting, load_selection

logger = logging.getLogger(__name__)


class CatalogPipeline:
    def __init__(
        self,
        store: JsonStore,
        calendar: Optional[PeriodCalendar] = None,
        annotation_field: str = "coursePeriod",
        prefix_min_length: int = 2,
        period_min_length: int = 1,
    ) -> None:
        self.store = store
        self.calendar = calendar or PeriodCalendar()
        self.annotation_field = annotation_field
        self.prefix_min_length = prefix_min_length
        self.period_min_length = period_min_length

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[JsonStore] = None) -> "CatalogPipeline":
        return cls(
            store=store or JsonStore(settings.store_path),
            calendar=PeriodCalendar(settings.periods(), catalog_year=settings.catalog_year),
            annotation_field=settings.annotation_field,
            prefix_min_length=settings.prefix_min_length,
            period_min_length=settings.period_min_length,
        )

    def process(self, text: str) -> str:
        """
        Rewrite one complete response body.

        Raises MalformedEnvelope (or StoreError) for the caller to recover from.
        """
        selection = load_selection(self.store)
        transform = build_transform(
            selection,
            self.calendar,
            annotation_field=self.annotation_field,
            prefix_min_length=self.prefix_min_length,
            period_min_length=self.period_min_length,
            on_periods=self.store.set_course_periods,
        )
        return rewrite_courses(text, transform)

    def mark_loaded(self) -> None:
        self.store.set_flag(Setting.COURSES_LOADED, True)
