"""
Persistent key-value storage shared with the filter UI.

This module manages one JSON file (by default data/storage.json inside the
package) that plays the role of the browser's local extension storage:

    {"prefixes": ["CS"], "not-prefixes": [], "periods": ["I"], ...,
     "coursePeriods": {"CS-E4580": "I-II"}, "coursesLoaded": true, "dirty": false}

Keys are never built from strings at call sites. Every key is a member of
the Setting enum and is read through a typed accessor.

Reading is deliberately defensive: a missing or corrupted file reads as
empty settings. Writing failures raise StoreError.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

from coursefilter.errors import StoreError
from coursefilter.model import AxisSelection, FilterSelection

logger = logging.getLogger(__name__)


class Setting(str, Enum):
    PREFIXES = "prefixes"
    NOT_PREFIXES = "not-prefixes"
    PERIODS = "periods"
    NOT_PERIODS = "not-periods"
    COURSE_PERIODS = "coursePeriods"
    COURSES_LOADED = "coursesLoaded"
    DIRTY = "dirty"


class Axis(str, Enum):
    PREFIX = "prefix"
    PERIOD = "period"

    @property
    def positive(self) -> Setting:
        return Setting.PREFIXES if self is Axis.PREFIX else Setting.PERIODS

    @property
    def negative(self) -> Setting:
        return Setting.NOT_PREFIXES if self is Axis.PREFIX else Setting.NOT_PERIODS


def default_store_path() -> Path:
    """
    Return the default path of storage.json inside the package.

    A function instead of a constant, so tests can point elsewhere.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "storage.json"


def _as_string_set(value: Any) -> frozenset[str]:
    # Older versions stored sets as "CS,ELEC" strings
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        return frozenset()
    return frozenset(x.strip() for x in items if isinstance(x, str) and x.strip())


class JsonStore:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_store_path()

    def _read(self) -> dict[str, Any]:
        # First run: file does not exist yet -> nothing stored
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, setting: Setting, default: Any = None) -> Any:
        return self._read().get(setting.value, default)

    def update(self, values: Mapping[Setting, Any]) -> None:
        """Write several settings at once, keeping all other keys."""
        data = self._read()
        for setting, value in values.items():
            data[setting.value] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StoreError(f"cannot write {self.path}: {e}") from e

    # -- typed accessors ----------------------------------------------------

    def get_set(self, setting: Setting) -> frozenset[str]:
        return _as_string_set(self.get(setting))

    def set_set(self, setting: Setting, values: Iterable[str]) -> None:
        self.update({setting: sorted({v.strip() for v in values if v.strip()})})

    def get_flag(self, setting: Setting) -> bool:
        return self.get(setting) is True

    def set_flag(self, setting: Setting, value: bool) -> None:
        self.update({setting: bool(value)})

    def get_course_periods(self) -> dict[str, str]:
        raw = self.get(Setting.COURSE_PERIODS)
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def set_course_periods(self, periods: Mapping[str, str]) -> None:
        self.update({Setting.COURSE_PERIODS: dict(periods)})


def load_selection(store: JsonStore) -> FilterSelection:
    return FilterSelection(
        prefixes=AxisSelection(store.get_set(Setting.PREFIXES), store.get_set(Setting.NOT_PREFIXES)),
        periods=AxisSelection(store.get_set(Setting.PERIODS), store.get_set(Setting.NOT_PERIODS)),
    )


def toggle_selection(store: JsonStore, axis: Axis, value: str) -> str:
    """
    Cycle `value` on one axis: none -> positive -> negative -> none.

    Marks the store dirty so the UI knows a reload is needed. Returns the new
    state: "positive", "negative" or "none".
    """
    value = value.strip()
    pos = set(store.get_set(axis.positive))
    neg = set(store.get_set(axis.negative))

    if value in pos:
        pos.discard(value)
        neg.add(value)
        state = "negative"
    elif value in neg:
        neg.discard(value)
        state = "none"
    else:
        pos.add(value)
        state = "positive"

    store.update({axis.positive: sorted(pos), axis.negative: sorted(neg), Setting.DIRTY: True})
    return state


def clear_axis(store: JsonStore, axis: Axis) -> None:
    store.update({axis.positive: [], axis.negative: [], Setting.DIRTY: True})


def clear_dirty(store: JsonStore) -> None:
    store.set_flag(Setting.DIRTY, False)
