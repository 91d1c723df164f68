"""
CLI (Command Line Interface).

    coursefilter filter <response.json> [--out FILE]
    coursefilter fetch <url> [--data BODY] [--out FILE]
    coursefilter period <start-date> <end-date>
    coursefilter toggle {prefix,period} <value>
    coursefilter clear [{prefix,period}]
    coursefilter show

Note:
- filter/fetch run the same interceptor the browser integration uses
- selection changes are written to the shared store and take effect on the
  next intercepted response
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import requests
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from coursefilter.config import Settings, load_settings
from coursefilter.errors import ConfigError, StoreError
from coursefilter.model import END_DATE_FIELD, PERIOD_NAMES, PREFIX_VALUES, START_DATE_FIELD
from coursefilter.periods import PeriodCalendar
from coursefilter.pipeline import CatalogPipeline
from coursefilter.storage import Axis, JsonStore, Setting, clear_axis, toggle_selection
from coursefilter.transport import DEFAULT_CHUNK_SIZE, fetch_and_filter, replay_file

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _write_output(body: bytes, out: Optional[str]) -> None:
    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(body)
        console.print(f"Wrote {len(body)} bytes to: {out_path}")
    else:
        sys.stdout.write(body.decode("utf-8", errors="replace"))
        sys.stdout.write("\n")


def _cmd_filter(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    """
    Replay a saved response body through the interceptor.
    """
    path = Path(args.file)
    if not path.is_file():
        console.print(f"No such file: {path}")
        return 1
    if args.chunk_size < 1:
        console.print("Chunk size must be positive.")
        return 1

    pipeline = CatalogPipeline.from_settings(settings, store)
    _write_output(replay_file(path, pipeline, chunk_size=args.chunk_size), args.out)
    return 0


def _cmd_fetch(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    """
    Fetch a live catalog response and filter it.
    """
    pipeline = CatalogPipeline.from_settings(settings, store)
    headers = {"Content-Type": args.content_type} if args.data is not None else None
    try:
        body = fetch_and_filter(
            args.url, pipeline, data=args.data, headers=headers, url_pattern=settings.catalog_url_pattern
        )
    except requests.RequestException as e:
        console.print(f"Request failed: {e}")
        return 1
    _write_output(body, args.out)
    return 0


def _cmd_period(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    calendar = PeriodCalendar(settings.periods(), catalog_year=settings.catalog_year)
    course = {START_DATE_FIELD: args.start, END_DATE_FIELD: args.end}
    label = calendar.period_range(course)
    if not label:
        console.print("No matching period.")
        return 0
    console.print(label)
    return 0


def _check_value(axis: Axis, value: str) -> Optional[str]:
    """Return an error message for values the UI would never offer."""
    if axis is Axis.PERIOD and value not in PERIOD_NAMES:
        return f"Unknown period {value!r}. Choose from: {', '.join(PERIOD_NAMES)}"
    if axis is Axis.PREFIX and value not in PREFIX_VALUES:
        logger.warning("Prefix %r is not a known prefix (using anyway)", value)
    return None


def _cmd_toggle(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    axis = Axis(args.axis)
    value = (args.value or "").strip()
    if not value:
        console.print("Please provide a value.")
        return 1

    error = _check_value(axis, value)
    if error:
        console.print(error)
        return 1

    state = toggle_selection(store, axis, value)
    console.print(f"{axis.value} {value}: {state}")
    return 0


def _cmd_clear(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    axes = [Axis(args.axis)] if args.axis else list(Axis)
    for axis in axes:
        clear_axis(store, axis)
    console.print(f"Cleared: {', '.join(a.value for a in axes)}")
    return 0


def _cmd_show(args: argparse.Namespace, settings: Settings, store: JsonStore) -> int:
    table = Table(title="Filter selection", box=box.SIMPLE)
    table.add_column("Axis")
    table.add_column("Include")
    table.add_column("Exclude")
    for axis in Axis:
        table.add_row(
            axis.value,
            ", ".join(sorted(store.get_set(axis.positive))) or "-",
            ", ".join(sorted(store.get_set(axis.negative))) or "-",
        )
    console.print(table)

    periods = store.get_course_periods()
    if periods:
        ptable = Table(title=f"Course periods ({len(periods)})", box=box.SIMPLE)
        ptable.add_column("Course")
        ptable.add_column("Period")
        for code in sorted(periods):
            ptable.add_row(code, periods[code] or "?")
        console.print(ptable)

    flags = f"coursesLoaded={store.get_flag(Setting.COURSES_LOADED)} dirty={store.get_flag(Setting.DIRTY)}"
    console.print(flags)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="coursefilter", description="Course catalog response filter")
    parser.add_argument("--config", type=str, default=None, help="YAML settings file")
    parser.add_argument("--store", type=str, default=None, help="Path of the shared storage JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p_filter = sub.add_parser("filter", help="Filter a saved catalog response")
    p_filter.add_argument("file", type=str, help="Response body file")
    p_filter.add_argument("--out", "-o", type=str, default=None, help="Output file (default: stdout)")
    p_filter.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="Replay chunk size in bytes")

    p_fetch = sub.add_parser("fetch", help="Fetch and filter a live catalog response")
    p_fetch.add_argument("url", type=str)
    p_fetch.add_argument("--data", type=str, default=None, help="Request body (sends a POST)")
    p_fetch.add_argument("--content-type", type=str, default="application/x-www-form-urlencoded")
    p_fetch.add_argument("--out", "-o", type=str, default=None)

    p_period = sub.add_parser("period", help="Show the period range of a start/end date")
    p_period.add_argument("start", type=str, help="Start date (YYYY-MM-DD)")
    p_period.add_argument("end", type=str, help="End date (YYYY-MM-DD)")

    p_toggle = sub.add_parser("toggle", help="Cycle a value: none -> include -> exclude -> none")
    p_toggle.add_argument("axis", choices=[a.value for a in Axis])
    p_toggle.add_argument("value", type=str)

    p_clear = sub.add_parser("clear", help="Clear the selection of one or both axes")
    p_clear.add_argument("axis", nargs="?", choices=[a.value for a in Axis], default=None)

    sub.add_parser("show", help="Show selection and stored course periods")

    return parser


COMMANDS = {
    "filter": _cmd_filter,
    "fetch": _cmd_fetch,
    "period": _cmd_period,
    "toggle": _cmd_toggle,
    "clear": _cmd_clear,
    "show": _cmd_show,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        console.print(f"Config error: {e}")
        raise SystemExit(1)

    _setup_logging("DEBUG" if args.verbose else settings.log_level)

    store = JsonStore(args.store or settings.store_path)
    try:
        raise SystemExit(COMMANDS[args.command](args, settings, store))
    except StoreError as e:
        console.print(f"Storage error: {e}")
        raise SystemExit(1)
