"""Show a teacher's calendar, weekly hours or free slots from an exported record.

Reads a JSON export of one teacher (as the dashboard API returns it) and
prints a week or month calendar, the weekly-hours summary, availability
stats, or the free lesson slots on a day.

Run with: python scripts/teacher_schedule.py data/teacher.json --week
Month:    python scripts/teacher_schedule.py data/teacher.json --month 2026-10-01
Hours:    python scripts/teacher_schedule.py data/teacher.json --hours
Stats:    python scripts/teacher_schedule.py data/teacher.json --stats
Slots:    python scripts/teacher_schedule.py data/teacher.json --slots Tuesday --duration 45

Export layout:
  {
    "teacher": {"_id": ..., "teaching": {"timeBlocks": [...]}, "managementInfo": {...}},
    "conductingActivities": [...],
    "theoryLessons": [...],
    "rehearsals": [{"_id", "date", "startTime", "endTime", ...}, ...]
  }

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
"""

import argparse
import json
import sys
from datetime import date, timedelta
from pathlib import Path

from scheduling.blocks import available_slots, load_time_blocks, schedule_stats
from scheduling.calendar import (
    build_month,
    build_week,
    expand_block_lessons,
    expand_rehearsal_times,
    expand_theory_lessons,
    start_of_week,
)
from scheduling.errors import SchedulingError
from scheduling.hours import aggregate
from scheduling.logging import get_logger, setup_logging
from scheduling.models import ConductingActivity, DayCell, TheoryLesson

log = get_logger(__name__)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Show a teacher's calendar, hours or free slots from a JSON export.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("export", type=Path, help="Path to the teacher JSON export.")

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--week",
        nargs="?",
        const="",
        metavar="DATE",
        help="Week calendar containing DATE (default: today).",
    )
    mode.add_argument(
        "--month",
        nargs="?",
        const="",
        metavar="DATE",
        help="Month calendar containing DATE (default: today).",
    )
    mode.add_argument("--hours", action="store_true", help="Weekly hours summary as JSON.")
    mode.add_argument("--stats", action="store_true", help="Availability stats as JSON.")
    mode.add_argument("--slots", metavar="DAY", help="Free lesson slots on DAY.")

    parser.add_argument(
        "--duration",
        type=int,
        default=45,
        help="Lesson length in minutes for --slots (default: 45).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print calendars as JSON instead of a table.",
    )
    return parser.parse_args()


def _reference(value: str) -> date:
    return date.fromisoformat(value) if value else date.today()


def _format_cells(cells: list[DayCell]) -> str:
    """Format day cells as a table.

    Columns: Date | Day | Time | Title | Location
    """
    headers = ["Date", "Day", "Time", "Title", "Location"]
    rows = []
    for cell in cells:
        marker = "*" if cell.is_today else ""
        if not cell.entries:
            rows.append([f"{cell.date.isoformat()}{marker}", cell.weekday.value, "-", "", ""])
            continue
        for entry in cell.entries:
            span = f"{entry.start_time}-{entry.end_time}" if entry.end_time else entry.start_time
            rows.append(
                [
                    f"{cell.date.isoformat()}{marker}",
                    cell.weekday.value,
                    span,
                    entry.title,
                    entry.location or "-",
                ]
            )

    widths = [len(h) for h in headers]
    for row in rows:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(value))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [" | ".join(value.ljust(widths[i]) for i, value in enumerate(row)) for row in rows]
    return "\n".join([header_line, separator, *row_lines])


def main(args: argparse.Namespace) -> None:
    export = json.loads(args.export.read_text(encoding="utf-8"))
    teacher = export.get("teacher", {})
    blocks = load_time_blocks(teacher.get("teaching", {}).get("timeBlocks", []))
    activities = export.get("conductingActivities", [])
    theory = export.get("theoryLessons", [])

    log.info("teacher_export_loaded", teacher_id=teacher.get("_id"), blocks=len(blocks))

    if args.hours:
        summary = aggregate(blocks, activities, theory, teacher.get("managementInfo"))
        print(json.dumps(summary.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return
    if args.stats:
        print(json.dumps(schedule_stats(blocks).model_dump(mode="json"), indent=2))
        return
    if args.slots:
        slots = available_slots(blocks, args.slots, args.duration)
        print(json.dumps([s.model_dump(mode="json") for s in slots], indent=2))
        return

    reference = _reference(args.week if args.week is not None else args.month)
    if args.week is not None:
        start = start_of_week(reference)
        end = start + timedelta(days=6)
    else:
        start = start_of_week(reference.replace(day=1))
        end = start + timedelta(days=41)

    items = [
        *export.get("rehearsals", []),
        *expand_block_lessons(blocks, start, end),
        *expand_rehearsal_times(
            [ConductingActivity.model_validate(a) for a in activities], start, end
        ),
        *expand_theory_lessons([TheoryLesson.model_validate(t) for t in theory], start, end),
    ]

    if args.week is not None:
        cells = build_week(reference, items)
    else:
        cells = [cell for week in build_month(reference, items) for cell in week]

    if args.json:
        print(json.dumps([c.model_dump(mode="json") for c in cells], indent=2, ensure_ascii=False))
    else:
        print(_format_cells(cells))


if __name__ == "__main__":
    setup_logging()
    args = _parse_args()
    try:
        main(args)
    except (SchedulingError, OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
