"""Week and month calendar grids for rehearsals, lessons and activities.

Weeks run Sunday to Saturday. Each day cell carries every entry dated that
day, sorted by start time with ties kept in input order. Cells are never
truncated here; visible_entries() applies the display limit for the UI.

Builders are read-only over records they do not own: a malformed entry is
logged and skipped, never allowed to blank the whole grid.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from scheduling.blocks import dates_on_weekday, occurrences
from scheduling.config import get_config
from scheduling.errors import SchedulingError
from scheduling.logging import get_logger
from scheduling.models import (
    CalendarEntry,
    ConductingActivity,
    DayCell,
    EntryKind,
    TheoryLesson,
    TimeBlock,
    Weekday,
)
from scheduling.time_utils import add_minutes

log = get_logger(__name__)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_week(value: date | datetime) -> date:
    """The Sunday on or before the given date."""
    day = _as_date(value)
    return day - timedelta(days=Weekday.from_date(day).number)


def _coerce_entries(items: Iterable[CalendarEntry | Mapping[str, Any]]) -> list[CalendarEntry]:
    entries: list[CalendarEntry] = []
    for position, item in enumerate(items):
        if isinstance(item, CalendarEntry):
            entries.append(item)
            continue
        try:
            entries.append(CalendarEntry.model_validate(item))
        except (PydanticValidationError, SchedulingError, TypeError, ValueError) as e:
            item_id = (item.get("_id") or item.get("id")) if isinstance(item, Mapping) else None
            log.warning(
                "calendar_entry_skipped",
                position=position,
                entry_id=item_id,
                error=str(e),
            )
    return entries


def _index_by_date(entries: list[CalendarEntry]) -> dict[date, list[CalendarEntry]]:
    by_date: dict[date, list[CalendarEntry]] = {}
    for entry in entries:
        by_date.setdefault(entry.date, []).append(entry)
    return by_date


def _cell(
    day: date,
    by_date: dict[date, list[CalendarEntry]],
    today: date,
    is_current_month: bool = True,
) -> DayCell:
    # sorted() is stable, so same-time entries keep their input order
    entries = sorted(by_date.get(day, ()), key=lambda entry: entry.start_time)
    return DayCell(
        date=day,
        weekday=Weekday.from_date(day),
        is_today=day == today,
        is_current_month=is_current_month,
        entries=tuple(entries),
    )


def build_week(
    reference_date: date | datetime,
    items: Iterable[CalendarEntry | Mapping[str, Any]],
    today: date | None = None,
) -> list[DayCell]:
    """Seven day cells from the Sunday on or before reference_date."""
    today = today or date.today()
    by_date = _index_by_date(_coerce_entries(items))
    first = start_of_week(reference_date)
    return [_cell(first + timedelta(days=offset), by_date, today) for offset in range(7)]


def build_month(
    reference_date: date | datetime,
    items: Iterable[CalendarEntry | Mapping[str, Any]],
    today: date | None = None,
) -> list[list[DayCell]]:
    """Week rows covering reference_date's month.

    The grid starts on the Sunday on or before the 1st and ends on the
    Saturday on or after the last day; padding cells from adjacent months
    have is_current_month=False.
    """
    today = today or date.today()
    by_date = _index_by_date(_coerce_entries(items))

    first_of_month = _as_date(reference_date).replace(day=1)
    next_month = (first_of_month + timedelta(days=32)).replace(day=1)
    last_of_month = next_month - timedelta(days=1)

    current = start_of_week(first_of_month)
    grid_end = last_of_month + timedelta(days=6 - Weekday.from_date(last_of_month).number)

    weeks: list[list[DayCell]] = []
    while current <= grid_end:
        week = []
        for _ in range(7):
            week.append(
                _cell(current, by_date, today, current.month == first_of_month.month)
            )
            current += timedelta(days=1)
        weeks.append(week)
    return weeks


def visible_entries(
    cell: DayCell, capacity: int | None = None
) -> tuple[tuple[CalendarEntry, ...], int]:
    """Entries to draw in a month cell and how many are hidden behind '+N more'."""
    if capacity is None:
        capacity = get_config().month_cell_capacity
    return cell.entries[:capacity], max(len(cell.entries) - capacity, 0)


def expand_block_lessons(
    blocks: Iterable[TimeBlock], start: date, end: date
) -> list[CalendarEntry]:
    """Dated lesson entries for every active lesson of every active block.

    A lesson does not appear on dates before it was assigned.
    """
    entries: list[CalendarEntry] = []
    for block in blocks:
        if not block.is_active:
            continue
        for day in occurrences(block, start, end):
            for lesson in block.active_lessons:
                if lesson.start_date is not None and day < lesson.start_date.date():
                    continue
                title = lesson.student_name or lesson.student_id
                if lesson.instrument:
                    title = f"{title} - {lesson.instrument}"
                entries.append(
                    CalendarEntry(
                        id=f"lesson-{lesson.id}-{day.isoformat()}",
                        date=day,
                        start_time=lesson.start_time,
                        end_time=lesson.end_time,
                        kind=EntryKind.LESSON,
                        title=title,
                        location=lesson.location or block.location,
                        source_id=lesson.id,
                        student_id=lesson.student_id,
                    )
                )
    return entries


def expand_rehearsal_times(
    activities: Iterable[ConductingActivity], start: date, end: date
) -> list[CalendarEntry]:
    """Dated entries for each active weekly conducting activity."""
    entries: list[CalendarEntry] = []
    for activity in activities:
        if not activity.is_active:
            continue
        end_time = activity.end_time or add_minutes(activity.start_time, activity.minutes)
        for day in dates_on_weekday(activity.day, start, end):
            entries.append(
                CalendarEntry(
                    id=f"orchestra-{activity.orchestra_id}-{day.isoformat()}",
                    date=day,
                    start_time=activity.start_time,
                    end_time=end_time,
                    kind=EntryKind.CONDUCTING,
                    title=activity.orchestra_name,
                    location=activity.location,
                    source_id=activity.id,
                    orchestra_id=activity.orchestra_id,
                )
            )
    return entries


def expand_theory_lessons(
    lessons: Iterable[TheoryLesson], start: date, end: date
) -> list[CalendarEntry]:
    """Dated entries for each active weekly theory group."""
    entries: list[CalendarEntry] = []
    for lesson in lessons:
        if not lesson.is_active:
            continue
        for day in dates_on_weekday(lesson.day, start, end):
            entries.append(
                CalendarEntry(
                    id=f"theory-{lesson.id}-{day.isoformat()}",
                    date=day,
                    start_time=lesson.start_time,
                    end_time=lesson.end_time,
                    kind=EntryKind.THEORY,
                    title=lesson.category,
                    location=lesson.location,
                    source_id=lesson.id,
                )
            )
    return entries
