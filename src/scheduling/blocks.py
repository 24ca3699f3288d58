"""Teacher time blocks: creation, editing, removal and derived views.

A teacher's availability is a list of TimeBlock records. Mutating operations
take the current list and return a new one; the caller persists it.

Removal is soft by default (deactivate_time_block). A block only leaves the
list through purge_time_block, and only once it holds no active lessons.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from scheduling.config import SchedulingConfig, get_config
from scheduling.conflicts import check_lesson_conflict, find_conflicting_block
from scheduling.errors import (
    BlockNotFound,
    OutsideBlockBounds,
    SchedulingConflict,
    SchedulingError,
    ValidationError,
)
from scheduling.logging import get_logger
from scheduling.models import (
    ActivityCategory,
    AvailableSlot,
    Candidate,
    LessonCandidate,
    ScheduleStats,
    TimeBlock,
    Weekday,
)
from scheduling.time_utils import contains, duration, from_minutes, minutes_to_hours

log = get_logger(__name__)

EDITABLE_BLOCK_FIELDS: frozenset[str] = frozenset(
    {
        "day",
        "start_time",
        "end_time",
        "location",
        "notes",
        "category",
        "is_recurring",
        "exclude_dates",
    }
)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _check_excluded_weekday(day: Weekday, excluded: date) -> None:
    if Weekday.from_date(excluded) != day:
        raise ValidationError(
            f"{excluded.isoformat()} is not a {day.value}", field="exclude_dates"
        )


def _validate_window(
    start_time: str, end_time: str, location: str, config: SchedulingConfig
) -> None:
    minutes = duration(start_time, end_time)
    if minutes <= 0:
        raise ValidationError("End time must be after start time", field="end_time")
    if minutes < config.min_block_minutes:
        raise ValidationError(
            f"Availability must be at least {config.min_block_minutes} minutes",
            field="end_time",
        )
    if not location or not location.strip():
        raise ValidationError("Location is required", field="location")
    if not config.is_valid_location(location):
        raise ValidationError(f"Unknown location {location!r}", field="location")


def create_time_block(
    day: Weekday | str,
    start_time: str,
    end_time: str,
    location: str,
    notes: str | None = None,
    is_recurring: bool = True,
    *,
    category: ActivityCategory = ActivityCategory.INDIVIDUAL_LESSONS,
    teacher_id: str | None = None,
    block_id: str | None = None,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TimeBlock:
    """Build a validated time block.

    Raises:
        InvalidTimeFormat: Malformed start_time or end_time.
        ValidationError: Unknown day or location, or a window shorter than
            the configured minimum.
    """
    config = config or get_config()
    weekday = Weekday.parse(day)
    _validate_window(start_time, end_time, location, config)

    timestamp = _now(now)
    fields: dict[str, Any] = {
        "teacher_id": teacher_id,
        "day": weekday,
        "start_time": start_time,
        "end_time": end_time,
        "location": location,
        "notes": notes.strip() if notes and notes.strip() else None,
        "category": category,
        "is_recurring": is_recurring,
        "created_at": timestamp,
        "updated_at": timestamp,
    }
    if block_id is not None:
        fields["id"] = block_id
    return TimeBlock(**fields)


def recompute_duration(block: TimeBlock | Mapping[str, Any]) -> TimeBlock:
    """Rebuild a block so its duration reflects its current start and end.

    Accepts a stored document as well; a stale totalDuration in it is dropped.
    """
    if isinstance(block, TimeBlock):
        block = block.model_dump(exclude={"total_duration_minutes"})
    return TimeBlock.model_validate(block)


def load_time_blocks(records: Iterable[TimeBlock | Mapping[str, Any]]) -> list[TimeBlock]:
    """Stored block documents as TimeBlocks; malformed ones are logged and skipped."""
    blocks: list[TimeBlock] = []
    for position, record in enumerate(records):
        try:
            blocks.append(recompute_duration(record))
        except (PydanticValidationError, SchedulingError, TypeError, ValueError) as e:
            record_id = (
                (record.get("_id") or record.get("id")) if isinstance(record, Mapping) else None
            )
            log.warning(
                "time_block_skipped", position=position, block_id=record_id, error=str(e)
            )
    return blocks


def find_block(
    blocks: Iterable[TimeBlock], block_id: str, active_only: bool = False
) -> TimeBlock:
    """Return the block with this id.

    Raises:
        BlockNotFound: If absent, or deactivated when active_only is set.
    """
    for block in blocks:
        if block.id == block_id:
            if active_only and not block.is_active:
                break
            return block
    raise BlockNotFound(block_id)


def _raise_block_conflict(conflicting: TimeBlock) -> None:
    raise SchedulingConflict(
        conflicting.id,
        conflicting.day.value,
        conflicting.start_time,
        conflicting.end_time,
    )


def add_time_block(blocks: Iterable[TimeBlock], block: TimeBlock) -> list[TimeBlock]:
    """Append a block after checking it against the teacher's other blocks.

    Raises:
        ValidationError: If a block with the same id already exists.
        SchedulingConflict: If it overlaps an active block on the same day.
    """
    current = list(blocks)
    if any(existing.id == block.id for existing in current):
        raise ValidationError(f"Duplicate time block id {block.id}", field="id")
    if block.is_active:
        candidate = Candidate(
            day=block.day, start_time=block.start_time, end_time=block.end_time
        )
        conflicting = find_conflicting_block(current, candidate)
        if conflicting is not None:
            _raise_block_conflict(conflicting)

    log.info(
        "time_block_added",
        block_id=block.id,
        day=block.day.value,
        start_time=block.start_time,
        end_time=block.end_time,
    )
    return [*current, block]


def update_time_block(
    blocks: Iterable[TimeBlock],
    block_id: str,
    changes: Mapping[str, Any],
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> list[TimeBlock]:
    """Edit an active block's window, location or recurrence.

    Lessons move with the block, so a new window must still contain every
    active lesson. Moving the block to another day drops its excluded dates
    unless new ones are given.

    Raises:
        BlockNotFound: If block_id is absent or deactivated.
        ValidationError: Unknown field, the edited window fails validation, or
            an excluded date is not on the block's weekday.
        SchedulingConflict: Edited window overlaps another active block.
        OutsideBlockBounds: An active lesson would fall outside the new window.
    """
    config = config or get_config()
    unknown = set(changes) - EDITABLE_BLOCK_FIELDS
    if unknown:
        raise ValidationError(
            f"Cannot change {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
        )

    current = list(blocks)
    existing = find_block(current, block_id, active_only=True)
    data = existing.model_dump(exclude={"total_duration_minutes"})
    edited = TimeBlock.model_validate({**data, **changes})
    _validate_window(edited.start_time, edited.end_time, edited.location, config)
    if edited.day != existing.day and "exclude_dates" not in changes:
        # Skipped dates belong to the old weekday
        edited = edited.model_copy(update={"exclude_dates": ()})
    for excluded in edited.exclude_dates:
        _check_excluded_weekday(edited.day, excluded)

    candidate = Candidate(day=edited.day, start_time=edited.start_time, end_time=edited.end_time)
    conflicting = find_conflicting_block(current, candidate, exclude_block_id=block_id)
    if conflicting is not None:
        _raise_block_conflict(conflicting)

    for lesson in edited.active_lessons:
        if not contains(
            edited.start_minutes, edited.end_minutes, lesson.start_minutes, lesson.end_minutes
        ):
            raise OutsideBlockBounds(
                edited.id,
                edited.start_time,
                edited.end_time,
                lesson.start_time,
                lesson.end_time,
            )

    edited = edited.model_copy(update={"updated_at": _now(now)})
    log.info("time_block_updated", block_id=block_id, fields=sorted(changes))
    return [edited if block.id == block_id else block for block in current]


def deactivate_time_block(
    blocks: Iterable[TimeBlock], block_id: str, *, now: datetime | None = None
) -> list[TimeBlock]:
    """Soft-remove a block and end its active lessons.

    The block and its lessons stay in the list for hour history.

    Raises:
        BlockNotFound: If block_id is absent or already deactivated.
    """
    current = list(blocks)
    existing = find_block(current, block_id, active_only=True)
    timestamp = _now(now)
    lessons = tuple(
        lesson.model_copy(update={"is_active": False, "end_date": timestamp})
        if lesson.is_active
        else lesson
        for lesson in existing.assigned_lessons
    )
    deactivated = existing.model_copy(
        update={
            "is_active": False,
            "assigned_lessons": lessons,
            "deactivated_at": timestamp,
            "updated_at": timestamp,
        }
    )
    log.info(
        "time_block_deactivated",
        block_id=block_id,
        lessons_ended=len(existing.active_lessons),
    )
    return [deactivated if block.id == block_id else block for block in current]


def purge_time_block(blocks: Iterable[TimeBlock], block_id: str) -> list[TimeBlock]:
    """Hard-delete a block that no longer holds active lessons.

    Raises:
        BlockNotFound: If block_id is absent.
        ValidationError: If the block still holds active lessons.
    """
    current = list(blocks)
    existing = find_block(current, block_id)
    if existing.active_lessons:
        raise ValidationError(
            f"Time block {block_id} still has {len(existing.active_lessons)} active lessons",
            field="assigned_lessons",
        )
    log.info("time_block_purged", block_id=block_id)
    return [block for block in current if block.id != block_id]


def group_blocks_by_day(
    blocks: Iterable[TimeBlock], active_only: bool = False
) -> dict[Weekday, list[TimeBlock]]:
    """Blocks keyed Sunday..Saturday, each day sorted by start time."""
    grouped: dict[Weekday, list[TimeBlock]] = {day: [] for day in Weekday}
    for block in blocks:
        if active_only and not block.is_active:
            continue
        grouped[block.day].append(block)
    for day_blocks in grouped.values():
        day_blocks.sort(key=lambda b: b.start_time)
    return grouped


def exclude_date(block: TimeBlock, excluded: date) -> TimeBlock:
    """Skip one occurrence of a recurring block.

    Raises:
        ValidationError: If the date does not fall on the block's weekday.
    """
    _check_excluded_weekday(block.day, excluded)
    if excluded in block.exclude_dates:
        return block
    return block.model_copy(
        update={"exclude_dates": tuple(sorted((*block.exclude_dates, excluded)))}
    )


def dates_on_weekday(day: Weekday, start: date, end: date) -> list[date]:
    """Every date in [start, end] that falls on the given weekday."""
    current = start + timedelta(days=(day.number - Weekday.from_date(start).number) % 7)
    dates: list[date] = []
    while current <= end:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def occurrences(block: TimeBlock, start: date, end: date) -> list[date]:
    """Concrete dates in [start, end] on which the block applies.

    Excluded dates are skipped. A non-recurring block applies once, on the
    first matching weekday on or after the day it was created; without a
    created_at it cannot be placed and yields nothing.
    """
    if block.is_recurring:
        dates = dates_on_weekday(block.day, start, end)
    elif block.created_at is None:
        log.warning("one_off_block_unanchored", block_id=block.id)
        dates = []
    else:
        anchor = block.created_at.date()
        first = dates_on_weekday(block.day, anchor, anchor + timedelta(days=6))[0]
        dates = [first] if start <= first <= end else []
    return [d for d in dates if d not in block.exclude_dates]


def schedule_stats(blocks: Iterable[TimeBlock]) -> ScheduleStats:
    """Counts and weekly hours across a teacher's blocks."""
    blocks = list(blocks)
    active = [block for block in blocks if block.is_active]
    available_minutes = sum(block.total_duration_minutes for block in active)
    lessons = [lesson for block in active for lesson in block.active_lessons]
    booked_minutes = sum(lesson.duration_minutes for lesson in lessons)

    utilization = 0.0
    if available_minutes > 0:
        utilization = round(booked_minutes * 100 / available_minutes, 1)

    return ScheduleStats(
        total_blocks=len(blocks),
        active_blocks=len(active),
        total_hours=minutes_to_hours(available_minutes),
        assigned_lessons=len(lessons),
        days_with_availability=len({block.day for block in active}),
        utilization_rate=utilization,
    )


def available_slots(
    blocks: Iterable[TimeBlock], day: Weekday | str, duration_minutes: int
) -> list[AvailableSlot]:
    """Free slots of the given length on a day.

    Each active block is tiled from its start into back-to-back slots; tiles
    that collide with an active lesson are dropped.

    Raises:
        ValidationError: Unknown day or non-positive duration.
    """
    weekday = Weekday.parse(day)
    if duration_minutes <= 0:
        raise ValidationError("Slot duration must be positive", field="duration_minutes")

    slots: list[AvailableSlot] = []
    for block in group_blocks_by_day(blocks, active_only=True)[weekday]:
        for index in range(block.total_duration_minutes // duration_minutes):
            start = block.start_minutes + index * duration_minutes
            candidate = LessonCandidate(
                start_time=from_minutes(start), duration_minutes=duration_minutes
            )
            if check_lesson_conflict(block, candidate) is not None:
                continue
            slots.append(
                AvailableSlot(
                    block_id=block.id,
                    day=weekday,
                    start_time=candidate.start_time,
                    end_time=candidate.end_time,
                    duration_minutes=duration_minutes,
                )
            )
    return slots
