"""Lesson assignment inside a teacher's time block.

Every operation takes a block and returns an updated copy. The caller
replaces the stored block; nothing is mutated in place, and a raised error
leaves the caller's block untouched.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from scheduling.config import SchedulingConfig, get_config
from scheduling.conflicts import ConflictKind, LessonConflict, check_lesson_conflict
from scheduling.errors import (
    BlockNotFound,
    LessonNotFound,
    OutsideBlockBounds,
    SchedulingConflict,
    ValidationError,
)
from scheduling.logging import get_logger
from scheduling.models import Lesson, LessonCandidate, TimeBlock
from scheduling.time_utils import overlaps

log = get_logger(__name__)

# Fields a caller may change through update_lesson
EDITABLE_LESSON_FIELDS: frozenset[str] = frozenset(
    {"start_time", "duration_minutes", "location", "notes", "student_name", "instrument"}
)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _raise_for_conflict(
    block: TimeBlock, conflict: LessonConflict, candidate: LessonCandidate
) -> None:
    if conflict.kind is ConflictKind.OUTSIDE_BLOCK_BOUNDS:
        raise OutsideBlockBounds(
            block.id,
            block.start_time,
            block.end_time,
            candidate.start_time,
            candidate.end_time,
        )
    other = conflict.lesson
    raise SchedulingConflict(
        other.id,
        block.day.value,
        other.start_time,
        other.end_time,
        student_id=other.student_id,
        student_name=other.student_name,
    )


def _check_location(location: str | None, config: SchedulingConfig) -> None:
    if location is not None and not config.is_valid_location(location):
        raise ValidationError(f"Unknown location {location!r}", field="location")


def find_lesson(block: TimeBlock, lesson_id: str, active_only: bool = True) -> Lesson:
    """Return the lesson with this id.

    Raises:
        LessonNotFound: If absent, or deactivated when active_only is set.
    """
    for lesson in block.assigned_lessons:
        if lesson.id == lesson_id:
            if active_only and not lesson.is_active:
                break
            return lesson
    raise LessonNotFound(lesson_id)


def assign_lesson(
    block: TimeBlock,
    student_id: str,
    start_time: str,
    duration_minutes: int,
    location: str | None = None,
    *,
    student_name: str | None = None,
    instrument: str | None = None,
    notes: str | None = None,
    lesson_id: str | None = None,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TimeBlock:
    """Place a new active lesson in the block.

    Raises:
        BlockNotFound: If the block is deactivated.
        ValidationError: Non-positive duration or unknown location.
        InvalidTimeFormat: Malformed start_time.
        OutsideBlockBounds: Lesson does not fit inside the block.
        SchedulingConflict: Lesson overlaps another active lesson.
    """
    config = config or get_config()
    if not block.is_active:
        raise BlockNotFound(block.id)
    if not student_id:
        raise ValidationError("Student is required", field="student_id")
    if duration_minutes <= 0:
        raise ValidationError("Lesson duration must be positive", field="duration_minutes")
    _check_location(location, config)

    candidate = LessonCandidate(start_time=start_time, duration_minutes=duration_minutes)
    conflict = check_lesson_conflict(block, candidate)
    if conflict is not None:
        log.info(
            "lesson_conflict",
            block_id=block.id,
            kind=conflict.kind.value,
            start_time=start_time,
            duration_minutes=duration_minutes,
        )
        _raise_for_conflict(block, conflict, candidate)

    timestamp = _now(now)
    fields: dict[str, Any] = {
        "student_id": student_id,
        "student_name": student_name,
        "instrument": instrument,
        "start_time": start_time,
        "duration_minutes": duration_minutes,
        "location": location or block.location,
        "notes": notes,
        "start_date": timestamp,
    }
    if lesson_id is not None:
        fields["id"] = lesson_id
    lesson = Lesson(**fields)

    updated = block.model_copy(
        update={
            "assigned_lessons": block.assigned_lessons + (lesson,),
            "updated_at": timestamp,
        }
    )
    log.info(
        "lesson_assigned",
        block_id=block.id,
        lesson_id=lesson.id,
        student_id=student_id,
        day=block.day.value,
        start_time=start_time,
        end_time=lesson.end_time,
    )
    return updated


def update_lesson(
    block: TimeBlock,
    lesson_id: str,
    changes: Mapping[str, Any],
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TimeBlock:
    """Apply field changes to an active lesson, re-checking its interval.

    The lesson being edited is excluded from the overlap check.

    Raises:
        LessonNotFound: If lesson_id is absent or deactivated.
        ValidationError: Unknown field, non-positive duration or unknown location.
        OutsideBlockBounds / SchedulingConflict: As for assign_lesson.
    """
    config = config or get_config()
    unknown = set(changes) - EDITABLE_LESSON_FIELDS
    if unknown:
        raise ValidationError(
            f"Cannot change {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
        )

    current = find_lesson(block, lesson_id)
    if "location" in changes:
        _check_location(changes["location"], config)
    edited = Lesson.model_validate({**current.model_dump(), **changes})

    candidate = LessonCandidate(
        start_time=edited.start_time, duration_minutes=edited.duration_minutes
    )
    conflict = check_lesson_conflict(block, candidate, exclude_lesson_id=lesson_id)
    if conflict is not None:
        _raise_for_conflict(block, conflict, candidate)

    lessons = tuple(
        edited if lesson.id == lesson_id else lesson for lesson in block.assigned_lessons
    )
    log.info(
        "lesson_updated",
        block_id=block.id,
        lesson_id=lesson_id,
        fields=sorted(changes),
    )
    return block.model_copy(
        update={"assigned_lessons": lessons, "updated_at": _now(now)}
    )


def deactivate_lesson(
    block: TimeBlock, lesson_id: str, *, now: datetime | None = None
) -> TimeBlock:
    """Soft-delete a lesson: it stays in the block with is_active=False.

    Raises:
        LessonNotFound: If lesson_id is absent or already deactivated.
    """
    find_lesson(block, lesson_id)
    timestamp = _now(now)
    lessons = tuple(
        lesson.model_copy(update={"is_active": False, "end_date": timestamp})
        if lesson.id == lesson_id
        else lesson
        for lesson in block.assigned_lessons
    )
    log.info("lesson_deactivated", block_id=block.id, lesson_id=lesson_id)
    return block.model_copy(update={"assigned_lessons": lessons, "updated_at": timestamp})


def assert_non_overlapping(block: TimeBlock) -> None:
    """Raise SchedulingConflict if any two active lessons in the block overlap."""
    active = sorted(block.active_lessons, key=lambda lesson: lesson.start_minutes)
    for previous, current in zip(active, active[1:]):
        if overlaps(
            previous.start_minutes,
            previous.end_minutes,
            current.start_minutes,
            current.end_minutes,
        ):
            raise SchedulingConflict(
                previous.id,
                block.day.value,
                previous.start_time,
                previous.end_time,
                student_id=previous.student_id,
                student_name=previous.student_name,
            )
