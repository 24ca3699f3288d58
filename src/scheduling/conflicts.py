"""Conflict detection for time blocks and lessons.

Both checks are pure. Callers run them against the most recently fetched
state immediately before committing a mutation.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from scheduling.models import Candidate, Lesson, LessonCandidate, TimeBlock
from scheduling.time_utils import contains, overlaps


class ConflictKind(Enum):
    OUTSIDE_BLOCK_BOUNDS = "OutsideBlockBounds"
    OVERLAPS_OTHER_LESSON = "OverlapsOtherLesson"


@dataclass(frozen=True)
class LessonConflict:
    """Why a lesson candidate cannot be placed in a block."""

    kind: ConflictKind
    lesson: Lesson | None = None


def find_conflicting_block(
    existing_blocks: Iterable[TimeBlock],
    candidate: Candidate,
    exclude_block_id: str | None = None,
) -> TimeBlock | None:
    """Return the first active block on the candidate's day that overlaps it."""
    for block in existing_blocks:
        if not block.is_active or block.day != candidate.day:
            continue
        if exclude_block_id is not None and block.id == exclude_block_id:
            continue
        if overlaps(
            block.start_time, block.end_time, candidate.start_time, candidate.end_time
        ):
            return block
    return None


def has_conflict(
    existing_blocks: Iterable[TimeBlock],
    candidate: Candidate,
    exclude_block_id: str | None = None,
) -> bool:
    """True if the candidate overlaps any other active block on the same day."""
    return find_conflicting_block(existing_blocks, candidate, exclude_block_id) is not None


def check_lesson_conflict(
    block: TimeBlock,
    candidate: LessonCandidate,
    exclude_lesson_id: str | None = None,
) -> LessonConflict | None:
    """Classify why a lesson candidate does not fit, or return None if it does.

    Bounds are checked first: a candidate that spills out of the block is
    reported as OUTSIDE_BLOCK_BOUNDS even if it also overlaps a lesson.
    """
    if not contains(
        block.start_minutes,
        block.end_minutes,
        candidate.start_minutes,
        candidate.end_minutes,
    ):
        return LessonConflict(kind=ConflictKind.OUTSIDE_BLOCK_BOUNDS)

    for lesson in block.active_lessons:
        if exclude_lesson_id is not None and lesson.id == exclude_lesson_id:
            continue
        if overlaps(
            lesson.start_minutes,
            lesson.end_minutes,
            candidate.start_minutes,
            candidate.end_minutes,
        ):
            return LessonConflict(kind=ConflictKind.OVERLAPS_OTHER_LESSON, lesson=lesson)
    return None


def has_lesson_conflict(
    block: TimeBlock,
    candidate: LessonCandidate,
    exclude_lesson_id: str | None = None,
) -> bool:
    return check_lesson_conflict(block, candidate, exclude_lesson_id) is not None
