"""Error hierarchy for scheduling operations.

Every validation and conflict error is raised before any state change, so a
caller that catches one can keep using the collections it passed in.

TransientError marks collaborator failures that tenacity may retry:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def update_student_assignments(student_id, assignments):
        ...
"""

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Stable error codes surfaced to callers."""

    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SCHEDULING_CONFLICT = "SCHEDULING_CONFLICT"
    OUTSIDE_BLOCK_BOUNDS = "OUTSIDE_BLOCK_BOUNDS"
    LESSON_NOT_FOUND = "LESSON_NOT_FOUND"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    PARTIAL_SYNC_FAILURE = "PARTIAL_SYNC_FAILURE"
    TRANSIENT = "TRANSIENT"


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(SchedulingError):
    """Input rejected at the boundary.

    Examples: availability shorter than the minimum granularity, unknown
    location or weekday, missing required field.
    """

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidTimeFormat(ValidationError):
    """Time-of-day string is not a zero-padded HH:MM within a single day."""

    code = ErrorCode.INVALID_TIME_FORMAT

    def __init__(self, value: Any, field: str | None = None) -> None:
        super().__init__(f"Invalid time {value!r}, expected HH:MM", field=field)
        self.value = value


class SchedulingConflict(SchedulingError):
    """Candidate interval overlaps an active block or lesson.

    Carries the identity of the conflicting entry so the user can resolve it.
    """

    code = ErrorCode.SCHEDULING_CONFLICT

    def __init__(
        self,
        conflicting_id: str,
        day: str,
        start_time: str,
        end_time: str,
        student_id: str | None = None,
        student_name: str | None = None,
    ) -> None:
        who = ""
        if student_name:
            who = f" ({student_name})"
        elif student_id:
            who = f" (student {student_id})"
        super().__init__(
            f"Overlaps {conflicting_id} on {day} {start_time}-{end_time}{who}"
        )
        self.conflicting_id = conflicting_id
        self.day = day
        self.start_time = start_time
        self.end_time = end_time
        self.student_id = student_id
        self.student_name = student_name


class OutsideBlockBounds(SchedulingError):
    """Lesson interval is not fully contained in its parent block."""

    code = ErrorCode.OUTSIDE_BLOCK_BOUNDS

    def __init__(
        self,
        block_id: str,
        block_start: str,
        block_end: str,
        start_time: str,
        end_time: str,
    ) -> None:
        super().__init__(
            f"Lesson {start_time}-{end_time} falls outside block {block_id} "
            f"({block_start}-{block_end})"
        )
        self.block_id = block_id
        self.start_time = start_time
        self.end_time = end_time


class LessonNotFound(SchedulingError):
    """Lesson id is absent from the block or already deactivated."""

    code = ErrorCode.LESSON_NOT_FOUND

    def __init__(self, lesson_id: str) -> None:
        super().__init__(f"Lesson not found: {lesson_id}")
        self.lesson_id = lesson_id


class BlockNotFound(SchedulingError):
    """Time block id is absent or already deactivated."""

    code = ErrorCode.BLOCK_NOT_FOUND

    def __init__(self, block_id: str) -> None:
        super().__init__(f"Time block not found: {block_id}")
        self.block_id = block_id


class TransientError(SchedulingError):
    """Collaborator failure that may succeed on retry.

    Examples: persistence timeouts, 503 from the student service.
    """

    code = ErrorCode.TRANSIENT


class PartialSyncFailure(SchedulingError):
    """Student mirror write failed after the time block write succeeded.

    Holds everything needed to retry the second write without re-running the
    first: the committed blocks and the pending student assignments.
    """

    code = ErrorCode.PARTIAL_SYNC_FAILURE

    def __init__(
        self,
        student_id: str,
        blocks: list[Any],
        assignments: list[Any],
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            f"Time blocks saved but student {student_id} assignments were not updated"
        )
        self.student_id = student_id
        self.blocks = blocks
        self.assignments = assignments
        self.cause = cause
