"""Scheduling a lesson across the teacher's blocks and the student's record.

A lesson lives in two places: inside the teacher's TimeBlock and as an
assignment on the Student record. LessonScheduler writes the blocks first,
then the student mirror. If the mirror write still fails after retries it
raises PartialSyncFailure, which carries what retry_student_sync() needs to
finish the second write without redoing the first.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants before any write
- Return domain models or raise domain errors
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from scheduling.blocks import find_block
from scheduling.config import SchedulingConfig, get_config
from scheduling.errors import PartialSyncFailure, TransientError, ValidationError
from scheduling.lessons import assign_lesson, deactivate_lesson, find_lesson
from scheduling.logging import get_logger, teacher_context
from scheduling.models import Lesson, Student, StudentAssignment, TimeBlock
from scheduling.observer import OperationObserver

log = get_logger(__name__)


class TimeBlockStore(ABC):
    """Persistence for a teacher's time blocks."""

    @abstractmethod
    def save_time_blocks(self, teacher_id: str, blocks: list[TimeBlock]) -> None:
        """Replace the teacher's stored blocks."""
        ...


class StudentDirectory(ABC):
    """The student records collaborator."""

    @abstractmethod
    def get_student(self, student_id: str) -> Student | None:
        """Return a student by id, or None if not found."""
        ...

    @abstractmethod
    def update_student_assignments(
        self, student_id: str, assignments: list[StudentAssignment]
    ) -> None:
        """Replace the student's teacher assignments.

        Raises:
            TransientError: For failures worth retrying.
        """
        ...


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of a completed two-sided write."""

    blocks: list[TimeBlock]
    lesson: Lesson
    assignments: list[StudentAssignment]


def _replace_block(blocks: Sequence[TimeBlock], updated: TimeBlock) -> list[TimeBlock]:
    return [updated if block.id == updated.id else block for block in blocks]


class LessonScheduler:
    """Assigns and cancels lessons, keeping the student mirror in step."""

    def __init__(
        self,
        block_store: TimeBlockStore,
        students: StudentDirectory,
        observer: OperationObserver | None = None,
        config: SchedulingConfig | None = None,
    ) -> None:
        self._block_store = block_store
        self._students = students
        self._observer = observer or OperationObserver()
        self._config = config or get_config()

    def _get_student(self, student_id: str) -> Student:
        student = self._students.get_student(student_id)
        if student is None:
            raise ValidationError(f"Unknown student {student_id}", field="student_id")
        return student

    def _sync_student(
        self,
        student_id: str,
        assignments: list[StudentAssignment],
        blocks: list[TimeBlock],
    ) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self._config.sync_retry_attempts),
            wait=wait_fixed(self._config.sync_retry_wait_seconds),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._students.update_student_assignments(student_id, assignments)
        except Exception as e:
            log.error(
                "student_sync_failed",
                student_id=student_id,
                error=str(e),
                type=type(e).__name__,
            )
            raise PartialSyncFailure(student_id, blocks, assignments, cause=e) from e
        log.info("student_synced", student_id=student_id, assignments=len(assignments))

    def schedule_lesson(
        self,
        teacher_id: str,
        blocks: Sequence[TimeBlock],
        block_id: str,
        student_id: str,
        start_time: str,
        duration_minutes: int,
        location: str | None = None,
    ) -> ScheduleResult:
        """Assign a lesson and mirror it onto the student record.

        Raises:
            ValidationError / SchedulingConflict / OutsideBlockBounds /
            BlockNotFound: Before anything is written.
            PartialSyncFailure: Blocks were saved but the student write failed.
        """
        with (
            self._observer.measure("schedule_lesson"),
            teacher_context(teacher_id, block_id=block_id),
        ):
            student = self._get_student(student_id)
            block = find_block(blocks, block_id, active_only=True)
            updated = assign_lesson(
                block,
                student_id,
                start_time,
                duration_minutes,
                location,
                student_name=student.full_name or None,
                instrument=student.instrument,
                config=self._config,
            )
            lesson = updated.assigned_lessons[-1]
            new_blocks = _replace_block(blocks, updated)

            self._block_store.save_time_blocks(teacher_id, new_blocks)

            assignments = [
                *student.teacher_assignments,
                StudentAssignment(
                    teacher_id=teacher_id,
                    block_id=block_id,
                    lesson_id=lesson.id,
                    day=updated.day,
                    start_time=lesson.start_time,
                    duration_minutes=lesson.duration_minutes,
                    location=lesson.location,
                ),
            ]
            self._sync_student(student_id, assignments, new_blocks)
            return ScheduleResult(blocks=new_blocks, lesson=lesson, assignments=assignments)

    def cancel_lesson(
        self,
        teacher_id: str,
        blocks: Sequence[TimeBlock],
        block_id: str,
        lesson_id: str,
    ) -> ScheduleResult:
        """Deactivate a lesson and its mirror on the student record.

        Raises:
            BlockNotFound / LessonNotFound: Before anything is written.
            PartialSyncFailure: Blocks were saved but the student write failed.
        """
        with (
            self._observer.measure("cancel_lesson"),
            teacher_context(teacher_id, block_id=block_id),
        ):
            block = find_block(blocks, block_id, active_only=True)
            lesson = find_lesson(block, lesson_id)
            updated = deactivate_lesson(block, lesson_id)
            new_blocks = _replace_block(blocks, updated)

            self._block_store.save_time_blocks(teacher_id, new_blocks)

            student = self._students.get_student(lesson.student_id)
            if student is None:
                log.warning(
                    "student_sync_skipped",
                    student_id=lesson.student_id,
                    reason="student_not_found",
                )
                return ScheduleResult(
                    blocks=new_blocks,
                    lesson=find_lesson(updated, lesson_id, active_only=False),
                    assignments=[],
                )

            assignments = [
                assignment.model_copy(update={"is_active": False})
                if assignment.lesson_id == lesson_id
                else assignment
                for assignment in student.teacher_assignments
            ]
            self._sync_student(lesson.student_id, assignments, new_blocks)
            return ScheduleResult(
                blocks=new_blocks,
                lesson=find_lesson(updated, lesson_id, active_only=False),
                assignments=assignments,
            )

    def retry_student_sync(self, failure: PartialSyncFailure) -> None:
        """Finish the student write of a previous PartialSyncFailure.

        Raises:
            PartialSyncFailure: If the write fails again.
        """
        with self._observer.measure("retry_student_sync"):
            self._sync_student(failure.student_id, failure.assignments, failure.blocks)
