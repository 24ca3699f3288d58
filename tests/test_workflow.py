"""Tests for the two-sided lesson write (time blocks + student record)."""

import pytest

from scheduling.errors import (
    PartialSyncFailure,
    SchedulingConflict,
    TransientError,
    ValidationError,
)
from scheduling.models import Student, StudentAssignment, TimeBlock
from scheduling.observer import OperationObserver
from scheduling.workflow import LessonScheduler, StudentDirectory, TimeBlockStore


class InMemoryBlockStore(TimeBlockStore):
    def __init__(self):
        self.saved: list[tuple[str, list[TimeBlock]]] = []

    def save_time_blocks(self, teacher_id, blocks):
        self.saved.append((teacher_id, list(blocks)))


class FakeStudentDirectory(StudentDirectory):
    """Student records with scriptable write failures."""

    def __init__(self, students, failures=()):
        self.students = {s.id: s for s in students}
        self.failures = list(failures)
        self.calls = 0

    def get_student(self, student_id):
        return self.students.get(student_id)

    def update_student_assignments(self, student_id, assignments):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.students[student_id] = self.students[student_id].model_copy(
            update={"teacher_assignments": tuple(assignments)}
        )


@pytest.fixture
def store():
    return InMemoryBlockStore()


@pytest.fixture
def student():
    return Student(id="s1", full_name="Dana Levi", instrument="Cello")


def _scheduler(store, directory, config, observer=None):
    return LessonScheduler(store, directory, observer=observer, config=config)


class TestScheduleLesson:
    """Tests for LessonScheduler.schedule_lesson."""

    def test_writes_both_sides(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory([student])

        result = _scheduler(store, directory, config).schedule_lesson(
            "t1", [tuesday_block], "tue", "s1", "14:00", 45
        )

        assert result.lesson.student_name == "Dana Levi"
        assert result.lesson.instrument == "Cello"
        assert store.saved == [("t1", result.blocks)]
        saved = directory.students["s1"].teacher_assignments
        assert [(a.lesson_id, a.block_id, a.start_time) for a in saved] == [
            (result.lesson.id, "tue", "14:00")
        ]

    def test_conflict_writes_nothing(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory([student])
        scheduler = _scheduler(store, directory, config)
        result = scheduler.schedule_lesson("t1", [tuesday_block], "tue", "s1", "14:00", 45)

        with pytest.raises(SchedulingConflict):
            scheduler.schedule_lesson("t1", result.blocks, "tue", "s1", "14:30", 30)
        assert len(store.saved) == 1
        assert directory.calls == 1

    def test_unknown_student_writes_nothing(self, config, store, tuesday_block):
        directory = FakeStudentDirectory([])

        with pytest.raises(ValidationError) as exc_info:
            _scheduler(store, directory, config).schedule_lesson(
                "t1", [tuesday_block], "tue", "ghost", "14:00", 45
            )
        assert exc_info.value.field == "student_id"
        assert store.saved == []

    def test_transient_failures_are_retried(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory(
            [student], failures=[TransientError("timeout"), TransientError("503")]
        )

        _scheduler(store, directory, config).schedule_lesson(
            "t1", [tuesday_block], "tue", "s1", "14:00", 45
        )

        assert directory.calls == 3
        assert len(directory.students["s1"].teacher_assignments) == 1

    def test_partial_sync_failure_then_retry(self, config, store, student, tuesday_block):
        """Blocks stay saved; retry_student_sync finishes only the student write."""
        directory = FakeStudentDirectory(
            [student], failures=[TransientError("down")] * config.sync_retry_attempts
        )
        scheduler = _scheduler(store, directory, config)

        with pytest.raises(PartialSyncFailure) as exc_info:
            scheduler.schedule_lesson("t1", [tuesday_block], "tue", "s1", "14:00", 45)

        failure = exc_info.value
        assert directory.calls == config.sync_retry_attempts
        assert len(store.saved) == 1
        assert failure.student_id == "s1"
        assert isinstance(failure.cause, TransientError)
        assert failure.blocks[0].active_lessons[0].start_time == "14:00"

        scheduler.retry_student_sync(failure)

        assert len(store.saved) == 1
        assert directory.students["s1"].teacher_assignments == tuple(failure.assignments)

    def test_non_transient_failure_not_retried(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory([student], failures=[RuntimeError("schema")])

        with pytest.raises(PartialSyncFailure):
            _scheduler(store, directory, config).schedule_lesson(
                "t1", [tuesday_block], "tue", "s1", "14:00", 45
            )
        assert directory.calls == 1

    def test_observer_times_operation(self, config, store, student, tuesday_block):
        observer = OperationObserver()
        observer.start()

        _scheduler(store, FakeStudentDirectory([student]), config, observer).schedule_lesson(
            "t1", [tuesday_block], "tue", "s1", "14:00", 45
        )

        assert len(observer.stop()["schedule_lesson"]) == 1


class TestCancelLesson:
    """Tests for LessonScheduler.cancel_lesson."""

    def test_deactivates_both_sides(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory([student])
        scheduler = _scheduler(store, directory, config)
        scheduled = scheduler.schedule_lesson("t1", [tuesday_block], "tue", "s1", "14:00", 45)

        result = scheduler.cancel_lesson("t1", scheduled.blocks, "tue", scheduled.lesson.id)

        assert not result.lesson.is_active
        assert result.blocks[0].active_lessons == ()
        assignments = directory.students["s1"].teacher_assignments
        assert [a.is_active for a in assignments] == [False]

    def test_missing_student_skips_mirror(self, config, store, student, tuesday_block):
        directory = FakeStudentDirectory([student])
        scheduler = _scheduler(store, directory, config)
        scheduled = scheduler.schedule_lesson("t1", [tuesday_block], "tue", "s1", "14:00", 45)
        del directory.students["s1"]

        result = scheduler.cancel_lesson("t1", scheduled.blocks, "tue", scheduled.lesson.id)

        assert result.assignments == []
        assert len(store.saved) == 2


def test_assignment_accepts_stored_day():
    assignment = StudentAssignment.model_validate(
        {"teacherId": "t1", "blockId": "b", "lessonId": "l", "day": "שני",
         "startTime": "10:00", "durationMinutes": 45}
    )
    assert assignment.day.value == "Monday"
