"""Weekly hours summary for a teacher.

The summary is a read model: every call is a full pass over the current
blocks, activities and allotments, with no counters carried between calls.
Only active records count. Malformed records are logged and skipped.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from scheduling.errors import SchedulingError
from scheduling.logging import get_logger
from scheduling.models import (
    ActivityCategory,
    ConductingActivity,
    HoursBreakdown,
    HoursSummary,
    HoursTotals,
    ManagementInfo,
    OrchestraHours,
    StudentHours,
    TheoryHours,
    TheoryLesson,
    TimeBlock,
    Weekday,
)
from scheduling.time_utils import minutes_to_hours

log = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# ManagementInfo field -> category it reports under
_ALLOTMENTS: dict[str, ActivityCategory] = {
    "management_hours": ActivityCategory.MANAGEMENT,
    "accompaniment_hours": ActivityCategory.ACCOMPANIMENT,
    "ensemble_coordination_hours": ActivityCategory.ENSEMBLE_COORDINATION,
    "coordination_hours": ActivityCategory.COORDINATION,
    "break_time_hours": ActivityCategory.BREAK_TIME,
    "travel_time_hours": ActivityCategory.TRAVEL_TIME,
}


def _coerce(
    model: type[RecordT], items: Iterable[RecordT | Mapping[str, Any]], kind: str
) -> list[RecordT]:
    records: list[RecordT] = []
    for position, item in enumerate(items):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except (PydanticValidationError, SchedulingError, TypeError, ValueError) as e:
            log.warning("hours_record_skipped", kind=kind, position=position, error=str(e))
    return records


def _hours_to_minutes(hours: float) -> int:
    minutes = Decimal(str(hours)) * 60
    return int(minutes.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _block_minutes(block: TimeBlock) -> int:
    # A block without lesson records counts as a whole; otherwise only its active lessons do
    if not block.assigned_lessons:
        return block.total_duration_minutes
    return sum(lesson.duration_minutes for lesson in block.active_lessons)


def aggregate(
    blocks: Iterable[TimeBlock | Mapping[str, Any]],
    conducting_activities: Iterable[ConductingActivity | Mapping[str, Any]] = (),
    theory_lessons: Iterable[TheoryLesson | Mapping[str, Any]] = (),
    management: ManagementInfo | Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> HoursSummary:
    """Sum a teacher's weekly minutes per category, with per-entity breakdowns.

    Args:
        blocks: Time blocks; individual lessons come from their active lessons.
        conducting_activities: Weekly orchestra rehearsals the teacher conducts.
        theory_lessons: Weekly theory groups the teacher runs.
        management: Hour allotments for management, accompaniment, travel, etc.
        now: Timestamp stamped on the summary.

    Returns:
        HoursSummary with minutes per category and total_weekly_hours rounded
        half-up to one decimal.
    """
    minutes: dict[ActivityCategory, int] = {category: 0 for category in ActivityCategory}
    students: dict[str, dict[str, Any]] = {}
    orchestras: dict[str, dict[str, Any]] = {}
    theory: dict[tuple[str, Weekday], int] = {}

    for block in _coerce(TimeBlock, blocks, "time_block"):
        if not block.is_active:
            continue
        if block.total_duration_minutes <= 0:
            log.warning("hours_record_skipped", kind="time_block", block_id=block.id)
            continue
        minutes[block.category] += _block_minutes(block)
        for lesson in block.active_lessons:
            entry = students.setdefault(
                lesson.student_id,
                {"name": "", "instrument": "", "minutes": 0},
            )
            entry["name"] = entry["name"] or lesson.student_name or ""
            entry["instrument"] = entry["instrument"] or lesson.instrument or ""
            entry["minutes"] += lesson.duration_minutes

    for activity in _coerce(ConductingActivity, conducting_activities, "conducting"):
        if not activity.is_active:
            continue
        if activity.minutes <= 0:
            log.warning("hours_record_skipped", kind="conducting", activity_id=activity.id)
            continue
        minutes[activity.category] += activity.minutes
        entry = orchestras.setdefault(
            activity.orchestra_id,
            {"name": activity.orchestra_name, "type": activity.orchestra_type or "", "minutes": 0},
        )
        entry["minutes"] += activity.minutes

    for lesson in _coerce(TheoryLesson, theory_lessons, "theory"):
        if not lesson.is_active:
            continue
        if lesson.minutes <= 0:
            log.warning("hours_record_skipped", kind="theory", lesson_id=lesson.id)
            continue
        minutes[ActivityCategory.THEORY_TEACHING] += lesson.minutes
        key = (lesson.category, lesson.day)
        theory[key] = theory.get(key, 0) + lesson.minutes

    if management is not None and not isinstance(management, ManagementInfo):
        try:
            management = ManagementInfo.model_validate(management)
        except (PydanticValidationError, SchedulingError, TypeError, ValueError) as e:
            log.warning("hours_record_skipped", kind="management", error=str(e))
            management = None
    if management is not None:
        for field, category in _ALLOTMENTS.items():
            minutes[category] += _hours_to_minutes(getattr(management, field))

    totals = HoursTotals(
        **{category.value: value for category, value in minutes.items()},
        total_weekly_hours=minutes_to_hours(sum(minutes.values())),
    )
    breakdown = HoursBreakdown(
        students=tuple(
            sorted(
                (
                    StudentHours(
                        student_id=student_id,
                        student_name=entry["name"],
                        instrument=entry["instrument"],
                        weekly_minutes=entry["minutes"],
                    )
                    for student_id, entry in students.items()
                ),
                key=lambda s: (-s.weekly_minutes, s.student_name or s.student_id),
            )
        ),
        orchestras=tuple(
            sorted(
                (
                    OrchestraHours(
                        orchestra_id=orchestra_id,
                        name=entry["name"],
                        type=entry["type"],
                        weekly_minutes=entry["minutes"],
                    )
                    for orchestra_id, entry in orchestras.items()
                ),
                key=lambda o: (-o.weekly_minutes, o.name or o.orchestra_id),
            )
        ),
        theory=tuple(
            sorted(
                (
                    TheoryHours(category=category, day=day, weekly_minutes=value)
                    for (category, day), value in theory.items()
                ),
                key=lambda t: (-t.weekly_minutes, t.category, t.day.number),
            )
        ),
    )

    summary = HoursSummary(
        totals=totals,
        breakdown=breakdown,
        calculated_at=now or datetime.now(timezone.utc),
    )
    log.info(
        "hours_aggregated",
        total_weekly_hours=totals.total_weekly_hours,
        students=len(breakdown.students),
        orchestras=len(breakdown.orchestras),
    )
    return summary
