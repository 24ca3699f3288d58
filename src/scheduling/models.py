"""Pydantic models for teacher availability, lessons, calendars and hours.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Records are frozen: operations return updated copies and the caller persists them.
Persistence hands over camelCase documents, so every field also accepts its
camelCase alias, and ids accept the "_id" spelling.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from scheduling.errors import ValidationError
from scheduling.time_utils import add_minutes, duration, to_minutes


def new_id() -> str:
    return uuid4().hex


class Weekday(str, Enum):
    """Days of the week in the conservatory's order (the week starts on Sunday)."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def number(self) -> int:
        """0 for Sunday through 6 for Saturday."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return _WEEKDAY_ORDER[index % 7]

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        # date.weekday() is 0 for Monday
        return _WEEKDAY_ORDER[(value.weekday() + 1) % 7]

    @classmethod
    def parse(cls, label: Any) -> "Weekday":
        """Resolve an English name (any case) or a Hebrew day label.

        Raises:
            ValidationError: If the label is not a known weekday.
        """
        if isinstance(label, cls):
            return label
        if isinstance(label, str):
            key = label.strip()
            if key in HEBREW_DAY_LABELS:
                return HEBREW_DAY_LABELS[key]
            for day in _WEEKDAY_ORDER:
                if day.value.lower() == key.lower():
                    return day
        raise ValidationError(f"Unknown weekday {label!r}", field="day")


_WEEKDAY_ORDER: tuple[Weekday, ...] = tuple(Weekday)

# Labels used by the source records
HEBREW_DAY_LABELS: dict[str, Weekday] = {
    "ראשון": Weekday.SUNDAY,
    "שני": Weekday.MONDAY,
    "שלישי": Weekday.TUESDAY,
    "רביעי": Weekday.WEDNESDAY,
    "חמישי": Weekday.THURSDAY,
    "שישי": Weekday.FRIDAY,
    "שבת": Weekday.SATURDAY,
}


class ActivityCategory(str, Enum):
    """Categories that weekly hours are reported under."""

    INDIVIDUAL_LESSONS = "individual_lessons"
    ORCHESTRA_CONDUCTING = "orchestra_conducting"
    THEORY_TEACHING = "theory_teaching"
    MANAGEMENT = "management"
    ACCOMPANIMENT = "accompaniment"
    ENSEMBLE_COORDINATION = "ensemble_coordination"
    COORDINATION = "coordination"
    BREAK_TIME = "break_time"
    TRAVEL_TIME = "travel_time"


class EntryKind(str, Enum):
    """What a calendar entry represents."""

    REHEARSAL = "rehearsal"
    LESSON = "lesson"
    THEORY = "theory"
    CONDUCTING = "conducting"


class Record(BaseModel):
    """Base for all engine records: frozen, camelCase-tolerant, extra keys dropped."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


def _check_time(value: Any, field: str) -> str:
    to_minutes(value, field=field)
    return value


def _to_date(value: Any) -> Any:
    """Normalize a datetime or ISO string to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        if len(value) > 10:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    return value


class Lesson(Record):
    """A student's recurring lesson inside a teacher's time block."""

    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("id", "_id"))
    student_id: str
    student_name: str | None = None
    instrument: str | None = None
    start_time: str
    duration_minutes: int = Field(
        validation_alias=AliasChoices("duration_minutes", "durationMinutes", "duration")
    )
    location: str | None = None
    notes: str | None = None
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_time")
    @classmethod
    def _validate_start(cls, value: Any) -> str:
        return _check_time(value, "start_time")

    @field_validator("duration_minutes")
    @classmethod
    def _validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValidationError(
                "Lesson duration must be positive", field="duration_minutes"
            )
        return value

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    @property
    def end_time(self) -> str:
        return add_minutes(self.start_time, self.duration_minutes)


class TimeBlock(Record):
    """One weekly recurring availability window for a teacher.

    total_duration_minutes is always derived from start_time/end_time;
    a stored duration in the input document is ignored.
    """

    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("id", "_id"))
    teacher_id: str | None = None
    day: Weekday
    start_time: str
    end_time: str
    location: str
    notes: str | None = None
    category: ActivityCategory = ActivityCategory.INDIVIDUAL_LESSONS
    is_active: bool = True
    is_recurring: bool = True
    exclude_dates: tuple[date, ...] = ()
    assigned_lessons: tuple[Lesson, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deactivated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_recurring(cls, data: Any) -> Any:
        # Stored documents nest recurrence as {"recurring": {"isRecurring", "excludeDates"}}
        if isinstance(data, dict) and isinstance(data.get("recurring"), dict):
            data = dict(data)
            recurring = data.pop("recurring")
            data.setdefault("isRecurring", recurring.get("isRecurring", True))
            data.setdefault("excludeDates", recurring.get("excludeDates") or ())
        return data

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Weekday:
        return Weekday.parse(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_times(cls, value: Any, info) -> str:
        return _check_time(value, info.field_name)

    @field_validator("exclude_dates", mode="before")
    @classmethod
    def _normalize_excludes(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(sorted({_to_date(v) for v in value}))

    @computed_field
    @property
    def total_duration_minutes(self) -> int:
        return duration(self.start_time, self.end_time)

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    @property
    def active_lessons(self) -> tuple[Lesson, ...]:
        return tuple(lesson for lesson in self.assigned_lessons if lesson.is_active)


class Candidate(Record):
    """A proposed block interval on a weekday."""

    day: Weekday
    start_time: str
    end_time: str

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Weekday:
        return Weekday.parse(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_times(cls, value: Any, info) -> str:
        return _check_time(value, info.field_name)


class LessonCandidate(Record):
    """A proposed lesson interval inside one block."""

    start_time: str
    duration_minutes: int

    @field_validator("start_time")
    @classmethod
    def _validate_start(cls, value: Any) -> str:
        return _check_time(value, "start_time")

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    @property
    def end_time(self) -> str:
        return add_minutes(self.start_time, self.duration_minutes)


class CalendarEntry(Record):
    """A scheduled item on a concrete date (rehearsal, lesson, theory, conducting)."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    date: date
    start_time: str
    end_time: str | None = None
    kind: EntryKind = EntryKind.REHEARSAL
    title: str = ""
    location: str | None = None
    source_id: str | None = None
    orchestra_id: str | None = None
    student_id: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        return _to_date(value)

    @field_validator("start_time")
    @classmethod
    def _validate_start(cls, value: Any) -> str:
        return _check_time(value, "start_time")

    @field_validator("end_time")
    @classmethod
    def _validate_end(cls, value: Any) -> Any:
        if value is None:
            return value
        return _check_time(value, "end_time")


class DayCell(Record):
    """One day of a week or month grid."""

    date: date
    weekday: Weekday
    is_today: bool
    is_current_month: bool = True
    entries: tuple[CalendarEntry, ...] = ()


class ConductingActivity(Record):
    """A weekly rehearsal the teacher conducts."""

    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("id", "_id"))
    orchestra_id: str
    orchestra_name: str = ""
    orchestra_type: str | None = None
    day: Weekday
    start_time: str
    end_time: str | None = None
    duration_minutes: int | None = Field(
        default=None,
        validation_alias=AliasChoices("duration_minutes", "durationMinutes", "duration"),
    )
    location: str | None = None
    category: ActivityCategory = ActivityCategory.ORCHESTRA_CONDUCTING
    is_active: bool = True

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Weekday:
        return Weekday.parse(value)

    @field_validator("start_time")
    @classmethod
    def _validate_start(cls, value: Any) -> str:
        return _check_time(value, "start_time")

    @field_validator("end_time")
    @classmethod
    def _validate_end(cls, value: Any) -> Any:
        if value is None:
            return value
        return _check_time(value, "end_time")

    @property
    def minutes(self) -> int:
        if self.duration_minutes is not None:
            return self.duration_minutes
        if self.end_time is not None:
            return duration(self.start_time, self.end_time)
        return 0


class TheoryLesson(Record):
    """A weekly theory group the teacher runs."""

    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("id", "_id"))
    category: str
    day: Weekday
    start_time: str
    end_time: str
    location: str | None = None
    is_active: bool = True

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Weekday:
        return Weekday.parse(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_times(cls, value: Any, info) -> str:
        return _check_time(value, info.field_name)

    @property
    def minutes(self) -> int:
        return duration(self.start_time, self.end_time)


class ManagementInfo(Record):
    """Weekly hour allotments that are not tied to a scheduled slot."""

    management_hours: float = 0
    accompaniment_hours: float = Field(
        default=0,
        validation_alias=AliasChoices(
            "accompaniment_hours", "accompanimentHours", "accompHours"
        ),
    )
    ensemble_coordination_hours: float = Field(
        default=0,
        validation_alias=AliasChoices(
            "ensemble_coordination_hours",
            "ensembleCoordinationHours",
            "ensembleCoordHours",
        ),
    )
    coordination_hours: float = 0
    break_time_hours: float = 0
    travel_time_hours: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("*")
    @classmethod
    def _non_negative(cls, value: float, info) -> float:
        if value < 0:
            raise ValidationError("Hours cannot be negative", field=info.field_name)
        return value


class HoursTotals(Record):
    """Weekly minutes per category plus the grand total in hours."""

    individual_lessons: int = 0
    orchestra_conducting: int = 0
    theory_teaching: int = 0
    management: int = 0
    accompaniment: int = 0
    ensemble_coordination: int = 0
    coordination: int = 0
    break_time: int = 0
    travel_time: int = 0
    total_weekly_hours: float = 0.0


class StudentHours(Record):
    student_id: str
    student_name: str = ""
    instrument: str = ""
    weekly_minutes: int


class OrchestraHours(Record):
    orchestra_id: str
    name: str = ""
    type: str = ""
    weekly_minutes: int


class TheoryHours(Record):
    category: str
    day: Weekday
    weekly_minutes: int


class HoursBreakdown(Record):
    students: tuple[StudentHours, ...] = ()
    orchestras: tuple[OrchestraHours, ...] = ()
    theory: tuple[TheoryHours, ...] = ()


class HoursSummary(Record):
    """Read model of a teacher's weekly hours, rebuilt on every calculation."""

    totals: HoursTotals
    breakdown: HoursBreakdown
    calculated_at: datetime


class ScheduleStats(Record):
    """Headline numbers for a teacher's weekly availability."""

    total_blocks: int
    active_blocks: int
    total_hours: float
    assigned_lessons: int
    days_with_availability: int
    utilization_rate: float


class AvailableSlot(Record):
    """A free slot of the requested length inside an active block."""

    block_id: str
    day: Weekday
    start_time: str
    end_time: str
    duration_minutes: int


class StudentAssignment(Record):
    """The student-side mirror of one lesson."""

    teacher_id: str
    block_id: str
    lesson_id: str
    day: Weekday
    start_time: str
    duration_minutes: int
    location: str | None = None
    is_active: bool = True

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Weekday:
        return Weekday.parse(value)


class Student(Record):
    """What the engine needs to know about a student record."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    full_name: str = ""
    instrument: str | None = None
    teacher_assignments: tuple[StudentAssignment, ...] = ()
