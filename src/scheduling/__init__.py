"""Teacher availability and lesson scheduling engine for the conservatory dashboard.

Covers weekly time blocks, conflict detection, lesson assignment, week/month
calendar grids and weekly-hours summaries. Persistence and the student
records service are supplied by the caller.
"""

from scheduling.blocks import create_time_block, update_time_block
from scheduling.calendar import build_month, build_week
from scheduling.conflicts import has_conflict, has_lesson_conflict
from scheduling.hours import aggregate
from scheduling.lessons import assign_lesson, deactivate_lesson, update_lesson
from scheduling.models import CalendarEntry, DayCell, HoursSummary, Lesson, TimeBlock, Weekday
from scheduling.workflow import LessonScheduler

__all__ = [
    "CalendarEntry",
    "DayCell",
    "HoursSummary",
    "Lesson",
    "LessonScheduler",
    "TimeBlock",
    "Weekday",
    "aggregate",
    "assign_lesson",
    "build_month",
    "build_week",
    "create_time_block",
    "deactivate_lesson",
    "has_conflict",
    "has_lesson_conflict",
    "update_lesson",
    "update_time_block",
]
