"""Unit tests for the weekly hours summary."""

from datetime import datetime, timezone

from scheduling.blocks import create_time_block, deactivate_time_block
from scheduling.hours import aggregate
from scheduling.lessons import assign_lesson, deactivate_lesson
from scheduling.models import Weekday

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _block(config, start, end, block_id, day="Tuesday"):
    return create_time_block(day, start, end, "Room A", block_id=block_id, config=config)


class TestIndividualLessons:
    """Tests for time block and lesson hours."""

    def test_inactive_blocks_do_not_count(self, config):
        """240 active minutes plus a deactivated 120-minute block is 4.0 hours."""
        blocks = [
            _block(config, "14:00", "18:00", "a"),
            _block(config, "09:00", "11:00", "b", day="Wednesday"),
        ]
        blocks = deactivate_time_block(blocks, "b")

        summary = aggregate(blocks, now=NOW)

        assert summary.totals.individual_lessons == 240
        assert summary.totals.total_weekly_hours == 4.0
        assert summary.calculated_at == NOW

    def test_blocks_with_lessons_count_active_lessons(self, config):
        block = _block(config, "14:00", "18:00", "a")
        block = assign_lesson(block, "s1", "14:00", 45, student_name="Dana",
                              instrument="Violin", config=config)
        block = assign_lesson(block, "s2", "15:00", 30, student_name="Avi", config=config)
        block = assign_lesson(block, "s3", "16:00", 60, lesson_id="gone", config=config)
        block = deactivate_lesson(block, "gone")

        summary = aggregate([block], now=NOW)

        assert summary.totals.individual_lessons == 75
        assert [(s.student_id, s.weekly_minutes) for s in summary.breakdown.students] == [
            ("s1", 45),
            ("s2", 30),
        ]
        assert summary.breakdown.students[0].instrument == "Violin"

    def test_ties_sorted_by_name(self, config):
        block = _block(config, "14:00", "18:00", "a")
        block = assign_lesson(block, "s1", "14:00", 45, student_name="Noa", config=config)
        block = assign_lesson(block, "s2", "15:00", 45, student_name="Avi", config=config)

        summary = aggregate([block], now=NOW)

        assert [s.student_name for s in summary.breakdown.students] == ["Avi", "Noa"]

    def test_stored_documents_accepted(self):
        summary = aggregate(
            [{"_id": "a", "day": "שלישי", "startTime": "14:00", "endTime": "15:27",
              "totalDuration": 500, "location": "Room A", "isActive": True}],
            now=NOW,
        )
        assert summary.totals.individual_lessons == 87
        assert summary.totals.total_weekly_hours == 1.5

    def test_malformed_blocks_skipped(self):
        summary = aggregate(
            [
                {"_id": "bad", "day": "Tuesday", "startTime": "9", "endTime": "10:00",
                 "location": "Room A"},
                {"_id": "backwards", "day": "Tuesday", "startTime": "12:00",
                 "endTime": "10:00", "location": "Room A"},
                {"_id": "ok", "day": "Tuesday", "startTime": "14:00", "endTime": "15:00",
                 "location": "Room A"},
            ],
            now=NOW,
        )
        assert summary.totals.individual_lessons == 60


class TestOtherActivities:
    """Tests for conducting, theory and management hours."""

    def test_conducting_grouped_by_orchestra(self):
        activities = [
            {"orchestraId": "o1", "orchestraName": "Youth", "day": "Monday",
             "startTime": "17:00", "endTime": "18:30"},
            {"orchestraId": "o1", "orchestraName": "Youth", "day": "Thursday",
             "startTime": "17:00", "duration": 60},
            {"orchestraId": "o2", "orchestraName": "Winds", "day": "Tuesday",
             "startTime": "17:00", "endTime": "19:00"},
            {"orchestraId": "o3", "day": "Funday", "startTime": "17:00", "duration": 60},
            {"orchestraId": "o4", "day": "Monday", "startTime": "10:00", "duration": 60,
             "isActive": False},
        ]

        summary = aggregate([], activities, now=NOW)

        assert summary.totals.orchestra_conducting == 270
        assert [(o.orchestra_id, o.weekly_minutes) for o in summary.breakdown.orchestras] == [
            ("o1", 150),
            ("o2", 120),
        ]

    def test_theory(self):
        theory = [
            {"category": "Solfege", "day": "Thursday", "startTime": "16:00", "endTime": "17:00"},
            {"category": "Harmony", "day": "Sunday", "startTime": "16:00", "endTime": "17:30"},
            {"category": "Broken", "day": "Sunday", "startTime": "17:00", "endTime": "16:00"},
        ]

        summary = aggregate([], theory_lessons=theory, now=NOW)

        assert summary.totals.theory_teaching == 150
        assert [(t.category, t.day) for t in summary.breakdown.theory] == [
            ("Harmony", Weekday.SUNDAY),
            ("Solfege", Weekday.THURSDAY),
        ]

    def test_management_allotments(self):
        summary = aggregate(
            [],
            management={"managementHours": 2, "accompHours": 1.5, "travelTimeHours": 0.5,
                        "breakTimeHours": None},
            now=NOW,
        )

        totals = summary.totals
        assert totals.management == 120
        assert totals.accompaniment == 90
        assert totals.travel_time == 30
        assert totals.break_time == 0
        assert totals.total_weekly_hours == 4.0

    def test_full_pass_every_call(self, config):
        blocks = [_block(config, "14:00", "18:00", "a")]
        first = aggregate(blocks, now=NOW)
        second = aggregate(blocks, now=NOW)
        assert first == second

    def test_malformed_allotments_skipped(self, config):
        """A bad management record is dropped; the rest of the summary stands."""
        blocks = [_block(config, "14:00", "18:00", "a")]

        summary = aggregate(blocks, [], [], {"managementHours": -2}, now=NOW)

        assert summary.totals.individual_lessons == 240
        assert summary.totals.management == 0
        assert summary.totals.total_weekly_hours == 4.0
