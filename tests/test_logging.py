"""Tests for structlog setup and log context."""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from scheduling.lessons import assign_lesson
from scheduling.logging import setup_logging, teacher_context


@pytest.fixture
def restore_logging(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    level = root.level
    yield
    root.setLevel(level)
    structlog.reset_defaults()


class TestLogging:
    """Tests for setup_logging and teacher_context."""

    def test_setup_from_config(self, monkeypatch, restore_logging):
        """Defaults come from SCHEDULING_LOG_* settings."""
        monkeypatch.setenv("SCHEDULING_LOG_JSON", "true")
        setup_logging()
        setup_logging(json_output=False, log_level="debug")

    def test_teacher_context_binds_and_clears(self):
        with teacher_context("t1", block_id="tue"):
            assert structlog.contextvars.get_contextvars() == {
                "teacher_id": "t1",
                "block_id": "tue",
            }
        assert "teacher_id" not in structlog.contextvars.get_contextvars()

    def test_assignment_is_logged(self, config, tuesday_block):
        with capture_logs() as logs:
            assign_lesson(tuesday_block, "s1", "14:00", 45, config=config)

        events = [entry for entry in logs if entry["event"] == "lesson_assigned"]
        assert events[0]["block_id"] == "tue"
        assert events[0]["end_time"] == "14:45"
