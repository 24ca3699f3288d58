"""Unit tests for the operation timing observer."""

import pytest

from scheduling.observer import OperationObserver


def _clock(*values):
    ticks = iter(values)
    return lambda: next(ticks)


class TestOperationObserver:
    """Tests for OperationObserver."""

    def test_records_nothing_until_started(self):
        observer = OperationObserver(clock=_clock())
        with observer.measure("schedule_lesson"):
            pass
        assert observer.timings == {}

    def test_records_milliseconds(self):
        observer = OperationObserver(clock=_clock(1.0, 1.5, 2.0, 2.25))
        observer.start()
        with observer.measure("schedule_lesson"):
            pass
        with observer.measure("schedule_lesson"):
            pass

        assert observer.stop() == {"schedule_lesson": [500.0, 250.0]}
        assert not observer.started

    def test_records_when_operation_raises(self):
        observer = OperationObserver(clock=_clock(0.0, 0.1))
        observer.start()
        with pytest.raises(RuntimeError):
            with observer.measure("cancel_lesson"):
                raise RuntimeError("boom")
        assert list(observer.timings) == ["cancel_lesson"]

    def test_start_resets(self):
        observer = OperationObserver(clock=_clock(0.0, 1.0))
        observer.start()
        with observer.measure("x"):
            pass
        observer.start()
        assert observer.timings == {}
