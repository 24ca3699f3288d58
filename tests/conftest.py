"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from scheduling.blocks import create_time_block
from scheduling.config import SchedulingConfig, reset_config
from scheduling.models import TimeBlock

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig(
        valid_locations=["Room A", "Room B", "Room 25", "Concert Hall"],
        min_block_minutes=30,
        sync_retry_attempts=3,
        sync_retry_wait_seconds=0,
    )


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def tuesday_block(config: SchedulingConfig) -> TimeBlock:
    """Tuesday 14:00-18:00 in Room A, no lessons."""
    return create_time_block(
        "Tuesday", "14:00", "18:00", "Room A", block_id="tue", now=NOW, config=config
    )
