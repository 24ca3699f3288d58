"""Scheduling configuration loaded from environment variables.

The location whitelist and display limits belong to the deployment, not to
the engine, so they live here rather than in the models.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_LOCATIONS: tuple[str, ...] = (
    *(f"Room {n}" for n in range(1, 27)),
    "Room A",
    "Room B",
    "Room C",
    "Rehearsal Room 1",
    "Rehearsal Room 2",
    "Rehearsal Room 3",
    "Theory Room A",
    "Theory Room B",
    "Studio 1",
    "Studio 2",
    "Concert Hall",
    "Small Hall",
    "Library",
)


class SchedulingConfig(BaseSettings):
    """Scheduling configuration loaded from environment variables.

    Settings are loaded from SCHEDULING_* environment variables with sensible
    defaults. For local development, create a .env file in the project root.
    List values are read from the environment as JSON arrays.
    """

    # Availability rules
    valid_locations: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LOCATIONS),
        description="Rooms a time block or lesson may be placed in",
    )
    min_block_minutes: int = Field(
        default=30,
        description="Minimum availability granularity for a time block",
    )

    # Calendar display
    month_cell_capacity: int = Field(
        default=3,
        description="Entries shown per month-view cell before '+N more'",
    )

    # Student mirror sync
    sync_retry_attempts: int = Field(
        default=3,
        description="Attempts for the student assignment write before giving up",
    )
    sync_retry_wait_seconds: float = Field(
        default=0.5,
        description="Fixed wait between student assignment write attempts",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "SCHEDULING_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def is_valid_location(self, location: str) -> bool:
        return location in self.valid_locations


# Singleton pattern
_config: SchedulingConfig | None = None


def get_config() -> SchedulingConfig:
    """Get the scheduling configuration singleton.

    Returns:
        SchedulingConfig: Scheduling configuration instance
    """
    global _config
    if _config is None:
        _config = SchedulingConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads env."""
    global _config
    _config = None
