"""Helper functions for tests."""

from datetime import UTC, date, datetime, timedelta

from app.models.user import User
from app.modules.tracker.models import TrackerProject
from app.modules.tracker.schemas import TrackerEntryCreate

# Fixed instant used as "now" by services under test
NOW = datetime(2024, 1, 1, 9, 0, 0, tzinfo=UTC)

JAN_1 = date(2024, 1, 1)
JAN_2 = date(2024, 1, 2)


def finished_entry(
    project: TrackerProject,
    user: User | None = None,
    seconds: int = 3600,
    dates: list[date] | None = None,
    description: str | None = None,
) -> TrackerEntryCreate:
    """
    Build a create payload for a finished span starting at NOW.

    Args:
        project: Project the span is booked against.
        user: Optional assignee.
        seconds: Length of the span.
        dates: Dates to record it on (defaults to JAN_1).
        description: Optional free text.

    Returns:
        TrackerEntryCreate payload.
    """
    return TrackerEntryCreate(
        start=NOW,
        stop=NOW + timedelta(seconds=seconds),
        dates=[JAN_1] if dates is None else dates,
        assigned_id=user.id if user else None,
        project_id=project.id,
        description=description,
        duration=seconds,
    )
