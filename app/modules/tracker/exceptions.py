"""Custom exceptions for the tracker module."""

from typing import Any
from uuid import UUID

from fastapi import status

from app.core.exceptions import APIException


class TrackerError(APIException):
    """Base class for tracker failures.

    ``details`` always carries the context needed to explain the failure
    (team, entry and attempted transition when known).
    """

    error_code = "TRACKER_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code=self.error_code,
            message=message,
            status_code=self.http_status,
            details=_stringify(details or {}),
        )

    def with_context(self, **context: Any) -> "TrackerError":
        """Add context keys that are not already present and return self."""
        for key, value in _stringify(context).items():
            self.details.setdefault(key, value)
        return self


class TrackerEntryNotFoundError(TrackerError):
    """Raised when an entry does not exist inside the caller's team."""

    error_code = "TRACKER_ENTRY_NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, team_id: UUID, entry_id: UUID, transition: str | None = None) -> None:
        super().__init__(
            f"Tracker entry not found (ID: {entry_id})",
            {"team_id": team_id, "entry_id": entry_id, "transition": transition},
        )


class TrackerProjectNotFoundError(TrackerError):
    """Raised when a project does not exist inside the caller's team."""

    error_code = "TRACKER_PROJECT_NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, team_id: UUID, project_id: UUID) -> None:
        super().__init__(
            f"Tracker project not found (ID: {project_id})",
            {"team_id": team_id, "project_id": project_id},
        )


class TrackerAssigneeNotFoundError(TrackerError):
    """Raised when an assignee is not a user of the caller's team."""

    error_code = "TRACKER_ASSIGNEE_NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, team_id: UUID, assigned_id: UUID) -> None:
        super().__init__(
            f"Assignee not found (ID: {assigned_id})",
            {"team_id": team_id, "assigned_id": assigned_id},
        )


class NoRunningTimerError(TrackerError):
    """Raised when stop or pause finds no running timer."""

    error_code = "NO_RUNNING_TIMER"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        team_id: UUID,
        transition: str,
        entry_id: UUID | None = None,
        assigned_id: UUID | None = None,
    ) -> None:
        super().__init__(
            "No running timer found",
            {
                "team_id": team_id,
                "entry_id": entry_id,
                "assigned_id": assigned_id,
                "transition": transition,
            },
        )


class InvalidTimerStateError(TrackerError):
    """Raised when a transition does not apply to the entry's current state."""

    error_code = "INVALID_TIMER_STATE"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str, transition: str, state: str) -> None:
        super().__init__(message, {"transition": transition, "state": state})


class TrackerValidationError(TrackerError):
    """Raised for inputs describing a state that cannot exist."""

    error_code = "TRACKER_VALIDATION_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST


class TrackerStorageError(TrackerError):
    """Raised when the store accepted a write but returned nothing."""

    error_code = "TRACKER_STORAGE_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


def _stringify(values: dict[str, Any]) -> dict[str, Any]:
    """Drop empty keys and render identifiers and dates as strings."""
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in values.items()
        if value is not None
    }
