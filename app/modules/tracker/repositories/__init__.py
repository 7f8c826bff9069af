"""Tracker repositories for data access operations."""

from app.modules.tracker.repositories.tracker_entry_repository import (
    TrackerAssigneeRepository,
    TrackerEntryRepository,
    TrackerProjectRepository,
)

__all__ = ["TrackerAssigneeRepository", "TrackerEntryRepository", "TrackerProjectRepository"]
