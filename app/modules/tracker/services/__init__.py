"""Tracker services for business logic."""

from app.modules.tracker.services.tracker_entry_service import TrackerEntryService

__all__ = ["TrackerEntryService"]
