"""Tracker module: time entries, timers and billable time aggregation."""

from app.modules.tracker.api import router

__all__ = ["router"]
