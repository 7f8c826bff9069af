"""Tracker models for time tracking."""

from app.modules.tracker.models.tracker import (
    RUNNING_DURATION,
    Customer,
    TrackerEntry,
    TrackerProject,
)

__all__ = ["RUNNING_DURATION", "Customer", "TrackerEntry", "TrackerProject"]
