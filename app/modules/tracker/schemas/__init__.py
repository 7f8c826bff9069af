"""Tracker schemas for API requests and responses."""

from app.modules.tracker.schemas.tracker_entry import (
    TimerPause,
    TimerStart,
    TimerStatusResponse,
    TimerStop,
    TrackerCustomerSummary,
    TrackerEntriesByDateMeta,
    TrackerEntriesByDateResponse,
    TrackerEntriesByRangeMeta,
    TrackerEntriesByRangeResponse,
    TrackerEntryBulkCreate,
    TrackerEntryCreate,
    TrackerEntryRecord,
    TrackerEntryResponse,
    TrackerEntryUpsert,
    TrackerProjectSummary,
    TrackerUserSummary,
)

__all__ = [
    "TimerPause",
    "TimerStart",
    "TimerStatusResponse",
    "TimerStop",
    "TrackerCustomerSummary",
    "TrackerEntriesByDateMeta",
    "TrackerEntriesByDateResponse",
    "TrackerEntriesByRangeMeta",
    "TrackerEntriesByRangeResponse",
    "TrackerEntryBulkCreate",
    "TrackerEntryCreate",
    "TrackerEntryRecord",
    "TrackerEntryResponse",
    "TrackerEntryUpsert",
    "TrackerProjectSummary",
    "TrackerUserSummary",
]
