"""Tracker entry schemas for API requests and responses."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.modules.tracker.domain.timer_state import ensure_utc
from app.modules.tracker.models.tracker import RUNNING_DURATION


# Related summaries
class TrackerCustomerSummary(BaseModel):
    """Customer attached to a project in enriched entries."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    website: str | None = None


class TrackerProjectSummary(BaseModel):
    """Project attached to an enriched entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    rate: Decimal | None = None
    currency: str | None = None
    customer: TrackerCustomerSummary | None = None


class TrackerUserSummary(BaseModel):
    """Assignee attached to an enriched entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str | None = None
    avatar_url: str | None = None


# Entry schemas
class TrackerEntryRecord(BaseModel):
    """Tracker entry columns without related data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Entry ID")
    team_id: UUID = Field(..., description="Owning team ID")
    assigned_id: UUID | None = Field(None, description="Assignee user ID")
    project_id: UUID = Field(..., description="Project ID")
    date: dt.date = Field(..., description="Calendar date the entry belongs to")
    start: dt.datetime = Field(..., description="Start of the tracked span")
    stop: dt.datetime | None = Field(None, description="End of the span, null while running")
    duration: int = Field(..., description="Seconds tracked, -1 while running")
    description: str | None = Field(None, description="Free text")
    created_at: dt.datetime = Field(..., description="Creation timestamp")

    @computed_field  # type: ignore[misc]
    @property
    def is_running(self) -> bool:
        return self.duration == RUNNING_DURATION


class TrackerEntryResponse(TrackerEntryRecord):
    """Tracker entry enriched with assignee, project and customer."""

    user: TrackerUserSummary | None = None
    project: TrackerProjectSummary | None = None


class TrackerEntryCreate(BaseModel):
    """Schema for recording an already finished span on one or more dates."""

    start: dt.datetime = Field(..., description="Start of the span")
    stop: dt.datetime = Field(..., description="End of the span")
    dates: list[dt.date] = Field(default_factory=list, description="Dates to record the span on")
    assigned_id: UUID | None = Field(None, description="Assignee user ID")
    project_id: UUID = Field(..., description="Project ID")
    description: str | None = Field(None, description="Free text")
    duration: int = Field(..., ge=0, description="Seconds tracked")

    @model_validator(mode="after")
    def check_span(self) -> "TrackerEntryCreate":
        if ensure_utc(self.stop) < ensure_utc(self.start):
            raise ValueError("stop must not be before start")
        return self


class TrackerEntryUpsert(TrackerEntryCreate):
    """Schema for creating entries, or updating one entry when ``id`` is set."""

    id: UUID | None = Field(None, description="Entry to update")


class TrackerEntryBulkCreate(BaseModel):
    """Schema for creating many entries in one all-or-nothing call."""

    entries: list[TrackerEntryCreate] = Field(..., description="Entries to create")


# Query results
class TrackerEntriesByDateMeta(BaseModel):
    total_duration: int = Field(..., description="Sum of durations in seconds")


class TrackerEntriesByDateResponse(BaseModel):
    """Entries recorded on a single date."""

    meta: TrackerEntriesByDateMeta
    data: list[TrackerEntryResponse]


class TrackerEntriesByRangeMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_duration: int = Field(..., description="Sum of durations in seconds")
    total_amount: float = Field(..., description="Sum of rate x hours over all entries")
    from_date: dt.date = Field(..., alias="from", description="First date of the range")
    to_date: dt.date = Field(..., alias="to", description="Last date of the range")


class TrackerEntriesByRangeResponse(BaseModel):
    """Entries of a date range grouped by date, in creation order."""

    meta: TrackerEntriesByRangeMeta
    result: dict[str, list[TrackerEntryResponse]]


# Timer schemas
class TimerStart(BaseModel):
    """Schema for starting a fresh timer or resuming a paused entry."""

    project_id: UUID = Field(..., description="Project to track time on")
    assigned_id: UUID | None = Field(None, description="Assignee, defaults to the caller")
    description: str | None = Field(None, description="Free text")
    start: dt.datetime | None = Field(None, description="Start instant, defaults to now")
    continue_from_entry: UUID | None = Field(None, description="Paused entry to resume")


class TimerStop(BaseModel):
    """Schema for stopping the running timer."""

    entry_id: UUID | None = Field(None, description="Running entry to stop")
    assigned_id: UUID | None = Field(None, description="Assignee, defaults to the caller")
    stop: dt.datetime | None = Field(None, description="Stop instant, defaults to now")


class TimerPause(BaseModel):
    """Schema for pausing the running timer."""

    entry_id: UUID | None = Field(None, description="Running entry to pause")
    assigned_id: UUID | None = Field(None, description="Assignee, defaults to the caller")
    pause: dt.datetime | None = Field(None, description="Pause instant, defaults to now")


class TimerStatusResponse(BaseModel):
    """Whether a timer is running and for how long."""

    is_running: bool
    current_entry: TrackerEntryResponse | None = None
    elapsed_seconds: int = 0
