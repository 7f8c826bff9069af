"""Tracker entries router: entry CRUD and timer endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.dependencies import TeamContext, get_team_context
from app.core.db.deps import get_db
from app.modules.tracker.schemas.tracker_entry import (
    TimerPause,
    TimerStart,
    TimerStatusResponse,
    TimerStop,
    TrackerEntriesByDateResponse,
    TrackerEntriesByRangeResponse,
    TrackerEntryBulkCreate,
    TrackerEntryCreate,
    TrackerEntryRecord,
    TrackerEntryResponse,
    TrackerEntryUpsert,
)
from app.modules.tracker.services.tracker_entry_service import TrackerEntryService
from app.schemas.common import ErrorResponse, StandardResponse

router = APIRouter()

NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "Not found in the team"}}

TeamCtx = Annotated[TeamContext, Depends(get_team_context)]
DbSession = Annotated[Session, Depends(get_db)]


# IMPORTANT: Specific routes (like /bulk, /start, /timer/...) must come BEFORE
# parameterized routes (like /{entry_id}) to avoid route conflicts


@router.get(
    "",
    response_model=StandardResponse[TrackerEntriesByRangeResponse],
    status_code=status.HTTP_200_OK,
    summary="List tracker entries",
    description="List tracker entries of a date range grouped by date, with totals.",
)
async def list_tracker_entries(
    ctx: TeamCtx,
    db: DbSession,
    from_date: date = Query(..., alias="from", description="First date (inclusive)"),
    to_date: date = Query(..., alias="to", description="Last date (inclusive)"),
    project_id: UUID | None = Query(None, description="Filter by project"),
    user_id: UUID | None = Query(None, description="Filter by assignee"),
) -> StandardResponse[TrackerEntriesByRangeResponse]:
    service = TrackerEntryService(db)
    return StandardResponse(
        data=service.get_by_range(ctx.team_id, from_date, to_date, project_id, user_id)
    )


@router.get(
    "/by-date",
    response_model=StandardResponse[TrackerEntriesByDateResponse],
    status_code=status.HTTP_200_OK,
    summary="List tracker entries of one date",
)
async def list_tracker_entries_by_date(
    ctx: TeamCtx,
    db: DbSession,
    on_date: date = Query(..., alias="date", description="Date of the entries"),
    project_id: UUID | None = Query(None, description="Filter by project"),
    user_id: UUID | None = Query(None, description="Filter by assignee"),
) -> StandardResponse[TrackerEntriesByDateResponse]:
    service = TrackerEntryService(db)
    return StandardResponse(
        data=service.get_by_date(ctx.team_id, on_date, project_id, user_id)
    )


@router.post(
    "",
    response_model=StandardResponse[list[TrackerEntryResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Create tracker entries",
    description="Record a finished span once per given date. Defaults the assignee to the caller.",
    responses=NOT_FOUND_RESPONSE,
)
async def create_tracker_entries(
    entry_in: TrackerEntryCreate,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[list[TrackerEntryResponse]]:
    entry_data = TrackerEntryUpsert(
        **entry_in.model_dump(exclude={"assigned_id"}),
        assigned_id=entry_in.assigned_id or ctx.user_id,
    )
    service = TrackerEntryService(db)
    return StandardResponse(data=service.upsert(ctx.team_id, entry_data))


@router.post(
    "/bulk",
    response_model=StandardResponse[list[TrackerEntryResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Create multiple tracker entries",
    description="Create many entries in one all-or-nothing request.",
    responses=NOT_FOUND_RESPONSE,
)
async def create_tracker_entries_bulk(
    bulk_in: TrackerEntryBulkCreate,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[list[TrackerEntryResponse]]:
    entries = [
        entry.model_copy(update={"assigned_id": entry.assigned_id or ctx.user_id})
        for entry in bulk_in.entries
    ]
    service = TrackerEntryService(db)
    return StandardResponse(data=service.bulk_create(ctx.team_id, entries))


@router.post(
    "/start",
    response_model=StandardResponse[TrackerEntryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Start timer",
    description="Start a new timer, or resume a paused entry with continue_from_entry.",
    responses={
        **NOT_FOUND_RESPONSE,
        409: {"model": ErrorResponse, "description": "Entry is not paused"},
    },
)
async def start_timer(
    timer_in: TimerStart,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[TrackerEntryResponse]:
    service = TrackerEntryService(db)
    entry = service.start_timer(
        ctx.team_id,
        timer_in.project_id,
        assigned_id=timer_in.assigned_id or ctx.user_id,
        description=timer_in.description,
        start=timer_in.start,
        continue_from_entry=timer_in.continue_from_entry,
    )
    return StandardResponse(data=entry)


@router.patch(
    "/stop",
    response_model=StandardResponse[TrackerEntryResponse],
    status_code=status.HTTP_200_OK,
    summary="Stop timer",
    responses=NOT_FOUND_RESPONSE,
)
async def stop_timer(
    timer_in: TimerStop,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[TrackerEntryResponse]:
    service = TrackerEntryService(db)
    entry = service.stop_timer(
        ctx.team_id,
        entry_id=timer_in.entry_id,
        assigned_id=timer_in.assigned_id or ctx.user_id,
        stop=timer_in.stop,
    )
    return StandardResponse(data=entry)


@router.patch(
    "/pause",
    response_model=StandardResponse[TrackerEntryResponse],
    status_code=status.HTTP_200_OK,
    summary="Pause timer",
    responses=NOT_FOUND_RESPONSE,
)
async def pause_timer(
    timer_in: TimerPause,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[TrackerEntryResponse]:
    service = TrackerEntryService(db)
    entry = service.pause_timer(
        ctx.team_id,
        entry_id=timer_in.entry_id,
        assigned_id=timer_in.assigned_id or ctx.user_id,
        pause=timer_in.pause,
    )
    return StandardResponse(data=entry)


@router.get(
    "/timer/current",
    response_model=StandardResponse[TrackerEntryResponse | None],
    status_code=status.HTTP_200_OK,
    summary="Get current timer",
)
async def get_current_timer(
    ctx: TeamCtx,
    db: DbSession,
    assigned_id: UUID | None = Query(None, description="Assignee, defaults to the caller"),
) -> StandardResponse[TrackerEntryResponse | None]:
    service = TrackerEntryService(db)
    return StandardResponse(data=service.current_timer(ctx.team_id, assigned_id or ctx.user_id))


@router.get(
    "/timer/status",
    response_model=StandardResponse[TimerStatusResponse],
    status_code=status.HTTP_200_OK,
    summary="Get timer status",
)
async def get_timer_status(
    ctx: TeamCtx,
    db: DbSession,
    assigned_id: UUID | None = Query(None, description="Assignee, defaults to the caller"),
) -> StandardResponse[TimerStatusResponse]:
    service = TrackerEntryService(db)
    return StandardResponse(data=service.timer_status(ctx.team_id, assigned_id or ctx.user_id))


@router.get(
    "/timer/paused",
    response_model=StandardResponse[list[TrackerEntryResponse]],
    status_code=status.HTTP_200_OK,
    summary="List paused entries",
    description="Most recent resumable entries, limited to a small display window.",
)
async def list_paused_entries(
    ctx: TeamCtx,
    db: DbSession,
    assigned_id: UUID | None = Query(None, description="Assignee, defaults to the caller"),
) -> StandardResponse[list[TrackerEntryResponse]]:
    service = TrackerEntryService(db)
    return StandardResponse(
        data=service.paused_entries(ctx.team_id, assigned_id or ctx.user_id)
    )


@router.patch(
    "/{entry_id}",
    response_model=StandardResponse[list[TrackerEntryResponse]],
    status_code=status.HTTP_200_OK,
    summary="Update a tracker entry",
    responses=NOT_FOUND_RESPONSE,
)
async def update_tracker_entry(
    entry_id: UUID,
    entry_in: TrackerEntryCreate,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[list[TrackerEntryResponse]]:
    entry_data = TrackerEntryUpsert(
        **entry_in.model_dump(exclude={"assigned_id"}),
        assigned_id=entry_in.assigned_id or ctx.user_id,
        id=entry_id,
    )
    service = TrackerEntryService(db)
    return StandardResponse(data=service.upsert(ctx.team_id, entry_data))


@router.delete(
    "/{entry_id}",
    response_model=StandardResponse[TrackerEntryRecord],
    status_code=status.HTTP_200_OK,
    summary="Delete a tracker entry",
    responses=NOT_FOUND_RESPONSE,
)
async def delete_tracker_entry(
    entry_id: UUID,
    ctx: TeamCtx,
    db: DbSession,
) -> StandardResponse[TrackerEntryRecord]:
    service = TrackerEntryService(db)
    return StandardResponse(data=service.delete(ctx.team_id, entry_id))
