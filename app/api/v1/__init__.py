"""API v1 router aggregation."""

from fastapi import APIRouter

from app.modules.tracker.api import router as tracker_router

api_router = APIRouter()

# Include module routers
api_router.include_router(tracker_router, prefix="/tracker-entries", tags=["tracker"])
