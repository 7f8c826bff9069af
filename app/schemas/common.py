"""Common schemas for standard API responses."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class StandardResponse(BaseModel, Generic[T]):
    """Standard response wrapper for single resources and collections."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"data": {}, "meta": None, "error": None}}
    )

    data: T = Field(..., description="Response data")
    meta: dict | None = Field(None, description="Optional metadata")
    error: None = Field(None, description="Error object (null on success)")


class ErrorDetail(BaseModel):
    """Error detail schema following API contract."""

    code: str = Field(..., description="Error code (e.g., 'NO_RUNNING_TIMER')")
    message: str = Field(..., description="Human-readable error message")
    details: dict | None = Field(None, description="Additional error details")

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "NO_RUNNING_TIMER",
                "message": "No running timer found",
                "details": {"team_id": "…", "transition": "stop"},
            }
        }
    }


class ErrorResponse(BaseModel):
    """Error response schema following API contract."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "TRACKER_ENTRY_NOT_FOUND",
                    "message": "Tracker entry not found",
                    "details": None,
                },
                "data": None,
            }
        }
    )

    error: ErrorDetail = Field(..., description="Error information")
    data: None = Field(None, description="Data object (null on error)")
