"""Pydantic schemas for API requests and responses."""

from app.schemas.common import (
    ErrorDetail,
    ErrorResponse,
    StandardResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "StandardResponse",
]
