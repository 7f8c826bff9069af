"""Custom exceptions for API error handling."""

from typing import Any

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Custom exception for API errors with standard format.

    Example:
        raise APIException(
            code="TRACKER_ENTRY_NOT_FOUND",
            message="Tracker entry not found",
            status_code=status.HTTP_404_NOT_FOUND
        )
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API exception.

        Args:
            code: Error code (e.g., 'AUTH_INVALID_TOKEN', 'NO_RUNNING_TIMER').
            message: Human-readable error message.
            status_code: HTTP status code (default: 400).
            details: Optional additional error details.
        """
        super().__init__(
            status_code=status_code,
            detail={"error": {"code": code, "message": message, "details": details}},
        )
        self.code = code
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# Helper functions for common error codes
def raise_unauthorized(
    code: str = "AUTH_UNAUTHORIZED", message: str = "Unauthorized"
) -> None:
    """Raise 401 Unauthorized exception.

    Args:
        code: Error code (default: 'AUTH_UNAUTHORIZED').
        message: Error message (default: 'Unauthorized').

    Raises:
        APIException: 401 Unauthorized error.
    """
    raise APIException(
        code=code, message=message, status_code=status.HTTP_401_UNAUTHORIZED
    )
