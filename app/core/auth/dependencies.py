"""FastAPI dependencies resolving the caller's team context."""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from app.core.auth.jwt import decode_token
from app.core.exceptions import raise_unauthorized

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@dataclass(frozen=True)
class TeamContext:
    """Resolved identity of the caller, passed explicitly into every store call."""

    team_id: UUID
    user_id: UUID


def _claim_as_uuid(payload: dict, claim: str, label: str) -> UUID:
    value = payload.get(claim)
    if not value:
        raise_unauthorized("AUTH_INVALID_TOKEN", f"Token missing {label}")
    try:
        return UUID(value)
    except ValueError:
        raise_unauthorized("AUTH_INVALID_TOKEN", f"Invalid {label} in token")


async def get_team_context(
    token: Annotated[str, Depends(oauth2_scheme)],
) -> TeamContext:
    """
    Resolve the team and user the request acts for from its JWT access token.

    Args:
        token: JWT access token from Authorization header.

    Returns:
        TeamContext with the caller's team and user identifiers.

    Raises:
        APIException: If the token is invalid, expired, or missing claims.
    """
    payload = decode_token(token)
    if payload is None:
        raise_unauthorized("AUTH_INVALID_TOKEN", "Invalid or expired token")

    if payload.get("type") != "access":
        raise_unauthorized("AUTH_INVALID_TOKEN", "Invalid token type")

    user_id = _claim_as_uuid(payload, "sub", "user ID")
    team_id = _claim_as_uuid(payload, "team_id", "team ID")
    return TeamContext(team_id=team_id, user_id=user_id)
