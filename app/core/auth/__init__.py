"""Authentication core module."""

from app.core.auth.jwt import (
    create_access_token,
    create_team_access_token,
    decode_token,
)

__all__ = [
    "create_access_token",
    "create_team_access_token",
    "decode_token",
]
