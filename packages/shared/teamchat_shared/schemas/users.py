"""User schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field

from .common import Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Log in with a login id and password."""
    login_id: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """Single user response."""
    id: int
    login_id: str
    name: str
    role: Role
    icon_name: Optional[str] = None
    avatar_path: Optional[str] = None
    created_at: datetime


class UserListResponse(BaseModel):
    """List of active users."""
    data: List[UserResponse]


class AuthResponse(BaseModel):
    """Returned by login. The token is also set as the session cookie."""
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
