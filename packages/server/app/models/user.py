"""User model."""

from typing import Optional

from sqlmodel import Field

from .base import IntIdMixin, TimestampMixin


class User(IntIdMixin, TimestampMixin, table=True):
    __tablename__ = "users"

    login_id: str = Field(nullable=False, unique=True, index=True)
    name: str = Field(nullable=False)
    password_hash: Optional[str] = Field(default=None)  # bcrypt
    role: str = Field(nullable=False, default="member")  # admin | manager | member | viewer
    is_active: bool = Field(default=True, nullable=False)
    icon_name: Optional[str] = None
    avatar_path: Optional[str] = None
